from __future__ import annotations

import base64
import logging
import time

from openai import OpenAI

from receipt_split.core.config import settings

logger = logging.getLogger(__name__)


class OpenAIVisionOcrProvider:
    def __init__(self, client: OpenAI | None = None, model: str | None = None, api_key: str | None = None):
        self._client = client
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_OCR_MODEL

    @property
    def client(self) -> OpenAI:
        # built on first use so a missing key only fails the call, not the request
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key or None)
        return self._client

    def extract_text(self, image: bytes, content_type: str | None = None) -> str:
        if not image:
            raise ValueError("empty image")

        mime = content_type or "image/jpeg"
        b64 = base64.b64encode(image).decode("utf-8")
        data_url = f"data:{mime};base64,{b64}"

        prompt = (
            "You are an OCR engine for receipts.\n"
            "Task: extract ALL visible text from the receipt image.\n"
            "Rules:\n"
            "- Output ONLY the extracted text, no commentary.\n"
            "- Preserve reading order and line breaks as much as possible.\n"
            "- Keep item names, quantities and prices on the same line when they are on the same row.\n"
            "- If a token is unclear, keep the best guess rather than omitting.\n"
        )

        last_err: Exception | None = None
        for attempt in range(3):
            try:
                resp = self.client.responses.create(
                    model=self.model,
                    input=[{
                        "role": "user",
                        "content": [
                            {"type": "input_text", "text": prompt},
                            {"type": "input_image", "image_url": data_url},
                        ],
                    }],
                    temperature=0,
                    max_output_tokens=2000,
                )
                return (resp.output_text or "").strip()
            except Exception as e:
                last_err = e
                logger.warning("OCR attempt %d failed: %s", attempt + 1, e)
                time.sleep(2 ** attempt)

        raise last_err
