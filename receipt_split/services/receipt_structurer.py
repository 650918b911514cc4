from __future__ import annotations

import logging
from typing import Optional

from openai import OpenAI
from pydantic import BaseModel, Field, conlist

from receipt_split.core.config import settings

logger = logging.getLogger(__name__)


class ParsedItem(BaseModel):
    name: str = Field(description="Human-readable product name, e.g. 'Coca-Cola' instead of 'COLA'.")
    quantity: Optional[int] = Field(default=None, description="Quantity if present, otherwise 1.")
    total_price: Optional[float] = Field(default=None, description="Total price for this line if present.")
    price_per_item: Optional[float] = Field(default=None, description="Unit price if present.")


class ParsedReceipt(BaseModel):
    title: Optional[str] = Field(default=None, description="Restaurant or store name the receipt is from.")
    receipt_date: Optional[str] = Field(
        default=None,
        description="Receipt date as printed, ISO 8601 (YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS) when possible.",
    )
    currency: Optional[str] = Field(
        default=None,
        description="ISO-4217 currency code (USD, EUR, JPY, ...). Infer from context if not explicit.",
    )
    tax: Optional[float] = Field(default=None, description="Sales tax amount if present.")
    tip: Optional[float] = Field(default=None, description="Tip/gratuity amount if present.")
    items: conlist(ParsedItem, max_length=100) = Field(
        default_factory=list,
        description="Purchased line items only; exclude tax, totals, payment, change, headers and footers.",
    )


class OpenAIReceiptStructurer:
    def __init__(self, client: OpenAI | None = None, model: str | None = None, api_key: str | None = None):
        self._client = client
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_STRUCT_MODEL

    @property
    def client(self) -> OpenAI:
        # built on first use so a missing key only fails the call, not the request
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key or None)
        return self._client

    def structure(self, ocr_text: str) -> ParsedReceipt:
        if not ocr_text or not ocr_text.strip():
            raise ValueError("ocr text is empty")

        system = (
            "You are parsing OCR text from a receipt that a group will split.\n"
            "Rules:\n"
            "- If a value is not present, return null.\n"
            "- Do NOT invent values.\n"
            "- Include only purchased line items in items (exclude tax, totals, payment, change, headers, footers).\n"
            "- If quantity is missing, use 1.\n"
            "- If total_price or price_per_item is missing, set it to null.\n"
            "- Title should be the restaurant name or where the receipt is from.\n"
            "- If currency is not explicit, infer it from context; if there is no hint, return null.\n"
            "- tax: the sales tax amount if present. tip: the tip/gratuity if present.\n"
        )

        # Attempt 1: full extraction
        # Attempt 2 (fallback): header-only fields, items=[]
        last_err: Exception | None = None
        for attempt in range(2):
            try:
                if attempt == 0:
                    user = f"Receipt OCR text:\n---\n{ocr_text}\n---"
                    max_out = 2500
                else:
                    user = (
                        f"Receipt OCR text:\n---\n{ocr_text}\n---\n\n"
                        "FALLBACK MODE: Return only title, receipt_date, currency, tax, tip. "
                        "Set items to an empty list []."
                    )
                    max_out = 800

                resp = self.client.responses.parse(
                    model=self.model,
                    input=[
                        {"role": "system", "content": system},
                        {"role": "user", "content": user},
                    ],
                    text_format=ParsedReceipt,
                    temperature=0,
                    max_output_tokens=max_out,
                )
                if resp.output_parsed is None:
                    raise ValueError("empty structured response")
                return resp.output_parsed

            except Exception as e:
                last_err = e
                logger.warning("structured extraction attempt %d failed: %s", attempt + 1, e)

        raise last_err  # type: ignore
