"""Image ingestion: store, OCR, extract, normalize, save.

Each external stage is isolated. A failing OCR call still leaves a saved
receipt with its image; a failing extraction falls back to the line
parser. Only storage and database failures reach the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.orm import Session

from receipt_split.core.ids import generate_id
from receipt_split.models.receipt import Receipt
from receipt_split.services.receipt_normalizer import NormalizedReceipt, normalize_extraction
from receipt_split.services.receipt_service import create_receipt
from receipt_split.services.text_parser import extract_items_from_text

logger = logging.getLogger(__name__)


class ImageStorage(Protocol):
    def upload(self, data: bytes, receipt_id: str, content_type: str | None) -> str: ...


class OcrProvider(Protocol):
    def extract_text(self, image: bytes, content_type: str | None = None) -> str: ...


class ReceiptStructurer(Protocol):
    def structure(self, ocr_text: str): ...


@dataclass
class IngestionResult:
    receipt: Receipt
    image_url: str
    ocr_text: str | None
    extracted: NormalizedReceipt


def run_ocr(ocr: OcrProvider, image: bytes, content_type: str | None) -> str | None:
    try:
        text = ocr.extract_text(image, content_type)
    except Exception as e:
        logger.warning("OCR failed, saving receipt without items: %s", e)
        return None
    text = (text or "").strip()
    if not text:
        logger.warning("OCR returned no text, saving receipt without items")
        return None
    return text


def extract_receipt(structurer: ReceiptStructurer, ocr_text: str) -> NormalizedReceipt:
    try:
        parsed = structurer.structure(ocr_text)
    except Exception as e:
        logger.warning("receipt extraction failed, falling back to line parser: %s", e)
        return NormalizedReceipt(items=normalize_extraction({"items": extract_items_from_text(ocr_text)}).items)

    extracted = normalize_extraction(parsed)
    if not extracted.items:
        extracted.items = normalize_extraction({"items": extract_items_from_text(ocr_text)}).items
    return extracted


def ingest_receipt_image(
    db: Session,
    image: bytes,
    content_type: str | None,
    *,
    storage: ImageStorage,
    ocr: OcrProvider,
    structurer: ReceiptStructurer,
) -> IngestionResult:
    receipt_id = generate_id()
    image_url = storage.upload(image, receipt_id, content_type)

    ocr_text = run_ocr(ocr, image, content_type)
    extracted = extract_receipt(structurer, ocr_text) if ocr_text else NormalizedReceipt()

    receipt = create_receipt(
        db,
        extracted.items,
        receipt_id=receipt_id,
        image_url=image_url,
        ocr_text=ocr_text,
        currency=extracted.currency,
        receipt_date=extracted.receipt_date,
        title=extracted.title,
        tax=extracted.tax,
        tip=extracted.tip,
    )
    logger.info("ingested receipt %s with %d item(s)", receipt.id, len(extracted.items))
    return IngestionResult(receipt=receipt, image_url=image_url, ocr_text=ocr_text, extracted=extracted)
