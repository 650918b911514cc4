from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from receipt_split.services.image_storage import LocalImageStorage
from receipt_split.services.ocr_provider import OpenAIVisionOcrProvider
from receipt_split.services.receipt_structurer import OpenAIReceiptStructurer


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_image_storage(request: Request) -> LocalImageStorage:
    return request.app.state.image_storage


def get_ocr_provider(request: Request) -> OpenAIVisionOcrProvider:
    settings = request.app.state.settings
    return OpenAIVisionOcrProvider(model=settings.OPENAI_OCR_MODEL, api_key=settings.OPENAI_API_KEY)


def get_receipt_structurer(request: Request) -> OpenAIReceiptStructurer:
    settings = request.app.state.settings
    return OpenAIReceiptStructurer(model=settings.OPENAI_STRUCT_MODEL, api_key=settings.OPENAI_API_KEY)
