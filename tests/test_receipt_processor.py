from datetime import datetime
from decimal import Decimal

from receipt_split.services import receipt_service
from receipt_split.services.receipt_processor import extract_receipt, ingest_receipt_image, run_ocr
from receipt_split.services.receipt_structurer import ParsedItem, ParsedReceipt

from fakes import FakeOcr, FakeStorage, FakeStructurer

OCR_TEXT = "DINER\nBurger   2   $10.00\nFries  3.50\nTOTAL 13.50\n"


def _ingest(db, ocr, structurer, storage=None):
    return ingest_receipt_image(
        db,
        b"\xff\xd8fake-jpeg",
        "image/jpeg",
        storage=storage or FakeStorage(),
        ocr=ocr,
        structurer=structurer,
    )


def test_run_ocr_swallows_failures():
    assert run_ocr(FakeOcr(error=TimeoutError("slow")), b"img", "image/png") is None
    assert run_ocr(FakeOcr(text="   "), b"img", "image/png") is None
    assert run_ocr(FakeOcr(text=" hello \n"), b"img", "image/png") == "hello"


def test_extract_falls_back_to_line_parser():
    extracted = extract_receipt(FakeStructurer(error=ValueError("bad json")), OCR_TEXT)

    assert [(i.name, i.quantity, i.total_price) for i in extracted.items] == [
        ("Burger", 2, Decimal("10.00")),
        ("Fries", 1, Decimal("3.50")),
    ]
    assert extracted.currency is None


def test_extract_keeps_metadata_when_llm_finds_no_items():
    parsed = ParsedReceipt(title="Diner", currency="USD", tax=1.1, items=[])

    extracted = extract_receipt(FakeStructurer(result=parsed), OCR_TEXT)

    assert extracted.title == "Diner"
    assert extracted.tax == Decimal("1.1")
    assert len(extracted.items) == 2


def test_ingest_with_structured_extraction(db):
    parsed = ParsedReceipt(
        title="Diner",
        receipt_date="2024-05-04",
        currency="$",
        tip=2.0,
        items=[ParsedItem(name="Burger", quantity=2, price_per_item=5.0), ParsedItem(name="", total_price=1.0)],
    )
    storage = FakeStorage()

    result = _ingest(db, FakeOcr(text=OCR_TEXT), FakeStructurer(result=parsed), storage)

    receipt = receipt_service.get_receipt(db, result.receipt.id)
    assert result.image_url == f"/uploads/receipts/{receipt.id}.jpg"
    assert storage.uploads == [(receipt.id, "image/jpeg", 11)]
    assert receipt.image_url == result.image_url
    assert receipt.ocr_plain_text == OCR_TEXT.strip()
    assert (receipt.title, receipt.currency, receipt.tip) == ("Diner", "USD", 2.0)
    assert receipt.receipt_date == datetime(2024, 5, 4)

    items = receipt_service.list_items(db, receipt.id)
    assert [(i.name, i.quantity, i.total_price) for i in items] == [("Burger", 2, 10.0)]


def test_ingest_without_ocr_still_saves_receipt(db):
    ocr = FakeOcr(error=RuntimeError("provider down"))

    result = _ingest(db, ocr, FakeStructurer(error=AssertionError("must not be called")))

    assert ocr.calls == 1
    assert result.ocr_text is None
    assert receipt_service.get_receipt(db, result.receipt.id).image_url == result.image_url
    assert receipt_service.list_items(db, result.receipt.id) == []


def test_ingest_drops_items_too_large_to_store(db):
    parsed = ParsedReceipt(
        items=[
            ParsedItem(name="Bolt", quantity=10**20, price_per_item=1.0),
            ParsedItem(name="Yacht", quantity=1, total_price=1e27),
            ParsedItem(name="Nut", quantity=4, price_per_item=0.25),
        ],
    )

    result = _ingest(db, FakeOcr(text=OCR_TEXT), FakeStructurer(result=parsed))

    items = receipt_service.list_items(db, result.receipt.id)
    assert [(i.name, i.quantity, i.total_price) for i in items] == [("Nut", 4, 1.0)]
