"""Stand-ins for the external collaborators of image ingestion."""


class FakeStorage:
    def __init__(self):
        self.uploads = []

    def upload(self, data, receipt_id, content_type):
        self.uploads.append((receipt_id, content_type, len(data)))
        return f"/uploads/receipts/{receipt_id}.jpg"


class FakeOcr:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = 0

    def extract_text(self, image, content_type=None):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.text


class FakeStructurer:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error

    def structure(self, ocr_text):
        if self.error is not None:
            raise self.error
        return self.result
