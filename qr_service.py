import logging
from dataclasses import dataclass

from promptpay_qr import generate_payload, parse_amount, render_png
from qr_errors import ValidationError

logger = logging.getLogger(__name__)

PROMPTPAY_ID_MAX_LEN = 50


@dataclass
class GeneratedQr:
    record: object
    png_bytes: bytes
    payload: str


def _present(v):
    return v is not None and str(v).strip() != ""


class GenerationService:
    """
    validate -> payload -> PNG -> เขียนไฟล์ -> insert record

    ไฟล์ต้องเขียนเสร็จก่อน insert เสมอ ถ้า insert พังไฟล์จะค้างอยู่ (ไม่ลบย้อนหลัง)
    """

    def __init__(self, record_store, file_store, encoder=generate_payload, renderer=render_png,
                 amount_policy="decimal"):
        self.record_store = record_store
        self.file_store = file_store
        self.encoder = encoder
        self.renderer = renderer
        self.amount_policy = amount_policy

    def generate(self, promptpay_id, amount):
        if not _present(promptpay_id) or not _present(amount):
            raise ValidationError("Missing promptpayId or amount")

        promptpay_id = str(promptpay_id).strip()
        if len(promptpay_id) > PROMPTPAY_ID_MAX_LEN:
            raise ValidationError(f"promptpayId must be at most {PROMPTPAY_ID_MAX_LEN} characters")

        value = parse_amount(amount, self.amount_policy)

        payload = self.encoder(promptpay_id, value)
        png_bytes = self.renderer(payload)

        filename = self.file_store.new_filename()
        self.file_store.write(filename, png_bytes)

        record = self.record_store.insert(promptpay_id, value, filename)
        logger.info(f"✅ QR {record.id} generated for {promptpay_id} ({value}) -> {filename}")
        return GeneratedQr(record=record, png_bytes=png_bytes, payload=payload)


class ListingService:
    def __init__(self, record_store):
        self.record_store = record_store

    def list_records(self):
        return self.record_store.list_all()
