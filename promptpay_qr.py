import io
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

import qrcode
from qrcode.constants import ERROR_CORRECT_H
from promptpay import qrcode as promptpay_qrcode

from qr_errors import EncodingError, RenderError, ValidationError

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
MAX_AMOUNT = Decimal("99999999.99")  # Numeric(10, 2)


# === Amount parser: decimal (รับเศษสตางค์) หรือ integer (บาทเต็มเท่านั้น) ===
def parse_amount(raw, policy="decimal"):
    """
    แปลง amount จาก form/JSON เป็น Decimal 2 ตำแหน่ง

    - policy="decimal": รับทศนิยม เช่น "100.50"
    - policy="integer": ต้องเป็นจำนวนเต็ม ("100" หรือ "100.00") ไม่งั้น ValidationError
    ค่าติดลบ / NaN / Infinity / เกิน Numeric(10,2) ถือว่าไม่ถูกต้องทั้งหมด
    """
    if isinstance(raw, bool) or raw is None:
        raise ValidationError("Invalid amount")
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation as e:
        raise ValidationError("Invalid amount") from e

    if not value.is_finite() or value < 0:
        raise ValidationError("Invalid amount")

    if policy == "integer":
        if value != value.to_integral_value():
            raise ValidationError("Amount must be a whole number")
    elif policy != "decimal":
        raise ValueError(f"unknown amount policy: {policy!r}")

    # เช็กช่วงก่อน quantize: exponent ใหญ่ๆ (เช่น "1e30") ทำ quantize พังเกิน precision
    if value > MAX_AMOUNT:
        raise ValidationError("Invalid amount")
    try:
        value = value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValidationError("Invalid amount") from e
    if value > MAX_AMOUNT:
        raise ValidationError("Invalid amount")
    return value


# === Payload encoder: ให้ไลบรารี promptpay จัดการประเภท ID และ CRC ===
def generate_payload(promptpay_id, amount):
    try:
        return promptpay_qrcode.generate_payload(promptpay_id, float(amount))
    except Exception as e:
        raise EncodingError(f"Payload generation failed for {promptpay_id!r}: {e}") from e


# === Image renderer: payload -> PNG bytes ===
def render_png(payload):
    try:
        qr = qrcode.QRCode(
            version=None,  # ให้ make(fit=True) เลือกขนาดเอง
            error_correction=ERROR_CORRECT_H,
            box_size=10,
            border=4,
        )
        qr.add_data(payload)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")
        buffered = io.BytesIO()
        img.save(buffered, format="PNG")
        return buffered.getvalue()
    except Exception as e:
        raise RenderError(f"QR image encode failed: {e}") from e
