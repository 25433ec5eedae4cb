import os
import logging

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import text

from qr_errors import StorageError

logger = logging.getLogger(__name__)

db = SQLAlchemy()


# ========== SQLAlchemy Model: QrCode ==========
# ตาราง qr_code เก็บประวัติการสร้าง QR (insert ครั้งเดียว ไม่มี update/delete)
class QrCode(db.Model):
    __tablename__ = 'qr_code'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    promptpay_id = db.Column(db.String(50), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    image_path = db.Column(db.Text, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'promptpay_id': self.promptpay_id,
            'amount': str(self.amount),  # Decimal -> "100.50"
            'image_path': self.image_path,
        }

    def __repr__(self):
        return f'<QrCode {self.id}>'


def init_store(app, image_dir=None):
    """
    Bootstrap ก่อนรับ traffic: เช็ก DB (SELECT 1), สร้างตารางถ้ายังไม่มี,
    และสร้างโฟลเดอร์เก็บรูป เรียกซ้ำได้โดยไม่กระทบข้อมูลเดิม
    """
    with app.app_context():
        try:
            db.session.execute(text("SELECT 1"))
            db.create_all()
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StorageError(f"Database initialization failed: {e}") from e
    logger.info("✅ Database connection succeeded, table 'qr_code' is ready.")

    if image_dir:
        try:
            os.makedirs(image_dir, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create image directory {image_dir}: {e}") from e
