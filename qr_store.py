import os
import time
import logging
import secrets

from sqlalchemy.exc import SQLAlchemyError

from models import QrCode
from qr_errors import StorageError

logger = logging.getLogger(__name__)


class QrFileStore:
    """PNG files on disk, keyed by generated filename and served at /qr-images/."""

    def __init__(self, directory):
        self.directory = os.path.abspath(directory)

    def new_filename(self):
        # millis + random token กันชื่อซ้ำตอน request ถี่ๆ
        return f"qr_{int(time.time() * 1000)}_{secrets.token_hex(4)}.png"

    def path_for(self, filename):
        return os.path.join(self.directory, os.path.basename(filename))

    def exists(self, filename):
        return os.path.isfile(self.path_for(filename))

    def write(self, filename, data_bytes):
        """Write bytes atomically (write tmp -> replace). Never overwrites an existing file."""
        path = self.path_for(filename)
        tmp = path + ".tmp"
        try:
            if os.path.exists(path):
                raise FileExistsError(path)
            with open(tmp, "wb") as f:
                f.write(data_bytes)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except OSError as e:
            if os.path.exists(tmp):
                try:
                    os.remove(tmp)
                except OSError:
                    logger.warning(f"Could not remove temp file {tmp}")
            raise StorageError(f"Cannot write {path}: {e}") from e
        return path


class QrRecordStore:
    """Insert/select over the qr_code table through an injected Flask-SQLAlchemy handle."""

    def __init__(self, db):
        self.db = db

    def insert(self, promptpay_id, amount, image_path):
        record = QrCode(promptpay_id=promptpay_id, amount=amount, image_path=image_path)
        try:
            self.db.session.add(record)
            self.db.session.commit()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            raise StorageError(f"Insert into qr_code failed: {e}") from e
        return record

    def list_all(self):
        try:
            stmt = self.db.select(QrCode).order_by(QrCode.id.desc())
            return self.db.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            raise StorageError(f"Select from qr_code failed: {e}") from e
