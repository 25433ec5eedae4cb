import os
import re
from decimal import Decimal

import pytest

from models import QrCode, db, init_store
from qr_errors import StorageError
from qr_store import QrFileStore, QrRecordStore

FILENAME_RE = re.compile(r"^qr_\d{13}_[0-9a-f]{8}\.png$")


# ---------------------------------------------------------------------------
# File store
# ---------------------------------------------------------------------------

def test_new_filename_format_and_uniqueness(tmp_path):
    store = QrFileStore(tmp_path)
    names = {store.new_filename() for _ in range(50)}
    assert len(names) == 50
    assert all(FILENAME_RE.match(n) for n in names)


def test_write_creates_file_without_temp_leftover(tmp_path):
    store = QrFileStore(tmp_path)
    path = store.write("qr_1_abcdef01.png", b"png-bytes")
    assert path == str(tmp_path / "qr_1_abcdef01.png")
    assert (tmp_path / "qr_1_abcdef01.png").read_bytes() == b"png-bytes"
    assert os.listdir(tmp_path) == ["qr_1_abcdef01.png"]
    assert store.exists("qr_1_abcdef01.png")


def test_write_never_overwrites(tmp_path):
    store = QrFileStore(tmp_path)
    store.write("qr_1_abcdef01.png", b"first")
    with pytest.raises(StorageError):
        store.write("qr_1_abcdef01.png", b"second")
    assert (tmp_path / "qr_1_abcdef01.png").read_bytes() == b"first"


def test_write_into_missing_directory_fails(tmp_path):
    store = QrFileStore(tmp_path / "missing")
    with pytest.raises(StorageError):
        store.write("qr_1_abcdef01.png", b"data")


def test_path_for_strips_directories(tmp_path):
    store = QrFileStore(tmp_path)
    assert store.path_for("../../etc/passwd") == str(tmp_path / "passwd")


# ---------------------------------------------------------------------------
# Record store / bootstrap
# ---------------------------------------------------------------------------

def test_insert_assigns_increasing_ids(app):
    store = QrRecordStore(db)
    with app.app_context():
        first = store.insert("0812345678", Decimal("100.50"), "qr_1_aaaaaaaa.png")
        second = store.insert("1103703685864", Decimal("1.00"), "qr_2_bbbbbbbb.png")
        assert second.id > first.id
        assert first.amount == Decimal("100.50")


def test_list_all_newest_first(app):
    store = QrRecordStore(db)
    with app.app_context():
        ids = [store.insert("0812345678", Decimal(i), f"qr_{i}_aaaaaaaa.png").id for i in range(1, 4)]
        rows = store.list_all()
        assert [r.id for r in rows] == sorted(ids, reverse=True)


def test_insert_failure_raises_storage_error(app, monkeypatch):
    from sqlalchemy.exc import SQLAlchemyError

    def boom():
        raise SQLAlchemyError("insert failed")

    store = QrRecordStore(db)
    with app.app_context():
        monkeypatch.setattr(db.session, "commit", boom)
        with pytest.raises(StorageError):
            store.insert("0812345678", Decimal("1.00"), "qr_1_aaaaaaaa.png")


def test_init_store_is_idempotent(app):
    with app.app_context():
        QrRecordStore(db).insert("0812345678", Decimal("5.00"), "qr_1_aaaaaaaa.png")

    init_store(app, app.config['QR_IMAGE_DIR'])
    init_store(app, app.config['QR_IMAGE_DIR'])

    with app.app_context():
        rows = QrCode.query.all()
        assert len(rows) == 1
        assert rows[0].to_dict() == {
            'id': rows[0].id,
            'promptpay_id': "0812345678",
            'amount': "5.00",
            'image_path': "qr_1_aaaaaaaa.png",
        }


def test_init_store_creates_image_dir(app, tmp_path):
    target = tmp_path / "new-images"
    init_store(app, str(target))
    assert target.is_dir()
