import os

import pytest

from AppQR import create_app
from models import QrCode


@pytest.fixture
def make_app(tmp_path):
    """Build an app on a throwaway SQLite file + image dir; kwargs override config."""
    def _make(**overrides):
        config = {
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'qr.db'}",
            'QR_IMAGE_DIR': str(tmp_path / 'images'),
            'AMOUNT_POLICY': "decimal",
            'GENERATE_RESPONSE': "html",
            'AUTH_MODE': "none",
        }
        config.update(overrides)
        return create_app(config)
    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def record_count():
    def _count(app):
        with app.app_context():
            return QrCode.query.count()
    return _count


@pytest.fixture
def image_files():
    def _files(app):
        folder = app.config['QR_IMAGE_DIR']
        if not os.path.isdir(folder):
            return []
        return sorted(os.listdir(folder))
    return _files
