import os
import logging

from dotenv import load_dotenv
from sqlalchemy.engine import URL

logger = logging.getLogger(__name__)

AMOUNT_POLICIES = ("decimal", "integer")
GENERATE_RESPONSES = ("html", "image")
AUTH_MODES = ("none", "basic", "jwt")


def _as_int(v, default=0):
    try: return int(v)
    except (TypeError, ValueError): return default


def build_db_uri():
    """
    สร้าง SQLAlchemy URI จาก env (DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD)
    ถ้ามี QR_DB_URI จะใช้ค่านั้นแทนทั้งหมด
    """
    uri = os.getenv("QR_DB_URI")
    if uri:
        return uri

    password = os.getenv("DB_PASSWORD", "")
    if not password:
        # เตือนแบบไม่ทำให้แอปล่ม (ค่า default ใช้ได้แค่ตอน dev)
        logger.warning("[WARN] DB_PASSWORD is not set in environment. Please configure it for production.")

    return URL.create(
        "mysql+mysqlconnector",
        username=os.getenv("DB_USER", "root"),
        password=password or None,
        host=os.getenv("DB_HOST", "localhost"),
        port=_as_int(os.getenv("DB_PORT"), 3306),
        database=os.getenv("DB_NAME", "qr_code"),
    ).render_as_string(hide_password=False)


def load_settings():
    """Read the environment (and .env) into a dict of Flask config keys."""
    load_dotenv()
    return {
        'SQLALCHEMY_DATABASE_URI': build_db_uri(),
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'HOST': os.getenv("HOST", "0.0.0.0"),
        'PORT': _as_int(os.getenv("PORT"), 3000),
        'QR_IMAGE_DIR': os.getenv("QR_IMAGE_DIR", "./data"),
        'AMOUNT_POLICY': os.getenv("AMOUNT_POLICY", "decimal").strip().lower(),
        'GENERATE_RESPONSE': os.getenv("GENERATE_RESPONSE", "html").strip().lower(),
        'AUTH_MODE': os.getenv("AUTH_MODE", "none").strip().lower(),
        'BASIC_AUTH_USER': os.getenv("BASIC_AUTH_USER", "admin"),
        'BASIC_AUTH_PASSWORD': os.getenv("BASIC_AUTH_PASSWORD"),
        'JWT_SECRET': os.getenv("JWT_SECRET"),
        'LOG_LEVEL': os.getenv("LOG_LEVEL", "INFO").upper(),
        'SUPPRESS_ACCESS_PATHS': os.getenv("SUPPRESS_ACCESS_PATHS", "/qr-images/"),
    }


def check_settings(config):
    """Fail fast on settings the app cannot run with."""
    if config['AMOUNT_POLICY'] not in AMOUNT_POLICIES:
        raise ValueError(f"AMOUNT_POLICY must be one of {AMOUNT_POLICIES}, got {config['AMOUNT_POLICY']!r}")
    if config['GENERATE_RESPONSE'] not in GENERATE_RESPONSES:
        raise ValueError(f"GENERATE_RESPONSE must be one of {GENERATE_RESPONSES}, got {config['GENERATE_RESPONSE']!r}")
    if config['AUTH_MODE'] not in AUTH_MODES:
        raise ValueError(f"AUTH_MODE must be one of {AUTH_MODES}, got {config['AUTH_MODE']!r}")
    if config['AUTH_MODE'] == "basic" and not config.get('BASIC_AUTH_PASSWORD'):
        raise ValueError("AUTH_MODE=basic requires BASIC_AUTH_PASSWORD")
    if config['AUTH_MODE'] == "jwt" and not config.get('JWT_SECRET'):
        raise ValueError("AUTH_MODE=jwt requires JWT_SECRET")
