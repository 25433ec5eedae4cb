import secrets
from functools import wraps

import jwt
from flask import current_app, request

from qr_errors import Unauthorized


def _check_basic():
    auth = request.authorization
    if auth is None or auth.type != "basic":
        raise Unauthorized("No credentials provided")
    user_ok = secrets.compare_digest(
        (auth.username or "").encode("utf-8"),
        current_app.config['BASIC_AUTH_USER'].encode("utf-8"),
    )
    password_ok = secrets.compare_digest(
        (auth.password or "").encode("utf-8"),
        current_app.config['BASIC_AUTH_PASSWORD'].encode("utf-8"),
    )
    if not (user_ok and password_ok):
        raise Unauthorized("Invalid credentials")


def _check_jwt():
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise Unauthorized("No token provided or incorrect format")
    token = auth_header.split(" ", 1)[1]
    try:
        decoded = jwt.decode(token, current_app.config['JWT_SECRET'], algorithms=["HS256"])
    except jwt.ExpiredSignatureError as e:
        raise Unauthorized("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise Unauthorized("Invalid token") from e
    request.user_id = decoded.get("id")


# ================================ SECURITY ======================================
def require_generate_auth(f):
    """Gate a view by AUTH_MODE (none / basic / jwt) before the view reads its body."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        mode = current_app.config.get('AUTH_MODE', "none")
        if mode == "basic":
            _check_basic()
        elif mode == "jwt":
            _check_jwt()
        return f(*args, **kwargs)
    return decorated_function
