import sys
import logging

from flask import Flask, Response, abort, jsonify, render_template_string, request, send_from_directory

from auth import require_generate_auth
from config import check_settings, load_settings
from models import db, init_store
from qr_errors import QrError, Unauthorized
from qr_service import GenerationService, ListingService
from qr_store import QrFileStore, QrRecordStore

logger = logging.getLogger(__name__)


# ========== HTML (Jinja autoescape ทุกค่า) ==========
INDEX_HTML = """
<h1>Generate PromptPay QR Code</h1>
<form method="POST" action="/generate">
  <label>PromptPay ID:</label><br/>
  <input type="text" name="promptpayId" maxlength="50" required /><br/><br/>
  <label>Amount:</label><br/>
  <input type="number" name="amount" min="0" step="{{ step }}" required /><br/><br/>
  <button type="submit">Generate QR</button>
</form>
<br/>
<a href="/list">View QR List</a>
"""

GENERATED_HTML = """
<h2>QR Generated Successfully</h2>
<p>ID: {{ record.id }}</p>
<p>PromptPay ID: {{ record.promptpay_id }}</p>
<p>Amount: {{ record.amount }}</p>
<p>Image: <a href="/qr-images/{{ record.image_path }}" target="_blank">View QR Code</a></p>
<br/>
<a href="/">Go Back</a> | <a href="/list">View All QR Codes</a>
"""

LIST_HTML = """
<h1>List of Generated QR Codes</h1>
<table border="1" cellpadding="5" cellspacing="0">
  <tr>
    <th>ID</th>
    <th>PromptPay ID</th>
    <th>Amount</th>
    <th>QR Code Image</th>
  </tr>
  {% for row in rows %}
  <tr>
    <td>{{ row.id }}</td>
    <td>{{ row.promptpay_id }}</td>
    <td>{{ row.amount }}</td>
    <td><a href="/qr-images/{{ row.image_path }}" target="_blank">View Image</a></td>
  </tr>
  {% endfor %}
</table>
<br/><a href="/">Go Back</a>
"""


# ===== Logging: root handler + filter ซ่อน access log ของ path ที่ไม่อยากเห็น =====
class PathSuppressFilter(logging.Filter):
    def __init__(self, paths):
        super().__init__()
        self.paths = tuple(paths)

    def filter(self, record: logging.LogRecord) -> bool:
        # Access log ของ werkzeug เป็น INFO และมี "HTTP/" อยู่ในข้อความ
        msg = record.getMessage()
        if "HTTP/" in msg and any(p in msg for p in self.paths):
            return False
        return True


def configure_logging(level="INFO", suppressed="/qr-images/"):
    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter('%(asctime)s [%(levelname)s] %(name)s: %(message)s'))
    root.addHandler(console_handler)

    suppressed_paths = [p.strip() for p in suppressed.split(",") if p.strip()]
    if suppressed_paths:
        logging.getLogger("werkzeug").addFilter(PathSuppressFilter(suppressed_paths))


def _request_fields():
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        return body.get('promptpayId'), body.get('amount')
    return request.form.get('promptpayId'), request.form.get('amount')


def create_app(overrides=None, settings=None):
    """
    App factory: config -> DB pool -> bootstrap -> services -> routes
    ถ้า bootstrap DB ไม่ผ่าน จะ raise StorageError ออกไปเลย (ไม่รับ traffic)
    settings: ค่าที่ load_settings() อ่านมาแล้ว (ไม่ส่งมาจะอ่าน env เอง)
    """
    app = Flask(__name__)
    app.config.update(settings if settings is not None else load_settings())
    if overrides:
        app.config.update(overrides)
    check_settings(app.config)

    if app.config['SQLALCHEMY_DATABASE_URI'].startswith("mysql"):
        # ping ก่อนใช้กันคอนเนคชันตาย / รีไซเคิลทุก 30 นาที กัน MySQL ตัดคอนเนคชัน
        app.config.setdefault('SQLALCHEMY_ENGINE_OPTIONS', {
            'pool_pre_ping': True,
            'pool_recycle': 1800,
            'pool_size': 10,
            'max_overflow': 20,
        })
    db.init_app(app)
    init_store(app, app.config['QR_IMAGE_DIR'])

    file_store = QrFileStore(app.config['QR_IMAGE_DIR'])
    record_store = QrRecordStore(db)
    generation = GenerationService(record_store, file_store, amount_policy=app.config['AMOUNT_POLICY'])
    listing = ListingService(record_store)
    app.extensions['promptpay_qr'] = {
        'file_store': file_store,
        'record_store': record_store,
        'generation': generation,
        'listing': listing,
    }

    @app.errorhandler(QrError)
    def handle_qr_error(err):
        if err.status_code >= 500:
            logger.error(f"❌ [ERROR] {request.method} {request.path}: {err.message}", exc_info=err)
        else:
            logger.warning(f"[WARN] {request.method} {request.path} rejected: {err.message}")

        if request.is_json:
            response = jsonify({'success': False, 'message': err.client_message})
            response.status_code = err.status_code
        else:
            response = Response(err.client_message, status=err.status_code, mimetype="text/plain")
        if isinstance(err, Unauthorized) and app.config['AUTH_MODE'] == "basic":
            response.headers['WWW-Authenticate'] = 'Basic realm="promptpay-qr"'
        elif isinstance(err, Unauthorized):
            response.headers['WWW-Authenticate'] = 'Bearer'
        return response

    @app.route('/', methods=['GET'])
    def index():
        step = "1" if app.config['AMOUNT_POLICY'] == "integer" else "0.01"
        return render_template_string(INDEX_HTML, step=step)

    @app.route('/generate', methods=['POST'])
    @require_generate_auth
    def generate():
        promptpay_id, amount = _request_fields()
        result = generation.generate(promptpay_id, amount)
        record = result.record

        if app.config['GENERATE_RESPONSE'] == "image":
            response = Response(result.png_bytes, mimetype="image/png")
            response.headers['X-QR-Record-Id'] = str(record.id)
            return response

        if request.is_json:
            data = record.to_dict()
            data['success'] = True
            data['image_url'] = f"/qr-images/{record.image_path}"
            data['promptpay_payload'] = result.payload
            return jsonify(data)
        return render_template_string(GENERATED_HTML, record=record)

    @app.route('/list', methods=['GET'])
    def list_qr():
        rows = listing.list_records()
        return render_template_string(LIST_HTML, rows=rows)

    @app.route('/qr-images/<path:filename>', methods=['GET'])
    def qr_image(filename):
        if not file_store.exists(filename):
            abort(404)
        return send_from_directory(file_store.directory, filename, mimetype="image/png")

    return app


def main():
    # อ่าน env ครั้งเดียว แล้วส่งต่อให้ create_app
    try:
        settings = load_settings()
        configure_logging(settings['LOG_LEVEL'], settings['SUPPRESS_ACCESS_PATHS'])
        app = create_app(settings=settings)
    except QrError as e:
        logger.critical(f"❌ Store initialization failed, not starting server: {e.message}")
        sys.exit(1)
    except ValueError as e:
        logger.critical(f"❌ Invalid configuration: {e}")
        sys.exit(1)

    logger.info(f"Server started on port {app.config['PORT']}")
    app.run(host=app.config['HOST'], port=app.config['PORT'], debug=False)


if __name__ == '__main__':
    main()
