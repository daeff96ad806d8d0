import logging
from rich.logging import RichHandler
from flask import Flask, jsonify

from tracker.models import init_db
from tracker.errors import FeedbackError
from routes.import_routes import import_bp
from routes.series_routes import series_bp

from config import (
    LOG_LEVEL,
    MAX_FILE_SIZE,
    SECRET_KEY,
)
from asgiref.wsgi import WsgiToAsgi

# Configure rich logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(message)s",
)

logging.root.handlers = [
    RichHandler(rich_tracebacks=True, show_path=True, tracebacks_show_locals=False,
                log_time_format="[%b %d, %Y, %I:%M:%S %p]",
                )
]
logger = logging.getLogger("feedback_tracker")

app = Flask(__name__)
app.secret_key = SECRET_KEY
app.config['MAX_CONTENT_LENGTH'] = MAX_FILE_SIZE + 1024 * 1024  # room for multipart overhead

# Register blueprints
app.register_blueprint(import_bp)
app.register_blueprint(series_bp)

asgi_app = WsgiToAsgi(app)


@app.errorhandler(FeedbackError)
def handle_feedback_error(e):
    logger.warning(f"{type(e).__name__}: {e.message}")
    return jsonify({'error': e.message}), e.status_code


@app.errorhandler(413)
def handle_too_large(e):
    return jsonify({'error': 'File too large'}), 413


@app.route("/health")
def health():
    return jsonify({"status": "ok"})


if __name__ == "__main__":
    logger.info("Initializing database...")
    init_db()
    logger.info("Database initialized")

    import uvicorn
    import socket
    host_ip = socket.gethostbyname(socket.gethostname())
    logger.info(f"Starting server on {host_ip}:8000")
    uvicorn.run(asgi_app, host=host_ip, port=8000, log_config=None)
