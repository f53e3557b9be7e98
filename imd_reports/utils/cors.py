"""
CORS Configuration
The reporting dashboard is served from another origin than this API
"""
import os


def _origins():
    value = os.getenv("CORS_ORIGINS", "*")
    if value == "*":
        return value
    return [origin.strip() for origin in value.split(",") if origin.strip()]


CORS_CONFIG = {
    "origins": _origins(),
    "methods": ["GET", "POST", "OPTIONS"],
    "allow_headers": ["Content-Type", "Accept", "Origin", "X-Requested-With"],
    # Content-Disposition carries the PDF file name
    "expose_headers": ["Content-Disposition"],
    "max_age": 86400,
}


def init_cors(app):
    """Enable CORS on the /api routes only; health checks stay same-origin."""
    from flask_cors import CORS

    CORS(app,
         resources={r"/api/*": {"origins": CORS_CONFIG["origins"]}},
         methods=CORS_CONFIG["methods"],
         allow_headers=CORS_CONFIG["allow_headers"],
         expose_headers=CORS_CONFIG["expose_headers"],
         max_age=CORS_CONFIG["max_age"])

    app.logger.info("CORS enabled on /api for origins: %s", CORS_CONFIG["origins"])
