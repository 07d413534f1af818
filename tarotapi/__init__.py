"""The TAROT API MODULE"""

import datetime
import logging
import os
import sys

import click
from flask import Flask, got_request_exception, jsonify
from flask_compress import Compress
from flask_cors import CORS
from flask_limiter import Limiter
from flask_sqlalchemy import SQLAlchemy
import rollbar
import rollbar.contrib.flask
from sqlalchemy import text
from werkzeug.middleware.proxy_fix import ProxyFix

from tarotapi.config import SETTINGS
from tarotapi.utils.clock import utcnow
from tarotapi.utils.rate_limiting import (
    RateLimitConfig,
    get_user_id_or_ip,
    rate_limit_error_handler,
)

ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")
IS_PRODUCTION = ENVIRONMENT == "prod"

# Flask App
app = Flask(__name__)

# Respect trusted proxy configuration for accurate client IP detection
trusted_proxy_count = SETTINGS.get("TRUSTED_PROXY_COUNT", 0)
if trusted_proxy_count:
    app.wsgi_app = ProxyFix(  # type: ignore[assignment]
        app.wsgi_app,
        x_for=trusted_proxy_count,
        x_proto=trusted_proxy_count,
        x_host=trusted_proxy_count,
        x_port=trusted_proxy_count,
        x_prefix=trusted_proxy_count,
    )

# The browser client sends the session cookie cross-origin
cors_origins = (
    SETTINGS.get("environment", {}).get("CORS_ORIGINS") or "http://localhost:5173"
).split(",")
CORS(
    app,
    origins=cors_origins,
    supports_credentials=True,
    allow_headers=["Content-Type"],
    methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
)

app.config["COMPRESS_MIMETYPES"] = ["application/json", "text/html", "text/plain"]
app.config["COMPRESS_LEVEL"] = 6
app.config["COMPRESS_MIN_SIZE"] = 500
Compress(app)

logger = logging.getLogger()
log_level = SETTINGS.get("logging", {}).get("level", "INFO")
logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

logging.getLogger("urllib3.connectionpool").setLevel(logging.WARNING)

# Ensure all unhandled exceptions are logged, and reported to rollbar
formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
handler = logging.StreamHandler(stream=sys.stdout)
handler.setLevel(logging.INFO)
handler.setFormatter(formatter)
logger.addHandler(handler)

rollbar.init(
    SETTINGS.get("environment", {}).get("ROLLBAR_SERVER_TOKEN"), ENVIRONMENT
)
with app.app_context():
    got_request_exception.connect(rollbar.contrib.flask.report_exception, app)


def validate_secret_key(secret_key):
    """A production deployment must not sign sessions with a placeholder."""
    if not IS_PRODUCTION:
        return
    if not secret_key or "change" in secret_key.lower():
        error_msg = (
            "Security Error: SESSION_SECRET must be set to a strong random value "
            "in production"
        )
        logger.critical(error_msg)
        raise ValueError(error_msg)


secret_key = SETTINGS.get("SECRET_KEY")
validate_secret_key(secret_key)
if not secret_key:
    logger.warning("SESSION_SECRET is not set, using an insecure development key")
    secret_key = "dev-secret-change-in-production"

app.config["SECRET_KEY"] = secret_key
app.config["TESTING"] = SETTINGS.get("TESTING", False)
app.config["PERMANENT_SESSION_LIFETIME"] = datetime.timedelta(
    days=SETTINGS.get("SESSION_LIFETIME_DAYS", 28)
)
app.config["SESSION_COOKIE_HTTPONLY"] = True
app.config["SESSION_COOKIE_SECURE"] = IS_PRODUCTION
# Cross-site cookies require Secure, so None is only used behind HTTPS
app.config["SESSION_COOKIE_SAMESITE"] = "None" if IS_PRODUCTION else "Lax"


# Add security headers middleware
@app.after_request
def set_security_headers(response):
    """Add security headers to all responses."""
    response.headers["Content-Security-Policy"] = (
        "default-src 'none'; frame-ancestors 'none'"
    )
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if IS_PRODUCTION:
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
    return response


database_uri = SETTINGS.get("SQLALCHEMY_DATABASE_URI")
app.config["SQLALCHEMY_DATABASE_URI"] = database_uri
if database_uri.startswith("sqlite:///"):
    os.makedirs(
        os.path.dirname(os.path.abspath(database_uri[len("sqlite:///") :])),
        exist_ok=True,
    )
else:
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
        "pool_recycle": 3600,
        "pool_pre_ping": True,
    }

app.config["RATE_LIMITING"] = SETTINGS.get("RATE_LIMITING", {})
app.config["MAX_CONTENT_LENGTH"] = 1 * 1024 * 1024

# Database
db = SQLAlchemy(app)

limiter = Limiter(
    app=app,
    key_func=get_user_id_or_ip,  # Default key function that exempts admin users
    storage_uri=RateLimitConfig.get_storage_uri(),
    default_limits=RateLimitConfig.get_default_limits(),
    headers_enabled=True,
    enabled=RateLimitConfig.is_enabled(),
    on_breach=rate_limit_error_handler,
)

# DB has to be ready!
from tarotapi import models  # noqa: E402,F401
from tarotapi.services import (  # noqa: E402
    AuthService,
    EmailService,
    SQLAlchemyCredentialStore,
    UserService,
)
from tarotapi.utils.passwords import PasswordHasher  # noqa: E402

credential_store = SQLAlchemyCredentialStore(db)
password_hasher = PasswordHasher()
auth_service = AuthService(
    credential_store,
    password_hasher,
    EmailService,
    clock=utcnow,
    settings=SETTINGS.get("AUTH", {}),
)
user_service = UserService(
    credential_store,
    password_hasher,
    EmailService,
    clock=utcnow,
    settings=SETTINGS.get("AUTH", {}),
)

from tarotapi.routes.api import endpoints, error  # noqa: E402

# Blueprint Flask Routing
app.register_blueprint(endpoints, url_prefix="/api")

total_routes = len(list(app.url_map.iter_rules()))
logger.info(f"Registered Flask app with {total_routes} total routes")


@app.route("/health", methods=["GET"])
@limiter.exempt
def health_check():
    """Simple health check endpoint"""
    db_status = "unknown"
    try:
        result = db.session.execute(text("SELECT 1 as health_check")).fetchone()
        db_status = "healthy" if result and result[0] == 1 else "unhealthy"
    except Exception as e:
        logger.warning(f"Database health check failed: {str(e)}")
        db_status = "unhealthy"

    return (
        jsonify(
            {
                "status": "ok",
                "timestamp": utcnow().isoformat(),
                "database": db_status,
                "environment": ENVIRONMENT,
            }
        ),
        200,
    )


@app.route("/ping", methods=["GET"])
@limiter.exempt
def ping():
    """Simple ping endpoint without database dependency"""
    return jsonify(
        {"status": "ok", "timestamp": utcnow().isoformat(), "message": "pong"}
    ), 200


@app.cli.command("init-db")
def init_db_command():
    """Creates database tables."""
    db.create_all()
    logger.info("[DB]: Initialized the database")


@app.cli.command("bootstrap-admin")
@click.argument("username", required=False)
def bootstrap_admin_command(username):
    """Promote USERNAME (default: ADMIN_USERNAME) to admin."""
    user_service.bootstrap_admin(username or SETTINGS.get("ADMIN_USERNAME"))


@app.errorhandler(403)
def forbidden(e):
    return error(status=403, detail="Forbidden")


@app.errorhandler(404)
def page_not_found(e):
    return error(status=404, detail="Not Found")


@app.errorhandler(405)
def method_not_allowed(e):
    return error(status=405, detail="Method Not Allowed")


@app.errorhandler(413)
def request_entity_too_large(e):
    return error(status=413, detail="Request too large")


@app.errorhandler(500)
def internal_server_error(e):
    return error(status=500, detail="Internal Server Error")
