import pymysql
pymysql.install_as_MySQLdb()
from flask import Flask, send_from_directory
from flask_cors import CORS
from pathlib import Path

from .config import DevConfig
from .extensions import db, migrate, jwt, ma, bcrypt
from .utils.errors import register_error_handlers
from .api import (
    auth_routes,
    profile_routes,
    item_routes,
    availability_routes,
    rental_routes,
    agreement_routes,
    payment_routes,
    message_routes,
    review_routes,
    notification_routes,
    telegram_routes,
    cron_routes,
    upload_routes,
    admin_routes,
)


def create_app(config_class=DevConfig) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Uploaded item images
    uploads_dir = Path(app.config.get("UPLOADS_DIR") or Path(app.root_path).parent / "uploads").resolve()
    uploads_dir.mkdir(parents=True, exist_ok=True)
    app.config["UPLOADS_DIR"] = str(uploads_dir)

    origins = [o.strip() for o in (app.config.get("CORS_ORIGINS") or "").split(",") if o.strip()]
    CORS(
        app,
        resources={r"/api/*": {"origins": origins or "*"}},
        supports_credentials=True,
    )

    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)
    bcrypt.init_app(app)

    from . import models  # noqa: F401

    app.register_blueprint(auth_routes.bp, url_prefix="/api/auth")
    app.register_blueprint(profile_routes.bp, url_prefix="/api")
    app.register_blueprint(item_routes.bp, url_prefix="/api")
    app.register_blueprint(availability_routes.bp, url_prefix="/api")
    app.register_blueprint(rental_routes.bp, url_prefix="/api")
    app.register_blueprint(agreement_routes.bp, url_prefix="/api")
    app.register_blueprint(payment_routes.bp, url_prefix="/api")
    app.register_blueprint(message_routes.bp, url_prefix="/api/messages")
    app.register_blueprint(review_routes.bp, url_prefix="/api/reviews")
    app.register_blueprint(notification_routes.bp, url_prefix="/api/notifications")
    app.register_blueprint(telegram_routes.bp, url_prefix="/api/telegram")
    app.register_blueprint(cron_routes.bp, url_prefix="/api")
    app.register_blueprint(upload_routes.bp, url_prefix="/api/upload")
    app.register_blueprint(admin_routes.bp, url_prefix="/api/admin")

    register_error_handlers(app)

    @app.get("/api/health")
    def health_check():
        return {"status": "ok", "service": "rentify-backend"}

    @app.get("/uploads/<path:filename>")
    def serve_upload(filename: str):
        return send_from_directory(app.config["UPLOADS_DIR"], filename)

    return app
