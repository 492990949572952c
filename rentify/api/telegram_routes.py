import hmac

from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required

from rentify.schemas.telegram_schemas import TelegramNotificationSchema
from rentify.services import outbox_service, telegram_service
from rentify.utils.errors import ApiError
from rentify.utils.responses import success_response
from rentify.utils.security import current_user_id, require_admin

bp = Blueprint("telegram", __name__)


@bp.post("/link")
@jwt_required()
def link():
    return success_response(data=telegram_service.issue_link_token(current_user_id()), message="Link token issued")


@bp.delete("/link")
@jwt_required()
def unlink():
    telegram_service.unlink_profile(current_user_id())
    return success_response(message="Telegram account unlinked")


@bp.post("/webhook")
def webhook():
    secret = current_app.config.get("TELEGRAM_WEBHOOK_SECRET")
    if secret:
        header = request.headers.get("X-Telegram-Bot-Api-Secret-Token") or ""
        if not hmac.compare_digest(header, secret):
            raise ApiError("Unauthorized", 401)

    update = request.get_json(silent=True) or {}
    outcome = telegram_service.handle_update(update)
    return success_response(data={"ok": True, "outcome": outcome})


@bp.post("/send-notification")
@jwt_required()
def send_notification():
    data = TelegramNotificationSchema().load(request.json or {})
    result = outbox_service.queue_rental_notification(current_user_id(), data)
    return success_response(data=result, message="Notification queued")


@bp.post("/setup-webhook")
@jwt_required()
def setup_webhook():
    require_admin()
    return success_response(data=telegram_service.setup_webhook(), message="Webhook registered")
