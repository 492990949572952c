from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required

from rentify.schemas.rental_schemas import OverdueActionSchema
from rentify.services import reminder_service, rental_service
from rentify.utils.responses import success_response
from rentify.utils.security import current_user_id, is_admin, require_cron_secret

bp = Blueprint("cron", __name__)


@bp.get("/cron/telegram-reminders")
def telegram_reminders():
    require_cron_secret()
    result = reminder_service.send_bulk_reminders()
    current_app.logger.info("[cron] reminders sent: %s", result)
    return success_response(data=result, message="Reminders processed")


@bp.get("/overdue-rentals")
def overdue_rentals():
    require_cron_secret()
    return success_response(data=reminder_service.overdue_report())


@bp.post("/overdue-rentals")
@jwt_required()
def overdue_action():
    data = OverdueActionSchema().load(request.json or {})
    rental = rental_service.update_late_days(data["rental_id"], current_user_id(), is_admin=is_admin())
    return success_response(data=rental, message="Late days updated")
