from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from rentify.services import notification_service
from rentify.utils.responses import success_response
from rentify.utils.security import current_user_id

bp = Blueprint("notifications", __name__)


@bp.get("")
@jwt_required()
def list_notifications():
	limit = min(max(request.args.get("limit", 50, type=int), 1), 200)
	data = notification_service.list_notifications(current_user_id(), limit=limit)
	return success_response(data=data, message="OK")


@bp.post("/<int:notification_id>/read")
@jwt_required()
def mark_read(notification_id: int):
	data = notification_service.mark_read(notification_id, current_user_id())
	return success_response(data=data, message="Notification marked as read")
