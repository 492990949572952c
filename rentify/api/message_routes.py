from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from rentify.schemas.message_schemas import MarkReadSchema, MessageCreateSchema
from rentify.services import message_service
from rentify.utils.errors import ApiError
from rentify.utils.responses import success_response
from rentify.utils.security import current_user_id

bp = Blueprint("messages", __name__)


@bp.get("")
@jwt_required()
def get_conversation():
    recipient_id = request.args.get("recipient_id", type=int)
    if not recipient_id:
        raise ApiError("recipient_id is required", 400)
    item_id = request.args.get("item_id", type=int)
    messages = message_service.get_conversation(current_user_id(), recipient_id, item_id)
    return success_response(data=messages)


@bp.post("")
@jwt_required()
def send_message():
    data = MessageCreateSchema().load(request.json or {})
    message = message_service.send_message(current_user_id(), data)
    return success_response(data=message, message="Message sent", status_code=201)


@bp.patch("")
@jwt_required()
def mark_read():
    data = MarkReadSchema().load(request.json or {})
    count = message_service.mark_conversation_read(current_user_id(), data["sender_id"], data.get("item_id"))
    return success_response(data={"updated": count}, message="Messages marked as read")


@bp.get("/unread-count")
@jwt_required()
def unread_count():
    return success_response(data={"unread_count": message_service.unread_count(current_user_id())})
