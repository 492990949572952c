from sqlalchemy import and_, or_

from rentify.extensions import db
from rentify.models.item import Item
from rentify.models.message import Message
from rentify.models.profile import Profile
from rentify.utils import dates
from rentify.utils.errors import ApiError


def message_to_dict(m: Message) -> dict:
    sender = m.sender
    return {
        "id": m.id,
        "sender_id": m.sender_id,
        "recipient_id": m.recipient_id,
        "item_id": m.item_id,
        "content": m.content,
        "is_read": bool(m.is_read),
        "created_at": dates.iso(m.created_at),
        "sender": {
            "full_name": sender.full_name,
            "avatar_url": sender.avatar_url,
        } if sender else None,
    }


def _between(user_id: int, other_id: int):
    return or_(
        and_(Message.sender_id == user_id, Message.recipient_id == other_id),
        and_(Message.sender_id == other_id, Message.recipient_id == user_id),
    )


def get_conversation(user_id: int, other_id: int, item_id: int | None = None) -> list[dict]:
    query = Message.query.filter(_between(user_id, other_id))
    if item_id is None:
        query = query.filter(Message.item_id.is_(None))
    else:
        query = query.filter(Message.item_id == item_id)

    messages = query.order_by(Message.created_at.asc(), Message.id.asc()).all()
    return [message_to_dict(m) for m in messages]


def send_message(user_id: int, data: dict) -> dict:
    recipient_id = data["recipient_id"]
    content = (data.get("content") or "").strip()

    if not content:
        raise ApiError("Message content cannot be empty", 400, errors={"content": ["Required"]})
    if recipient_id == user_id:
        raise ApiError("You cannot message yourself", 400)
    if not Profile.query.get(recipient_id):
        raise ApiError("Recipient not found", 404)

    item_id = data.get("item_id")
    if item_id is not None and not Item.query.get(item_id):
        raise ApiError("Item not found", 404)

    message = Message(
        sender_id=user_id,
        recipient_id=recipient_id,
        item_id=item_id,
        content=content,
        is_read=False,
    )
    db.session.add(message)
    db.session.commit()
    return message_to_dict(message)


def mark_conversation_read(user_id: int, sender_id: int, item_id: int | None = None) -> int:
    query = Message.query.filter(
        Message.recipient_id == user_id,
        Message.sender_id == sender_id,
        Message.is_read.is_(False),
    )
    if item_id is not None:
        query = query.filter(Message.item_id == item_id)

    updated = query.update({"is_read": True}, synchronize_session=False)
    db.session.commit()
    return int(updated or 0)


def unread_count(user_id: int) -> int:
    return Message.query.filter(
        Message.recipient_id == user_id,
        Message.is_read.is_(False),
    ).count()
