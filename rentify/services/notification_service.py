from flask import current_app

from rentify.extensions import db
from rentify.models.notification import Notification
from rentify.utils import dates
from rentify.utils.errors import ApiError


def _notification_to_dict(n: Notification) -> dict:
	return {
		"id": n.id,
		"type": n.type,
		"title": n.title,
		"message": n.message,
		"related_id": n.related_id,
		"is_read": bool(n.is_read),
		"created_at": dates.iso(n.created_at),
	}


def add_notification(
	user_id: int,
	kind: str,
	title: str,
	message: str,
	related_id: int | None = None,
) -> Notification | None:
	"""Stages an in-app notification on the current session; the caller commits."""
	t = (title or "").strip()
	m = (message or "").strip()
	if not t or not m:
		current_app.logger.info("[notifications] skip create: empty title/message user=%s", user_id)
		return None

	n = Notification(
		user_id=user_id,
		type=(kind or "info").strip() or "info",
		title=t[:200],
		message=m,
		related_id=related_id,
		is_read=False,
	)
	db.session.add(n)
	return n


def list_notifications(user_id: int, limit: int = 50) -> dict:
	items = (
		Notification.query.filter_by(user_id=user_id)
		.order_by(Notification.created_at.desc(), Notification.id.desc())
		.limit(max(1, min(int(limit), 100)))
		.all()
	)
	unread = Notification.query.filter_by(user_id=user_id, is_read=False).count()

	return {
		"items": [_notification_to_dict(n) for n in items],
		"unread_count": int(unread),
	}


def mark_read(notification_id: int, user_id: int) -> dict:
	n: Notification | None = Notification.query.get(notification_id)
	if not n or n.user_id != user_id:
		raise ApiError("Notification not found", 404)

	if not n.is_read:
		n.is_read = True
		db.session.commit()
	return _notification_to_dict(n)
