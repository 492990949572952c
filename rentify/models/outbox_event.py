from datetime import datetime

from rentify.extensions import db

OUTBOX_PENDING = "pending"
OUTBOX_SENT = "sent"
OUTBOX_FAILED = "failed"


class OutboxEvent(db.Model):
    """Notification queued after a committed state change, dispatched out of band."""

    __tablename__ = "outbox_events"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    user_id = db.Column(
        db.Integer,
        db.ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    rental_id = db.Column(db.Integer, nullable=True)

    # reminder | confirmation | payment | return | overdue | info
    kind = db.Column(db.String(30), nullable=False, default="info")
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    action_url = db.Column(db.String(500), nullable=True)

    status = db.Column(db.String(20), nullable=False, default=OUTBOX_PENDING, index=True)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    last_error = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    dispatched_at = db.Column(db.DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<OutboxEvent id={self.id} user={self.user_id} kind={self.kind} status={self.status}>"
