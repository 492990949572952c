from datetime import datetime

from rentify.extensions import db


class Notification(db.Model):
	__tablename__ = "notifications"

	id = db.Column(db.Integer, primary_key=True, autoincrement=True)
	user_id = db.Column(
		db.Integer,
		db.ForeignKey("profiles.id", ondelete="CASCADE"),
		nullable=False,
		index=True,
	)

	type = db.Column(db.String(40), nullable=False)
	title = db.Column(db.String(200), nullable=False)
	message = db.Column(db.Text, nullable=False)
	related_id = db.Column(db.Integer, nullable=True)
	is_read = db.Column(db.Boolean, default=False, nullable=False, index=True)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

	def __repr__(self) -> str:
		return f"<Notification id={self.id} user={self.user_id} type={self.type} read={self.is_read}>"
