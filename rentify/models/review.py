from datetime import datetime

from rentify.extensions import db


class Review(db.Model):
	__tablename__ = "reviews"
	__table_args__ = (
		db.UniqueConstraint("rental_id", "reviewer_id", name="uq_reviews_rental_reviewer"),
	)

	id = db.Column(db.Integer, primary_key=True, autoincrement=True)

	rental_id = db.Column(
		db.Integer,
		db.ForeignKey("rentals.id", ondelete="RESTRICT"),
		nullable=False,
	)
	reviewer_id = db.Column(
		db.Integer,
		db.ForeignKey("profiles.id", ondelete="RESTRICT"),
		nullable=False,
	)
	reviewee_id = db.Column(
		db.Integer,
		db.ForeignKey("profiles.id", ondelete="RESTRICT"),
		nullable=False,
		index=True,
	)
	item_id = db.Column(
		db.Integer,
		db.ForeignKey("items.id", ondelete="RESTRICT"),
		nullable=False,
		index=True,
	)

	rating = db.Column(db.Integer, nullable=False)
	comment = db.Column(db.Text, nullable=True)
	is_public = db.Column(db.Boolean, nullable=False, default=True)

	created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

	reviewer = db.relationship("Profile", foreign_keys=[reviewer_id], lazy="joined")

	def __repr__(self) -> str:
		return f"<Review id={self.id} rental={self.rental_id} rating={self.rating}>"
