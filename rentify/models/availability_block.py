from datetime import datetime

from rentify.extensions import db


class AvailabilityBlock(db.Model):
    """Owner-declared date range [start_date, end_date) when an item cannot be booked."""

    __tablename__ = "availability_blocks"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    item_id = db.Column(
        db.Integer,
        db.ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    owner_id = db.Column(
        db.Integer,
        db.ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )

    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)

    reason = db.Column(db.String(120), nullable=False, default="Maintenance")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    item = db.relationship("Item", back_populates="blocks")

    def __repr__(self) -> str:
        return f"<AvailabilityBlock id={self.id} item={self.item_id} {self.start_date}..{self.end_date}>"
