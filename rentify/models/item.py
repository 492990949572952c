from datetime import datetime

from rentify.extensions import db


class Item(db.Model):
    __tablename__ = "items"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    owner_id = db.Column(
        db.Integer,
        db.ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    category_id = db.Column(
        db.Integer,
        db.ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=True,
    )

    title = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, nullable=False)

    price_per_day = db.Column(db.Numeric(10, 2), nullable=False)
    security_deposit = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    late_fee_per_day = db.Column(db.Numeric(10, 2), nullable=True)

    location = db.Column(db.String(255), nullable=True)
    condition = db.Column(db.String(50), nullable=True)
    features = db.Column(db.JSON, nullable=True)

    cancellation_policy = db.Column(db.Text, nullable=True)
    damage_policy = db.Column(db.Text, nullable=True)

    is_available = db.Column(db.Boolean, nullable=False, default=True)

    # published | paused | deleted
    status = db.Column(db.String(20), nullable=False, default="published")

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=True,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    owner = db.relationship("Profile", foreign_keys=[owner_id], lazy="joined")
    category = db.relationship("Category", back_populates="items")

    images = db.relationship(
        "ItemImage",
        back_populates="item",
        cascade="all, delete-orphan",
        order_by="ItemImage.position",
    )

    blocks = db.relationship(
        "AvailabilityBlock",
        back_populates="item",
        cascade="all, delete-orphan",
    )

    @property
    def is_bookable(self) -> bool:
        return bool(self.is_available) and self.status == "published"

    def __repr__(self) -> str:
        return f"<Item id={self.id} owner={self.owner_id} title={self.title!r}>"
