from datetime import datetime

from rentify.extensions import db

STATUS_PENDING = "pending"
STATUS_PENDING_PICKUP = "pending_pickup"
STATUS_ACTIVE = "active"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"

STATUSES = (
    STATUS_PENDING,
    STATUS_PENDING_PICKUP,
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
)

# Only these edges exist; terminal states have none.
TRANSITIONS = {
    STATUS_PENDING: (STATUS_PENDING_PICKUP, STATUS_CANCELLED),
    STATUS_PENDING_PICKUP: (STATUS_ACTIVE, STATUS_CANCELLED),
    STATUS_ACTIVE: (STATUS_COMPLETED,),
    STATUS_COMPLETED: (),
    STATUS_CANCELLED: (),
}

# Rentals in these states hold their date range against other bookings
BLOCKING_STATUSES = (STATUS_PENDING_PICKUP, STATUS_ACTIVE)

PAYMENT_UNPAID = "unpaid"
PAYMENT_PAID = "paid"
PAYMENT_FAILED = "failed"
PAYMENT_REFUND_REQUIRED = "refund_required"

DELIVERY_PICKUP = "pickup"
DELIVERY_DELIVERY = "delivery"


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, ())


class Rental(db.Model):
    __tablename__ = "rentals"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    item_id = db.Column(
        db.Integer,
        db.ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    renter_id = db.Column(
        db.Integer,
        db.ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    owner_id = db.Column(
        db.Integer,
        db.ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Half-open range [start_date, end_date)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)

    price_per_day = db.Column(db.Numeric(10, 2), nullable=False)
    total_days = db.Column(db.Integer, nullable=False)
    subtotal = db.Column(db.Numeric(10, 2), nullable=False)
    service_fee = db.Column(db.Numeric(10, 2), nullable=False)
    insurance_fee = db.Column(db.Numeric(10, 2), nullable=False)
    delivery_fee = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    security_deposit = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    late_days = db.Column(db.Integer, nullable=False, default=0)
    late_fee_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    security_deposit_deduction = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    security_deposit_returned = db.Column(db.Numeric(10, 2), nullable=True)
    security_deposit_reason = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING, index=True)
    payment_status = db.Column(db.String(20), nullable=False, default=PAYMENT_UNPAID)

    stripe_session_id = db.Column(db.String(255), nullable=True, index=True)
    payment_intent_id = db.Column(db.String(255), nullable=True, index=True)

    pickup_confirmed_at = db.Column(db.DateTime, nullable=True)
    pickup_confirmed_by = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=True)
    pickup_notes = db.Column(db.Text, nullable=True)

    return_initiated_at = db.Column(db.DateTime, nullable=True)
    return_initiated_by = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=True)
    return_confirmed_at = db.Column(db.DateTime, nullable=True)
    return_confirmed_by = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=True)
    actual_return_date = db.Column(db.Date, nullable=True)

    damage_reported = db.Column(db.Boolean, nullable=False, default=False)
    damage_description = db.Column(db.Text, nullable=True)

    delivery_method = db.Column(db.String(20), nullable=False, default=DELIVERY_PICKUP)
    delivery_address = db.Column(db.Text, nullable=True)
    special_instructions = db.Column(db.Text, nullable=True)

    rental_agreement = db.Column(db.Text, nullable=True)
    agreement_generated_at = db.Column(db.DateTime, nullable=True)
    agreement_accepted_by_owner = db.Column(db.Boolean, nullable=False, default=False)
    agreement_accepted_by_renter = db.Column(db.Boolean, nullable=False, default=False)
    owner_signature = db.Column(db.String(300), nullable=True)
    renter_signature = db.Column(db.String(300), nullable=True)
    agreement_signed_at = db.Column(db.DateTime, nullable=True)

    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancellation_reason = db.Column(db.Text, nullable=True)

    start_reminder_sent = db.Column(db.Boolean, nullable=False, default=False)
    return_reminder_sent = db.Column(db.Boolean, nullable=False, default=False)
    overdue_reminder_sent = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=True,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    item = db.relationship("Item", backref="rentals", lazy="joined")
    renter = db.relationship("Profile", foreign_keys=[renter_id], lazy="joined")
    owner = db.relationship("Profile", foreign_keys=[owner_id], lazy="joined")

    def is_participant(self, user_id: int) -> bool:
        return user_id in (self.renter_id, self.owner_id)

    def __repr__(self) -> str:
        return f"<Rental id={self.id} item={self.item_id} status={self.status}>"
