from datetime import datetime

from sqlalchemy import func

from rentify.extensions import db


class Profile(db.Model):
    __tablename__ = "profiles"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    full_name = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(30))
    location = db.Column(db.String(255))
    avatar_url = db.Column(db.String(500))

    account_status = db.Column(db.String(20), nullable=False, default="active")

    # Aggregates of received reviews
    rating = db.Column(db.Numeric(3, 2), nullable=False, default=0)
    total_reviews = db.Column(db.Integer, nullable=False, default=0)

    # Stripe Connect (owners receive payouts)
    stripe_account_id = db.Column(db.String(100), nullable=True)
    stripe_onboarding_complete = db.Column(db.Boolean, nullable=False, default=False)

    # Telegram linking
    telegram_chat_id = db.Column(db.String(64), nullable=True, index=True)
    telegram_username = db.Column(db.String(100), nullable=True)
    telegram_linked_at = db.Column(db.DateTime, nullable=True)
    telegram_link_token = db.Column(db.String(64), nullable=True, unique=True)

    created_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        server_default=func.current_timestamp(),
    )
    updated_at = db.Column(
        db.DateTime,
        nullable=True,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    roles = db.relationship(
        "ProfileRole",
        back_populates="profile",
        cascade="all, delete-orphan",
    )

    @property
    def role_names(self) -> list[str]:
        return [pr.role.name for pr in self.roles if pr.role is not None]

    def __repr__(self) -> str:
        return f"<Profile id={self.id} email={self.email}>"
