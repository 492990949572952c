from sqlalchemy import func

from rentify.extensions import db


class ProfileRole(db.Model):
    __tablename__ = "profile_roles"

    profile_id = db.Column(
        db.Integer,
        db.ForeignKey("profiles.id", ondelete="CASCADE"),
        primary_key=True,
    )

    role_id = db.Column(
        db.Integer,
        db.ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
    )

    assigned_at = db.Column(
        db.DateTime,
        server_default=func.current_timestamp(),
        nullable=False,
    )

    profile = db.relationship("Profile", back_populates="roles")
    role = db.relationship("Role", back_populates="profiles", lazy="joined")
