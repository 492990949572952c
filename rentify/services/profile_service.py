from typing import Optional

from sqlalchemy.exc import IntegrityError

from rentify.extensions import db, bcrypt
from rentify.models.profile import Profile
from rentify.models.profile_role import ProfileRole
from rentify.models.role import Role
from rentify.utils.errors import ApiError

DEFAULT_ROLE = "USER"

EDITABLE_FIELDS = ("full_name", "phone", "location", "avatar_url")


def get_profile(user_id: int) -> Optional[Profile]:
    return Profile.query.get(user_id)


def _get_or_create_role(name: str) -> Role:
    role = Role.query.filter_by(name=name).first()
    if role is None:
        role = Role(name=name)
        db.session.add(role)
        db.session.flush()
    return role


def create_profile(data: dict) -> Profile:
    email = data["email"].lower().strip()

    if Profile.query.filter_by(email=email).first():
        raise ApiError("Email is already registered", 400)

    password_hash = bcrypt.generate_password_hash(data["password"]).decode("utf-8")

    profile = Profile(
        email=email,
        password_hash=password_hash,
        full_name=data["full_name"].strip(),
        phone=data.get("phone"),
        location=data.get("location"),
    )
    db.session.add(profile)
    db.session.flush()

    db.session.add(ProfileRole(profile_id=profile.id, role_id=_get_or_create_role(DEFAULT_ROLE).id))

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ApiError("Email is already registered", 400)

    return profile


def profile_to_dict(profile: Profile, private: bool = True) -> dict:
    data = {
        "id": profile.id,
        "full_name": profile.full_name,
        "location": profile.location,
        "avatar_url": profile.avatar_url,
        "rating": float(profile.rating or 0),
        "total_reviews": int(profile.total_reviews or 0),
        "created_at": profile.created_at.isoformat() if profile.created_at else None,
    }
    if private:
        data.update({
            "email": profile.email,
            "phone": profile.phone,
            "roles": profile.role_names,
            "account_status": profile.account_status,
            "stripe_account_id": profile.stripe_account_id,
            "stripe_onboarding_complete": bool(profile.stripe_onboarding_complete),
            "telegram_linked": bool(profile.telegram_chat_id),
            "telegram_username": profile.telegram_username,
        })
    return data


def update_profile(user_id: int, data: dict) -> dict:
    profile = get_profile(user_id)
    if not profile:
        raise ApiError("Profile not found", 404)

    for field in EDITABLE_FIELDS:
        if field in data:
            value = data[field]
            if isinstance(value, str):
                value = value.strip() or None
            if field == "full_name" and not value:
                raise ApiError("Full name cannot be empty", 400, errors={"full_name": ["Required"]})
            setattr(profile, field, value)

    db.session.commit()
    return profile_to_dict(profile)
