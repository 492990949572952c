from datetime import timedelta

from flask import current_app
from flask_jwt_extended import create_access_token, create_refresh_token

from rentify.extensions import bcrypt
from rentify.models.profile import Profile
from rentify.services.profile_service import profile_to_dict
from rentify.utils.errors import ApiError


def _access_token_for(profile: Profile) -> dict:
    expires = current_app.config.get("JWT_ACCESS_TOKEN_EXPIRES") or timedelta(minutes=15)
    token = create_access_token(
        identity=str(profile.id),
        additional_claims={"roles": profile.role_names, "email": profile.email},
    )
    return {"access_token": token, "expires_in": int(expires.total_seconds())}


def authenticate(email: str, password: str) -> dict:
    profile = Profile.query.filter_by(email=email.lower().strip()).first()

    if not profile:
        raise ApiError("Invalid credentials", 401)

    try:
        password_ok = bcrypt.check_password_hash(profile.password_hash or "", password)
    except (ValueError, TypeError):
        # A corrupt stored hash is a failed login, not a 500
        raise ApiError("Invalid credentials", 401)

    if not password_ok:
        raise ApiError("Invalid credentials", 401)

    if profile.account_status != "active":
        raise ApiError("Account is not active", 403)

    result = _access_token_for(profile)
    result["refresh_token"] = create_refresh_token(identity=str(profile.id))
    result["profile"] = profile_to_dict(profile)
    return result


def refresh(user_id: int) -> dict:
    profile = Profile.query.get(user_id)
    if not profile or profile.account_status != "active":
        raise ApiError("Invalid session", 401)
    return _access_token_for(profile)
