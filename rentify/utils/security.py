import hmac

from flask import current_app, request
from flask_jwt_extended import get_jwt, get_jwt_identity

from rentify.models.profile import Profile
from rentify.utils.errors import ApiError

ADMIN_ROLES = ("ADMIN", "ADMINISTRATOR")


def current_user_id() -> int:
    """Identity of the authenticated caller (inside a @jwt_required view)."""
    identity = get_jwt_identity()
    try:
        return int(identity)
    except (TypeError, ValueError):
        raise ApiError("Invalid session token", 401)


def current_roles() -> list[str]:
    claims = get_jwt() or {}
    return [str(r).upper() for r in (claims.get("roles") or [])]


def is_admin() -> bool:
    return any(r in ADMIN_ROLES for r in current_roles())


def require_admin() -> None:
    if not is_admin():
        raise ApiError("Not authorized (admin)", 403)


def require_active_profile(user_id: int) -> Profile:
    profile: Profile | None = Profile.query.get(user_id)
    if not profile:
        raise ApiError("Profile not found", 404)
    if profile.account_status != "active":
        raise ApiError("Account is not active", 403, payload={"code": "ACCOUNT_INACTIVE"})
    return profile


def require_cron_secret() -> None:
    """Bearer check for scheduled jobs; an unset secret rejects everything."""
    secret = current_app.config.get("CRON_SECRET")
    header = request.headers.get("Authorization") or ""
    if not secret or not hmac.compare_digest(header, f"Bearer {secret}"):
        raise ApiError("Unauthorized", 401)
