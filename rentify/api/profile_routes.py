from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from rentify.services import profile_service
from rentify.utils.errors import ApiError
from rentify.utils.responses import success_response
from rentify.utils.security import current_user_id

bp = Blueprint("profile", __name__)


@bp.get("/profile")
@jwt_required()
def get_profile():
    profile = profile_service.get_profile(current_user_id())
    if not profile:
        raise ApiError("Profile not found", 404)
    return success_response(data=profile_service.profile_to_dict(profile))


@bp.patch("/profile")
@jwt_required()
def update_profile():
    data = profile_service.update_profile(current_user_id(), request.json or {})
    return success_response(data=data, message="Profile updated")


@bp.get("/profiles/<int:profile_id>")
def public_profile(profile_id: int):
    profile = profile_service.get_profile(profile_id)
    if not profile:
        raise ApiError("Profile not found", 404)
    return success_response(data=profile_service.profile_to_dict(profile, private=False))
