from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from rentify.schemas.auth_schemas import RegisterSchema, LoginSchema
from rentify.services import auth_service, profile_service
from rentify.utils.errors import ApiError
from rentify.utils.responses import success_response
from rentify.utils.security import current_user_id

bp = Blueprint("auth", __name__)


@bp.post("/register")
def register():
    data = RegisterSchema().load(request.json or {})
    profile = profile_service.create_profile(data)
    return success_response(
        data=profile_service.profile_to_dict(profile),
        message="Account created",
        status_code=201,
    )


@bp.post("/login")
def login():
    data = LoginSchema().load(request.json or {})
    result = auth_service.authenticate(data["email"], data["password"])
    return success_response(data=result, message="Login successful")


@bp.post("/refresh")
@jwt_required(refresh=True)
def refresh():
    return success_response(data=auth_service.refresh(current_user_id()), message="Token refreshed")


@bp.get("/me")
@jwt_required()
def me():
    profile = profile_service.get_profile(current_user_id())
    if not profile:
        raise ApiError("Profile not found", 404)
    return success_response(data=profile_service.profile_to_dict(profile), message="Current profile")
