from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from rentify.schemas.rental_schemas import (
    CancelRentalSchema,
    ConfirmReturnSchema,
    RentalActionSchema,
    RentalCreateSchema,
    RentalIdSchema,
)
from rentify.services import rental_service
from rentify.utils.errors import ApiError
from rentify.utils.responses import success_response
from rentify.utils.security import current_user_id, is_admin, require_active_profile

bp = Blueprint("rentals", __name__)

rental_create_schema = RentalCreateSchema()


@bp.post("/rentals")
@jwt_required()
def create_rental():
    user_id = current_user_id()
    require_active_profile(user_id)
    data = rental_create_schema.load(request.json or {})
    rental = rental_service.create_rental(data, user_id)
    return success_response(data=rental, message="Rental requested", status_code=201)


@bp.get("/rentals")
@jwt_required()
def list_rentals():
    role = request.args.get("role")
    if role not in (None, "", "renter", "owner"):
        raise ApiError("role must be 'renter' or 'owner'", 400)
    return success_response(data=rental_service.list_rentals(current_user_id(), role or None))


@bp.get("/rentals/<int:rental_id>")
@jwt_required()
def get_rental(rental_id: int):
    return success_response(data=rental_service.get_rental(rental_id, current_user_id(), is_admin=is_admin()))


@bp.post("/confirm-pickup")
@jwt_required()
def confirm_pickup():
    data = RentalActionSchema().load(request.json or {})
    rental = rental_service.confirm_pickup(data["rental_id"], current_user_id(), data.get("notes"))
    return success_response(data=rental, message="Pickup confirmed")


@bp.post("/initiate-return")
@jwt_required()
def initiate_return():
    data = RentalIdSchema().load(request.json or {})
    rental = rental_service.initiate_return(data["rental_id"], current_user_id())
    return success_response(data=rental, message="Return initiated")


@bp.post("/confirm-return")
@jwt_required()
def confirm_return():
    data = ConfirmReturnSchema().load(request.json or {})
    rental = rental_service.confirm_return(data["rental_id"], current_user_id(), data)
    return success_response(data=rental, message="Return confirmed")


@bp.post("/cancel-rental")
@jwt_required()
def cancel_rental():
    data = CancelRentalSchema().load(request.json or {})
    rental = rental_service.cancel_rental(data["rental_id"], current_user_id(), data.get("reason"))
    return success_response(data=rental, message="Rental cancelled")
