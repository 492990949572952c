from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from rentify.schemas.rental_schemas import AvailabilityBlockCreateSchema, AvailabilityCheckSchema
from rentify.services import availability_service
from rentify.utils import dates
from rentify.utils.errors import ApiError
from rentify.utils.responses import success_response
from rentify.utils.security import current_user_id

bp = Blueprint("availability", __name__)


def _int_arg(name: str, required: bool = True) -> int | None:
    raw = request.args.get(name)
    if raw in (None, ""):
        if required:
            raise ApiError(f"'{name}' is required", 400)
        return None
    try:
        return int(raw)
    except ValueError:
        raise ApiError(f"'{name}' must be an integer", 400)


@bp.post("/check-availability")
def check_availability():
    data = AvailabilityCheckSchema().load(request.json or {})
    result = availability_service.check_availability(
        data["item_id"],
        data["start_date"],
        data["end_date"],
        data.get("exclude_rental_id"),
    )
    return success_response(data=result)


@bp.get("/check-availability")
def availability_overview():
    item_id = _int_arg("item_id")
    start_raw = request.args.get("start_date")
    end_raw = request.args.get("end_date")

    if start_raw and end_raw:
        start_date = dates.parse_date(start_raw, "start_date")
        end_date = dates.parse_date(end_raw, "end_date")
        availability_service.validate_range(start_date, end_date)
        availability_service.get_item_or_404(item_id)
        available = availability_service.is_item_available(item_id, start_date, end_date)
        return success_response(data={"available": available})

    return success_response(data=availability_service.availability_summary(item_id))


@bp.get("/availability-blocks")
@jwt_required()
def list_blocks():
    item_id = _int_arg("item_id")
    return success_response(data=availability_service.list_blocks(item_id, current_user_id()))


@bp.post("/availability-blocks")
@jwt_required()
def create_block():
    data = AvailabilityBlockCreateSchema().load(request.json or {})
    block = availability_service.create_block(data, current_user_id())
    return success_response(data=block, message="Availability block created", status_code=201)


@bp.delete("/availability-blocks")
@jwt_required()
def delete_block():
    block_id = _int_arg("block_id")
    availability_service.delete_block(block_id, current_user_id())
    return success_response(message="Availability block deleted")
