from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from rentify.schemas.item_schemas import ItemCreateSchema, ItemUpdateSchema
from rentify.services import item_service
from rentify.utils.errors import ApiError
from rentify.utils.responses import success_response
from rentify.utils.security import current_user_id, require_active_profile

bp = Blueprint("items", __name__)

item_create_schema = ItemCreateSchema()
item_update_schema = ItemUpdateSchema()


def _float_arg(name: str):
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except ValueError:
        raise ApiError(f"'{name}' must be a number", 400)


@bp.get("/items")
def list_items():
    filters = {
        "q": request.args.get("q"),
        "category": request.args.get("category"),
        "location": request.args.get("location"),
        "min_price": _float_arg("min_price"),
        "max_price": _float_arg("max_price"),
        "page": request.args.get("page", 1, type=int),
        "per_page": request.args.get("per_page", 12, type=int),
    }
    return success_response(data=item_service.list_public_items(filters))


@bp.get("/items/mine")
@jwt_required()
def my_items():
    return success_response(data=item_service.list_my_items(current_user_id()))


@bp.get("/items/<int:item_id>")
def get_item(item_id: int):
    return success_response(data=item_service.get_item(item_id))


@bp.post("/items")
@jwt_required()
def create_item():
    user_id = current_user_id()
    require_active_profile(user_id)
    data = item_create_schema.load(request.json or {})
    return success_response(
        data=item_service.create_item(data, user_id),
        message="Item listed",
        status_code=201,
    )


@bp.patch("/items/<int:item_id>")
@jwt_required()
def update_item(item_id: int):
    data = item_update_schema.load(request.json or {})
    return success_response(data=item_service.update_item(item_id, current_user_id(), data), message="Item updated")


@bp.delete("/items/<int:item_id>")
@jwt_required()
def delete_item(item_id: int):
    item_service.delete_item(item_id, current_user_id())
    return success_response(message="Item deleted")


@bp.get("/categories")
def list_categories():
    return success_response(data=item_service.list_categories())
