from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from rentify.schemas.review_schemas import ReviewCreateSchema
from rentify.services import review_service
from rentify.utils.responses import success_response
from rentify.utils.security import current_user_id

bp = Blueprint("reviews", __name__)


def _target():
	item_id = request.args.get("item_id", type=int)
	user_id = request.args.get("user_id", type=int)
	return item_id, user_id


@bp.get("")
def list_reviews():
	item_id, user_id = _target()
	limit = min(max(request.args.get("limit", 10, type=int), 1), 100)
	offset = max(request.args.get("offset", 0, type=int), 0)
	return success_response(data=review_service.list_reviews(item_id, user_id, limit=limit, offset=offset))


@bp.get("/stats")
def review_stats():
	item_id, user_id = _target()
	return success_response(data=review_service.review_stats(item_id, user_id))


@bp.post("")
@jwt_required()
def create_review():
	data = ReviewCreateSchema().load(request.json or {})
	review = review_service.create_review(data, current_user_id())
	return success_response(data=review, message="Review submitted", status_code=201)
