from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from rentify.extensions import db
from rentify.models.profile import Profile
from rentify.models.rental import STATUS_COMPLETED, Rental
from rentify.models.review import Review
from rentify.services import outbox_service
from rentify.utils import dates
from rentify.utils.errors import ApiError


def review_to_dict(r: Review) -> dict:
	reviewer = r.reviewer
	return {
		"id": r.id,
		"rental_id": r.rental_id,
		"item_id": r.item_id,
		"reviewer_id": r.reviewer_id,
		"reviewee_id": r.reviewee_id,
		"rating": int(r.rating),
		"comment": r.comment,
		"is_public": bool(r.is_public),
		"created_at": dates.iso(r.created_at),
		"reviewer": {
			"id": reviewer.id,
			"full_name": reviewer.full_name,
			"avatar_url": reviewer.avatar_url,
		} if reviewer else None,
	}


def _filtered(item_id: int | None, user_id: int | None):
	if not item_id and not user_id:
		raise ApiError("Either item_id or user_id is required", 400)

	query = Review.query.filter(Review.is_public.is_(True))
	if item_id:
		query = query.filter(Review.item_id == item_id)
	else:
		query = query.filter(Review.reviewee_id == user_id)
	return query


def list_reviews(item_id: int | None = None, user_id: int | None = None, limit: int = 10, offset: int = 0) -> list[dict]:
	limit = max(1, min(int(limit), 100))
	offset = max(0, int(offset))
	reviews = (
		_filtered(item_id, user_id)
		.order_by(Review.created_at.desc(), Review.id.desc())
		.offset(offset)
		.limit(limit)
		.all()
	)
	return [review_to_dict(r) for r in reviews]


def review_stats(item_id: int | None = None, user_id: int | None = None) -> dict:
	ratings = [r.rating for r in _filtered(item_id, user_id).with_entities(Review.rating).all()]

	distribution = {str(star): 0 for star in range(5, 0, -1)}
	for rating in ratings:
		distribution[str(int(rating))] += 1

	total = len(ratings)
	average = 0.0
	if total:
		average = float((Decimal(sum(ratings)) / total).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

	return {
		"average_rating": average,
		"total_reviews": total,
		"rating_distribution": distribution,
	}


def _refresh_profile_rating(profile_id: int) -> None:
	avg_val, count_val = (
		db.session.query(func.avg(Review.rating), func.count(Review.id))
		.filter(Review.reviewee_id == profile_id, Review.is_public.is_(True))
		.first()
	)
	profile: Profile | None = Profile.query.get(profile_id)
	if profile is None:
		return

	profile.total_reviews = int(count_val or 0)
	profile.rating = Decimal(str(avg_val or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def create_review(data: dict, user_id: int) -> dict:
	rental: Rental | None = Rental.query.get(data["rental_id"])
	if not rental:
		raise ApiError("Rental not found", 404)

	if rental.status != STATUS_COMPLETED:
		raise ApiError(f"Can only review completed rentals (rental is {rental.status})", 400)

	if not rental.is_participant(user_id):
		raise ApiError("You can only review your own rentals", 403)

	if Review.query.filter_by(rental_id=rental.id, reviewer_id=user_id).first():
		raise ApiError("You have already reviewed this rental", 400)

	reviewee_id = rental.owner_id if rental.renter_id == user_id else rental.renter_id

	review = Review(
		rental_id=rental.id,
		reviewer_id=user_id,
		reviewee_id=reviewee_id,
		item_id=rental.item_id,
		rating=int(data["rating"]),
		comment=(data.get("comment") or "").strip() or None,
		is_public=data.get("is_public", True),
	)
	db.session.add(review)

	try:
		db.session.flush()
		_refresh_profile_rating(reviewee_id)
		db.session.commit()
	except IntegrityError:
		# The unique (rental_id, reviewer_id) constraint caught a concurrent duplicate
		db.session.rollback()
		raise ApiError("You have already reviewed this rental", 400)

	outbox_service.publish([
		outbox_service.Event(
			user_id=reviewee_id,
			kind="info",
			title="New review",
			message=f"You received a {review.rating}-star review.",
			rental_id=rental.id,
		),
	])

	return review_to_dict(review)
