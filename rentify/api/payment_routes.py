from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required

from rentify.schemas.rental_schemas import RentalIdSchema
from rentify.services import payment_service
from rentify.utils.responses import success_response
from rentify.utils.security import current_user_id

bp = Blueprint("payments", __name__)


@bp.post("/create-checkout-session")
@jwt_required()
def create_checkout_session():
    data = RentalIdSchema().load(request.json or {})
    session = payment_service.create_checkout_session(data["rental_id"], current_user_id())
    return success_response(data=session, message="Checkout session created")


@bp.post("/create-payment-intent")
@jwt_required()
def create_payment_intent():
    data = RentalIdSchema().load(request.json or {})
    intent = payment_service.create_payment_intent(data["rental_id"], current_user_id())
    return success_response(data=intent, message="Payment intent created")


@bp.post("/create-connect-account")
@jwt_required()
def create_connect_account():
    return success_response(data=payment_service.create_connect_account(current_user_id()))


@bp.post("/webhooks/stripe")
def stripe_webhook():
    payload = request.get_data()
    event = payment_service.verify_event(payload, request.headers.get("Stripe-Signature"))
    outcome = payment_service.handle_event(event)
    current_app.logger.info("Stripe event %s handled: %s", event.get("id"), outcome)
    return success_response(data={"received": True, "outcome": outcome})
