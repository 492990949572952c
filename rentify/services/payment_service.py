import json
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

import stripe
from flask import current_app

from rentify.extensions import db
from rentify.models.profile import Profile
from rentify.models.rental import STATUS_PENDING, Rental
from rentify.services import rental_service
from rentify.services.rental_service import get_rental_or_404
from rentify.utils.errors import ApiError


def _to_cents(amount) -> int:
    return int((Decimal(str(amount or 0)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _stripe_key() -> str:
    key = current_app.config.get("STRIPE_SECRET_KEY")
    if not key:
        raise ApiError("Payments are not configured", 500)
    return key


def _currency() -> str:
    return (current_app.config.get("STRIPE_CURRENCY") or "myr").lower()


def _frontend_url() -> str:
    return (current_app.config.get("FRONTEND_BASE_URL") or "").rstrip("/")


def _line_item(name: str, description: str, amount) -> dict:
    return {
        "price_data": {
            "currency": _currency(),
            "product_data": {"name": name, "description": description},
            "unit_amount": _to_cents(amount),
        },
        "quantity": 1,
    }


def _pending_rental_for_renter(rental_id: int, user_id: int) -> Rental:
    rental = get_rental_or_404(rental_id)
    if rental.renter_id != user_id:
        raise ApiError("Only the renter can pay for this rental", 403)
    if rental.status != STATUS_PENDING:
        raise ApiError(f"Cannot pay: rental is {rental.status}", 400, payload={"current_status": rental.status})
    return rental


def build_checkout_params(rental: Rental) -> dict:
    """Arguments for ``stripe.checkout.Session.create`` for a pending rental."""
    title = rental.item.title if rental.item else f"Item #{rental.item_id}"

    line_items = [
        _line_item(f"Rental: {title}", f"{rental.total_days} day rental", rental.subtotal),
        _line_item("Service Fee", "Rentify platform fee", rental.service_fee),
        _line_item("Insurance Fee", "Rental protection insurance", rental.insurance_fee),
    ]
    if rental.delivery_fee and Decimal(str(rental.delivery_fee)) > 0:
        line_items.append(_line_item("Delivery Fee", "Delivery to renter", rental.delivery_fee))

    metadata = {
        "rental_id": str(rental.id),
        "renter_id": str(rental.renter_id),
        "owner_id": str(rental.owner_id),
    }

    payment_intent_data = {"metadata": metadata}
    destination = rental.owner.stripe_account_id if rental.owner else None
    if destination:
        payment_intent_data["application_fee_amount"] = _to_cents(rental.service_fee)
        payment_intent_data["transfer_data"] = {"destination": destination}

    base = _frontend_url()
    return {
        "mode": "payment",
        "payment_method_types": ["card"],
        "line_items": line_items,
        "success_url": f"{base}/rental/success?session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{base}/checkout?rental_id={rental.id}",
        "payment_intent_data": payment_intent_data,
        "metadata": {"rental_id": str(rental.id), "renter_id": str(rental.renter_id)},
    }


def create_checkout_session(rental_id: int, user_id: int) -> dict:
    rental = _pending_rental_for_renter(rental_id, user_id)

    owner: Profile | None = rental.owner
    if not (owner and owner.stripe_account_id):
        if current_app.config.get("STRIPE_REQUIRE_CONNECT_ACCOUNT", True):
            raise ApiError("Owner hasn't set up payment processing yet. Please contact the owner.", 400)
        current_app.logger.info("Creating checkout for rental %s without a Connect destination", rental.id)

    try:
        session = stripe.checkout.Session.create(api_key=_stripe_key(), **build_checkout_params(rental))
    except stripe.StripeError:
        current_app.logger.exception("Stripe checkout session failed for rental %s", rental.id)
        raise ApiError("Failed to create checkout session", 500)

    rental.stripe_session_id = session["id"]
    db.session.commit()

    return {"session_id": session["id"], "url": session["url"]}


def create_payment_intent(rental_id: int, user_id: int) -> dict:
    rental = _pending_rental_for_renter(rental_id, user_id)

    try:
        intent = stripe.PaymentIntent.create(
            api_key=_stripe_key(),
            amount=_to_cents(rental.total_amount),
            currency=_currency(),
            metadata={"rental_id": str(rental.id), "renter_id": str(rental.renter_id)},
            automatic_payment_methods={"enabled": True},
        )
    except stripe.StripeError:
        current_app.logger.exception("Stripe payment intent failed for rental %s", rental.id)
        raise ApiError("Failed to create payment intent", 500)

    rental.payment_intent_id = intent["id"]
    db.session.commit()

    return {"client_secret": intent["client_secret"], "payment_intent_id": intent["id"]}


def create_connect_account(user_id: int) -> dict:
    profile: Profile | None = Profile.query.get(user_id)
    if not profile:
        raise ApiError("Profile not found", 404)

    key = _stripe_key()
    base = _frontend_url()
    try:
        if not profile.stripe_account_id:
            account = stripe.Account.create(
                api_key=key,
                type="express",
                email=profile.email,
                metadata={"user_id": str(profile.id)},
            )
            profile.stripe_account_id = account["id"]
            profile.updated_at = datetime.utcnow()
            db.session.commit()

        link = stripe.AccountLink.create(
            api_key=key,
            account=profile.stripe_account_id,
            refresh_url=f"{base}/dashboard/payouts?refresh=true",
            return_url=f"{base}/dashboard/payouts?success=true",
            type="account_onboarding",
        )
    except stripe.StripeError:
        current_app.logger.exception("Stripe Connect onboarding failed for profile %s", profile.id)
        raise ApiError("Failed to create Connect account", 500)

    return {"url": link["url"], "account_id": profile.stripe_account_id}


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------

def verify_event(payload: bytes, signature: str | None) -> dict:
    """
    Checks the Stripe-Signature header and returns the event as plain data.
    Anything that fails verification is rejected before it is looked at.
    """
    secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    if not secret:
        current_app.logger.error("STRIPE_WEBHOOK_SECRET not set")
        raise ApiError("Webhook not configured", 500)
    if not signature:
        raise ApiError("Missing Stripe signature", 400)

    try:
        stripe.Webhook.construct_event(payload, signature, secret)
    except stripe.SignatureVerificationError:
        current_app.logger.warning("Stripe webhook signature verification failed")
        raise ApiError("Invalid signature", 400)
    except ValueError:
        raise ApiError("Invalid payload", 400)

    return json.loads(payload)


def _rental_id_from(obj: dict) -> int | None:
    raw = (obj.get("metadata") or {}).get("rental_id")
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


def handle_event(event: dict) -> str:
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}
    current_app.logger.info("Stripe event %s (%s)", event_type, event.get("id"))

    if event_type == "checkout.session.completed":
        rental_id = _rental_id_from(obj)
        if rental_id is None:
            current_app.logger.warning("Checkout session %s has no rental_id metadata", obj.get("id"))
            return "ignored"
        return rental_service.mark_paid(
            rental_id,
            session_id=obj.get("id"),
            payment_intent_id=obj.get("payment_intent"),
        )

    if event_type == "payment_intent.succeeded":
        return rental_service.mark_intent_succeeded(obj.get("id"))

    if event_type == "payment_intent.payment_failed":
        return rental_service.mark_payment_failed(
            rental_id=_rental_id_from(obj),
            payment_intent_id=obj.get("id"),
        )

    if event_type == "account.updated":
        return _sync_connect_account(obj)

    current_app.logger.info("Unhandled Stripe event type: %s", event_type)
    return "ignored"


def _sync_connect_account(account: dict) -> str:
    account_id = account.get("id")
    profile: Profile | None = Profile.query.filter_by(stripe_account_id=account_id).first()
    if not profile:
        current_app.logger.info("account.updated for unknown account %s", account_id)
        return "ignored"

    profile.stripe_onboarding_complete = bool(account.get("details_submitted") and account.get("payouts_enabled"))
    profile.updated_at = datetime.utcnow()
    db.session.commit()
    return "account_synced"
