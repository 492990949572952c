from datetime import datetime

from flask import current_app

from rentify.extensions import db
from rentify.models.rental import STATUS_CANCELLED, Rental
from rentify.services import outbox_service
from rentify.services.outbox_service import rental_event
from rentify.services.rental_service import get_rental_or_404
from rentify.utils.deepseek import AgreementGenerationError, DeepSeekClient
from rentify.utils.errors import ApiError

SYSTEM_PROMPT = (
    "You are a legal document generator specializing in rental agreements for Malaysia. "
    "Generate a comprehensive, legally sound rental agreement that complies with Malaysian law "
    "and is fair to both parties. Use Malaysian Ringgit (RM) currency format and include all "
    "necessary clauses for protection and clarity. Make the language professional yet easy to "
    "understand."
)

SECTIONS = (
    "Parties identification with full contact details",
    "Item description and condition assessment",
    "Rental period and payment terms (in Malaysian Ringgit)",
    "Security deposit terms and refund conditions",
    "Collection and return arrangements and responsibilities",
    "Care and maintenance responsibilities",
    "Damage and liability clauses",
    "Cancellation and return policies",
    "Late fees and penalties",
    "Insurance and risk allocation",
    "Dispute resolution (Malaysian jurisdiction)",
    "Force majeure clause",
    "Signatures section with date and location",
)


def get_client() -> DeepSeekClient:
    cfg = current_app.config
    return DeepSeekClient(
        cfg.get("DEEPSEEK_API_KEY"),
        cfg.get("DEEPSEEK_BASE_URL", "https://api.deepseek.com/v1"),
        cfg.get("DEEPSEEK_MODEL", "deepseek-chat"),
        timeout=int(cfg.get("DEEPSEEK_TIMEOUT_SECONDS", 60)),
    )


def _party_lines(profile) -> str:
    return (
        f"- Name: {profile.full_name}\n"
        f"- Email: {profile.email}\n"
        f"- Phone: {profile.phone or 'Not provided'}\n"
        f"- Location: {profile.location or 'Not provided'}"
    )


def build_prompt(rental: Rental) -> str:
    item = rental.item
    features = ", ".join(item.features or []) or "N/A"
    late_fee = item.late_fee_per_day if item.late_fee_per_day is not None else current_app.config.get(
        "DEFAULT_LATE_FEE_PER_DAY", "10"
    )

    if rental.delivery_method == "delivery":
        collection = (
            f"- Collection Method: Delivery to the renter\n"
            f"- Delivery Address: {rental.delivery_address or 'To be confirmed'}"
        )
    else:
        collection = (
            "- Collection Method: Meet-up with owner\n"
            "- Meet-up Location: To be arranged between parties"
        )

    sections = "\n".join(f"{i}. {s}" for i, s in enumerate(SECTIONS, start=1))

    return f"""Generate a detailed rental agreement for the following rental:

ITEM DETAILS:
- Item: {item.title}
- Description: {item.description}
- Features: {features}
- Daily Rate: RM{rental.price_per_day}
- Security Deposit: RM{rental.security_deposit or 0}

RENTAL PERIOD:
- Start Date: {rental.start_date}
- End Date: {rental.end_date}
- Total Days: {rental.total_days}
- Total Amount: RM{rental.total_amount}

OWNER (LESSOR):
{_party_lines(rental.owner)}

RENTER (LESSEE):
{_party_lines(rental.renter)}

POLICIES:
- Cancellation Policy: {item.cancellation_policy or "Standard 24-hour cancellation policy"}
- Damage Policy: {item.damage_policy or "Renter is responsible for any damage beyond normal wear and tear"}
- Late Fee: RM{late_fee} per day for late returns

COLLECTION ARRANGEMENT:
{collection}
- Special Instructions: {rental.special_instructions or "None"}

Please generate a comprehensive rental agreement that includes:
{sections}

Format the agreement with clear headings, numbered sections, and professional legal language
suitable for Malaysia. Include a proper title "RENTAL AGREEMENT" at the top."""


def generate_agreement(rental_id: int, user_id: int) -> dict:
    """
    Produces the agreement text once. Later calls return the stored text
    without calling the model again.
    """
    rental = get_rental_or_404(rental_id)
    if not rental.is_participant(user_id):
        raise ApiError("You do not have access to this rental", 403)

    if rental.rental_agreement:
        return {"agreement": rental.rental_agreement, "generated": False}

    if rental.status == STATUS_CANCELLED:
        raise ApiError(f"Cannot generate an agreement: rental is {rental.status}", 400)

    try:
        text = get_client().generate_text(SYSTEM_PROMPT, build_prompt(rental))
    except AgreementGenerationError:
        current_app.logger.exception("Agreement generation failed for rental %s", rental_id)
        raise ApiError("Failed to generate agreement", 500)

    now = datetime.utcnow()
    updated = (
        Rental.query.filter(Rental.id == rental_id, Rental.rental_agreement.is_(None))
        .update(
            {"rental_agreement": text, "agreement_generated_at": now, "updated_at": now},
            synchronize_session=False,
        )
    )
    db.session.commit()
    db.session.expire_all()

    rental = get_rental_or_404(rental_id)
    return {"agreement": rental.rental_agreement, "generated": bool(updated)}


def accept_agreement(rental_id: int, user_id: int, is_owner: bool) -> dict:
    rental = get_rental_or_404(rental_id)

    party_id = rental.owner_id if is_owner else rental.renter_id
    if party_id != user_id:
        raise ApiError("Not authorized to accept this agreement", 403)

    if not rental.rental_agreement:
        raise ApiError("Agreement has not been generated yet", 400)

    if is_owner:
        flag, signature = Rental.agreement_accepted_by_owner, "owner_signature"
        flag_name = "agreement_accepted_by_owner"
        signer_email = rental.owner.email
    else:
        flag, signature = Rental.agreement_accepted_by_renter, "renter_signature"
        flag_name = "agreement_accepted_by_renter"
        signer_email = rental.renter.email

    now = datetime.utcnow()
    accepted = (
        Rental.query.filter(Rental.id == rental_id, flag == False)  # noqa: E712
        .update(
            {flag_name: True, signature: f"{signer_email} - Digital Acceptance", "updated_at": now},
            synchronize_session=False,
        )
    )
    if accepted != 1:
        db.session.rollback()
        raise ApiError("Agreement already accepted", 400)

    # Stamped by whichever acceptance commits second; the guard makes it happen once.
    signed = (
        Rental.query.filter(
            Rental.id == rental_id,
            Rental.agreement_accepted_by_owner == True,  # noqa: E712
            Rental.agreement_accepted_by_renter == True,  # noqa: E712
            Rental.agreement_signed_at.is_(None),
        )
        .update({"agreement_signed_at": now}, synchronize_session=False)
    )
    db.session.commit()
    db.session.expire_all()

    rental = get_rental_or_404(rental_id)
    both_accepted = bool(rental.agreement_accepted_by_owner and rental.agreement_accepted_by_renter)

    other = rental.renter_id if is_owner else rental.owner_id
    outbox_service.publish([
        rental_event(
            other, rental.id, "confirmation",
            "Agreement signed" if signed else "Agreement accepted",
            "Both parties accepted the rental agreement." if both_accepted
            else "The other party accepted the rental agreement. Please review and accept it too.",
        ),
    ])

    return {
        "rental_id": rental.id,
        "both_accepted": both_accepted,
        "agreement_signed_at": rental.agreement_signed_at.isoformat() if rental.agreement_signed_at else None,
    }
