import secrets
from datetime import datetime

from flask import current_app

from rentify.extensions import db
from rentify.models.profile import Profile
from rentify.models.rental import STATUS_ACTIVE, STATUS_PENDING, STATUS_PENDING_PICKUP, Rental
from rentify.utils.errors import ApiError
from rentify.utils.telegram_bot import TelegramBot

EMOJI_BY_KIND = {
    "reminder": "⏰",
    "confirmation": "✅",
    "payment": "💳",
    "return": "📦",
    "overdue": "🚨",
}

TITLE_BY_KIND = {
    "reminder": "Rental Reminder",
    "confirmation": "Booking Confirmed",
    "payment": "Payment Update",
    "return": "Return Reminder",
    "overdue": "Overdue Notice",
}

HELP_TEXT = (
    "🤖 *Rentify Bot Commands*\n\n"
    "/start - Link your account\n"
    "/rentals - View your current rentals\n"
    "/unlink - Disconnect your Rentify account\n"
    "/help - Show this help message\n\n"
    "You'll receive notifications about:\n"
    "• Rental reminders\n"
    "• Payment updates\n"
    "• Return deadlines\n"
    "• Overdue notices"
)


def get_bot() -> TelegramBot:
    return TelegramBot(
        current_app.config.get("TELEGRAM_BOT_TOKEN"),
        timeout=int(current_app.config.get("TELEGRAM_TIMEOUT_SECONDS", 5)),
    )


def rental_url(rental_id: int) -> str:
    base = (current_app.config.get("APP_BASE_URL") or "").rstrip("/")
    return f"{base}/rental/{rental_id}"


def format_notification(kind: str, message: str) -> str:
    emoji = EMOJI_BY_KIND.get(kind, "📱")
    title = TITLE_BY_KIND.get(kind, "Rentify Notification")
    return f"{emoji} *{title}*\n\n{message}"


def send_to_profile(
    profile: Profile,
    kind: str,
    message: str,
    rental_id: int | None = None,
    action_url: str | None = None,
) -> bool:
    if not profile or not profile.telegram_chat_id:
        current_app.logger.info("Profile %s has no Telegram chat linked", getattr(profile, "id", None))
        return False

    keyboard = None
    if action_url and rental_id is not None:
        keyboard = [[
            {"text": "View Details", "callback_data": f"rental_{rental_id}"},
            {"text": "Open App", "url": action_url},
        ]]

    return get_bot().send_message(
        profile.telegram_chat_id,
        format_notification(kind, message),
        inline_keyboard=keyboard,
    )


# ---------------------------------------------------------------------------
# Account linking
# ---------------------------------------------------------------------------

def issue_link_token(user_id: int) -> dict:
    profile: Profile | None = Profile.query.get(user_id)
    if not profile:
        raise ApiError("Profile not found", 404)

    token = secrets.token_urlsafe(24)
    profile.telegram_link_token = token
    db.session.commit()

    username = current_app.config.get("TELEGRAM_BOT_USERNAME") or "RentifyBot"
    return {
        "token": token,
        "deep_link": f"https://t.me/{username}?start={token}",
        "linked": bool(profile.telegram_chat_id),
    }


def unlink_profile(user_id: int) -> None:
    profile: Profile | None = Profile.query.get(user_id)
    if not profile:
        raise ApiError("Profile not found", 404)

    profile.telegram_chat_id = None
    profile.telegram_username = None
    profile.telegram_linked_at = None
    profile.telegram_link_token = None
    db.session.commit()


# ---------------------------------------------------------------------------
# Inbound webhook
# ---------------------------------------------------------------------------

def _reply(chat_id, text: str) -> None:
    get_bot().send_message(chat_id, text)


def _handle_start(chat_id, username: str | None, token: str | None) -> str:
    if not token:
        _reply(
            chat_id,
            "👋 Welcome to Rentify Bot!\n\n"
            "To link your account, open your Rentify profile and use the "
            "\"Connect Telegram\" button.",
        )
        return "start_without_token"

    profile: Profile | None = Profile.query.filter_by(telegram_link_token=token).first()
    if not profile:
        _reply(chat_id, "❌ Invalid or expired link. Please generate a new link from your profile.")
        return "invalid_token"

    # A chat belongs to one profile at a time
    Profile.query.filter(
        Profile.telegram_chat_id == str(chat_id), Profile.id != profile.id
    ).update(
        {"telegram_chat_id": None, "telegram_username": None, "telegram_linked_at": None},
        synchronize_session=False,
    )
    profile.telegram_chat_id = str(chat_id)
    profile.telegram_username = username
    profile.telegram_linked_at = datetime.utcnow()
    profile.telegram_link_token = None
    db.session.commit()

    _reply(
        chat_id,
        f"✅ Account linked successfully, {profile.full_name}!\n\n"
        "You'll now receive rental notifications here. Type /help to see commands.",
    )
    return "linked"


def _handle_rentals(chat_id) -> str:
    profile: Profile | None = Profile.query.filter_by(telegram_chat_id=str(chat_id)).first()
    if not profile:
        _reply(chat_id, "❌ Your Telegram isn't linked to a Rentify account. Use /start to link.")
        return "not_linked"

    rentals = (
        Rental.query.filter(
            (Rental.renter_id == profile.id) | (Rental.owner_id == profile.id),
            Rental.status.in_((STATUS_PENDING, STATUS_PENDING_PICKUP, STATUS_ACTIVE)),
        )
        .order_by(Rental.start_date.asc())
        .limit(10)
        .all()
    )

    if not rentals:
        _reply(chat_id, "📦 You don't have any current rentals.")
        return "rentals"

    lines = ["📦 *Your Current Rentals*\n"]
    for r in rentals:
        role = "Renting" if r.renter_id == profile.id else "Lending"
        title = r.item.title if r.item else f"Item #{r.item_id}"
        lines.append(f"• *{title}* ({role})\n  {r.start_date} → {r.end_date} · {r.status}")
    _reply(chat_id, "\n".join(lines))
    return "rentals"


def _handle_unlink(chat_id) -> str:
    profile: Profile | None = Profile.query.filter_by(telegram_chat_id=str(chat_id)).first()
    if not profile:
        _reply(chat_id, "Your Telegram isn't linked to any Rentify account.")
        return "not_linked"

    profile.telegram_chat_id = None
    profile.telegram_username = None
    profile.telegram_linked_at = None
    db.session.commit()

    _reply(chat_id, "✅ Your account has been unlinked. You won't receive notifications anymore.")
    return "unlinked"


def _handle_callback(callback: dict) -> str:
    data = str(callback.get("data") or "")
    chat_id = ((callback.get("message") or {}).get("chat") or {}).get("id")
    callback_id = callback.get("id")

    if callback_id:
        get_bot().answer_callback_query(callback_id)

    if data.startswith("rental_") and chat_id is not None:
        rental_id = data[len("rental_"):]
        _reply(chat_id, f"🔗 View rental details: {rental_url(rental_id)}")
        return "rental_link"
    return "ignored"


def handle_update(update: dict) -> str:
    """Processes one Bot API update and returns a short label for what was done."""
    if update.get("callback_query"):
        return _handle_callback(update["callback_query"])

    message = update.get("message") or {}
    text = str(message.get("text") or "").strip()
    chat_id = (message.get("chat") or {}).get("id")
    if chat_id is None or not text:
        return "ignored"

    username = (message.get("from") or {}).get("username")
    parts = text.split(maxsplit=1)
    command = parts[0].split("@", 1)[0].lower()
    argument = parts[1].strip() if len(parts) > 1 else None

    if command == "/start":
        return _handle_start(chat_id, username, argument)
    if command == "/help":
        _reply(chat_id, HELP_TEXT)
        return "help"
    if command == "/rentals":
        return _handle_rentals(chat_id)
    if command == "/unlink":
        return _handle_unlink(chat_id)

    _reply(chat_id, "I didn't understand that command. Type /help to see what I can do.")
    return "unknown_command"


def setup_webhook() -> dict:
    base = (current_app.config.get("APP_BASE_URL") or "").rstrip("/")
    url = f"{base}/api/telegram/webhook"
    ok = get_bot().set_webhook(url, current_app.config.get("TELEGRAM_WEBHOOK_SECRET"))
    if not ok:
        raise ApiError("Failed to register Telegram webhook", 500)
    return {"webhook_url": url}
