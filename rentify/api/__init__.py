from .auth_routes import bp as auth_bp
from .profile_routes import bp as profile_bp
from .item_routes import bp as items_bp
from .availability_routes import bp as availability_bp
from .rental_routes import bp as rentals_bp
from .agreement_routes import bp as agreements_bp
from .payment_routes import bp as payments_bp
from .message_routes import bp as messages_bp
from .review_routes import bp as reviews_bp
from .notification_routes import bp as notifications_bp
from .telegram_routes import bp as telegram_bp
from .cron_routes import bp as cron_bp
from .upload_routes import bp as uploads_bp
from .admin_routes import bp as admin_bp

__all__ = [
    "auth_bp",
    "profile_bp",
    "items_bp",
    "availability_bp",
    "rentals_bp",
    "agreements_bp",
    "payments_bp",
    "messages_bp",
    "reviews_bp",
    "notifications_bp",
    "telegram_bp",
    "cron_bp",
    "uploads_bp",
    "admin_bp",
]
