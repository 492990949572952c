from .profile import Profile
from .role import Role
from .profile_role import ProfileRole
from .category import Category
from .item import Item
from .item_image import ItemImage
from .rental import Rental
from .availability_block import AvailabilityBlock
from .review import Review
from .message import Message
from .notification import Notification
from .outbox_event import OutboxEvent

__all__ = [
    "Profile",
    "Role",
    "ProfileRole",
    "Category",
    "Item",
    "ItemImage",
    "Rental",
    "AvailabilityBlock",
    "Review",
    "Message",
    "Notification",
    "OutboxEvent",
]
