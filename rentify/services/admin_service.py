"""
Admin dashboard data.

Moderation screens are served from fixed sample data; nothing here reads
or writes the database.
"""

from copy import deepcopy

PLATFORM_STATS = {
    "total_users": 12450,
    "total_items": 8920,
    "total_revenue": 45600,
    "pending_reports": 23,
    "monthly_growth": 12.5,
}

RECENT_USERS = [
    {
        "id": 1,
        "name": "Alice Johnson",
        "email": "alice@example.com",
        "join_date": "2024-01-08",
        "status": "active",
        "items_listed": 3,
        "rentals": 12,
    },
    {
        "id": 2,
        "name": "Bob Smith",
        "email": "bob@example.com",
        "join_date": "2024-01-07",
        "status": "active",
        "items_listed": 1,
        "rentals": 5,
    },
    {
        "id": 3,
        "name": "Charlie Brown",
        "email": "charlie@example.com",
        "join_date": "2024-01-06",
        "status": "suspended",
        "items_listed": 0,
        "rentals": 2,
    },
]

PENDING_ITEMS = [
    {
        "id": 1,
        "name": "Professional Camera Lens",
        "owner": "John Doe",
        "category": "Electronics",
        "price": 35,
        "status": "pending",
        "submitted_date": "2024-01-08",
    },
    {
        "id": 2,
        "name": "Vintage Guitar",
        "owner": "Sarah Wilson",
        "category": "Music",
        "price": 28,
        "status": "pending",
        "submitted_date": "2024-01-07",
    },
]

REPORTED_ITEMS = [
    {
        "id": 1,
        "item_name": "Power Drill",
        "reported_by": "Mike Johnson",
        "reason": "Item not as described",
        "date": "2024-01-08",
        "status": "pending",
        "severity": "medium",
    },
    {
        "id": 2,
        "item_name": "Gaming Console",
        "reported_by": "Lisa Brown",
        "reason": "Damaged item received",
        "date": "2024-01-07",
        "status": "investigating",
        "severity": "high",
    },
]


def _filter_users(search: str | None, status: str | None) -> list[dict]:
    users = RECENT_USERS
    if status and status != "all":
        users = [u for u in users if u["status"] == status]
    if search:
        needle = search.strip().lower()
        users = [u for u in users if needle in u["name"].lower() or needle in u["email"].lower()]
    return users


def dashboard(search: str | None = None, status: str | None = None) -> dict:
    return deepcopy({
        "stats": PLATFORM_STATS,
        "recent_users": _filter_users(search, status),
        "pending_items": PENDING_ITEMS,
        "reported_items": REPORTED_ITEMS,
    })
