import re
from typing import Any, Dict, List

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from rentify.extensions import db
from rentify.models.category import Category
from rentify.models.item import Item
from rentify.models.item_image import ItemImage
from rentify.models.profile import Profile
from rentify.schemas.item_schemas import ItemSchema
from rentify.utils.errors import ApiError

_item_schema = ItemSchema()

SIMPLE_FIELDS = (
    "title",
    "description",
    "price_per_day",
    "security_deposit",
    "late_fee_per_day",
    "location",
    "condition",
    "features",
    "cancellation_policy",
    "damage_policy",
    "is_available",
    "status",
)


def item_to_dict(item: Item) -> Dict[str, Any]:
    return _item_schema.dump(item)


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").strip().lower()).strip("-")
    return slug or "other"


def _resolve_category(value: str | None) -> Category | None:
    """Finds a category by slug or name, creating it on first use."""
    if not value or not value.strip():
        return None
    slug = slugify(value)
    category = Category.query.filter_by(slug=slug).first()
    if category is None:
        category = Category(name=value.strip(), slug=slug)
        db.session.add(category)
        db.session.flush()
    return category


def _replace_images(item: Item, urls: List[str]) -> None:
    item.images.clear()
    db.session.flush()
    for idx, url in enumerate(u for u in urls if u and u.strip()):
        item.images.append(ItemImage(url=url.strip(), is_primary=(idx == 0), position=idx))


def _get_owned_item(item_id: int, owner_id: int, action: str) -> Item:
    item: Item | None = Item.query.get(item_id)
    if not item or item.status == "deleted":
        raise ApiError("Item not found", 404)
    if item.owner_id != owner_id:
        raise ApiError(f"You do not have permission to {action} this item", 403)
    return item


def create_item(data: Dict[str, Any], owner_id: int) -> Dict[str, Any]:
    owner = Profile.query.get(owner_id)
    if not owner:
        raise ApiError("Profile not found", 404)

    item = Item(
        owner_id=owner_id,
        title=data["title"].strip(),
        description=data["description"].strip(),
        price_per_day=data["price_per_day"],
        security_deposit=data.get("security_deposit") or 0,
        late_fee_per_day=data.get("late_fee_per_day"),
        location=data.get("location") or owner.location,
        condition=data.get("condition"),
        features=data.get("features") or [],
        cancellation_policy=data.get("cancellation_policy"),
        damage_policy=data.get("damage_policy"),
        is_available=True,
        status="published",
    )
    category = _resolve_category(data.get("category"))
    if category is not None:
        item.category_id = category.id

    db.session.add(item)
    db.session.flush()
    _replace_images(item, data.get("image_urls") or [])

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ApiError("Could not create item", 500)

    return item_to_dict(item)


def get_item(item_id: int) -> Dict[str, Any]:
    item: Item | None = Item.query.get(item_id)
    if not item or item.status == "deleted":
        raise ApiError("Item not found", 404)
    return item_to_dict(item)


def update_item(item_id: int, owner_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
    item = _get_owned_item(item_id, owner_id, "modify")

    for field in SIMPLE_FIELDS:
        if field in data:
            value = data[field]
            if field in ("title", "description") and isinstance(value, str):
                value = value.strip()
            setattr(item, field, value)

    if "category" in data:
        category = _resolve_category(data["category"])
        item.category_id = category.id if category else None

    if data.get("image_urls") is not None:
        _replace_images(item, data["image_urls"])

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ApiError("Could not update item", 500)

    return item_to_dict(item)


def delete_item(item_id: int, owner_id: int) -> None:
    item = _get_owned_item(item_id, owner_id, "delete")
    item.status = "deleted"
    item.is_available = False
    db.session.commit()


def list_public_items(filters: Dict[str, Any]) -> Dict[str, Any]:
    query = Item.query.filter(Item.status == "published", Item.is_available.is_(True))

    if filters.get("category"):
        query = query.join(Category, Item.category_id == Category.id).filter(
            Category.slug == slugify(filters["category"])
        )
    if filters.get("q"):
        text = f"%{filters['q']}%"
        query = query.filter(or_(Item.title.ilike(text), Item.description.ilike(text)))
    if filters.get("location"):
        query = query.filter(Item.location.ilike(f"%{filters['location']}%"))
    if filters.get("min_price") is not None:
        query = query.filter(Item.price_per_day >= filters["min_price"])
    if filters.get("max_price") is not None:
        query = query.filter(Item.price_per_day <= filters["max_price"])

    page = max(int(filters.get("page") or 1), 1)
    per_page = min(max(int(filters.get("per_page") or 12), 1), 50)

    total = query.count()
    items: List[Item] = (
        query.order_by(Item.created_at.desc(), Item.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )

    return {
        "page": page,
        "per_page": per_page,
        "total": total,
        "items": [item_to_dict(i) for i in items],
    }


def list_my_items(owner_id: int) -> List[Dict[str, Any]]:
    items = (
        Item.query.filter(Item.owner_id == owner_id, Item.status != "deleted")
        .order_by(Item.created_at.desc())
        .all()
    )
    return [item_to_dict(i) for i in items]


def list_categories() -> List[Dict[str, Any]]:
    return [
        {"id": c.id, "name": c.name, "slug": c.slug}
        for c in Category.query.order_by(Category.name.asc()).all()
    ]
