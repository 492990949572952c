from marshmallow import fields, validate, validates_schema, ValidationError

from rentify.extensions import ma
from rentify.models.item import Item


class ItemSchema(ma.SQLAlchemyAutoSchema):
    """Public representation of a listing, with owner summary and images."""

    class Meta:
        model = Item
        load_instance = False
        include_fk = True

    price_per_day = fields.Float()
    security_deposit = fields.Float()
    late_fee_per_day = fields.Float(allow_none=True)

    category = fields.Method("get_category")
    owner = fields.Method("get_owner")
    images = fields.Method("get_images")
    primary_image_url = fields.Method("get_primary_image")

    def get_category(self, obj):
        if obj.category is None:
            return None
        return {"id": obj.category.id, "name": obj.category.name, "slug": obj.category.slug}

    def get_owner(self, obj):
        owner = obj.owner
        if owner is None:
            return None
        return {
            "id": owner.id,
            "full_name": owner.full_name,
            "rating": float(owner.rating or 0),
            "total_reviews": owner.total_reviews or 0,
            "location": owner.location,
        }

    def get_images(self, obj):
        return [
            {"id": img.id, "url": img.url, "is_primary": bool(img.is_primary), "position": img.position}
            for img in obj.images
        ]

    def get_primary_image(self, obj):
        for img in obj.images:
            if img.is_primary:
                return img.url
        return obj.images[0].url if obj.images else None


class ItemCreateSchema(ma.Schema):
    title = fields.String(required=True, validate=validate.Length(min=1, max=150))
    description = fields.String(required=True, validate=validate.Length(min=1))
    category = fields.String(required=False, allow_none=True)
    price_per_day = fields.Decimal(required=True, validate=validate.Range(min=0, min_inclusive=False))
    security_deposit = fields.Decimal(required=False, load_default=0, validate=validate.Range(min=0))
    late_fee_per_day = fields.Decimal(required=False, allow_none=True, validate=validate.Range(min=0))
    location = fields.String(required=False, allow_none=True)
    condition = fields.String(required=False, allow_none=True)
    features = fields.List(fields.String(), required=False, load_default=list)
    cancellation_policy = fields.String(required=False, allow_none=True)
    damage_policy = fields.String(required=False, allow_none=True)
    image_urls = fields.List(fields.String(), required=False, load_default=list)


class ItemUpdateSchema(ma.Schema):
    title = fields.String(validate=validate.Length(min=1, max=150))
    description = fields.String(validate=validate.Length(min=1))
    category = fields.String(allow_none=True)
    price_per_day = fields.Decimal(validate=validate.Range(min=0, min_inclusive=False))
    security_deposit = fields.Decimal(validate=validate.Range(min=0))
    late_fee_per_day = fields.Decimal(allow_none=True, validate=validate.Range(min=0))
    location = fields.String(allow_none=True)
    condition = fields.String(allow_none=True)
    features = fields.List(fields.String())
    cancellation_policy = fields.String(allow_none=True)
    damage_policy = fields.String(allow_none=True)
    is_available = fields.Boolean()
    status = fields.String(validate=validate.OneOf(["published", "paused"]))
    image_urls = fields.List(fields.String())

    @validates_schema
    def validate_not_empty(self, data, **kwargs):
        if not data:
            raise ValidationError("No fields to update")
