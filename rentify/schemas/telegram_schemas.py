from marshmallow import fields, validate

from rentify.extensions.ma import ma
from rentify.services.telegram_service import TITLE_BY_KIND


class TelegramNotificationSchema(ma.Schema):
    rental_id = fields.Integer(required=True)
    user_id = fields.Integer(required=False, allow_none=True, load_default=None)
    type = fields.String(required=True, validate=validate.OneOf(sorted(TITLE_BY_KIND)))
    message = fields.String(required=True, validate=validate.Length(min=1, max=1000))
