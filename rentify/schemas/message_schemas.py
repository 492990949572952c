from marshmallow import Schema, fields, validate

MAX_MESSAGE_LENGTH = 2000


class MessageCreateSchema(Schema):
    recipient_id = fields.Integer(required=True)
    item_id = fields.Integer(required=False, allow_none=True, load_default=None)
    content = fields.String(
        required=True,
        validate=validate.Length(min=1, max=MAX_MESSAGE_LENGTH),
    )


class MarkReadSchema(Schema):
    sender_id = fields.Integer(required=True)
    item_id = fields.Integer(required=False, allow_none=True, load_default=None)
