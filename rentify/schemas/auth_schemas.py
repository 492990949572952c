from marshmallow import fields, validates, ValidationError, validate

from rentify.extensions import ma


class RegisterSchema(ma.Schema):
    full_name = fields.String(required=True, validate=validate.Length(min=1, max=200))
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)
    phone = fields.String(required=False, allow_none=True)
    location = fields.String(required=False, allow_none=True)

    @validates("password")
    def validate_password(self, value, **kwargs):
        if len(value) < 6:
            raise ValidationError("Password must be at least 6 characters long.")


class LoginSchema(ma.Schema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)
