from marshmallow import fields, validate

from rentify.extensions.ma import ma


class RentalCreateSchema(ma.Schema):
    """
    Booking request. Fees are computed server side from the item and the
    date range; nothing monetary is accepted from the client.
    """

    item_id = fields.Integer(required=True)
    start_date = fields.Date(required=True)
    end_date = fields.Date(required=True)
    delivery_method = fields.String(
        required=False,
        load_default="pickup",
        validate=validate.OneOf(["pickup", "delivery"]),
    )
    delivery_address = fields.String(required=False, allow_none=True)
    special_instructions = fields.String(required=False, allow_none=True, validate=validate.Length(max=2000))


class AvailabilityCheckSchema(ma.Schema):
    item_id = fields.Integer(required=True)
    start_date = fields.Date(required=True)
    end_date = fields.Date(required=True)
    exclude_rental_id = fields.Integer(required=False, allow_none=True, load_default=None)


class AvailabilityBlockCreateSchema(ma.Schema):
    item_id = fields.Integer(required=True)
    start_date = fields.Date(required=True)
    end_date = fields.Date(required=True)
    reason = fields.String(required=False, allow_none=True, validate=validate.Length(max=120))
    notes = fields.String(required=False, allow_none=True)


class RentalActionSchema(ma.Schema):
    rental_id = fields.Integer(required=True)
    notes = fields.String(required=False, allow_none=True)


class CancelRentalSchema(ma.Schema):
    rental_id = fields.Integer(required=True)
    reason = fields.String(required=False, allow_none=True, validate=validate.Length(max=500))


class ConfirmReturnSchema(ma.Schema):
    rental_id = fields.Integer(required=True)
    damage_reported = fields.Boolean(required=False, load_default=False)
    damage_description = fields.String(required=False, allow_none=True)
    security_deposit_deduction = fields.Decimal(
        required=False,
        load_default=0,
        validate=validate.Range(min=0),
    )
    security_deposit_reason = fields.String(required=False, allow_none=True)


class AcceptAgreementSchema(ma.Schema):
    rental_id = fields.Integer(required=True)
    is_owner = fields.Boolean(required=True)


class RentalIdSchema(ma.Schema):
    rental_id = fields.Integer(required=True)


class OverdueActionSchema(ma.Schema):
    action = fields.String(required=True, validate=validate.OneOf(["update_late_days"]))
    rental_id = fields.Integer(required=True)
