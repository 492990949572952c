from marshmallow import Schema, fields, validate


class ReviewCreateSchema(Schema):
	rental_id = fields.Integer(required=True)
	rating = fields.Integer(
		required=True,
		validate=validate.Range(min=1, max=5, error="Rating must be between 1 and 5."),
	)
	comment = fields.String(
		required=False,
		allow_none=True,
		validate=validate.Length(max=2000, error="Comment cannot exceed 2000 characters."),
	)
	is_public = fields.Boolean(required=False, load_default=True)
