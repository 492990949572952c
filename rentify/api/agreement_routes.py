from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from rentify.schemas.rental_schemas import AcceptAgreementSchema, RentalIdSchema
from rentify.services import agreement_service
from rentify.utils.responses import success_response
from rentify.utils.security import current_user_id

bp = Blueprint("agreements", __name__)


@bp.post("/generate-agreement")
@jwt_required()
def generate_agreement():
    data = RentalIdSchema().load(request.json or {})
    result = agreement_service.generate_agreement(data["rental_id"], current_user_id())
    return success_response(data=result, message="Agreement ready")


@bp.post("/accept-agreement")
@jwt_required()
def accept_agreement():
    data = AcceptAgreementSchema().load(request.json or {})
    result = agreement_service.accept_agreement(data["rental_id"], current_user_id(), data["is_owner"])
    return success_response(data=result, message="Agreement accepted successfully")
