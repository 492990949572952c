from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from rentify.services import admin_service
from rentify.utils.responses import success_response
from rentify.utils.security import require_admin

bp = Blueprint("admin", __name__)


@bp.get("/dashboard")
@jwt_required()
def dashboard():
    require_admin()
    data = admin_service.dashboard(
        search=request.args.get("search"),
        status=request.args.get("status"),
    )
    return success_response(data=data, message="OK")
