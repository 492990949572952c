from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from rentify.services import upload_service
from rentify.utils.responses import success_response
from rentify.utils.security import current_user_id

bp = Blueprint("uploads", __name__)


@bp.post("/images")
@jwt_required()
def upload_images():
    files = request.files.getlist("images")
    urls = upload_service.save_images(files, current_user_id(), request.host_url)
    return success_response(data={"urls": urls}, message=f"{len(urls)} image(s) uploaded", status_code=201)
