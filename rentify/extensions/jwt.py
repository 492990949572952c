from flask import jsonify
from flask_jwt_extended import JWTManager

jwt = JWTManager()


def _unauthorized(message: str):
    return jsonify({"success": False, "message": message}), 401


# Flask-JWT-Extended answers 401/422 with its own body; keep the API envelope
# and report every session problem as 401.
@jwt.unauthorized_loader
def _missing_token(reason: str):
    return _unauthorized("Authentication required")


@jwt.invalid_token_loader
def _invalid_token(reason: str):
    return _unauthorized("Invalid session token")


@jwt.expired_token_loader
def _expired_token(jwt_header, jwt_payload):
    return _unauthorized("Session expired")


@jwt.revoked_token_loader
def _revoked_token(jwt_header, jwt_payload):
    return _unauthorized("Session revoked")


@jwt.needs_fresh_token_loader
def _needs_fresh_token(jwt_header, jwt_payload):
    return _unauthorized("Fresh session required")
