"""Auth blueprint — /auth/*

JSON session endpoints for the admin back office.
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf
from werkzeug.security import check_password_hash

from storefront.extensions import limiter
from storefront.models.user import User

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").lower().strip()
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if user is None or not user.is_active or not check_password_hash(
        user.password_hash, password
    ):
        return jsonify({"error": "Invalid email or password"}), 401

    login_user(user, remember=bool(data.get("remember")))
    return jsonify({"user": user.to_dict()})


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"ok": True})


@auth_bp.route("/session", methods=["GET"])
def session_info():
    """Current user (if any) plus a CSRF token for admin writes."""
    user = current_user.to_dict() if current_user.is_authenticated else None
    return jsonify({"user": user, "csrf_token": generate_csrf()})
