from flask import Blueprint

auth_bp = Blueprint("auth", __name__)

from markwise.auth import routes  # noqa: E402,F401
