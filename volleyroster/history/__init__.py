"""The history blueprint: archived sessions."""

from flask import Blueprint

bp = Blueprint("history", __name__, url_prefix="/sessions")

from . import routes  # noqa: E402

__all__ = ["routes"]
