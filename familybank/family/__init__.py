"""The family blueprint."""

from flask import Blueprint

bp = Blueprint("family", __name__, url_prefix="/family")

from . import routes  # noqa: E402

__all__ = ["routes"]
