# Package
from flask import Blueprint

from facilityops.logging_config import get_logger

logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)

from facilityops.api import routes  # noqa: E402,F401
