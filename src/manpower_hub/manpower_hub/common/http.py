from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Dict

from flask import jsonify, request

from ..core.exceptions import CeremonyError, ValidationError

logger = logging.getLogger(__name__)


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


def failure(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


def json_api(view):
    """Translate domain exceptions into ``{success: false, error}`` bodies.

    Ceremony errors answer with their own status and public message only;
    internal detail goes to the log.
    """

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except CeremonyError as e:
            if e.security_event:
                logger.warning("%s %s rejected (%s) remote=%s", request.method, request.path, e.code, request.remote_addr)
            return failure(e.public_message, e.http_status)
        except ValidationError as e:
            return failure(str(e), 400)
        except Exception:
            logger.exception("%s %s failed", request.method, request.path)
            return failure("Internal server error", 500)

    return wrapper
