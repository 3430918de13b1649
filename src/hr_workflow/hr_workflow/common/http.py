from __future__ import annotations

import logging
from functools import wraps

from flask import jsonify, request, session

from ..authority.actor import ActorContext
from ..core.exceptions import DomainError

logger = logging.getLogger(__name__)

STATUS_BY_CATEGORY = {
    "validation": 400,
    "authorization": 403,
    "not_found": 404,
    "conflict": 409,
}


def error_response(category: str, message: str, status: int, details=None):
    error = {"category": category, "message": message}
    if details:
        error["details"] = details
    return jsonify({"success": False, "error": error}), status


def api_view(view):
    """Resolve the session actor and turn workflow errors into JSON responses.

    The wrapped view receives the ActorContext as its first argument.
    """

    @wraps(view)
    def wrapper(*args, **kwargs):
        actor = ActorContext.from_session(session)
        if actor is None:
            return error_response("authentication", "Login required", 401)
        try:
            return view(actor, *args, **kwargs)
        except DomainError as e:
            status = STATUS_BY_CATEGORY.get(e.category, 400)
            logger.warning(
                "%s %s rejected for user %s: %s (%s)",
                request.method, request.path, actor.user_id, e.message, e.category,
            )
            body = e.to_dict()
            return error_response(body["category"], body["message"], status, body.get("details"))
        except Exception:
            logger.exception("Unexpected error on %s %s", request.method, request.path)
            return error_response("internal", "Internal server error", 500)

    return wrapper


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
