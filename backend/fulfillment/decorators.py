# Overview: Request identity and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .actor import Actor, ROLES


def _current_actor() -> Actor | None:
    return getattr(g, "actor", None)


def require_actor(f):
    """
    Require an acting user forwarded by the upstream authentication layer.

    Sets g.actor from the X-User-Id / X-User-Role headers.

    SECURITY: Returns 401 if X-User-Id is missing or the role is unknown.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = (request.headers.get("X-User-Id") or "").strip()
        role = (request.headers.get("X-User-Role") or "").strip().lower()

        if not user_id:
            return jsonify({"error": "Authentication required"}), 401
        if role not in ROLES:
            return jsonify({"error": "Unknown or missing role"}), 401

        g.actor = Actor(user_id=user_id, role=role)
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Restrict a route to the given roles. Use after @require_actor."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            actor = _current_actor()
            if actor is None:
                return jsonify({"error": "Authentication required"}), 401

            if actor.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                    "kind": "forbidden",
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator
