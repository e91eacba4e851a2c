# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, g

from .services.activity_service import normalize_actor

ACTOR_HEADER = "X-Username"


def current_actor() -> str:
    """Username the client sent in X-Username, or "Unknown"."""
    return normalize_actor(request.headers.get(ACTOR_HEADER))


def with_actor(f):
    """
    Resolve the acting user for the request.

    Sets g.actor; there are no sessions, the client names itself in the
    X-Username header and every mutation is attributed to that name.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.actor = current_actor()
        return f(*args, **kwargs)

    return decorated_function
