from __future__ import annotations
from functools import wraps
import hmac

from flask import current_app, request

from models.user import Role
from services.container import EXTENSION_KEY, AuthServices
from services.errors import Unauthenticated, Unauthorized
from services.auth_pipeline import extract_token


def get_services() -> AuthServices:
    return current_app.extensions[EXTENSION_KEY]


def jwt_required():
    """
    Run the access token through AuthPipeline and hand the resulting
    Principal to the view as the `principal` keyword argument.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = extract_token(request.headers, request.cookies)
            if not token:
                raise Unauthenticated("Missing access token")
            kwargs["principal"] = get_services().pipeline.authenticate(token)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(*required_roles: Role):
    """
    Allow access if the principal holds ANY of the required roles.
    Deny (403) only if there is NO overlap.
    """
    req = frozenset(Role(r) for r in required_roles)

    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            principal = kwargs["principal"]
            if not (principal.roles & req):
                raise Unauthorized("Insufficient role")
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def internal_key_required():
    """Guard for /internal endpoints; open when INTERNAL_API_KEY is not configured."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            expected = current_app.config.get("INTERNAL_API_KEY") or ""
            if expected:
                given = request.headers.get("X-Internal-Key", "")
                if not hmac.compare_digest(given.encode(), expected.encode()):
                    raise Unauthenticated("Invalid internal key")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
