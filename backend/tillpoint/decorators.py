# Overview: Request decorators for API routes; register identity and error mapping.

from functools import wraps
from flask import request, jsonify, g, current_app

from .errors import CheckoutError, PersistenceError


def _header_int(name: str):
    raw = request.headers.get(name)
    if raw is None or not raw.strip().isdigit():
        return None
    return int(raw.strip())


def require_identity(f):
    """
    Establish tenant and employee context from register headers.

    Sets the following Flask g attributes:
    - g.tenant_id: from X-Tenant-Id (required)
    - g.employee_id: from X-Employee-Id (may be None for read-only routes)

    Authentication itself is handled upstream of this service.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        tenant_id = _header_int("X-Tenant-Id")
        if tenant_id is None:
            return jsonify({"error": "X-Tenant-Id header required", "code": "Unauthorized", "details": {}}), 401

        g.tenant_id = tenant_id
        g.employee_id = _header_int("X-Employee-Id")
        return f(*args, **kwargs)

    return decorated_function


def require_employee(f):
    """Like require_identity, but X-Employee-Id must be present too."""
    @wraps(f)
    @require_identity
    def decorated_function(*args, **kwargs):
        if g.employee_id is None:
            return jsonify({"error": "X-Employee-Id header required", "code": "Unauthorized", "details": {}}), 401
        return f(*args, **kwargs)

    return decorated_function


def error_response(exc: CheckoutError):
    """JSON body and status for a checkout error."""
    if isinstance(exc, PersistenceError):
        # Storage details stay in the log
        return jsonify({"error": str(exc), "code": exc.code, "details": {}}), exc.http_status
    return jsonify(exc.to_dict()), exc.http_status


def json_errors(action: str):
    """
    Map checkout errors to JSON responses for a route.

    Anything else is logged with a traceback and returned as a generic 500.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except CheckoutError as e:
                return error_response(e)
            except Exception:
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"error": "Internal server error", "code": "InternalError", "details": {}}), 500

        return decorated_function

    return decorator
