"""JSON error bodies for the workflow API.

Every error response is ``{"error": <message>, "code": <E.*>}`` plus an
optional ``details`` map with per-field reasons.

    return api_error(E.CONFLICT_STATE, "Step is not waiting for approval")
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes returned in the ``code`` field."""

    # Malformed request body or query string
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Raised ValidationError (bad title, unparseable date, missing card)
    BUSINESS_RULE = "ERR_BUSINESS_RULE"

    # Missing record, or one owned by another user
    NOT_FOUND = "ERR_NOT_FOUND"

    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    # Refused step transition or payload write
    CONFLICT_STATE = "ERR_CONFLICT_STATE"

    # No X-User-ID and no user bound to the API key
    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"

    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.BUSINESS_RULE: 422,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.UNAUTHENTICATED: 401,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Build a ``(response, status)`` pair for ``code``.

    The status comes from ``status`` when given, else from the code's default
    mapping, else 400. An empty ``details`` map is left out of the body.
    """
    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details

    return jsonify(body), http_status
