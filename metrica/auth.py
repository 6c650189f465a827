"""
MétricaAgro Workflow Service
Authentication glue and identity lookup.

User identity comes from the upstream identity provider, which forwards the
signed-in user's id in the ``X-User-ID`` header. This module only checks the
API key the provider (or a script) presents and exposes the caller's id.

Provides:
    - API key authentication via X-API-Key header
    - Role-based access control decorator (admin > editor > viewer)
    - get_current_user_id(): identity collaborator for the workflow engine

Configuration (env vars):
    API_KEYS          — comma-separated "<key>:<role>[:<user id>]" entries,
                        e.g. "k1:admin:u-42,k2:editor"
    API_AUTH_ENABLED  — set to "false" to disable auth (development only)
"""

import functools
import logging
import os
from typing import Optional

from flask import current_app, g, has_request_context, jsonify, request

logger = logging.getLogger(__name__)

# ── Roles ────────────────────────────────────────────────────────────────────

ROLES = {"admin", "editor", "viewer"}

# Role hierarchy: admin > editor > viewer
ROLE_HIERARCHY = {
    "admin": {"admin", "editor", "viewer"},
    "editor": {"editor", "viewer"},
    "viewer": {"viewer"},
}

_FALSY = ("false", "0", "no", "off")


def _parse_api_keys() -> dict[str, tuple[str, Optional[str]]]:
    """
    Parse API_KEYS into {key: (role, bound user id)}.
    Keys without a role default to 'viewer'.
    """
    raw = os.getenv("API_KEYS", "")
    if not raw.strip():
        return {}

    keys = {}
    for entry in raw.split(","):
        parts = [p.strip() for p in entry.strip().split(":")]
        if not parts[0]:
            continue
        key = parts[0]
        role = parts[1].lower() if len(parts) > 1 and parts[1] else "viewer"
        if role not in ROLES:
            logger.warning("Unknown role '%s' for API key, defaulting to 'viewer'", role)
            role = "viewer"
        user_id = parts[2] if len(parts) > 2 and parts[2] else None
        keys[key] = (role, user_id)
    return keys


def _is_auth_enabled() -> bool:
    env_val = os.getenv("API_AUTH_ENABLED", "")
    if env_val:
        return env_val.lower() not in _FALSY
    try:
        return str(current_app.config.get("API_AUTH_ENABLED", "true")).lower() not in _FALSY
    except RuntimeError:
        # Outside app context
        return True


def _get_api_key_from_request() -> Optional[str]:
    return request.headers.get("X-API-Key", "").strip() or None


# ── Identity ─────────────────────────────────────────────────────────────────

def get_current_user_id() -> Optional[str]:
    """
    Id of the signed-in user, or None.

    ``X-User-ID`` from the identity provider wins; otherwise the user bound
    to the presented API key. Outside a request there is no identity.
    """
    if not has_request_context():
        return None
    header = request.headers.get("X-User-ID", "").strip()
    if header:
        return header
    return getattr(g, "api_user_id", None)


# ── Role decorator ───────────────────────────────────────────────────────────

def require_role(minimum_role: str):
    """
    Decorator: require a minimum role level.

    Usage:
        @workflow_bp.route("/steps/<int:sid>/approve", methods=["POST"])
        @require_role("admin")
        def approve(sid): ...
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user_role = getattr(g, "current_user_role", None)
            if not user_role:
                return jsonify({"error": "Authentication required"}), 401

            if minimum_role not in ROLE_HIERARCHY.get(user_role, set()):
                logger.warning(
                    "Access denied: role '%s' tried to access '%s'-level endpoint %s",
                    user_role, minimum_role, request.path,
                )
                return jsonify({"error": "Insufficient permissions"}), 403

            return f(*args, **kwargs)
        return decorated
    return decorator


# ── before_request hook installer ────────────────────────────────────────────

def init_auth(app):
    """Install the API key check for /api/v1/* (health routes excluded)."""

    @app.before_request
    def _before_request_auth():
        if not request.path.startswith("/api/v1/"):
            return None
        if request.path.startswith("/api/v1/health"):
            return None
        if request.method == "OPTIONS":
            return None

        if not _is_auth_enabled():
            g.current_user_role = "admin"
            g.api_user_id = None
            return None

        api_key = _get_api_key_from_request()
        if not api_key:
            return jsonify({"error": "Authentication required. Provide X-API-Key header."}), 401

        api_keys = _parse_api_keys()
        if not api_keys:
            logger.error("API_KEYS env var is not configured but API_AUTH_ENABLED=true")
            return jsonify({"error": "Server authentication not configured"}), 500

        entry = api_keys.get(api_key)
        if entry is None:
            logger.warning("Invalid API key attempt: %s...", api_key[:8])
            return jsonify({"error": "Invalid API key"}), 401

        g.current_user_role, g.api_user_id = entry
        return None

    logger.info("Auth middleware installed (enabled=%s)", _is_auth_enabled())
