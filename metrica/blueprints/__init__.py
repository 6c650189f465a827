"""
MétricaAgro Workflow Service
Blueprint registry and shared request helpers.
"""

from metrica.auth import get_current_user_id
from metrica.utils.errors import E, api_error
from metrica.utils.helpers import get_or_404


def require_user():
    """Return ``(user_id, None)`` or ``(None, 401 response)``.

    Usage:
        uid, err = require_user()
        if err:
            return err
    """
    user_id = get_current_user_id()
    if not user_id:
        return None, api_error(E.UNAUTHENTICATED, "User not identified (X-User-ID header missing)")
    return user_id, None


def owned_or_404(model, pk, user_id, label=None):
    """``get_or_404`` that also hides records belonging to another user."""
    obj, err = get_or_404(model, pk, label)
    if err:
        return None, err
    if obj.user_id is not None and obj.user_id != user_id:
        return None, api_error(E.NOT_FOUND, f"{label or model.__name__} not found")
    return obj, None
