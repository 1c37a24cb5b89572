# Overview: Service-layer operations for the role policy gate.

"""
Role Policy Gate

WHY: Three fixed roles (Staff=1, Manager=2, Administrator=3) and a small
action table decide who may do what. Two extra rules protect administrators
from managers.

EVALUATION ORDER:
1. Baseline: the actor's role must be in the action's allowed set
   (self-service actions skip this when the actor is the target)
2. A Manager may not modify a user whose stored role is Administrator
3. A Manager may not assign the Administrator role

DESIGN PRINCIPLES:
- Fail closed: unknown action codes deny everything
- Log denials only: grants are not logged
- The actor's role always comes from verified token claims
"""

from flask import current_app, has_request_context, request

from ..errors import Forbidden
from ..models.auth import ROLE_MANAGER, ROLE_ADMINISTRATOR
from ..permissions import get_allowed_roles
from ..permissions.definitions import SELF_SERVICE_ACTIONS


class PermissionDeniedError(Forbidden):
    """Raised when the actor's role may not perform the action."""

    def __init__(self, reason: str):
        super().__init__("Forbidden")
        self.reason = reason


def _deny(actor_role: int, action: str, reason: str) -> None:
    path = request.path if has_request_context() else None
    current_app.logger.warning(
        "Policy denied: actor_role=%s action=%s path=%s reason=%s",
        actor_role,
        action,
        path,
        reason,
    )
    raise PermissionDeniedError(reason)


def authorize(
    actor_role: int,
    action: str,
    *,
    target_role: int | None = None,
    assigned_role: int | None = None,
    is_self: bool = False,
) -> None:
    """
    Allow (return None) or raise PermissionDeniedError.

    Args:
        actor_role: role ordinal from the caller's token
        action: action code from permissions.definitions
        target_role: stored role of the user being modified, if any
        assigned_role: role being given to a user, if any
        is_self: the actor is the target user
    """
    self_service = is_self and action in SELF_SERVICE_ACTIONS
    if not self_service and actor_role not in get_allowed_roles(action):
        _deny(actor_role, action, "role not allowed")

    if actor_role == ROLE_MANAGER and target_role == ROLE_ADMINISTRATOR:
        _deny(actor_role, action, "managers cannot modify administrators")

    if actor_role == ROLE_MANAGER and assigned_role == ROLE_ADMINISTRATOR:
        _deny(actor_role, action, "managers cannot assign the administrator role")

