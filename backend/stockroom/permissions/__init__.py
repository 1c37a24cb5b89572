# Overview: Role policy package.
# Re-exports the action table and lookup helpers.

from .definitions import (
    ACTION_DEFINITIONS,
    CATALOG_ACTIONS,
    USER_ACTIONS,
    RESTOCK_ACTIONS,
    REPORTING_ACTIONS,
    SELF_SERVICE_ACTIONS,
)
from .helpers import (
    get_all_action_codes,
    get_allowed_roles,
    get_action_definition,
    validate_action_code,
)

__all__ = [
    "ACTION_DEFINITIONS",
    "CATALOG_ACTIONS",
    "USER_ACTIONS",
    "RESTOCK_ACTIONS",
    "REPORTING_ACTIONS",
    "SELF_SERVICE_ACTIONS",
    "get_all_action_codes",
    "get_allowed_roles",
    "get_action_definition",
    "validate_action_code",
]
