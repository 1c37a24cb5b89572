# Overview: Action codes and the roles allowed to perform them.
# Each action is defined as: (code, name, description, allowed_role_ids)

from ..models.auth import ROLE_STAFF, ROLE_MANAGER, ROLE_ADMINISTRATOR


ALL_ROLES = frozenset({ROLE_STAFF, ROLE_MANAGER, ROLE_ADMINISTRATOR})
MANAGERS = frozenset({ROLE_MANAGER, ROLE_ADMINISTRATOR})
ADMINS = frozenset({ROLE_ADMINISTRATOR})


# -- CATALOG --

CATALOG_ACTIONS = [
    (
        "VIEW_CATALOG",
        "View Catalog",
        "List products, categories, vendors and the inventory view",
        ALL_ROLES,
    ),
    (
        "MANAGE_CATALOG",
        "Manage Catalog",
        "Create, edit and deactivate products, categories, vendors and vendor links",
        MANAGERS,
    ),
]


# -- USERS --

USER_ACTIONS = [
    (
        "VIEW_USERS",
        "View Users",
        "List staff accounts",
        ALL_ROLES,
    ),
    (
        "CREATE_USER",
        "Create User",
        "Create staff accounts",
        MANAGERS,
    ),
    (
        "EDIT_USER",
        "Edit User",
        "Edit another user's profile fields or password",
        MANAGERS,
    ),
    (
        "ASSIGN_ROLE",
        "Assign Role",
        "Change a user's role",
        MANAGERS,
    ),
    (
        "DELETE_USER",
        "Delete User",
        "Remove staff accounts",
        ADMINS,
    ),
    (
        "MANAGE_AVATAR",
        "Manage Avatar",
        "Upload or remove another user's avatar",
        MANAGERS,
    ),
]


# -- RESTOCK --

RESTOCK_ACTIONS = [
    (
        "REQUEST_RESTOCK",
        "Request Restock",
        "Create restock orders",
        ALL_ROLES,
    ),
    (
        "VIEW_RESTOCK",
        "View Restock",
        "List restock orders and deliveries",
        ALL_ROLES,
    ),
    (
        "DELIVER_RESTOCK",
        "Deliver Restock",
        "Confirm delivery of a restock order (increments stock)",
        MANAGERS,
    ),
]


# -- REPORTING --

REPORTING_ACTIONS = [
    (
        "VIEW_REPORTS",
        "View Reports",
        "Sales, revenue and inventory worth figures",
        ALL_ROLES,
    ),
    (
        "ASK_QUESTION",
        "Ask Question",
        "Run natural-language questions against sales data",
        ALL_ROLES,
    ),
]


ACTION_DEFINITIONS = (
    CATALOG_ACTIONS
    + USER_ACTIONS
    + RESTOCK_ACTIONS
    + REPORTING_ACTIONS
)


# Actions any role may perform on its own user record.
SELF_SERVICE_ACTIONS = frozenset({"EDIT_USER", "MANAGE_AVATAR"})
