# Overview: Utility functions for action lookups and validation.

from .definitions import ACTION_DEFINITIONS


def get_all_action_codes():
    """Get list of all action codes."""
    return [action[0] for action in ACTION_DEFINITIONS]


def get_allowed_roles(code):
    """Role ids allowed to perform an action; empty for unknown codes."""
    for action in ACTION_DEFINITIONS:
        if action[0] == code:
            return action[3]
    return frozenset()


def get_action_definition(code):
    """Get full definition for an action code."""
    for action in ACTION_DEFINITIONS:
        if action[0] == code:
            return {
                "code": action[0],
                "name": action[1],
                "description": action[2],
                "allowed_roles": sorted(action[3]),
            }
    return None


def validate_action_code(code):
    """Check if an action code is valid."""
    return code in get_all_action_codes()
