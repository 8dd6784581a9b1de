"""Role capability table.

Authorization is a single lookup of role -> resource -> allowed actions,
consulted by the request gate instead of per-route role conditionals.
"""

from domain.model.user import Role

_CRUD = frozenset({'create', 'read', 'update', 'delete'})

ROLE_PERMISSIONS: dict[Role, dict[str, frozenset[str]]] = {
    Role.ADMIN: {
        'forms': _CRUD | {'manage'},
        'users': _CRUD | {'manage'},
        'templates': _CRUD | {'manage'},
        'settings': frozenset({'read', 'update'}),
    },
    Role.USER: {
        'forms': _CRUD,
        'templates': frozenset({'read'}),
    },
}


def has_permission(role: Role | str, resource: str, action: str) -> bool:
    """Return True if ``role`` may perform ``action`` on ``resource``.

    Unknown roles and resources are denied.
    """
    try:
        role = Role(role)
    except ValueError:
        return False
    return action in ROLE_PERMISSIONS.get(role, {}).get(resource, frozenset())
