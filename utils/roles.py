from scheduling.types import ROLE_ADMIN, ROLE_PATIENT, ROLE_PROVIDER, ROLE_SUPER_ADMIN

# highest privilege first
ROLE_PRECEDENCE = [ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_PROVIDER, ROLE_PATIENT]
ALLOWED_ROLES = set(ROLE_PRECEDENCE)


def effective_role(roles) -> str:
    """The single role the scheduling core sees for a user."""
    names = set()
    for role in roles or []:
        name = role if isinstance(role, str) else getattr(role, "name", None)
        if name:
            names.add(name)
    for name in ROLE_PRECEDENCE:
        if name in names:
            return name
    return ROLE_PATIENT


def filter_role_names(roles):
    names = []
    for role in roles or []:
        name = role if isinstance(role, str) else getattr(role, "name", None)
        if name in ALLOWED_ROLES:
            names.append(name)
    return names
