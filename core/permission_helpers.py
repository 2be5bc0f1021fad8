from fastapi import Depends, HTTPException

from dependencies.auth import get_current_user, CurrentUser
from core.permissions import (
    ACTIONS,
    DEFAULT_ROLE,
    MODULE_BY_NAME,
    MODULE_OF,
    MODULES,
    ROLE_PERMISSIONS,
    ROLES_BY_SLUG,
)


# -----------------------------------------------------
# Permission strings look like "management:write".
# A resource name or a display name may be used instead
# of a module: "parks:write" and "Gestión:write" both
# resolve to "management:write".
# -----------------------------------------------------
def resolve_permission(permission: str) -> tuple[str, str]:
    if ":" not in permission:
        raise ValueError(f"Malformed permission '{permission}', expected 'module:action'")

    scope, action = permission.split(":", 1)
    module = MODULE_OF.get(scope) or MODULE_BY_NAME.get(scope) or scope

    if module not in MODULES:
        raise ValueError(f"Unknown permission module '{scope}'")
    if action not in ACTIONS:
        raise ValueError(f"Unknown permission action '{action}'")

    return module, action


def _expand_actions(actions) -> set:
    """admin implies write, write implies read."""
    granted = set()
    for action in actions or []:
        if action not in ACTIONS:
            continue
        granted.update(ACTIONS[: ACTIONS.index(action) + 1])
    return granted


# -----------------------------------------------------
# Collect effective permissions:
#   • role-based matrix
#   • user-specific overrides from user_metadata["permissions"]
# -----------------------------------------------------
def get_effective_permissions(user: CurrentUser) -> set:
    role_matrix = ROLE_PERMISSIONS.get(user.role, ROLE_PERMISSIONS[DEFAULT_ROLE])

    if role_matrix.get("all") is True:
        return {"*"}

    effective = set()
    for module, actions in role_matrix.items():
        for action in _expand_actions(actions):
            effective.add(f"{module}:{action}")

    raw = getattr(user, "permissions", None)
    if isinstance(raw, list):
        for override in raw:
            if override == "*":
                return {"*"}
            try:
                module, action = resolve_permission(override)
            except ValueError:
                continue
            for implied in _expand_actions([action]):
                effective.add(f"{module}:{implied}")

    return effective


def has_permission(user: CurrentUser, permission: str) -> bool:
    effective = get_effective_permissions(user)

    if "*" in effective:
        return True

    module, action = resolve_permission(permission)
    return f"{module}:{action}" in effective


def permission_matrix(user: CurrentUser) -> dict:
    """module → sorted list of granted actions, for the frontend sidebar."""
    effective = get_effective_permissions(user)
    if "*" in effective:
        return {module: list(ACTIONS) for module in MODULES}

    matrix = {module: [] for module in MODULES}
    for entry in effective:
        module, action = entry.split(":", 1)
        matrix[module].append(action)

    return {module: sorted(actions, key=ACTIONS.index) for module, actions in matrix.items()}


# -----------------------------------------------------
# Role hierarchy
# -----------------------------------------------------
def get_role_level(role: str) -> int:
    role_def = ROLES_BY_SLUG.get(role) or ROLES_BY_SLUG[DEFAULT_ROLE]
    return role_def["level"]


def has_role_level(user: CurrentUser, required_level: int) -> bool:
    """Lower levels carry more authority: level 2 satisfies a level-3 requirement."""
    return get_role_level(user.role) <= required_level


# -----------------------------------------------------
# FastAPI dependency wrappers
# -----------------------------------------------------
def requires_permission(permission: str):
    """
    Usage:
        @router.post("", dependencies=[Depends(requires_permission("parks:write"))])
    """
    # Fail at import time on typos, not at request time
    resolve_permission(permission)

    def dependency(current_user: CurrentUser = Depends(get_current_user)):
        if not has_permission(current_user, permission):
            raise HTTPException(
                status_code=403,
                detail=f"Insufficient permissions: '{permission}' required",
            )
        return current_user

    return dependency


def requires_role_level(level: int):
    def dependency(current_user: CurrentUser = Depends(get_current_user)):
        if not has_role_level(current_user, level):
            raise HTTPException(
                status_code=403,
                detail=f"Role level {level} or higher required",
            )
        return current_user

    return dependency
