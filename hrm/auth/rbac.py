from fastapi import Depends, HTTPException, status

from hrm.auth.dependencies import get_current_user
from hrm.auth.schemas import CurrentUser
from hrm.core.enums import Role


def require_roles(*roles: Role):
    """
    Dependency factory to enforce a role. ADMIN always passes.

    Example:
        Depends(require_roles(Role.MANAGER, Role.HR_MANAGER))
    """
    allowed = {r.value for r in roles} | {Role.ADMIN.value}

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _checker


APPROVERS = (Role.MANAGER, Role.HR_MANAGER)
HR_ONLY = (Role.HR_MANAGER,)
