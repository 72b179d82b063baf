from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from hrm.auth.schemas import CurrentUser
from hrm.auth.security import decode_access_token
from hrm.core.enums import EmployeeStatus
from hrm.core.models import Employee
from hrm.db.session import get_db


# Tokens are issued by the external identity provider; this URL is informational for OpenAPI.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the acting employee and role from the access token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
    except JWTError:
        raise credentials_exception

    employee_id_str = payload.get("employee_id") or payload.get("sub")
    role_name = payload.get("role")
    if not employee_id_str or not role_name:
        raise credentials_exception

    try:
        employee_id = UUID(str(employee_id_str))
    except ValueError:
        raise credentials_exception

    employee = await db.get(Employee, employee_id)
    if not employee or employee.status == EmployeeStatus.TERMINATED.value:
        raise credentials_exception

    return CurrentUser(
        id=employee.id,
        role=role_name,
        department_id=employee.department_id,
    )
