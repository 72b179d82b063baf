from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from hrm.core.enums import Role


class CurrentUser(BaseModel):
    """The authenticated actor, resolved from the identity provider's token.
    Passed explicitly into engine operations that record who acted.
    """

    id: UUID  # employee id
    role: str
    department_id: Optional[UUID] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @property
    def is_hr(self) -> bool:
        return self.role in (Role.HR_MANAGER.value, Role.ADMIN.value)
