from enum import Enum
from typing import Optional
from pydantic import BaseModel

class UserRole(str, Enum):
    ADMIN = "admin"
    CASHIER = "cashier"
    KITCHEN = "kitchen"
    WAITER = "waiter"

class Principal(BaseModel):
    """The authenticated caller, as resolved by the auth dependency."""
    id: str
    role: UserRole
    branch_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
