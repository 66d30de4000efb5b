"""
Authenticated user
"""

from typing import Optional

from pydantic import BaseModel

from .enums import UserType


class AuthUser(BaseModel):
    """Caller identity resolved by the auth dependency"""
    id: str
    email: str
    user_type: UserType
    role: str
    company_id: Optional[str] = None

    @property
    def is_hil(self) -> bool:
        return self.user_type == UserType.HIL_USER

    @property
    def company_filter(self) -> Optional[str]:
        """Client id this user is restricted to (None = every client)"""
        if self.user_type == UserType.CLIENT_USER:
            return self.company_id
        return None

    def can_access_client(self, client_id: object) -> bool:
        company = self.company_filter
        return company is None or str(client_id) == company
