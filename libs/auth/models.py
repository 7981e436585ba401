from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AuthUser(BaseModel):
    """
    The caller as described by a verified access token.

    ``user_id`` is the token subject; it is the key every service stores
    (``user_id``/``auth_id`` columns) instead of a foreign key.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: str = "authenticated"
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or (str(self.email) if self.email else self.user_id)
