from datetime import datetime
from pydantic import BaseModel, ConfigDict
from typing import Optional

class UserBase(BaseModel):
    user_id: str
    email: str

class UserRecord(UserBase):
    """A stored user, including password recovery state."""
    hashed_password: str
    otp_code: Optional[str] = None
    otp_expires_at: Optional[datetime] = None
    reset_authorized: bool = False

    model_config = ConfigDict(from_attributes=True, extra="ignore")

class SessionUser(UserBase):
    """Identity resolved from a valid session."""
    pass
