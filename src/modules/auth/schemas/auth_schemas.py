from datetime import datetime
from pydantic import BaseModel, EmailStr
from typing import Optional

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str
    user_id: str
    user_name: str
    employee_id: Optional[int] = None

class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    employee_id: Optional[int] = None
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
