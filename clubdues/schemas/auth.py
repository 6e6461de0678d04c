from pydantic import BaseModel, EmailStr
from typing import Optional, List


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    approved: Optional[bool] = None
    roles: Optional[List[str]] = None
    member_id: Optional[str] = None

    class Config:
        from_attributes = True
