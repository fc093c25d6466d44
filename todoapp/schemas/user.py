from pydantic import BaseModel, EmailStr, ConfigDict
from datetime import datetime
from typing import Optional

class UserCreate(BaseModel):
    name: str
    email: EmailStr
    username: str
    password: str

class UserResponse(BaseModel):
    id: int
    name: Optional[str]
    email: str
    username: str
    is_verified: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class RegisterResponse(BaseModel):
    id: int
    name: Optional[str]
    email: str
    username: str
    is_verified: bool
    token: str

class LoginRequest(BaseModel):
    # email ou username
    identifier: str
    password: str

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

class MessageResponse(BaseModel):
    message: str
