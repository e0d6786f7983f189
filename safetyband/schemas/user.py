from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional

from safetyband.schemas.common import CamelModel


class EmergencyContact(BaseModel):
    id: str
    name: str
    phone: str
    relationship: str = ""


class RegisterIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    email: EmailStr
    phone: str = Field(..., min_length=3, max_length=32)
    password: str = Field(..., min_length=6)


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    emergency_contacts: Optional[List[EmergencyContact]] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class UserOut(CamelModel):
    id: str
    name: str
    email: str
    phone: str
    emergency_contacts: List[EmergencyContact] = Field(default_factory=list)


class AuthResponse(BaseModel):
    token: str
    user: UserOut
