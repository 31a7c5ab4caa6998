from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from .base import CamelModel

class UserCreate(BaseModel):
    email: str = Field(min_length=3, max_length=254)
    password: str = Field(min_length=6)

class User(CamelModel):
    id: str
    email: str
    created_at: datetime
    updated_at: datetime

class TokenData(BaseModel):
    email: Optional[str] = None

class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: User
