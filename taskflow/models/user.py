from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import List

from .base import UTCDateTime, new_id, utcnow

class User(SQLModel, table=True):
    """Owner of every task and taxonomy entry."""
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    email: str = Field(unique=True, index=True)
    hashed_password: str
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)

    tasks: List["Task"] = Relationship(back_populates="user")
