"""
Database Schemas

MongoDB collection schemas and request bodies, as Pydantic models.

Collections:
- Account  -> "users"
- Booking  -> "bookings"
- BlogPost -> "blogs"
"""

from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(BaseModel):
    """
    Users collection schema
    Collection name: "users"
    Passwords are stored as given; login compares them directly.
    """
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address (unique)")
    password: str = Field(..., description="Plaintext password")
    role: str = Field("user", description="'user' or 'admin'")


class Booking(BaseModel):
    """
    Bookings collection schema
    Collection name: "bookings"
    """
    name: str = Field(..., description="Traveller name")
    email: str = Field(..., description="Contact email")
    people: int = Field(..., description="Number of travellers")
    city: str = Field(..., description="Destination city")
    price: str = Field(..., description="Quoted price, free text")
    user: Optional[str] = Field(None, description="Email of the account that created the booking")
    date: datetime = Field(default_factory=utcnow, description="Creation date")


class BlogPost(BaseModel):
    """
    Blogs collection schema
    Collection name: "blogs"
    """
    title: str = Field(..., description="Post title")
    content: str = Field(..., description="Post body")
    author: str = Field(..., description="Author display name, from the token")
    email: str = Field(..., description="Author email, from the token")
    date: datetime = Field(default_factory=utcnow, description="Creation date")


class Claims(BaseModel):
    name: str
    email: str
    role: str = "user"


# Request bodies. Fields are optional here so that presence is checked by the
# handlers, which answer with the API's own 400 messages.

class SignupRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class BookingRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    people: Optional[int] = None
    city: Optional[str] = None
    price: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def price_as_text(cls, v: Union[str, int, float, None]) -> Optional[str]:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v) if v else None
        return v


class BlogRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


def missing(*values: Any) -> bool:
    """True if any value is absent or empty (None, "", 0)."""
    return not all(values)
