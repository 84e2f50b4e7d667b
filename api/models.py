"""
API models and schemas for the FastAPI application.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, validator

from library.models import Book

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9]{1,30}$")


class RegisterRequest(BaseModel):
    """Registration request body."""
    username: str = Field(..., description="Letters and digits only, 1-30 characters")
    password: str = Field(..., description="At least 8 characters with upper-case, lower-case and a digit")

    @validator('username')
    def validate_username(cls, v):
        """Ensure username is alphanumeric and of acceptable length."""
        if not USERNAME_PATTERN.match(v):
            raise ValueError('Username must be 1-30 characters and contain only letters and numbers')
        return v

    @validator('password')
    def validate_password(cls, v):
        """Ensure password is long and mixed enough."""
        if len(v) < 8:
            raise ValueError('Password must be at least 8 characters long')
        if not (re.search(r"[a-z]", v) and re.search(r"[A-Z]", v) and re.search(r"\d", v)):
            raise ValueError(
                'Password must contain at least one uppercase letter, one lowercase letter, and one number'
            )
        return v


class LoginRequest(BaseModel):
    """Login request body."""
    username: str = Field(..., min_length=1, description="Username")
    password: str = Field(..., min_length=1, description="Password")


class ReviewRequest(BaseModel):
    """Review body for PUT /books/{id}/reviews."""
    review: Optional[str] = Field(None, max_length=500, description="Review text")


class BookResponse(BaseModel):
    """Book response model for API."""
    id: str = Field(..., description="Catalog key")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    reviews: Dict[str, str] = Field(default_factory=dict, description="Reviews keyed by username")

    @classmethod
    def from_book(cls, book: Book) -> "BookResponse":
        return cls(id=book.id, title=book.title, author=book.author, reviews=book.reviews)


class BookListData(BaseModel):
    """Payload for list endpoints."""
    books: List[BookResponse] = Field(..., description="Matching books")


class ReviewsData(BaseModel):
    """Payload for the reviews endpoint."""
    reviews: Dict[str, str] = Field(..., description="Reviews keyed by username")


class TokenData(BaseModel):
    """Payload returned by a successful login."""
    token: str = Field(..., description="Signed access token")
    token_type: str = Field("bearer", description="Token type")
    expires_at: datetime = Field(..., description="Token expiry")


class APIResponse(BaseModel):
    """Envelope shared by every endpoint."""
    success: bool = Field(..., description="Whether the request succeeded")
    message: str = Field(..., description="Human-readable outcome")
    data: Optional[Any] = Field(None, description="Result payload")
    error: Optional[Any] = Field(None, description="Error details (development mode only)")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    books: int = Field(..., description="Books in the catalog")
    accounts: int = Field(..., description="Registered accounts")
