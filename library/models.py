"""
Pydantic models for accounts, books and authentication results.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional
from pydantic import BaseModel, Field


class Book(BaseModel):
    """
    Catalog entry. Only ``reviews`` changes after startup.
    """
    id: str = Field(..., description="Stable catalog key")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    reviews: Dict[str, str] = Field(default_factory=dict, description="Review text keyed by username")

    class Config:
        """Pydantic configuration."""
        json_schema_extra = {
            "example": {
                "id": "8",
                "title": "Pride and Prejudice",
                "author": "Jane Austen",
                "reviews": {"fraser": "A classic."}
            }
        }


class Account(BaseModel):
    """Registered user. The plaintext password is never stored."""
    username: str = Field(..., description="Unique username")
    credential_hash: str = Field(..., description="Salted one-way password hash")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Registration time")

    class Config:
        frozen = True


class Identity(BaseModel):
    """
    Username bound to a request after its credential verified.

    Only the authenticator builds these; review mutations take an Identity
    rather than a username string.
    """
    username: str
    expires_at: datetime

    class Config:
        frozen = True


class VerificationStatus(str, Enum):
    """Outcome of checking a presented credential."""
    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"
    ABSENT = "absent"


class VerificationResult(BaseModel):
    """Tagged verification result; ``identity`` is set only when VALID."""
    status: VerificationStatus
    identity: Optional[Identity] = None

    @property
    def is_valid(self) -> bool:
        return self.status == VerificationStatus.VALID


class IssuedCredential(BaseModel):
    """Signed token handed to the client after login."""
    token: str
    username: str
    expires_at: datetime
