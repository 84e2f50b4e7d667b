"""
Core package for the Book Review API.

This package contains:
- Account store with salted password hashing
- Fixed book catalog with per-user reviews
- Signed, time-limited credential issuing and verification
- Review workflow scoped to the authenticated identity
"""

__version__ = "1.0.0"
