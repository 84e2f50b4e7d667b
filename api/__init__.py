"""
FastAPI RESTful API for the Book Review service.

This module provides a REST API for:
- Account registration and login
- Book catalog browsing and search
- Per-user book reviews behind bearer-token or session authentication
- Rate limiting and security headers
"""
