"""
API module - FastAPI routes and HTTP handling.

This module handles:
- Request validation and parsing
- Identity headers and rate limiting
- Error responses
- Route definitions
"""
from atheron.api.main import app

__all__ = ["app"]
