"""
API Routes module - Endpoint definitions.

Each file in this module defines routes for a specific domain:
- chat.py     : Streamed chat endpoint
- sessions.py : Session and message history endpoints
- health.py   : Health check endpoints
"""
from atheron.api.routes.chat import router as chat_router
from atheron.api.routes.health import router as health_router
from atheron.api.routes.sessions import router as sessions_router

__all__ = [
    "chat_router",
    "health_router",
    "sessions_router",
]
