"""
Atheron - Space and STEM chat assistant backend.

This package contains all application source code organized by responsibility:
- api/       : FastAPI routes and HTTP handling
- core/      : Configuration, logging, and cross-cutting utilities
- services/  : Business logic and orchestration
- llm/       : LLM integration and prompt management
- streaming/ : Source payload extraction, stream events, turn detection
- database/  : Database connection and ORM models
- memory/    : Conversation turns, history store, active turn registry
- models/    : Pydantic models for request/response schemas
- ui/        : State and API client for the Streamlit frontend
"""
__version__ = "1.0.0"
