"""
Chat Routes - The streamed chat endpoint.

POST /api/chat answers with a plain-text stream. The session the turns
were stored under travels back in the X-Session-Id header.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from atheron.api.deps import enforce_rate_limit, get_chat, get_optional_user
from atheron.core.logging_config import get_logger
from atheron.models.chat import AuthenticatedUser, ChatRequest, ErrorResponse
from atheron.services.chat_service import ChatService

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/chat",
    tags=["Chat"],
    responses={
        400: {"model": ErrorResponse, "description": "No messages"},
        404: {"model": ErrorResponse, "description": "Session not found"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        503: {"model": ErrorResponse, "description": "No LLM provider available"},
    }
)


@router.post(
    "",
    response_class=StreamingResponse,
    summary="Ask Athey",
    description="""
    Stream Athey's answer to a conversation.

    The body carries the whole conversation in the chat widget's format.
    The last message, when it is a new user message, is stored (creating
    a session if `session_id` is omitted) before the model is called; the
    answer is stored once it is complete, with its sources split off.

    Anonymous callers get an answer but nothing is stored.

    **Response headers:**
    - `X-Session-Id`: session the turns were stored under
    - `X-RateLimit-Remaining`: requests left in the current minute
    """
)
async def chat(
    body: ChatRequest,
    request: Request,
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    service: ChatService = Depends(get_chat),
) -> StreamingResponse:
    identifier = user.user_id if user else f"anon:{request.client.host if request.client else 'unknown'}"
    headers = enforce_rate_limit(identifier)

    stream = await service.stream_chat(user, body)

    if stream.session_id:
        headers["X-Session-Id"] = stream.session_id

    return StreamingResponse(
        stream,
        media_type="text/plain; charset=utf-8",
        headers=headers,
    )
