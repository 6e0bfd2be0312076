"""AI assistant endpoints."""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter

from blog_api.api.deps import CurrentUser, Services
from blog_api.api.schemas import AIMessageRequest, AIMessageResponse, SessionHistoryResponse
from blog_api.core.config import get_settings
from blog_api.core.exceptions import NotFoundError, RateLimitError
from blog_api.core.logging import get_logger
from blog_api.services.cache.constants import TTL_CHAT_RATE

logger = get_logger(__name__)
router = APIRouter(prefix="/ai", tags=["AI Assistant"])


def _history_entry(content: str, sender: str) -> dict[str, Any]:
    return {
        "content": content,
        "sender": sender,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post(
    "/message",
    response_model=AIMessageResponse,
    summary="Ask the assistant",
    responses={429: {"description": "Too many messages this minute"}},
)
async def send_message(
    data: AIMessageRequest,
    current_user: CurrentUser,
    services: Services,
) -> AIMessageResponse:
    """
    Send a message to the assistant.

    - Each user may send a limited number of messages per minute
    - Identical questions (case and surrounding whitespace ignored) are
      answered from cache for an hour
    - The exchange is appended to the session's cached history. Session ids
      are per user: the same id sent by two users names two sessions
    """
    chat_cache = services.chat_cache

    if not await chat_cache.check_rate_limit(current_user.id):
        raise RateLimitError(retry_after=TTL_CHAT_RATE)

    cached = await chat_cache.get_cached_response(data.input)
    if cached is not None:
        services.assistant.record_exchange(
            current_user.id, data.session_id, data.input, cached
        )
        answer = cached
    else:
        reply = await services.assistant.send_message(
            current_user.id, data.session_id, data.input
        )
        answer = reply.content
        if not reply.degraded:
            await chat_cache.set_cached_response(data.input, answer)

    for content, sender in ((data.input, "user"), (answer, "assistant")):
        await chat_cache.add_to_session_history(
            current_user.id, data.session_id, _history_entry(content, sender)
        )

    logger.info(
        "Assistant replied",
        user_id=current_user.id,
        session_id=data.session_id,
        cached=cached is not None,
    )
    return AIMessageResponse(
        response=answer,
        session_id=data.session_id,
        cached=cached is not None,
    )


@router.get(
    "/session/{session_id}/history",
    response_model=SessionHistoryResponse,
    summary="Cached history of a chat session",
    responses={404: {"description": "No such session for this user"}},
)
async def get_session_history(
    session_id: str,
    current_user: CurrentUser,
    services: Services,
) -> SessionHistoryResponse:
    """Only the caller's own sessions are visible; any other id is a 404.

    Without the key-value store the assistant's shorter in-memory history is
    returned instead.
    """
    messages = await services.chat_cache.get_session_history(
        current_user.id, session_id
    ) or services.assistant.get_session_messages(current_user.id, session_id)
    if not messages:
        raise NotFoundError("Chat session")
    return SessionHistoryResponse.model_validate({"session_id": session_id, "messages": messages})


@router.get("/test", summary="Assistant service description")
async def test_assistant() -> dict[str, Any]:
    prefix = get_settings().api_prefix
    return {
        "message": "AI assistant service is running",
        "endpoints": {
            "message": f"{prefix}/ai/message",
            "history": f"{prefix}/ai/session/{{session_id}}/history",
        },
        "usage": (
            f'POST {prefix}/ai/message with a JSON body containing "input" and "session_id"'
        ),
    }
