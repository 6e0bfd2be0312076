"""AI assistant backed by an OpenAI-compatible chat completion API.

Keeps a short in-memory history per user and chat session so follow-up questions
have context. Sessions idle for a day are pruned by ``cleanup_sessions``,
which the service container runs hourly.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from openai import AsyncOpenAI
from openai.types.chat import ChatCompletionMessageParam

from blog_api.core.config import get_settings
from blog_api.core.exceptions import AssistantProviderError
from blog_api.core.logging import get_logger

logger = get_logger(__name__)

MAX_SESSION_MESSAGES = 10
SESSION_TTL = timedelta(hours=24)
SESSION_CLEANUP_INTERVAL_SECONDS = 3600

SessionKey = tuple[int, str]

FALLBACK_REPLY = (
    "Sorry, I'm having trouble processing your request right now. "
    "Please try again later."
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SessionMessage:
    content: str
    sender: str  # 'user' or 'assistant'
    timestamp: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "sender": self.sender,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ChatSession:
    messages: list[SessionMessage] = field(default_factory=list)
    last_updated: datetime = field(default_factory=_utc_now)

    def append(self, message: SessionMessage) -> None:
        self.messages.append(message)
        del self.messages[:-MAX_SESSION_MESSAGES]
        self.last_updated = message.timestamp


@dataclass(frozen=True)
class AssistantReply:
    """Answer text; ``degraded`` marks the apology sent when every model failed."""

    content: str
    degraded: bool = False


class AssistantService:
    """Answers chat messages, trying each configured model in order."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        models: list[str] | None = None,
        system_prompt: str | None = None,
    ) -> None:
        settings = get_settings()
        self.models = models or settings.ai_models
        self.system_prompt = system_prompt or settings.ai_system_prompt

        if client is None and settings.ai_api_key:
            client = AsyncOpenAI(
                api_key=settings.ai_api_key,
                base_url=settings.ai_base_url or None,
                timeout=settings.ai_timeout_seconds,
            )
        elif client is None:
            logger.warning("AI API key not configured, assistant will answer with fallback")
        self.client = client

        # a session id only names a session of its owner
        self._sessions: dict[SessionKey, ChatSession] = {}

    def _get_or_create_session(self, owner_id: int, session_id: str) -> ChatSession:
        key = (owner_id, session_id)
        session = self._sessions.get(key)
        if session is None:
            session = self._sessions[key] = ChatSession()
        session.last_updated = _utc_now()
        return session

    def get_session_messages(self, owner_id: int, session_id: str) -> list[dict[str, Any]]:
        session = self._sessions.get((owner_id, session_id))
        return [m.to_dict() for m in session.messages] if session else []

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def _to_messages(self, history: list[SessionMessage]) -> list[ChatCompletionMessageParam]:
        result: list[ChatCompletionMessageParam] = []
        if self.system_prompt:
            result.append({"role": "system", "content": self.system_prompt})
        for msg in history:
            result.append({
                "role": "user" if msg.sender == "user" else "assistant",
                "content": msg.content,
            })
        return result

    async def _generate(self, history: list[SessionMessage]) -> str:
        if self.client is None:
            raise AssistantProviderError("API key not configured")

        last_error: Exception | None = None
        for model in self.models:
            try:
                completion = await self.client.chat.completions.create(
                    model=model,
                    messages=self._to_messages(history),
                )
                content = completion.choices[0].message.content if completion.choices else None
                if not content:
                    raise AssistantProviderError("empty response", model=model)
                return content
            except Exception as e:
                logger.warning("AI model failed, trying next", model=model, error=str(e))
                last_error = e

        raise AssistantProviderError(str(last_error or "no models configured"))

    async def send_message(
        self, owner_id: int, session_id: str, user_input: str
    ) -> AssistantReply:
        """Answer ``user_input`` in the context of the session.

        Never raises for provider failures: the fallback apology is returned
        with ``degraded=True`` instead.
        """
        session = self._get_or_create_session(owner_id, session_id)
        session.append(SessionMessage(content=user_input, sender="user"))

        try:
            answer = await self._generate(session.messages)
        except AssistantProviderError as e:
            logger.error("AI response generation failed", session_id=session_id, error=e.message)
            return AssistantReply(content=FALLBACK_REPLY, degraded=True)

        session.append(SessionMessage(content=answer, sender="assistant"))
        return AssistantReply(content=answer)

    def record_exchange(
        self, owner_id: int, session_id: str, user_input: str, answer: str
    ) -> None:
        """Add a question answered from cache to the session history."""
        session = self._get_or_create_session(owner_id, session_id)
        session.append(SessionMessage(content=user_input, sender="user"))
        session.append(SessionMessage(content=answer, sender="assistant"))

    async def cleanup_sessions(self) -> int:
        """Drop sessions idle for longer than a day. Returns how many were dropped."""
        cutoff = _utc_now() - SESSION_TTL
        expired = [key for key, s in self._sessions.items() if s.last_updated < cutoff]
        for key in expired:
            del self._sessions[key]
        if expired:
            logger.info("Expired chat sessions pruned", count=len(expired))
        return len(expired)

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
