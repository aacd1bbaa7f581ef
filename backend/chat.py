"""SafeRoute Backend — Companion chat session

One conversation session is created on first use and reused for every turn
so the service keeps its own cross-turn context. Failures are never retried:
chat is interactive, so the user gets a canned local reply instead of
waiting out a backoff.
"""

import logging
from typing import Callable, Optional

from config import CHAT_FALLBACK_ERROR, CHAT_FALLBACK_RATE_LIMITED
from retry import is_rate_limited
from state import DashboardState

logger = logging.getLogger("saferoute.chat")


def fallback_reply(exc: BaseException) -> str:
    return CHAT_FALLBACK_RATE_LIMITED if is_rate_limited(exc) else CHAT_FALLBACK_ERROR


class ChatSessionAdapter:

    def __init__(self, state: DashboardState, create_session: Callable[[], object]):
        self.state = state
        self._create_session = create_session
        self._session = None

    @property
    def session(self):
        if self._session is None:
            self._session = self._create_session()
            logger.info("Chat session started")
        return self._session

    async def send_turn(self, text: str) -> Optional[str]:
        """Append the user turn and the reply (or a fallback) to the transcript.

        Returns the reply text, or None for blank input.
        """
        if not text or not text.strip():
            return None
        self.state.append_message("user", text)
        try:
            reply = await self.session.send(text)
        except Exception as e:
            logger.warning(f"Safety chat error: {e}")
            reply = fallback_reply(e)
        self.state.append_message("model", reply)
        return reply
