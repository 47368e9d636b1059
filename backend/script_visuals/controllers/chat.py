"""Chat transcript controller."""

from __future__ import annotations

import logging
from typing import Any, List

from ..errors import ChatError
from ..models import ChatMessage

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "Sorry, I encountered an error. Please try again."


class ChatController:
    def __init__(self, gateway: Any):
        self._gateway = gateway
        self.messages: List[ChatMessage] = []
        self.is_pending = False
        self.is_open = False

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    def send(self, text: str) -> bool:
        """Send one message. Empty input or a send in flight is ignored."""
        if not text or not text.strip() or self.is_pending:
            return False

        self.messages.append(ChatMessage(sender="user", text=text))
        self.is_pending = True
        try:
            reply = self._gateway.send_chat_message(text)
        except ChatError:
            reply = FALLBACK_REPLY
        except Exception:
            logger.exception("Unexpected chat failure")
            reply = FALLBACK_REPLY
        finally:
            self.is_pending = False
        self.messages.append(ChatMessage(sender="bot", text=reply))
        return True
