import copy
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

import structlog

log = structlog.get_logger()

Message = dict[str, Any]
MessageHandler = Callable[[Message], Awaitable[Any] | Any]


@runtime_checkable
class HostMessaging(Protocol):
    """Message passing and settings storage offered by the hosting environment."""

    async def send_message(self, message: Message) -> Any: ...

    def on_message(self, handler: MessageHandler) -> None: ...

    async def get_setting(self, key: str, default: Any = None) -> Any: ...

    async def set_setting(self, key: str, value: Any) -> None: ...


class InMemoryMessaging:
    """Single-process messaging with a dict-backed settings store.

    Settings are deep-copied on the way in and out, like a serializing store.
    """

    def __init__(self, settings: dict[str, Any] | None = None):
        self._settings: dict[str, Any] = copy.deepcopy(settings or {})
        self._handlers: list[MessageHandler] = []
        self.sent: list[Message] = []

    def on_message(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    async def send_message(self, message: Message) -> Any:
        """Deliver to every handler and return the first non-None response."""
        self.sent.append(message)
        response = None
        for handler in list(self._handlers):
            try:
                result = handler(message)
                if inspect.isawaitable(result):
                    result = await result
            except Exception:
                log.exception("message_handler_failed", message_type=message.get("type"))
                continue
            if response is None and result is not None:
                response = result
        return response

    async def get_setting(self, key: str, default: Any = None) -> Any:
        if key not in self._settings:
            return default
        return copy.deepcopy(self._settings[key])

    async def set_setting(self, key: str, value: Any) -> None:
        self._settings[key] = copy.deepcopy(value)
