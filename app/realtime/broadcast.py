"""Best-effort cross-tab broadcast channel.

Mirrors the browser BroadcastChannel contract: a message posted on a channel
reaches every other open channel with the same name, never the sender. There
is no durability and no ordering relative to the change feed.
"""

import copy
from collections.abc import Callable
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

MessageHandler = Callable[[dict[str, Any]], None]


class LocalBroadcastHub:
    """Routes messages between channels opened in the same process (one per browser profile)."""

    def __init__(self) -> None:
        self._channels: dict[str, list["LocalBroadcastChannel"]] = {}

    def open(self, name: str) -> "LocalBroadcastChannel":
        """Open a new channel instance, the equivalent of one tab."""
        channel = LocalBroadcastChannel(name, self)
        self._channels.setdefault(name, []).append(channel)
        return channel

    def _detach(self, channel: "LocalBroadcastChannel") -> None:
        peers = self._channels.get(channel.name, [])
        if channel in peers:
            peers.remove(channel)

    def _deliver(self, sender: "LocalBroadcastChannel", message: dict[str, Any]) -> None:
        for peer in list(self._channels.get(sender.name, [])):
            if peer is sender:
                continue
            # Structured clone: receivers never share the sender's object
            peer._dispatch(copy.deepcopy(message))


class LocalBroadcastChannel:
    """One endpoint of a named broadcast channel."""

    def __init__(self, name: str, hub: LocalBroadcastHub):
        self.name = name
        self._hub = hub
        self._handlers: list[MessageHandler] = []
        self.closed = False

    def on_message(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    def post_message(self, message: dict[str, Any]) -> None:
        if self.closed:
            raise RuntimeError(f"Broadcast channel {self.name!r} is closed")
        self._hub._deliver(self, message)

    def close(self) -> None:
        self.closed = True
        self._handlers.clear()
        self._hub._detach(self)

    def _dispatch(self, message: dict[str, Any]) -> None:
        for handler in list(self._handlers):
            try:
                handler(message)
            except Exception as e:
                logger.error("broadcast_handler_failed", channel=self.name, error=str(e))
