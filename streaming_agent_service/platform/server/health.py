"""
Readiness state, graceful draining of in-flight turns, and the static
service description served from /info.
"""

import asyncio
import datetime
import logging
import os
import platform
import socket
import threading
import time
from typing import Any

from streaming_agent_service.platform.constants import SERVICE_NAME
from streaming_agent_service.platform.conversation.store import ConversationStore

__all__ = ["HealthCheck", "ServiceInfo", "drain_turns", "service_info"]

logger = logging.getLogger(__name__)


class HealthCheck:
    """Process-wide readiness flag.

    Cleared as soon as shutdown starts so the load balancer stops routing new
    chats here while open SSE streams finish.
    """

    _ready = threading.Event()

    @staticmethod
    def enable() -> None:
        HealthCheck._ready.set()

    @staticmethod
    def disable() -> None:
        HealthCheck._ready.clear()

    @staticmethod
    def status() -> bool:
        return HealthCheck._ready.is_set()


async def drain_turns(store: ConversationStore | None, timeout: float, poll_interval: float = 1.0) -> int:
    """Mark the service unhealthy and wait for running turns to finish.

    Args:
        store: Conversation store whose session locks mark running turns
        timeout: Maximum seconds to wait
        poll_interval: Seconds between checks

    Returns:
        Number of turns still running when the wait ended
    """
    HealthCheck.disable()
    deadline = time.monotonic() + timeout
    while True:
        active = store.active_turns if store is not None else 0
        if not active or time.monotonic() >= deadline:
            return active
        logger.info("Draining: %d turn(s) in flight", active)
        await asyncio.sleep(poll_interval)


class ServiceInfo:
    """
    Build and host details captured at import, plus the agent configuration
    recorded at startup via ``describe``.
    """

    # build details injected into the image
    ENV_KEYS = ("BUILD_DATE", "BUILD_VERSION", "GIT_COMMIT", "IMAGE_NAME", "SERVICE_ID")

    def __init__(self) -> None:
        self._started_at = datetime.datetime.now(tz=datetime.UTC).isoformat()
        self._started_ts = time.monotonic()
        self._static: dict[str, Any] = {key.lower(): os.environ.get(key) for key in self.ENV_KEYS}
        self._static.update(
            service_name=os.environ.get("SERVICE_NAME") or SERVICE_NAME,
            hostname=socket.gethostname(),
            os_version=platform.platform(),
            python_version=platform.python_version(),
        )
        self._agent: dict[str, Any] = {}

    def describe(self, **fields: Any) -> None:
        """Record agent configuration (slug, strategy, model, ...) for /info."""
        self._agent.update(fields)

    def info(self) -> dict[str, Any]:
        data = {
            **self._static,
            "started": self._started_at,
            "uptime_seconds": round(time.monotonic() - self._started_ts, 3),
        }
        if self._agent:
            data["agent"] = dict(self._agent)
        return data


service_info = ServiceInfo()
