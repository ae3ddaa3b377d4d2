"""Ordered startup and shutdown of the app's long-lived components.

Components are started in registration order and stopped in reverse.
A component may expose start() or startup(), and shutdown(); each may be
a plain method or a coroutine. Only shutdown() is required.

    lifecycle = LifecycleManager()
    lifecycle.register("tasks", task_runner)
    await lifecycle.startup()
    ...
    await lifecycle.shutdown()
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

DEFAULT_STOP_TIMEOUT = 30.0


@runtime_checkable
class Stoppable(Protocol):
    def shutdown(self) -> Any: ...


@dataclass
class _Entry:
    name: str
    component: Any
    running: bool = False


async def _invoke(component: Any, *method_names: str) -> bool:
    """Call the first method that exists, awaiting it if needed.

    Returns:
        False if the component has none of the methods.
    """
    for method_name in method_names:
        method = getattr(component, method_name, None)
        if method is None:
            continue
        result = method()
        if inspect.isawaitable(result):
            await result
        return True
    return False


class LifecycleManager:
    """Starts registered components and stops them in reverse order.

    If a component fails to start, the ones already running are stopped
    again and the error is re-raised. Stop failures and timeouts are logged
    and never prevent the remaining components from stopping.
    """

    def __init__(self, stop_timeout: float = DEFAULT_STOP_TIMEOUT) -> None:
        self.stop_timeout = stop_timeout
        self._entries: list[_Entry] = []
        self._started = False

    def register(self, name: str, component: Any) -> None:
        if any(entry.name == name for entry in self._entries):
            raise ValueError(f"component already registered: {name}")
        self._entries.append(_Entry(name, component))
        logger.debug("Registered %s for lifecycle management", name)

    async def startup(self) -> None:
        """Start every component; a second call does nothing."""
        if self._started:
            return

        for entry in self._entries:
            try:
                await _invoke(entry.component, "start", "startup")
            except Exception:
                logger.exception("Failed to start %s, rolling back", entry.name)
                await self._stop_running()
                raise
            entry.running = True
            logger.info("Started %s", entry.name)

        self._started = True

    async def shutdown(self) -> None:
        """Stop every running component, newest first."""
        if not self._started:
            return
        await self._stop_running()
        self._started = False
        logger.info("Stopped %d component(s)", len(self._entries))

    async def _stop_running(self) -> None:
        for entry in reversed(self._entries):
            if not entry.running:
                continue
            entry.running = False
            try:
                await asyncio.wait_for(
                    _invoke(entry.component, "shutdown"), timeout=self.stop_timeout
                )
            except asyncio.TimeoutError:
                logger.error("Timed out stopping %s after %.0fs", entry.name, self.stop_timeout)
            except Exception as e:
                logger.error("Error stopping %s: %s", entry.name, e)

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def component_count(self) -> int:
        return len(self._entries)
