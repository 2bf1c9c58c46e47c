from __future__ import annotations

import asyncio
import logging
import math
from asyncio import sleep
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Coroutine

from .api import IFeelApi, IFeelApiError
from .const import (
    DEFAULT_DEFERRED_DELAY_SEC,
    DEFAULT_MAX_POLL_TIME_SEC,
    DEFAULT_POLL_INTERVAL_SEC,
    DEFAULT_RESYNC_EXTERNAL,
    POLL_MODE_CONTINUOUS,
    POLL_MODE_DEFERRED,
    POSITION_MAX,
    POSITION_MIN,
)

_LOGGER = logging.getLogger(__name__)


class MotionState(Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STOPPED = "stopped"


def derive_motion_state(current: int, target: int) -> MotionState:
    if current < target:
        return MotionState.INCREASING
    if current > target:
        return MotionState.DECREASING
    return MotionState.STOPPED


def clamp_position(value: int) -> int:
    return max(POSITION_MIN, min(POSITION_MAX, int(value)))


@dataclass
class ShutterState:
    current_position: int = 0
    target_position: int = 0

    @property
    def motion_state(self) -> MotionState:
        return derive_motion_state(self.current_position, self.target_position)


class ShutterTracker:
    """Keeps one shutter's commanded target, reported position and motion in sync.

    After every ``set_target_position`` a single polling session watches the
    hub until the shutter arrives or the time cap runs out. Starting a new
    session cancels the previous one first, so a tracker never has more than
    one session task alive.
    """

    def __init__(
        self,
        api: IFeelApi,
        unit_id: int,
        name: str,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SEC,
        max_poll_time: float = DEFAULT_MAX_POLL_TIME_SEC,
        poll_mode: str = POLL_MODE_CONTINUOUS,
        deferred_delay: float = DEFAULT_DEFERRED_DELAY_SEC,
        resync_external: bool = DEFAULT_RESYNC_EXTERNAL,
        create_task: Callable[[Coroutine[Any, Any, None]], asyncio.Future] | None = None,
    ) -> None:
        if poll_mode not in (POLL_MODE_CONTINUOUS, POLL_MODE_DEFERRED):
            raise ValueError(f"Unknown poll mode: {poll_mode}")
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")

        self._api = api
        self.unit_id = unit_id
        self.name = name
        self.poll_interval = poll_interval
        self.max_poll_time = max_poll_time
        self.poll_mode = poll_mode
        self.deferred_delay = deferred_delay
        self.resync_external = resync_external
        self._create_task = create_task or asyncio.ensure_future

        self.state = ShutterState()
        self._listeners: list[Callable[[], None]] = []

        self._session_task: asyncio.Task | None = None
        self._session_id = 0
        self._command_tasks: set[asyncio.Task] = set()

    @property
    def current_position(self) -> int:
        return self.state.current_position

    @property
    def motion_state(self) -> MotionState:
        return self.state.motion_state

    @property
    def polling(self) -> bool:
        return self._session_task is not None and not self._session_task.done()

    @property
    def max_poll_ticks(self) -> int:
        return max(1, math.ceil(self.max_poll_time / self.poll_interval - 1e-9))

    @property
    def session_task(self) -> asyncio.Task | None:
        return self._session_task

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _publish(self) -> None:
        for listener in list(self._listeners):
            listener()

    async def async_seed(self) -> None:
        session_id = self._session_id
        try:
            position = clamp_position(await self._api.get_position(self.unit_id))
        except IFeelApiError as e:
            _LOGGER.warning("Could not read initial position of shutter %s: %s", self.unit_id, e)
            return
        if self._is_stale(session_id):
            # A move was commanded while the read was in flight; keep its target
            return
        self.state.current_position = position
        self.state.target_position = position
        self._publish()

    async def _async_read_position(self) -> int:
        position = clamp_position(await self._api.get_position(self.unit_id))
        self.state.current_position = position

        # No session watching the shutter, so a differing target means someone
        # moved it outside Home Assistant (wall switch, remote).
        if self.resync_external and not self.polling and position != self.state.target_position:
            _LOGGER.debug(
                "Shutter %s moved externally to %s (target was %s), resyncing",
                self.unit_id,
                position,
                self.state.target_position,
            )
            self.state.target_position = position

        self._publish()
        return position

    async def async_get_current_position(self) -> int:
        _LOGGER.debug("Triggered GET current position for shutter %s", self.unit_id)
        return await self._async_read_position()

    def get_target_position(self) -> int:
        _LOGGER.debug("Triggered GET target position for shutter %s", self.unit_id)
        return self.state.target_position

    async def async_get_motion_state(self) -> MotionState:
        _LOGGER.debug("Triggered GET motion state for shutter %s", self.unit_id)
        await self._async_read_position()
        return self.state.motion_state

    def set_target_position(self, value: int) -> None:
        """Record a new target, submit the move and restart the polling session.

        Returns without waiting for the hub.
        """
        target = clamp_position(value)
        _LOGGER.debug("Triggered SET target position for shutter %s: %s", self.unit_id, target)

        self.state.target_position = target

        command = self._create_task(self._async_send_command(target))
        self._command_tasks.add(command)
        command.add_done_callback(self._command_tasks.discard)

        self.cancel()
        self._session_id += 1
        if self.poll_mode == POLL_MODE_DEFERRED:
            session = self._async_deferred_check(self._session_id)
        else:
            session = self._async_poll_session(self._session_id)
        self._session_task = self._create_task(session)

        self._publish()

    def cancel(self) -> None:
        if self._session_task is not None:
            if not self._session_task.done():
                self._session_task.cancel()
            self._session_task = None

    async def _async_send_command(self, value: int) -> None:
        try:
            await self._api.set_position(self.unit_id, value)
        except IFeelApiError as e:
            _LOGGER.warning("Failed to send position %s to shutter %s: %s", value, self.unit_id, e)

    def _is_stale(self, session_id: int) -> bool:
        return session_id != self._session_id

    def _end_session(self, session_id: int) -> None:
        if not self._is_stale(session_id):
            self._session_task = None

    async def _async_poll_session(self, session_id: int) -> None:
        ticks = 0
        max_ticks = self.max_poll_ticks
        while True:
            await sleep(self.poll_interval)
            ticks += 1
            elapsed = ticks * self.poll_interval

            try:
                position = clamp_position(await self._api.get_position(self.unit_id))
            except IFeelApiError as e:
                _LOGGER.debug("Poll of shutter %s failed: %s", self.unit_id, e)
            else:
                if self._is_stale(session_id):
                    return
                self.state.current_position = position
                self._publish()
                if position == self.state.target_position:
                    _LOGGER.debug(
                        "Shutter %s reached %s after %.1fs", self.unit_id, position, elapsed
                    )
                    self._end_session(session_id)
                    return

            if ticks >= max_ticks:
                _LOGGER.warning(
                    "Stopped polling shutter %s after %.1fs without reaching %s (at %s)",
                    self.unit_id,
                    elapsed,
                    self.state.target_position,
                    self.state.current_position,
                )
                self._end_session(session_id)
                return

    async def _async_deferred_check(self, session_id: int) -> None:
        await sleep(self.deferred_delay)
        try:
            position = clamp_position(await self._api.get_position(self.unit_id))
        except IFeelApiError as e:
            _LOGGER.warning("Deferred check of shutter %s failed: %s", self.unit_id, e)
            self._end_session(session_id)
            return

        if self._is_stale(session_id):
            return
        _LOGGER.info("Updating current and target positions of shutter %s to %s", self.unit_id, position)
        self.state.current_position = position
        self.state.target_position = position
        self._end_session(session_id)
        self._publish()
