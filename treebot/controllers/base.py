"""
Base controller - phase state machine shared by every autonomous behavior

A controller is started and stopped synchronously by the dispatcher and
advanced one bounded step per tick. Each start creates a fresh cancellation
token; steps capture it and check it after every await so that a stop
issued mid-step is observed at the next checkpoint.
"""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Set

from ..errors import UnexpectedFault
from ..event_stream import EventStream
from ..logging_config import get_logger
from ..schemas.events import EventKind, LifecycleEvent
from ..world.gateway import TravelOutcome, Vec3, WorldGateway

logger = get_logger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


class StartOutcome(str, Enum):
    STARTED = "started"
    RETARGETED = "retargeted"
    REJECTED = "rejected"
    FAILED = "failed"


class CancellationToken:
    """Flag shared between a run and its in-flight steps"""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class ControllerState:
    phase: Phase = Phase.IDLE
    started_at_tick: int = 0
    issuer: Optional[str] = None


class Controller(ABC):
    """Base class for Harvester, Follower and Engager"""

    name: str = "controller"
    failure_message: str = "Something went wrong."

    def __init__(self, gateway: WorldGateway, events: EventStream):
        self.gateway = gateway
        self.events = events
        self.state = self._fresh_state()
        self._token: Optional[CancellationToken] = None
        self._travel_tasks: Set[asyncio.Future] = set()
        self._tick = 0

    @abstractmethod
    def _fresh_state(self) -> ControllerState:
        """State used while Idle and at the beginning of every run"""

    @abstractmethod
    def _on_start(self, params: Any, issuer: Optional[str]) -> StartOutcome:
        """Prepare a run from Idle; anything but STARTED leaves the controller Idle"""

    @abstractmethod
    async def _step(self, token: CancellationToken) -> None:
        """Advance the run by one bounded step"""

    def _on_start_while_running(self, params: Any, issuer: Optional[str]) -> StartOutcome:
        return self._reject(f"{self.name} is already running", "already_running")

    def describe(self) -> Dict[str, Any]:
        """Counters reported on events"""
        return {}

    def _start_message(self) -> Optional[str]:
        return None

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def is_running(self) -> bool:
        return self.state.phase is Phase.RUNNING

    @property
    def is_idle(self) -> bool:
        return self.state.phase is Phase.IDLE

    def start(self, params: Any, issuer: Optional[str] = None, tick: int = 0) -> StartOutcome:
        """Begin a run, or apply this controller's policy if one is active"""
        self._tick = tick
        if not self.is_idle:
            return self._on_start_while_running(params, issuer)

        self.state = self._fresh_state()
        self.state.started_at_tick = tick
        self.state.issuer = issuer
        self._token = CancellationToken()

        outcome = self._on_start(params, issuer)
        if outcome is not StartOutcome.STARTED:
            self._reset()
            return outcome

        self.state.phase = Phase.RUNNING
        logger.info(f"{self.name}: started", issuer=issuer, tick=tick, **self.describe())
        self._emit(EventKind.START, message=self._start_message(), data=self.describe())
        return outcome

    def stop(self, reason: str = "stopped") -> bool:
        """Cancel the active run; returns False when already Idle"""
        if self.is_idle:
            return False

        self.state.phase = Phase.STOPPING
        data = self.describe()
        self._halt()
        self._reset()
        logger.info(f"{self.name}: stopped", reason=reason)
        self._emit(EventKind.STOP, reason=reason, data=data)
        return True

    async def tick(self, tick: int) -> None:
        """Run one step; faults are converted to a failed terminal event"""
        if not self.is_running or self._token is None:
            return

        self._tick = tick
        token = self._token
        try:
            await self._step(token)
        except Exception as e:
            if token.cancelled:
                logger.debug(f"{self.name}: step failed after cancellation", error=str(e))
                return
            fault = UnexpectedFault(self.name, e)
            logger.error(f"{self.name}: unexpected fault", error=str(fault), exc_info=True)
            self._finish(False, "unexpected_fault", self.failure_message, error=str(e))

    def _finish(self, success: bool, reason: str, message: Optional[str], **extra: Any) -> None:
        """End the run and publish its terminal event"""
        if self.is_idle:
            return
        data = {**self.describe(), "success": success, **extra}
        self._halt()
        self._reset()
        logger.info(f"{self.name}: finished", success=success, reason=reason)
        self._emit(EventKind.COMPLETE, success=success, reason=reason, message=message, data=data)

    def _reject(self, message: str, reason: str) -> StartOutcome:
        logger.info(f"{self.name}: start rejected", reason=reason)
        self._emit(EventKind.REJECTED, success=False, reason=reason, message=message)
        return StartOutcome.REJECTED

    def _fail_start(self, message: str, reason: str) -> StartOutcome:
        logger.info(f"{self.name}: start failed", reason=reason)
        self._emit(EventKind.COMPLETE, success=False, reason=reason, message=message, data={"success": False})
        return StartOutcome.FAILED

    def _emit(self, kind: EventKind, **fields: Any) -> LifecycleEvent:
        return self.events.emit(kind, self.name, tick=self._tick, **fields)

    def _halt(self) -> None:
        if self._token is not None:
            self._token.cancel()
        self.gateway.stop_travel()
        for task in list(self._travel_tasks):
            task.cancel()
        self._travel_tasks.clear()

    def _reset(self) -> None:
        self.state = self._fresh_state()
        self._token = None

    def _issue_travel(self, position: Vec3, tolerance: float, timeout: float) -> asyncio.Future:
        """Start travel in the background; the result is only logged"""
        task = asyncio.ensure_future(self.gateway.travel_near(position, tolerance, timeout))
        self._travel_tasks.add(task)
        task.add_done_callback(self._on_travel_done)
        return task

    def _on_travel_done(self, task: asyncio.Future) -> None:
        self._travel_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"{self.name}: travel failed", error=str(error))
            return
        outcome = task.result()
        if outcome in (TravelOutcome.TIMEOUT, TravelOutcome.FAILED):
            logger.info(f"{self.name}: travel did not reach goal", outcome=outcome.value)
