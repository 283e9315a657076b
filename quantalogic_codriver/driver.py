# quantalogic_codriver/driver.py
"""
The coroutine driver: resumes a routine, waits on each pending operation it
yields, and feeds the outcome (value or fault) back in until the routine
finishes.
"""

import asyncio
import enum
import functools
import logging
from typing import Any, Callable, Optional, Tuple

from .exceptions import DriverStateError, ProtocolError
from .pending import Deferred, as_pending
from .routine import Routine, as_routine

logger = logging.getLogger(__name__)

# Faults raised by a routine that end the drive. CancelledError is a
# BaseException and would otherwise escape into the provider's callback.
ROUTINE_FAULTS = (Exception, asyncio.CancelledError)


class DriverState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    WAITING = "waiting"
    FINISHED = "finished"
    FAILED = "failed"


class Driver:
    """Drives one routine to completion.

    The driver owns the routine for its whole life and keeps at most one
    pending operation outstanding. Operations that are already settled when
    subscribed to fire synchronously; those are handled by looping in
    _run() rather than recursing, so long chains of them stay flat on the
    stack.
    """

    def __init__(self, factory: Callable[..., Any], *args: Any, name: Optional[str] = None,
                 adapt_awaitables: bool = True, **kwargs: Any) -> None:
        self.factory = factory
        self.args = args
        self.kwargs = kwargs
        self.name: str = name or getattr(factory, "__qualname__", None) or repr(factory)
        self.adapt_awaitables: bool = adapt_awaitables
        self.result: Deferred = Deferred(label=self.name)
        self.routine: Optional[Routine] = None
        self.pending: Any = None
        self.resumptions: int = 0
        self.state: DriverState = DriverState.IDLE
        self._subscribing: bool = False
        self._early: Optional[Tuple[Any, Optional[BaseException]]] = None

    def __repr__(self):
        return f"<Driver {self.name} {self.state.value} resumptions={self.resumptions}>"

    def start(self) -> Deferred:
        if self.state is not DriverState.IDLE:
            raise DriverStateError(f"{self!r} was already started")
        self.state = DriverState.RUNNING
        logger.debug("Starting %s", self.name)
        try:
            self.routine = as_routine(self.factory(*self.args, **self.kwargs))
        except ROUTINE_FAULTS as e:
            self._fail(e)
            return self.result
        self._run(None, None)
        return self.result

    def _run(self, value: Any, fault: Optional[BaseException]) -> None:
        while True:
            self.state = DriverState.RUNNING
            self.resumptions += 1
            try:
                if fault is None:
                    logger.debug("%s resumption %d with value %r", self.name, self.resumptions, value)
                    step = self.routine.resume(value)
                else:
                    logger.debug("%s resumption %d with fault %r", self.name, self.resumptions, fault)
                    step = self.routine.throw(fault)
            except ROUTINE_FAULTS as e:
                self._fail(e)
                return

            if step.done:
                self._finish(step.value)
                return

            try:
                pending = as_pending(step.value, self.adapt_awaitables)
            except Exception as e:
                if isinstance(e, ProtocolError):
                    logger.error("%s: %s", self.name, e)
                self._abort(e)
                return

            outcome = self._wait(pending)
            if outcome is None:
                return
            value, fault = outcome

    def _wait(self, pending: Any) -> Optional[Tuple[Any, Optional[BaseException]]]:
        """Subscribe to pending; return its outcome if it settled during subscription."""
        self.pending = pending
        self.state = DriverState.WAITING
        self._early = None
        self._subscribing = True
        logger.debug("%s waiting on %r", self.name, pending)
        try:
            pending.then(functools.partial(self._on_value, pending),
                         functools.partial(self._on_fault, pending))
        except Exception as e:
            if self._early is None:
                self.pending = None
                self._abort(e)
                return None
            # Settled first, then misbehaved (e.g. a second callback): the
            # error already reached the provider, the first outcome stands.
            logger.error("%s: %r raised after settling: %s", self.name, pending, e)
        finally:
            self._subscribing = False
        early, self._early = self._early, None
        return early

    def _on_value(self, pending: Any, value: Any) -> None:
        self._settled(pending, value, None)

    def _on_fault(self, pending: Any, fault: BaseException) -> None:
        self._settled(pending, None, fault)

    def _settled(self, pending: Any, value: Any, fault: Optional[BaseException]) -> None:
        if pending is not self.pending:
            raise ProtocolError(f"{self.name}: stray settlement from pending operation", pending)
        self.pending = None
        if self._subscribing:
            self._early = (value, fault)
            return
        self._run(value, fault)

    def _abort(self, error: BaseException) -> None:
        try:
            self.routine.close()
        except Exception:
            logger.exception("Error while closing %s", self.name)
        self._fail(error)

    def _finish(self, value: Any) -> None:
        self.state = DriverState.FINISHED
        logger.debug("%s finished after %d resumptions with %r", self.name, self.resumptions, value)
        self._settle_result(self.result.resolve, value)

    def _fail(self, error: BaseException) -> None:
        self.state = DriverState.FAILED
        logger.debug("%s failed after %d resumptions: %s: %s",
                     self.name, self.resumptions, type(error).__name__, error)
        self._settle_result(self.result.reject, error)

    def _settle_result(self, settle: Callable[[Any], None], outcome: Any) -> None:
        # Consumer callback errors stay out of the provider that resumed us;
        # Deferred has already logged them and run the remaining consumers.
        try:
            settle(outcome)
        except Exception:
            logger.debug("%s: a result consumer raised", self.name)


def co(factory: Callable[..., Any], *args: Any, **kwargs: Any) -> Deferred:
    """Drive the routine built by factory(*args, **kwargs); return its Driver Result."""
    return Driver(functools.partial(factory, *args, **kwargs),
                  name=getattr(factory, "__qualname__", None)).start()


def driven(func: Callable[..., Any]) -> Callable[..., Deferred]:
    """Decorator: calling the decorated generator function drives it and returns the result Deferred."""
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Deferred:
        return co(func, *args, **kwargs)
    return wrapper
