# quantalogic_codriver/routine.py
"""
Routines: pausable computations resumed with a value or an injected fault.

Two shapes are supported. Native generators are adapted through
GeneratorRoutine; explicit state machines subclass StateMachineRoutine.
"""

import inspect
import logging
import types
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .exceptions import ProtocolError, RoutineFinishedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Step:
    done: bool
    value: Any = None

    @classmethod
    def suspended(cls, item: Any) -> "Step":
        return cls(done=False, value=item)

    @classmethod
    def finished(cls, value: Any = None) -> "Step":
        return cls(done=True, value=value)


class Routine:
    closed: bool = False

    def resume(self, value: Any = None) -> Step:
        raise NotImplementedError

    def throw(self, fault: BaseException) -> Step:
        raise NotImplementedError

    def close(self) -> None:
        self.closed = True


class GeneratorRoutine(Routine):
    """Adapts a generator (or anything with send/throw) to the Routine interface."""

    def __init__(self, gen):
        self.gen = gen
        self.closed = False
        self.return_value = None

    def __repr__(self):
        name = getattr(self.gen, "__qualname__", None) or type(self.gen).__name__
        return f"<GeneratorRoutine {name}>"

    def _check_open(self):
        if self.closed:
            raise RoutineFinishedError(f"{self!r} has already finished")

    def resume(self, value: Any = None) -> Step:
        self._check_open()
        try:
            item = self.gen.send(value)
        except StopIteration as e:
            self.closed = True
            self.return_value = e.value
            return Step.finished(self.return_value)
        except BaseException:
            self.closed = True
            raise
        return Step.suspended(item)

    def throw(self, fault: BaseException) -> Step:
        self._check_open()
        try:
            item = self.gen.throw(fault)
        except StopIteration as e:
            self.closed = True
            self.return_value = e.value
            return Step.finished(self.return_value)
        except BaseException:
            self.closed = True
            raise
        return Step.suspended(item)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            close = getattr(self.gen, "close", None)
            if close is not None:
                close()


class StateMachineRoutine(Routine):
    """A routine written as an explicit state machine.

    Subclasses define one ``state_<name>(value)`` method per state. Each
    handler returns ``self.suspend(item, next_state)`` or
    ``self.finish(value)``.

    Injected faults follow a per-state policy: ``recovery`` maps a state to
    the name of a ``recover_<name>(fault)`` handler. A fault injected while
    in a state without an entry propagates out and the routine is finished.
    """

    initial_state: str = "initial"
    recovery: Mapping[str, str] = types.MappingProxyType({})

    def __init__(self) -> None:
        self.state: Optional[str] = self.initial_state
        self.closed = False

    def __repr__(self):
        return f"<{type(self).__name__} state={self.state}>"

    def suspend(self, item: Any, next_state: str) -> Step:
        self.state = next_state
        return Step.suspended(item)

    def finish(self, value: Any = None) -> Step:
        self.state = None
        self.closed = True
        return Step.finished(value)

    def _handler(self, prefix: str, name: str):
        handler = getattr(self, f"{prefix}_{name}", None)
        if handler is None:
            raise ProtocolError(f"{type(self).__name__} has no handler {prefix}_{name}")
        return handler

    def _run(self, handler, arg) -> Step:
        try:
            return handler(arg)
        except BaseException:
            self.state = None
            self.closed = True
            raise

    def resume(self, value: Any = None) -> Step:
        if self.closed:
            raise RoutineFinishedError(f"{self!r} has already finished")
        logger.debug("%r resumed with %r", self, value)
        return self._run(self._handler("state", self.state), value)

    def throw(self, fault: BaseException) -> Step:
        if self.closed:
            raise RoutineFinishedError(f"{self!r} has already finished")
        target = self.recovery.get(self.state)
        if target is None:
            logger.debug("%r has no recovery for %s, propagating", self, type(fault).__name__)
            self.state = None
            self.closed = True
            raise fault
        logger.debug("%r recovering from %s via %s", self, type(fault).__name__, target)
        return self._run(self._handler("recover", target), fault)

    def close(self) -> None:
        self.state = None
        self.closed = True


def as_routine(obj: Any) -> Routine:
    if isinstance(obj, Routine):
        return obj
    if inspect.iscoroutine(obj):
        obj.close()
        raise ProtocolError("factory produced a coroutine; await it instead of driving it")
    if inspect.isgenerator(obj) or (callable(getattr(obj, "send", None)) and callable(getattr(obj, "throw", None))):
        return GeneratorRoutine(obj)
    raise ProtocolError("factory did not produce a routine", obj)
