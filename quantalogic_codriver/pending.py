# quantalogic_codriver/pending.py
"""
Single-settlement pending operations and adapters that bridge other
awaitables (asyncio futures, tasks, coroutines) onto the same contract.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, List, Optional, Tuple

from .exceptions import AlreadySettledError, NotSettledError, ProtocolError

logger = logging.getLogger(__name__)

SuccessCallback = Callable[[Any], Any]
FaultCallback = Callable[[BaseException], Any]


class Deferred:
    """A value or fault that becomes available later.

    Settles exactly once, through resolve() or reject(). Callbacks
    subscribed with then() fire in subscription order; a callback
    subscribed after settlement fires immediately.
    """

    def __init__(self, label: Optional[str] = None) -> None:
        self.label = label
        self.settled: bool = False
        self.failed: bool = False
        self._value: Any = None
        self._fault: Optional[BaseException] = None
        self._callbacks: List[Tuple[Optional[SuccessCallback], Optional[FaultCallback]]] = []

    def __repr__(self):
        if not self.settled:
            status = "pending"
        elif self.failed:
            status = f"failed {type(self._fault).__name__}"
        else:
            status = f"resolved {self._value!r}"
        name = f" {self.label}" if self.label else ""
        return f"<Deferred{name} {status}>"

    def resolve(self, value: Any = None) -> None:
        self._settle(value, None)

    def reject(self, fault: BaseException) -> None:
        if not isinstance(fault, BaseException):
            raise TypeError(f"Deferred can only be rejected with an exception, got {type(fault).__name__}")
        self._settle(None, fault)

    def _settle(self, value: Any, fault: Optional[BaseException]) -> None:
        if self.settled:
            raise AlreadySettledError(f"{self!r} settled twice")
        self.settled = True
        self.failed = fault is not None
        self._value = value
        self._fault = fault
        logger.debug("%r settled", self)
        callbacks, self._callbacks = self._callbacks, []
        first_error = None
        # Every subscriber runs; the first callback error is re-raised afterwards.
        for on_success, on_fault in callbacks:
            try:
                self._fire(on_success, on_fault)
            except Exception as e:
                logger.exception("Callback on %r raised", self)
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    def _fire(self, on_success: Optional[SuccessCallback], on_fault: Optional[FaultCallback]) -> None:
        if self.failed:
            if on_fault is not None:
                on_fault(self._fault)
        elif on_success is not None:
            on_success(self._value)

    def then(self, on_success: Optional[SuccessCallback] = None,
             on_fault: Optional[FaultCallback] = None) -> "Deferred":
        if self.settled:
            self._fire(on_success, on_fault)
        else:
            self._callbacks.append((on_success, on_fault))
        return self

    def result(self) -> Any:
        """Return the resolved value, raise the fault, or raise NotSettledError."""
        if not self.settled:
            raise NotSettledError(f"{self!r} has not settled yet")
        if self.failed:
            raise self._fault
        return self._value

    def exception(self) -> Optional[BaseException]:
        if not self.settled:
            raise NotSettledError(f"{self!r} has not settled yet")
        return self._fault

    def __await__(self):
        if not self.settled:
            future = asyncio.get_running_loop().create_future()

            def wake(_):
                if not future.done():
                    future.set_result(None)

            self.then(wake, wake)
            yield from future.__await__()
        return self.result()


def resolved(value: Any = None) -> Deferred:
    deferred = Deferred()
    deferred.resolve(value)
    return deferred


def rejected(fault: BaseException) -> Deferred:
    deferred = Deferred()
    deferred.reject(fault)
    return deferred


def from_future(future: "asyncio.Future") -> Deferred:
    """Bridge an asyncio future onto a Deferred."""
    deferred = Deferred(label=repr(future))

    def done(fut):
        if fut.cancelled():
            deferred.reject(asyncio.CancelledError())
        elif fut.exception() is not None:
            deferred.reject(fut.exception())
        else:
            deferred.resolve(fut.result())

    future.add_done_callback(done)
    return deferred


def is_pending(item: Any) -> bool:
    return isinstance(item, Deferred) or callable(getattr(item, "then", None))


def as_pending(item: Any, adapt_awaitables: bool = True) -> Any:
    """Adapt a yielded item to something with then(on_success, on_fault).

    Raises ProtocolError for anything that is not a pending operation.
    """
    if is_pending(item):
        return item
    if adapt_awaitables:
        if asyncio.isfuture(item):
            return from_future(item)
        if inspect.isawaitable(item):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                if inspect.iscoroutine(item):
                    item.close()
                raise
            logger.debug("Scheduling awaitable %r on the running loop", item)
            return from_future(asyncio.ensure_future(item, loop=loop))
    elif inspect.iscoroutine(item):
        item.close()
    raise ProtocolError("routine yielded a non-awaitable item", item)
