from typing import Any, Callable, Dict, Optional, Tuple, Union

from .driver import Driver
from .execution import execute_async
from .pending import Deferred
from .utils import configure_logging


class RoutineRunner:
    """
    High-level interface for driving routines with shared settings.
    """
    def __init__(
        self,
        adapt_awaitables: bool = True,
        log_level: Optional[Union[int, str]] = None,
    ) -> None:
        self.adapt_awaitables = adapt_awaitables
        self.log_level = log_level
        if log_level is not None:
            configure_logging(log_level)

    def co(self, factory: Callable[..., Any], *args: Any, **kwargs: Any) -> Deferred:
        """
        Start driving factory(*args, **kwargs) and return the Driver Result.
        """
        return Driver(factory, *args, adapt_awaitables=self.adapt_awaitables, **kwargs).start()

    def execute_async(
        self,
        factory: Callable[..., Any],
        args: Optional[Tuple[Any, ...]] = None,
        kwargs: Optional[Dict[str, Any]] = None,
        name: Optional[str] = None,
    ):
        """
        Drive the routine. Returns a DriveResult, or a coroutine in async context.
        """
        return execute_async(
            factory,
            args=args,
            kwargs=kwargs,
            adapt_awaitables=self.adapt_awaitables,
            name=name,
        )

    def execute(
        self,
        factory: Callable[..., Any],
        args: Optional[Tuple[Any, ...]] = None,
        kwargs: Optional[Dict[str, Any]] = None,
        name: Optional[str] = None,
    ):
        """
        Synchronous wrapper for execute_async. Blocks until completion if not in async context.
        """
        return execute_async(
            factory,
            args=args,
            kwargs=kwargs,
            adapt_awaitables=self.adapt_awaitables,
            name=name,
        )
