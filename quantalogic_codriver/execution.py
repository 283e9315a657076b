import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from .driver import Driver

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class DriveResult:
    result: Any
    error: Optional[str]
    execution_time: float
    resumptions: int = 0
    exception: Optional[BaseException] = None


def _describe(e: BaseException) -> str:
    return f'{type(e).__name__}: {str(e)}'


async def _async_execute_async(
    factory: Callable[..., Any],
    args: Optional[Tuple] = None,
    kwargs: Optional[Dict[str, Any]] = None,
    adapt_awaitables: bool = True,
    name: Optional[str] = None
) -> DriveResult:
    start_time = time.time()
    driver = Driver(
        factory,
        *(args or ()),
        name=name,
        adapt_awaitables=adapt_awaitables,
        **(kwargs or {})
    )

    try:
        result = await driver.start()
        return DriveResult(
            result=result,
            error=None,
            execution_time=time.time() - start_time,
            resumptions=driver.resumptions
        )
    except asyncio.CancelledError as e:
        # Only report cancellation that came out of the routine; cancelling
        # the awaiting task itself must still propagate.
        if driver.result.settled and driver.result.exception() is e:
            return DriveResult(
                result=None,
                error=_describe(e) if str(e) else 'CancelledError',
                execution_time=time.time() - start_time,
                resumptions=driver.resumptions,
                exception=e
            )
        raise
    except Exception as e:
        logger.debug("Drive of %s failed: %s", driver.name, _describe(e))
        return DriveResult(
            result=None,
            error=_describe(e),
            execution_time=time.time() - start_time,
            resumptions=driver.resumptions,
            exception=e
        )


def execute_async(
    factory: Callable[..., Any],
    args: Optional[Tuple] = None,
    kwargs: Optional[Dict[str, Any]] = None,
    adapt_awaitables: bool = True,
    name: Optional[str] = None
) -> DriveResult:
    """
    Drive a routine and report its outcome as a DriveResult.
    Returns coroutine if in async context, else runs via asyncio.run.
    """
    coro = _async_execute_async(factory, args, kwargs, adapt_awaitables, name)
    try:
        asyncio.get_running_loop()
        return coro
    except RuntimeError:
        return asyncio.run(coro)
