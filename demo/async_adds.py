#!/usr/bin/env python3
# Run from the project environment: pip install -e .[demo]

import asyncio

import typer
from loguru import logger

from quantalogic_codriver import Deferred, co

app = typer.Typer()


def deferred(value, delay: float) -> Deferred:
    """A Deferred that resolves with value after delay seconds on the running loop."""
    d = Deferred(label=f"deferred({value!r})")
    asyncio.get_running_loop().call_later(delay, d.resolve, value)
    return d


def defer_reject(error: Exception, delay: float) -> Deferred:
    d = Deferred(label=f"defer_reject({error!r})")
    asyncio.get_running_loop().call_later(delay, d.reject, error)
    return d


def async_adds(delay: float, fail: bool, unhandled: bool):
    total = 0
    value = yield deferred(1, delay)
    logger.info("got {}", value)
    total += value
    if fail or unhandled:
        try:
            value = yield defer_reject(ValueError("To fail, or to not fail."), delay)
            total += value
        except ValueError:
            if unhandled:
                raise
            logger.warning("We recovered!")
    value = yield deferred(2, delay)
    logger.info("got {}", value)
    total += value
    value = yield deferred(3, delay)
    logger.info("got {}", value)
    total += value
    return total


@app.command()
def main(
    delay: float = typer.Option(0.2, "--delay", "-d", help="Seconds before each deferred settles"),
    fail: bool = typer.Option(False, "--fail", help="Inject a failing operation the routine recovers from"),
    unhandled: bool = typer.Option(False, "--unhandled", help="Let the injected fault escape the routine"),
):
    """Drive the async adds routine and print its total."""
    async def run():
        return await co(async_adds, delay, fail, unhandled)

    try:
        total = asyncio.run(run())
    except ValueError as e:
        logger.error("Routine failed: {}", e)
        raise typer.Exit(code=1)
    typer.echo(f"Total: {total}")


if __name__ == "__main__":
    app()
