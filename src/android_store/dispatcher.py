"""
Call Dispatcher

Runs one remote call per invocation with an explicit cancellation
token. A cancelled call never produces a value.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Sequence

from common.decorators import timed
from common.exceptions import OperationCancelledError, StoreConnectionError

from .connection import StoreConnection, StoreMethod

logger = logging.getLogger(__name__)


class Cancellable:
    """
    Cancellation token shared between the host and an operation.

    Must be used from the event loop that runs the operation.
    """

    def __init__(self):
        self._cancelled = False
        self._event: Optional[asyncio.Event] = None

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Cancel the operation; later calls are no-ops."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._event is not None:
            self._event.set()

    async def wait(self) -> None:
        """Wait until cancelled."""
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        await self._event.wait()

    def raise_if_cancelled(self, operation: str) -> None:
        if self._cancelled:
            raise OperationCancelledError(operation)


@timed
async def invoke(
    handle: Optional[StoreConnection],
    method: StoreMethod,
    args: Sequence[Any] = (),
    cancellable: Optional[Cancellable] = None,
) -> List[Any]:
    """
    Issue a single call to the store service.

    Args:
        handle: Connection from setup, None if setup has not succeeded
        method: Remote method
        args: Arguments matching the method's signature
        cancellable: Optional cancellation token

    Returns:
        The reply body

    Raises:
        StoreConnectionError: If there is no connection
        RemoteCallError: If the service answered with an error
        OperationCancelledError: If cancelled before the reply arrived
    """
    if handle is None:
        raise StoreConnectionError("store", f"not set up, cannot call {method.member}")

    logger.debug(f"Calling {method.member}{tuple(args)!r}")

    if cancellable is None:
        return await handle.call(method, args)

    cancellable.raise_if_cancelled(method.member)

    call_task = asyncio.ensure_future(handle.call(method, args))
    cancel_task = asyncio.ensure_future(cancellable.wait())
    try:
        await asyncio.wait(
            {call_task, cancel_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
    finally:
        # Whatever finished first, the other side must not linger
        cancel_task.cancel()
        if not call_task.done():
            call_task.cancel()

    if cancellable.is_cancelled:
        if call_task.done() and not call_task.cancelled():
            # Reply raced the cancellation; consume it so it is not reported
            call_task.exception()
        else:
            await asyncio.wait({call_task})
        raise OperationCancelledError(method.member)

    return call_task.result()
