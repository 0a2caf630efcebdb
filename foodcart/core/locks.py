"""
Per-entity operation guard.

Mutating calls against the same logical entity (an order, a category,
a dish) must not overlap. Instead of waiting, a second caller is
rejected immediately with OperationInProgressError.
"""

import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, AsyncIterator

from foodcart.core.exceptions import OperationInProgressError

logger = logging.getLogger(__name__)


class PendingOperations:
    """Set of (kind, key) tokens for operations currently in flight."""

    def __init__(self) -> None:
        self._pending: set[tuple[str, str]] = set()

    def is_pending(self, kind: str, key: Any) -> bool:
        return (kind, str(key)) in self._pending

    @asynccontextmanager
    async def hold(self, kind: str, key: Any) -> AsyncIterator[None]:
        # check-and-add has no await in between, so it is atomic on the event loop
        token = (kind, str(key))
        if token in self._pending:
            logger.warning(f"Rejected concurrent {kind} operation for {key}")
            raise OperationInProgressError(kind, key)

        self._pending.add(token)
        try:
            yield
        finally:
            self._pending.discard(token)


@lru_cache()
def get_pending_operations() -> PendingOperations:
    """Process-wide operation registry."""
    return PendingOperations()
