"""
Scan Recorder

Writes visit records outside the request/response cycle.

The request's store (and session) is gone by the time a background task
runs, so the recorder opens its own store scope for every write. Failures
and timeouts are logged and swallowed.
"""

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from typing import Callable, Optional

from qrlink.core.setting import settings
from qrlink.db.interface import LinkStore
from qrlink.db.models import ScanEvent

logger = logging.getLogger(__name__)

StoreScope = Callable[[], AbstractAsyncContextManager[LinkStore]]


class ScanRecorder:
    """Best-effort, time-bounded visit logging."""

    def __init__(self, store_scope: StoreScope, timeout: Optional[float] = None):
        """
        Args:
            store_scope: Opens a LinkStore for one write
            timeout: Seconds before a write is abandoned (defaults to settings)
        """
        self.store_scope = store_scope
        self.timeout = settings.SCAN_LOG_TIMEOUT_SECONDS if timeout is None else timeout

    async def record(self, link_id: int, event: ScanEvent) -> bool:
        """
        Append the scan event and bump counters for link_id.

        Returns:
            True if the write landed, False if it failed or timed out
        """
        try:
            await asyncio.wait_for(self._write(link_id, event), timeout=self.timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Timed out recording scan for link {link_id} after {self.timeout}s")
        except Exception as e:
            logger.error(f"Failed to record scan for link {link_id}: {str(e)}", exc_info=True)
        return False

    async def _write(self, link_id: int, event: ScanEvent) -> None:
        async with self.store_scope() as store:
            await store.record_scan(link_id, event)
