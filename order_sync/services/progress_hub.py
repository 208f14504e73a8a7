"""
Progress hub — per-shop run registry and live event broadcast.

Sync run registry and progress hub.

SyncRegistry is the single process-wide owner of in-memory sync state:
which shops have an active run, the cancellation token and task of that
run, and the listeners attached to each shop. It is created in the app
lifespan and closed at shutdown.

ProgressHub fans SyncEvents out to a shop's listeners. Listeners can be
attached before any run starts (a client opens the live stream first and
then triggers the sync).
Version: 1.0.0
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from order_sync.core.exceptions import SyncCancelledError
from order_sync.schemas.sync import SyncEvent

logger = logging.getLogger("progress_hub")

SyncEventListener = Callable[[SyncEvent], None]


class CancellationToken:
    """Cooperative cancellation signal polled by a run at its checkpoints."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise SyncCancelledError("Sync cancelled")


@dataclass
class SyncRun:
    """In-memory state for one shop. Never persisted."""
    shop: str
    listeners: List[SyncEventListener] = field(default_factory=list)
    token: Optional[CancellationToken] = None
    task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self.token is not None


class SyncRegistry:
    """Owns the SyncRun of every shop that has a run or a listener."""

    def __init__(self) -> None:
        self._runs: Dict[str, SyncRun] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, shop: str) -> Optional[SyncRun]:
        return self._runs.get(shop)

    def get_or_create(self, shop: str) -> SyncRun:
        run = self._runs.get(shop)
        if run is None:
            run = SyncRun(shop=shop)
            self._runs[shop] = run
        return run

    def is_active(self, shop: str) -> bool:
        run = self._runs.get(shop)
        return run is not None and run.active

    def begin_run(self, shop: str) -> CancellationToken:
        """
        Claim the shop for a new run.

        Must be called without awaiting after is_active() so that two
        concurrent start requests cannot both claim the same shop.

        Raises:
            RuntimeError: The registry is closed or the shop already has a run
        """
        if self._closed:
            raise RuntimeError("Sync registry is closed")
        run = self.get_or_create(shop)
        if run.active:
            raise RuntimeError(f"Sync already active for {shop}")
        run.token = CancellationToken()
        run.task = None
        return run.token

    def holds_claim(self, shop: str, token: CancellationToken) -> bool:
        """True while `token` is still the live claim for the shop."""
        run = self._runs.get(shop)
        return not self._closed and run is not None and run.token is token

    def attach_task(self, shop: str, token: CancellationToken, task: asyncio.Task) -> bool:
        """
        Hand the run task to the registry.

        Returns:
            False when the claim is gone (registry closed meanwhile); the
            caller owns the task and must cancel it
        """
        if not self.holds_claim(shop, token):
            return False
        self._runs[shop].task = task
        return True

    def end_run(self, shop: str, token: Optional[CancellationToken] = None) -> None:
        """Release the claim; drop the entry if nobody is listening."""
        run = self._runs.get(shop)
        if run is None:
            return
        if token is not None and run.token is not token:
            return
        run.token = None
        run.task = None
        self.discard_if_idle(shop)

    def discard_if_idle(self, shop: str) -> None:
        run = self._runs.get(shop)
        if run is not None and not run.listeners and not run.active:
            del self._runs[shop]
            logger.debug(f"Discarded idle sync entry for {shop}")

    def shops(self) -> List[str]:
        return list(self._runs.keys())

    async def close(self) -> None:
        """
        Stop every running task at shutdown and refuse new runs.

        Durable status is left as "syncing" with its cursor, which the next
        process start treats as an interrupted run to resume.
        """
        self._closed = True
        tasks = [run.task for run in self._runs.values() if run.task is not None and not run.task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Stopped {len(tasks)} running sync task(s)")
        self._runs.clear()


class ProgressHub:
    """Publish/subscribe of SyncEvents keyed by shop."""

    def __init__(self, registry: SyncRegistry) -> None:
        self._registry = registry

    def subscribe(self, shop: str, listener: SyncEventListener) -> None:
        run = self._registry.get_or_create(shop)
        if listener not in run.listeners:
            run.listeners.append(listener)

    def unsubscribe(self, shop: str, listener: SyncEventListener) -> None:
        run = self._registry.get(shop)
        if run is None:
            return
        if listener in run.listeners:
            run.listeners.remove(listener)
        self._registry.discard_if_idle(shop)

    def listener_count(self, shop: str) -> int:
        run = self._registry.get(shop)
        return len(run.listeners) if run else 0

    def publish(self, shop: str, event: SyncEvent) -> None:
        """Deliver to every listener in subscription order; a failing listener is skipped."""
        run = self._registry.get(shop)
        if run is None:
            return
        for listener in list(run.listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Error in sync event listener for {shop}")
