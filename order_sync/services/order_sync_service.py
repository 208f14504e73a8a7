"""
Order sync service — resumable, rate-limited Shopify order synchronization.

Order sync engine.

Walks the cursor-paginated Shopify orders collection for one shop at a
time and stores every page as soon as it arrives:
- Every page fetch goes through the shared RateLimitedScheduler
- The next cursor is persisted after every page (crash-safe)
- Progress is broadcast to live listeners through the ProgressHub
- Cancellation is cooperative, checked before each page fetch

A start request picks one ResumeMode up front:
- full:        force=True, discard progress and walk everything
- resume:      a previous run left a cursor behind, continue from it
- incremental: only fetch orders newer than the latest stored order id

Retrying is the scheduler's job only; any error that reaches this
service ends the run in the "error" phase with the cursor preserved.
Version: 1.0.0
"""
import asyncio
import functools
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from order_sync.core.constants.sync import (
    MSG_ALREADY_IN_PROGRESS,
    MSG_CANCELLED,
    MSG_CANCELLED_BY_USER,
    MSG_FULL_SYNC_STARTED,
    MSG_INCREMENTAL_SYNC_STARTED,
    MSG_RESUMED_SYNC_STARTED,
    MSG_SHUTTING_DOWN,
)
from order_sync.core.exceptions import SyncCancelledError
from order_sync.db.order_store import OrderStore
from order_sync.db.sync_status_store import SyncStatusStore
from order_sync.schemas.sync import (
    FullSyncStatus,
    OrderPage,
    ResumeMode,
    SyncEvent,
    SyncEventKind,
    SyncPhase,
    SyncPlan,
    SyncStartResult,
    SyncStatus,
)
from order_sync.services.progress_hub import (
    CancellationToken,
    ProgressHub,
    SyncEventListener,
    SyncRegistry,
)
from order_sync.utils.rate_limiter import RateLimitedScheduler

logger = logging.getLogger("order_sync_service")

# fetch_page(shop, cursor=None, since_id=None) -> OrderPage
PageFetcher = Callable[..., Awaitable[OrderPage]]

_START_MESSAGES = {
    ResumeMode.FULL: MSG_FULL_SYNC_STARTED,
    ResumeMode.RESUME: MSG_RESUMED_SYNC_STARTED,
    ResumeMode.INCREMENTAL: MSG_INCREMENTAL_SYNC_STARTED,
}


@dataclass
class _RunState:
    cursor: Optional[str]
    since_id: Optional[str]
    synced: int
    pages: int = 0


class OrderSyncService:
    """Starts, cancels and reports on background order syncs."""

    def __init__(
        self,
        fetch_page: PageFetcher,
        scheduler: RateLimitedScheduler,
        status_store: SyncStatusStore,
        order_store: OrderStore,
        registry: SyncRegistry,
        hub: ProgressHub,
    ):
        self._fetch_page = fetch_page
        self._scheduler = scheduler
        self._status_store = status_store
        self._order_store = order_store
        self._registry = registry
        self._hub = hub

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def is_sync_in_progress(self, shop: str) -> bool:
        return self._registry.is_active(shop)

    async def start_sync(self, shop: str, force: bool = False) -> SyncStartResult:
        """
        Start a background sync for a shop.

        Returns as soon as the run is scheduled, not when it completes.
        A second start for a shop with a live run is rejected, never queued.

        Args:
            shop: Shop domain
            force: Discard any saved progress and re-walk every order

        Returns:
            SyncStartResult with accepted=False when a run is already active
        """
        if self._registry.closed:
            logger.info(f"Sync start rejected for {shop}: shutting down")
            return SyncStartResult(accepted=False, message=MSG_SHUTTING_DOWN)
        if self._registry.is_active(shop):
            logger.info(f"Sync start rejected for {shop}: already in progress")
            return SyncStartResult(accepted=False, message=MSG_ALREADY_IN_PROGRESS)

        # Claimed before the first await
        token = self._registry.begin_run(shop)
        try:
            status = await self._status_store.get_status(shop)
            plan = await self._plan_run(shop, status, force)
            await self._status_store.update_status(shop, **self._start_fields(plan))
        except Exception:
            self._registry.end_run(shop, token)
            raise

        # The registry may have been closed while the start fields were written
        if not self._registry.holds_claim(shop, token):
            logger.info(f"Sync start for {shop} abandoned: registry closed")
            return SyncStartResult(accepted=False, message=MSG_SHUTTING_DOWN)

        message = _START_MESSAGES[plan.mode]
        logger.info(
            f"Starting order sync for {shop} mode={plan.mode.value} "
            f"cursor={'yes' if plan.cursor else 'no'} since_id={plan.since_id} "
            f"synced={plan.synced_count}"
        )
        self._publish(shop, SyncEventKind.STARTED, plan.synced_count, message=message)

        task = asyncio.create_task(self._execute(shop, plan, token), name=f"order-sync:{shop}")
        if not self._registry.attach_task(shop, token, task):
            task.cancel()
            return SyncStartResult(accepted=False, message=MSG_SHUTTING_DOWN)
        task.add_done_callback(functools.partial(self._on_run_done, shop, token))

        return SyncStartResult(accepted=True, message=message)

    def cancel_sync(self, shop: str) -> bool:
        """
        Ask the running sync for a shop to stop at its next checkpoint.

        Returns:
            True if a run was active and has been signalled
        """
        run = self._registry.get(shop)
        if run is None or not run.active:
            return False
        run.token.cancel()
        logger.info(f"Cancellation requested for {shop}")
        return True

    async def wait_for_sync(self, shop: str) -> None:
        """Wait until the current run for a shop (if any) has finished."""
        run = self._registry.get(shop)
        if run is None or run.task is None:
            return
        await asyncio.gather(run.task, return_exceptions=True)

    async def get_full_status(self, shop: str) -> FullSyncStatus:
        status = await self._status_store.get_status(shop)
        order_count = await self._order_store.order_count(shop)
        return FullSyncStatus(
            **status.model_dump(),
            cached_order_count=order_count,
            sync_required=order_count == 0 and status.phase != SyncPhase.SYNCING,
            in_progress=self.is_sync_in_progress(shop),
        )

    def subscribe(self, shop: str, listener: SyncEventListener) -> None:
        self._hub.subscribe(shop, listener)

    def unsubscribe(self, shop: str, listener: SyncEventListener) -> None:
        self._hub.unsubscribe(shop, listener)

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    async def _plan_run(self, shop: str, status: SyncStatus, force: bool) -> SyncPlan:
        if force:
            return SyncPlan(mode=ResumeMode.FULL)
        if status.resume_cursor:
            return SyncPlan(
                mode=ResumeMode.RESUME,
                cursor=status.resume_cursor,
                synced_count=status.synced_count,
            )
        since_id = await self._order_store.latest_order_id(shop)
        return SyncPlan(
            mode=ResumeMode.INCREMENTAL,
            since_id=since_id,
            synced_count=status.synced_count,
        )

    @staticmethod
    def _start_fields(plan: SyncPlan) -> dict:
        fields = {
            "phase": SyncPhase.SYNCING,
            "total_count": None,
            "error_message": None,
        }
        if plan.mode == ResumeMode.FULL:
            fields["synced_count"] = 0
            fields["resume_cursor"] = None
        return fields

    async def _execute(self, shop: str, plan: SyncPlan, token: CancellationToken) -> None:
        """Run body; every outcome is written to the status store and broadcast."""
        state = _RunState(cursor=plan.cursor, since_id=plan.since_id, synced=plan.synced_count)
        try:
            await self._walk_pages(shop, state, token)
            await self._complete(shop)
        except SyncCancelledError:
            await self._record_cancelled(shop, state)
        except Exception as e:
            await self._record_error(shop, state, e)

    async def _walk_pages(self, shop: str, state: _RunState, token: CancellationToken) -> None:
        while True:
            token.raise_if_cancelled()

            fetch = functools.partial(self._fetch_page, shop, cursor=state.cursor, since_id=state.since_id)
            page = await self._scheduler.submit(fetch, on_retry=functools.partial(self._log_retry, shop))

            if page.orders:
                stored = await self._order_store.upsert_orders(shop, page.orders)
                state.synced += stored
                logger.info(f"Synced {stored} orders for {shop}, total: {state.synced}")
            state.pages += 1

            if page.has_more and page.next_cursor:
                state.cursor = page.next_cursor
                await self._status_store.update_status(
                    shop, synced_count=state.synced, resume_cursor=state.cursor
                )
                self._publish(shop, SyncEventKind.PROGRESS, state.synced)
                continue

            await self._status_store.update_status(shop, synced_count=state.synced)
            self._publish(shop, SyncEventKind.PROGRESS, state.synced)
            return

    async def _complete(self, shop: str) -> None:
        final_count = await self._order_store.order_count(shop)
        latest_order_id = await self._order_store.latest_order_id(shop)

        await self._status_store.update_status(
            shop,
            phase=SyncPhase.COMPLETED,
            synced_count=final_count,
            total_count=final_count,
            resume_cursor=None,
            last_completed_at=datetime.now(timezone.utc),
            last_order_id=latest_order_id,
            error_message=None,
        )
        self._publish(
            shop,
            SyncEventKind.COMPLETE,
            final_count,
            total=final_count,
            message=f"Sync completed. {final_count} orders total.",
        )
        logger.info(f"Order sync completed for {shop}. Total orders: {final_count}")

    async def _record_cancelled(self, shop: str, state: _RunState) -> None:
        logger.info(f"Order sync cancelled for {shop} after {state.pages} page(s)")
        try:
            await self._status_store.update_status(
                shop, phase=SyncPhase.IDLE, error_message=MSG_CANCELLED_BY_USER
            )
        except Exception:
            logger.exception(f"Could not persist cancellation for {shop}")
        self._publish(shop, SyncEventKind.ERROR, state.synced, message=MSG_CANCELLED)

    async def _record_error(self, shop: str, state: _RunState, error: Exception) -> None:
        message = str(error) or type(error).__name__
        logger.error(f"Order sync failed for {shop}: {message}")
        try:
            await self._status_store.update_status(
                shop, phase=SyncPhase.ERROR, error_message=message
            )
        except Exception:
            logger.exception(f"Could not persist sync error for {shop}")
        self._publish(shop, SyncEventKind.ERROR, state.synced, message=message)

    def _on_run_done(self, shop: str, token: CancellationToken, task: asyncio.Task) -> None:
        if task.cancelled():
            logger.info(f"Order sync task for {shop} stopped; progress kept for resume")
        elif task.exception() is not None:
            logger.error(f"Order sync task for {shop} crashed: {task.exception()!r}")
        self._registry.end_run(shop, token)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _publish(
        self,
        shop: str,
        kind: SyncEventKind,
        synced: int,
        total: Optional[int] = None,
        message: Optional[str] = None,
    ) -> None:
        self._hub.publish(
            shop, SyncEvent(kind=kind, shop=shop, synced=synced, total=total, message=message)
        )

    @staticmethod
    def _log_retry(shop: str, attempt: int, error: Exception, delay: float) -> None:
        logger.info(f"Order fetch retry {attempt} for {shop}, waiting {delay:.1f}s: {error}")
