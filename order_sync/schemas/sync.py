"""
Sync schemas — order sync status, progress events and API models.

Order sync schemas.

Defines the durable per-shop sync status, the transient progress events
broadcast to live listeners, and the request/response models of the
order sync routes.
Version: 1.0.0
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SyncPhase(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    COMPLETED = "completed"
    ERROR = "error"


class SyncEventKind(str, Enum):
    STARTED = "started"
    PROGRESS = "progress"
    COMPLETE = "complete"
    ERROR = "error"


class ResumeMode(str, Enum):
    """How a run picks its first page."""
    FULL = "full"                # forced: walk everything, discard progress
    RESUME = "resume"            # continue from a persisted cursor
    INCREMENTAL = "incremental"  # only orders newer than the latest stored id


class SyncStatus(BaseModel):
    """Durable sync state for one shop."""
    phase: SyncPhase = SyncPhase.IDLE
    synced_count: int = 0
    total_count: Optional[int] = None
    resume_cursor: Optional[str] = None
    last_completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    last_order_id: Optional[str] = None
    updated_at: Optional[datetime] = None


class FullSyncStatus(SyncStatus):
    """Sync status plus fields derived from the order store."""
    cached_order_count: int = 0
    sync_required: bool = False
    in_progress: bool = False


class SyncEvent(BaseModel):
    """One-shot progress message for live listeners. Never persisted."""
    model_config = ConfigDict(frozen=True)

    kind: SyncEventKind
    shop: str
    synced: int = 0
    total: Optional[int] = None
    message: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "shop": self.shop,
            "synced": self.synced,
            "total": self.total,
            "message": self.message,
        }


class OrderPage(BaseModel):
    """One page of orders returned by the remote API."""
    orders: List[Dict[str, Any]] = Field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False


class SyncPlan(BaseModel):
    """Starting point of a run, decided once by start_sync."""
    mode: ResumeMode
    cursor: Optional[str] = None
    since_id: Optional[str] = None
    synced_count: int = 0


class SyncStartResult(BaseModel):
    accepted: bool
    message: str


# ---------------------------------------------------------------------------
# API models
# ---------------------------------------------------------------------------

class SyncStartRequest(BaseModel):
    shop: Optional[str] = None
    force: bool = False


class SyncActionResponse(BaseModel):
    """Response of start/cancel actions."""
    success: bool
    message: str


class RecentOrdersSyncStatus(BaseModel):
    status: SyncPhase
    synced_orders: int
    total_orders: Optional[int]
    last_sync_at: Optional[datetime]
    sync_required: bool


class RecentOrdersResponse(BaseModel):
    success: bool = True
    count: int
    orders: List[Dict[str, Any]]
    sync_status: RecentOrdersSyncStatus


class FullSyncStatusResponse(FullSyncStatus):
    success: bool = True
