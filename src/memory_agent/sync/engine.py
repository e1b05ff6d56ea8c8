"""
Sync engine.

Pushes a user's unsynced records to the remote store, marks what the
remote acknowledged and prunes the local buffer. Triggered by the buffer
threshold, a periodic timer, or on demand; at most one sync runs at a
time and overlapping triggers are coalesced.
"""

import asyncio
import logging
from typing import List, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from memory_agent.client.context import ClientContext
from memory_agent.client.identity import IdentityProvider
from memory_agent.client.remote import RemoteMemoryClient
from memory_agent.config import MemoryAgentSettings
from memory_agent.errors import AuthenticationRequired, MemoryAgentError
from memory_agent.models import IngestItem, IngestResponse, MemoryRecord, UserIdentity
from memory_agent.sync.models import SyncReport, SyncState

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "memory-agent-sync"


class SyncEngine:
    def __init__(
        self,
        context: ClientContext,
        remote: RemoteMemoryClient,
        identity_provider: IdentityProvider,
        settings: Optional[MemoryAgentSettings] = None,
    ):
        self.context = context
        self.remote = remote
        self.identity_provider = identity_provider
        self.settings = settings or context.settings
        self._lock = asyncio.Lock()
        self._state = SyncState.UNAUTHENTICATED
        self._tasks: Set[asyncio.Task] = set()
        self._scheduler: Optional[AsyncIOScheduler] = None

        context.buffer.set_threshold_listener(lambda: self.request_sync("buffer_full"))

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_syncing(self) -> bool:
        return self._lock.locked()

    def request_sync(self, reason: str = "manual") -> Optional[asyncio.Task]:
        """
        Schedule a sync without waiting for it.

        Returns:
            The scheduled task, or None if a sync is already running
        """
        if self._lock.locked():
            logger.debug(f"Sync already running, coalescing '{reason}' trigger")
            return None

        task = asyncio.get_running_loop().create_task(self.sync(reason))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def sync(self, reason: str = "manual") -> SyncReport:
        """
        Run one sync for the cached (or freshly resolved) user.

        Never raises; the outcome is reported in the returned SyncReport.
        """
        if self._lock.locked():
            logger.debug(f"Sync already running, coalescing '{reason}' trigger")
            return SyncReport(status="coalesced", reason=reason)

        async with self._lock:
            try:
                report = await self._run(reason)
            except Exception as e:
                logger.error(f"Sync ({reason}) failed unexpectedly: {e}")
                report = SyncReport(status="failed", reason=reason, error=str(e))
            finally:
                if self._state == SyncState.SYNCING:
                    self._state = SyncState.IDLE
                elif self._state == SyncState.AUTHENTICATING:
                    self._state = SyncState.UNAUTHENTICATED

        if report.status == "synced" and self.context.buffer.needs_flush():
            logger.info("Unsubmitted records remain outside the retention window, syncing again")
            self.request_sync("flush")

        return report

    async def sync_now(self) -> SyncReport:
        return await self.sync("manual")

    async def drain(self) -> None:
        """Wait for scheduled syncs, including any follow-ups they schedule."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _ensure_identity(self) -> Optional[UserIdentity]:
        if self.context.identity is not None:
            self._state = SyncState.IDLE
            return self.context.identity

        self._state = SyncState.AUTHENTICATING
        try:
            identity = await asyncio.wait_for(
                self.identity_provider.get_current_user(),
                timeout=self.settings.request_timeout_seconds,
            )
        except (MemoryAgentError, asyncio.TimeoutError) as e:
            logger.warning(f"Could not resolve identity: {str(e) or e.__class__.__name__}")
            identity = None

        if identity is None:
            self._state = SyncState.UNAUTHENTICATED
            return None

        await self.context.set_identity(identity)
        self._state = SyncState.IDLE
        return identity

    async def _run(self, reason: str) -> SyncReport:
        await self.context.wait_ready()

        identity = await self._ensure_identity()
        if identity is None:
            logger.warning(f"Sync ({reason}) deferred: not authenticated")
            return SyncReport(status="deferred", reason=reason, error="not authenticated")

        self._state = SyncState.SYNCING
        batch = await self.context.buffer.claim_unsynced(identity.email)
        if not batch:
            logger.debug(f"Sync ({reason}): nothing to sync")
            return SyncReport(status="noop", reason=reason)

        logger.info(f"Sync ({reason}): submitting {len(batch)} records for {identity.email}")
        items = [IngestItem.from_record(record) for record in batch]

        try:
            response = await asyncio.wait_for(
                self.remote.ingest(identity.email, items),
                timeout=self.settings.request_timeout_seconds,
            )
        except AuthenticationRequired as e:
            logger.warning(f"Sync ({reason}) rejected, identity expired: {e}")
            await self.context.clear_identity()
            self._state = SyncState.UNAUTHENTICATED
            return SyncReport(status="deferred", reason=reason, submitted=len(batch), error=str(e))
        except asyncio.TimeoutError:
            logger.error(f"Sync ({reason}) timed out, will retry on next trigger")
            return SyncReport(status="failed", reason=reason, submitted=len(batch), error="timeout")
        except MemoryAgentError as e:
            logger.error(f"Sync ({reason}) failed, will retry on next trigger: {e}")
            return SyncReport(status="failed", reason=reason, submitted=len(batch), error=str(e))

        if not response.success:
            logger.error(f"Sync ({reason}): remote reported failure")
            return SyncReport(
                status="failed",
                reason=reason,
                submitted=len(batch),
                outcomes=response.results,
                error="remote reported failure",
            )

        synced_ids = self._acknowledged(batch, response)
        dropped = await self.context.buffer.prune_after_sync(synced_ids)

        logger.info(
            f"Sync ({reason}) done: stored={response.stored}, skipped={response.skipped}, "
            f"errors={response.errors}, marked={len(synced_ids)}, dropped={len(dropped)}"
        )
        return SyncReport(
            status="synced",
            reason=reason,
            submitted=len(batch),
            synced_ids=synced_ids,
            outcomes=response.results,
            dropped=len(dropped),
        )

    def _acknowledged(self, batch: List[MemoryRecord], response: IngestResponse) -> List[str]:
        """IDs to mark synced: those reported stored, or the whole batch without per-item results."""
        if self.settings.mark_batch_on_success or not response.results:
            return [record.id for record in batch]

        submitted = {record.id for record in batch}
        return [
            outcome.client_id
            for outcome in response.results
            if outcome.status == "stored" and outcome.client_id in submitted
        ]

    def start(self) -> None:
        """Start the periodic sync timer. Must be called from a running event loop."""
        if self._scheduler is not None:
            return
        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.sync,
            trigger="interval",
            seconds=self.settings.sync_interval_seconds,
            id=SYNC_JOB_ID,
            kwargs={"reason": "timer"},
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(f"Sync timer started (every {self.settings.sync_interval_seconds}s)")

    async def shutdown(self) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Sync timer stopped")

        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
