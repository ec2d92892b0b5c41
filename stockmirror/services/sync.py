from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy.orm import Session

from stockmirror.catalog.client import CatalogClient
from stockmirror.models import SyncRun
from stockmirror.models.entities import SYNC_ERROR, SYNC_SUCCESS
from stockmirror.schemas.sync import SyncRunOut, SyncStatusOut
from stockmirror.services.mirror import MirrorStore

logger = logging.getLogger(__name__)


def _isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    # SQLite hands back naive datetimes; they were written as UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def sync_run_out(run: SyncRun) -> SyncRunOut:
    started = _isoformat(run.started_at) or ""
    finished = _isoformat(run.finished_at)
    return SyncRunOut(
        id=run.id,
        status=run.status,
        items_fetched=run.items_fetched,
        items_deleted=run.items_deleted,
        error=run.error,
        started_at=started,
        finished_at=finished,
    )


def get_sync_status(db: Session) -> SyncStatusOut:
    run = MirrorStore(db).latest_sync_run()
    return SyncStatusOut(latest_sync=sync_run_out(run) if run else None)


class SyncPhase(str, Enum):
    START = "start"
    FETCHING = "fetching"
    UPSERTING = "upserting"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class SyncSummary:
    run: SyncRun
    items_fetched: int
    items_created: int
    items_updated: int
    items_deleted: int

    @property
    def message(self) -> str:
        message = f"Successfully synced {self.items_fetched} items"
        if self.items_deleted:
            message += f" and deleted {self.items_deleted} removed items"
        return message


class FullSyncOrchestrator:
    """Mirror the whole remote catalog: upsert everything fetched, then drop what was not."""

    def __init__(self, db: Session, client: CatalogClient) -> None:
        self.db = db
        self.client = client
        self.store = MirrorStore(db)
        self.phase = SyncPhase.START

    def run(self) -> SyncSummary:
        run = self.store.create_sync_run()
        logger.info("Sync run %s started", run.id)
        items_fetched = 0
        created = 0
        updated = 0
        deleted = 0

        try:
            self.phase = SyncPhase.FETCHING
            items = self.client.fetch_all_items()
            items_fetched = len(items)

            self.phase = SyncPhase.UPSERTING
            for remote in items:
                if self.store.upsert_item(remote):
                    created += 1
                else:
                    updated += 1

            # Only after every upsert has landed.
            deleted = self.store.delete_items_not_in(remote.id for remote in items)
            if deleted:
                logger.info("Deleted %s items that no longer exist remotely", deleted)

            self.store.update_sync_run(run, SYNC_SUCCESS, items_fetched=items_fetched, items_deleted=deleted)
            self.phase = SyncPhase.SUCCESS
        except Exception as exc:
            self.phase = SyncPhase.ERROR
            self.db.rollback()
            self.store.update_sync_run(
                run,
                SYNC_ERROR,
                items_fetched=items_fetched,
                items_deleted=deleted,
                error=str(exc) or exc.__class__.__name__,
            )
            logger.error("Sync run %s failed: %s", run.id, exc)
            raise

        logger.info(
            "Sync run %s finished: fetched=%s new=%s updated=%s deleted=%s",
            run.id,
            items_fetched,
            created,
            updated,
            deleted,
        )
        return SyncSummary(
            run=run,
            items_fetched=items_fetched,
            items_created=created,
            items_updated=updated,
            items_deleted=deleted,
        )
