from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from sqlalchemy import delete, exists, func, or_, select
from sqlalchemy.orm import Session

from stockmirror.catalog.base import RemoteItem
from stockmirror.matching.engine import MissingTagItem
from stockmirror.matching.normalization import fuzzy_match
from stockmirror.models import CatalogItem, CatalogItemTag, SyncRun
from stockmirror.models.entities import SYNC_IN_PROGRESS

DELETE_CHUNK_SIZE = 500

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


class MirrorStore:
    """Local relational cache of the remote catalog plus the sync-run log.

    Every write method commits on its own; callers never get a transaction
    spanning a whole sync or batch.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_id(self, item_id: str) -> CatalogItem | None:
        return self.db.get(CatalogItem, item_id)

    def find_by_sku(self, sku: str) -> CatalogItem | None:
        return self.db.execute(select(CatalogItem).where(CatalogItem.sku == sku)).scalar_one_or_none()

    def upsert_item(self, remote: RemoteItem) -> bool:
        """Insert or overwrite the mirror row for ``remote``; returns True when the row is new.

        A different row still holding the same SKU is deleted first.
        """
        if remote.sku:
            stale = self.find_by_sku(remote.sku)
            if stale is not None and stale.id != remote.id:
                logger.info("SKU %s moved from item %s to %s; dropping stale row", remote.sku, stale.id, remote.id)
                self.db.delete(stale)
                self.db.flush()

        item = self.find_by_id(remote.id)
        is_new = item is None
        if item is None:
            item = CatalogItem(id=remote.id)
            self.db.add(item)

        category = remote.primary_category
        item.name = remote.name
        item.price = remote.price
        item.cost = remote.cost
        item.sku = remote.sku
        item.code = remote.code
        item.stock_count = remote.stock_count
        item.available = remote.available
        item.category_id = category.id if category else None
        item.category_name = category.name if category else None
        item.modified_time = remote.modified_time if remote.modified_time is not None else _now_ms()
        item.last_synced = datetime.now(timezone.utc)
        item.set_tags(remote.tag_ids)

        self.db.commit()
        return is_new

    def delete_item(self, item_id: str) -> bool:
        item = self.find_by_id(item_id)
        if item is None:
            return False
        self.db.delete(item)
        self.db.commit()
        return True

    def delete_items_not_in(self, keep_ids: Iterable[str]) -> int:
        keep = set(keep_ids)
        stale_ids = [item_id for item_id in self.db.scalars(select(CatalogItem.id)) if item_id not in keep]
        for start in range(0, len(stale_ids), DELETE_CHUNK_SIZE):
            chunk = stale_ids[start : start + DELETE_CHUNK_SIZE]
            self.db.execute(delete(CatalogItemTag).where(CatalogItemTag.item_id.in_(chunk)))
            self.db.execute(delete(CatalogItem).where(CatalogItem.id.in_(chunk)))
        self.db.commit()
        self.db.expire_all()
        return len(stale_ids)

    def set_stock(self, item_id: str, stock_count: int) -> bool:
        item = self.find_by_id(item_id)
        if item is None:
            return False
        item.stock_count = stock_count
        item.last_synced = datetime.now(timezone.utc)
        self.db.commit()
        return True

    def add_tag(self, item_id: str, tag_id: str) -> bool:
        item = self.find_by_id(item_id)
        if item is None:
            return False
        added = item.add_tag(tag_id)
        if added:
            self.db.commit()
        return added

    def refresh_from_tag_scope(self, tag_id: str, items: Sequence[RemoteItem]) -> int:
        """Refresh existing rows from a tag-scoped fetch.

        Tag-scoped payloads carry no categories or tag lists, so only scalar
        fields are touched, and only when the remote version is not older
        than the mirrored one.
        """
        refreshed = 0
        for remote in items:
            item = self.find_by_id(remote.id)
            if item is None:
                continue
            if remote.modified_time is not None and remote.modified_time < (item.modified_time or 0):
                logger.debug("Skipping refresh of %s; mirror holds a newer version", remote.id)
                continue
            if remote.sku and remote.sku != item.sku:
                owner = self.find_by_sku(remote.sku)
                if owner is not None and owner.id != item.id:
                    continue

            item.name = remote.name or item.name
            item.price = remote.price
            item.sku = remote.sku
            item.code = remote.code
            item.stock_count = remote.stock_count
            item.available = remote.available
            if remote.modified_time is not None:
                item.modified_time = remote.modified_time
            item.last_synced = datetime.now(timezone.utc)
            item.add_tag(tag_id)
            # Later rows in this fetch must see the SKU this row now holds.
            self.db.flush()
            refreshed += 1
        self.db.commit()
        return refreshed

    def find_missing_tag_items(
        self,
        tag_id: str,
        identifiers: Sequence[str] | None = None,
        names: Sequence[str] | None = None,
    ) -> list[MissingTagItem]:
        """Mirror items lacking ``tag_id`` that match any CSV identifier (fuzzy) or name (contains)."""
        lacks_tag = ~exists().where(CatalogItemTag.item_id == CatalogItem.id, CatalogItemTag.tag_id == tag_id)
        found: dict[str, CatalogItem] = {}

        wanted = [value for value in identifiers or [] if value and value.strip()]
        if wanted:
            candidates = self.db.scalars(
                select(CatalogItem)
                .where(lacks_tag, or_(CatalogItem.sku.is_not(None), CatalogItem.code.is_not(None)))
                .order_by(CatalogItem.name)
            )
            for item in candidates:
                if any(fuzzy_match(value, item.sku) or fuzzy_match(value, item.code) for value in wanted):
                    found.setdefault(item.id, item)

        for name in names or []:
            term = name.strip().lower()
            if not term:
                continue
            rows = self.db.scalars(
                select(CatalogItem)
                .where(lacks_tag, func.lower(CatalogItem.name).contains(term, autoescape=True))
                .order_by(CatalogItem.name)
            )
            for item in rows:
                found.setdefault(item.id, item)

        return [MissingTagItem(item_id=item.id, name=item.name, sku=item.sku) for item in found.values()]

    def create_sync_run(self) -> SyncRun:
        run = SyncRun(status=SYNC_IN_PROGRESS, items_fetched=0, items_deleted=0)
        self.db.add(run)
        self.db.commit()
        return run

    def update_sync_run(
        self,
        run: SyncRun,
        status: str,
        items_fetched: int,
        items_deleted: int = 0,
        error: str | None = None,
    ) -> SyncRun:
        if run.status != SYNC_IN_PROGRESS:
            raise ValueError(f"Sync run {run.id} already finished with status {run.status}")
        run.status = status
        run.items_fetched = items_fetched
        run.items_deleted = items_deleted
        run.error = error
        run.finished_at = datetime.now(timezone.utc)
        self.db.commit()
        return run

    def latest_sync_run(self) -> SyncRun | None:
        return self.db.execute(select(SyncRun).order_by(SyncRun.id.desc()).limit(1)).scalar_one_or_none()
