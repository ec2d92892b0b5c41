from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from stockmirror.catalog.client import CatalogClient
from stockmirror.core.config import get_settings
from stockmirror.core.errors import RateLimited, StockMirrorError
from stockmirror.matching.engine import MatchedRow
from stockmirror.services.mirror import MirrorStore

logger = logging.getLogger(__name__)


@dataclass
class StockUpdateSuccess:
    item_id: str
    item_name: str
    current_stock: int
    delta: int
    new_stock: int


@dataclass
class StockUpdateFailure:
    item_id: str
    item_name: str
    error_message: str


@dataclass
class BulkApplyReport:
    successes: list[StockUpdateSuccess] = field(default_factory=list)
    failures: list[StockUpdateFailure] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.successes)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def all_succeeded(self) -> bool:
        return not self.failures

    @property
    def message(self) -> str:
        if self.all_succeeded:
            return f"Successfully updated stock for {self.success_count} items"
        return f"Updated {self.success_count} items, {self.failure_count} failed"


class BulkStockApplier:
    """Writes confirmed stock levels one row at a time, paced to stay under the remote rate limit."""

    def __init__(
        self,
        client: CatalogClient,
        store: MirrorStore,
        delay_seconds: float | None = None,
        rate_limit_pause_seconds: float | None = None,
    ) -> None:
        settings = get_settings()
        self.client = client
        self.store = store
        self.delay_seconds = settings.apply_delay_seconds if delay_seconds is None else max(0.0, delay_seconds)
        self.rate_limit_pause_seconds = (
            settings.apply_rate_limit_pause_seconds
            if rate_limit_pause_seconds is None
            else max(0.0, rate_limit_pause_seconds)
        )

    def apply(self, rows: Sequence[MatchedRow]) -> BulkApplyReport:
        report = BulkApplyReport()
        saw_rate_limit = False

        for index, row in enumerate(rows):
            if index > 0:
                pause = max(self.delay_seconds, self.rate_limit_pause_seconds) if saw_rate_limit else self.delay_seconds
                if pause > 0:
                    time.sleep(pause)

            item = row.item
            try:
                outcome = self.client.update_item_stock(item.id, row.new_stock)
            except RateLimited as exc:
                saw_rate_limit = True
                self._record_failure(report, row, exc)
                continue
            except StockMirrorError as exc:
                saw_rate_limit = False
                self._record_failure(report, row, exc)
                continue
            except Exception as exc:
                saw_rate_limit = False
                logger.exception("Unexpected error updating stock for %s", item.id)
                self._record_failure(report, row, exc)
                continue

            saw_rate_limit = outcome.rate_limited
            self._write_mirror(item.id, row.new_stock)
            report.successes.append(
                StockUpdateSuccess(
                    item_id=item.id,
                    item_name=item.name,
                    current_stock=row.current_stock,
                    delta=row.delta,
                    new_stock=row.new_stock,
                )
            )

        logger.info("Bulk stock apply finished: %s succeeded, %s failed", report.success_count, report.failure_count)
        return report

    def _record_failure(self, report: BulkApplyReport, row: MatchedRow, exc: Exception) -> None:
        logger.warning("Stock update failed for %s (%s): %s", row.item.id, row.item.name, exc)
        report.failures.append(
            StockUpdateFailure(item_id=row.item.id, item_name=row.item.name, error_message=str(exc) or exc.__class__.__name__)
        )

    def _write_mirror(self, item_id: str, new_stock: int) -> None:
        try:
            if not self.store.set_stock(item_id, new_stock):
                logger.debug("Item %s is not mirrored yet; skipping local stock write", item_id)
        except SQLAlchemyError:
            self.store.db.rollback()
            logger.warning("Remote stock for %s updated but the mirror write failed", item_id, exc_info=True)
