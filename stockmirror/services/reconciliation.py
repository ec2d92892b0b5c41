"""Operator-driven CSV reconciliation sessions.

A session holds one parsed vendor CSV, the chosen vendor rule and column
mapping, and the latest tag-scoped remote item list. Each *pass* optionally
re-fetches the tag-scoped items, runs missing-tag detection against the
mirror, then matches every CSV row. Only one pass runs at a time; a pass
requested while another is in flight is folded into a single follow-up pass.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from uuid import uuid4

from stockmirror.catalog.base import RemoteItem
from stockmirror.catalog.client import CatalogClient
from stockmirror.core.config import get_settings
from stockmirror.core.errors import NotFoundError, ValidationError
from stockmirror.matching.csv_input import ColumnGuess, ParsedCsv, infer_columns, parse_csv
from stockmirror.matching.engine import ColumnMapping, MatchMethod, ReconciliationEngine, ReconciliationResult
from stockmirror.matching.vendors import VendorRule, get_vendor_rule
from stockmirror.schemas.reconciliation import (
    ApplyReportOut,
    ColumnGuessOut,
    MatchedRowOut,
    MissingTagOut,
    SessionOut,
    StockUpdateFailureOut,
    StockUpdateSuccessOut,
    SuggestionOut,
    UnmatchedRowOut,
)
from stockmirror.services.mirror import MirrorStore
from stockmirror.services.stock import BulkApplyReport, BulkStockApplier

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    MATCHING = "matching"


@dataclass
class _PendingPass:
    requested: bool = False
    refetch: bool = False


class ReconciliationSession:
    def __init__(self, tag_id: str, csv: ParsedCsv, mapping: ColumnMapping, rule: VendorRule) -> None:
        if not tag_id:
            raise ValidationError("Please select a vendor tag")
        self.id = str(uuid4())
        self.tag_id = tag_id
        self.csv = csv
        self.mapping = mapping
        self.rule = rule
        self.columns: ColumnGuess = infer_columns(csv.headers)
        self.state = SessionState.IDLE
        self.remote_items: list[RemoteItem] = []
        self.result = ReconciliationResult()
        self.mapping_error: str | None = None
        self.report: BulkApplyReport | None = None
        self.closed = False
        self.passes_run = 0
        self.touched_at = time.monotonic()

        self._guard = threading.Lock()
        self._running = False
        self._pending = _PendingPass()

    def update_mapping(self, mapping: ColumnMapping, rule: VendorRule) -> None:
        for column in (mapping.identifier_column, mapping.stock_column):
            if column and column not in self.csv.headers:
                raise ValidationError(f"Unknown CSV column: {column}")
        self.mapping = mapping
        self.rule = rule

    def run_pass(self, store: MirrorStore, client: CatalogClient, refetch: bool = False) -> ReconciliationResult | None:
        """Run a fetch/detect/match pass; returns None when deferred behind a running pass."""
        with self._guard:
            if self._running:
                self._pending.requested = True
                self._pending.refetch = self._pending.refetch or refetch
                logger.debug("Session %s busy; deferring pass", self.id)
                return None
            self._running = True

        try:
            while True:
                self._execute_pass(store, client, refetch)
                with self._guard:
                    if not self._pending.requested:
                        self.state = SessionState.IDLE
                        self._running = False
                        break
                    refetch = self._pending.refetch
                    self._pending = _PendingPass()
        except Exception:
            with self._guard:
                self.state = SessionState.IDLE
                self._running = False
                self._pending = _PendingPass()
            raise
        return self.result

    def _execute_pass(self, store: MirrorStore, client: CatalogClient, refetch: bool) -> None:
        if refetch:
            self.state = SessionState.FETCHING
            self.remote_items = client.fetch_items_by_tag(self.tag_id)
            store.refresh_from_tag_scope(self.tag_id, self.remote_items)

        self.state = SessionState.MATCHING
        self.passes_run += 1
        result = ReconciliationResult()
        try:
            engine = ReconciliationEngine(self.rule, self.mapping)
        except ValidationError as exc:
            self.mapping_error = str(exc)
            self.result = result
            return
        self.mapping_error = None

        values = engine.identifier_values(self.csv.rows)
        if self.mapping.method == MatchMethod.UPC:
            candidates = store.find_missing_tag_items(self.tag_id, identifiers=values)
        else:
            candidates = store.find_missing_tag_items(self.tag_id, names=values)

        result = engine.match(self.csv.rows, self.remote_items)
        result.missing_tag = engine.exclude_reconciled(candidates, self.remote_items)
        self.result = result

    def add_tag(self, item_id: str, store: MirrorStore, client: CatalogClient) -> ReconciliationResult | None:
        client.add_tag_to_item(item_id, self.tag_id)
        store.add_tag(item_id, self.tag_id)
        return self.run_pass(store, client, refetch=True)

    def apply(self, applier: BulkStockApplier) -> BulkApplyReport:
        if self.state != SessionState.IDLE:
            raise ValidationError("Matching is still running; try again shortly")
        if not self.result.matched:
            raise ValidationError("No items to update")
        report = applier.apply(self.result.matched)
        self.report = report
        self.closed = report.all_succeeded
        return report


def open_session(
    store: MirrorStore,
    client: CatalogClient,
    tag_id: str,
    csv_text: str | bytes,
    vendor: str | None = None,
    method: MatchMethod = MatchMethod.UPC,
    identifier_column: str | None = None,
    stock_column: str | None = None,
) -> ReconciliationSession:
    parsed = parse_csv(csv_text)
    guess = infer_columns(parsed.headers)
    if identifier_column is None:
        identifier_column = guess.upc_column if method == MatchMethod.UPC else guess.name_column
    mapping = ColumnMapping(
        method=method,
        identifier_column=identifier_column or "",
        stock_column=stock_column if stock_column is not None else guess.stock_column,
    )
    session = ReconciliationSession(tag_id=tag_id, csv=parsed, mapping=mapping, rule=get_vendor_rule(vendor))
    session.update_mapping(mapping, session.rule)
    session.run_pass(store, client, refetch=True)
    return session


class ReconciliationSessionRegistry:
    """In-process session map. Sessions untouched for longer than the TTL are dropped on access."""

    def __init__(self, ttl_seconds: float | None = None) -> None:
        self._sessions: dict[str, ReconciliationSession] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds

    @property
    def ttl_seconds(self) -> float:
        if self._ttl_seconds is not None:
            return self._ttl_seconds
        return get_settings().reconciliation_session_ttl_seconds

    def add(self, session: ReconciliationSession) -> ReconciliationSession:
        with self._lock:
            now = time.monotonic()
            self._evict_expired(now)
            session.touched_at = now
            self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> ReconciliationSession:
        with self._lock:
            now = time.monotonic()
            self._evict_expired(now)
            session = self._sessions.get(session_id)
            if session is not None:
                session.touched_at = now
        if session is None:
            raise NotFoundError("Reconciliation session not found", details={"session_id": session_id})
        return session

    def remove(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, session in self._sessions.items() if now - session.touched_at > self.ttl_seconds]
        for key in expired:
            del self._sessions[key]
        if expired:
            logger.info("Evicted %s idle reconciliation sessions", len(expired))


session_registry = ReconciliationSessionRegistry()


def apply_report_out(report: BulkApplyReport) -> ApplyReportOut:
    return ApplyReportOut(
        success_count=report.success_count,
        failure_count=report.failure_count,
        message=report.message,
        successes=[StockUpdateSuccessOut(**vars(success)) for success in report.successes],
        failures=[StockUpdateFailureOut(**vars(failure)) for failure in report.failures],
    )


def session_out(session: ReconciliationSession) -> SessionOut:
    result = session.result
    return SessionOut(
        id=session.id,
        tag_id=session.tag_id,
        state=session.state.value,
        vendor=session.rule.name,
        method=session.mapping.method,
        identifier_column=session.mapping.identifier_column,
        stock_column=session.mapping.stock_column,
        headers=session.csv.headers,
        inferred_columns=ColumnGuessOut(**vars(session.columns)),
        mapping_error=session.mapping_error,
        remote_item_count=len(session.remote_items),
        matched=[
            MatchedRowOut(
                item_id=row.item.id,
                item_name=row.item.name,
                sku=row.item.sku,
                csv_row=row.csv_row,
                current_stock=row.current_stock,
                delta=row.delta,
                new_stock=row.new_stock,
            )
            for row in result.matched
        ],
        unmatched=[
            UnmatchedRowOut(
                csv_row=row.csv_row,
                search_value=row.search_value,
                method=row.method,
                suggestion=SuggestionOut(**vars(row.suggestion)) if row.suggestion else None,
            )
            for row in result.unmatched
        ],
        missing_tag=[MissingTagOut(**vars(item)) for item in result.missing_tag],
        report=apply_report_out(session.report) if session.report else None,
        closed=session.closed,
    )
