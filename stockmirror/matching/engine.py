from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum

from rapidfuzz import fuzz, process

from stockmirror.catalog.base import RemoteItem
from stockmirror.core.errors import ValidationError
from stockmirror.matching.normalization import fuzzy_match, normalize_text
from stockmirror.matching.vendors import DEFAULT_RULE_NAME, VendorRule, calculate_stock

NAME_SUGGESTION_CUTOFF = 80.0


class MatchMethod(str, Enum):
    UPC = "upc"
    NAME = "name"


@dataclass
class ColumnMapping:
    method: MatchMethod
    identifier_column: str
    stock_column: str | None = None

    def validate(self, rule: VendorRule) -> None:
        if not self.identifier_column:
            label = "UPC" if self.method == MatchMethod.UPC else "Name"
            raise ValidationError(f"Please select {label} column")
        if rule.name == DEFAULT_RULE_NAME and not self.stock_column:
            raise ValidationError("Please select stock column")


@dataclass
class Suggestion:
    item_id: str
    name: str
    score: float


@dataclass
class MatchedRow:
    csv_row: dict[str, str]
    item: RemoteItem
    current_stock: int
    delta: int
    new_stock: int


@dataclass
class UnmatchedRow:
    csv_row: dict[str, str]
    search_value: str
    method: MatchMethod
    suggestion: Suggestion | None = None


@dataclass
class MissingTagItem:
    item_id: str
    name: str
    sku: str | None


@dataclass
class ReconciliationResult:
    matched: list[MatchedRow] = field(default_factory=list)
    unmatched: list[UnmatchedRow] = field(default_factory=list)
    missing_tag: list[MissingTagItem] = field(default_factory=list)

    @property
    def total_delta(self) -> int:
        return sum(row.delta for row in self.matched)


class ReconciliationEngine:
    """Matches vendor CSV rows against the remote items carrying the vendor tag."""

    def __init__(self, rule: VendorRule, mapping: ColumnMapping) -> None:
        mapping.validate(rule)
        self.rule = rule
        self.mapping = mapping

    def search_value(self, row: Mapping[str, str]) -> str:
        return str(row.get(self.mapping.identifier_column) or "").strip()

    def identifier_values(self, rows: Iterable[Mapping[str, str]]) -> list[str]:
        values: list[str] = []
        for row in rows:
            value = self.search_value(row)
            if value and value not in values:
                values.append(value)
        return values

    def match(self, rows: Sequence[Mapping[str, str]], items: Sequence[RemoteItem]) -> ReconciliationResult:
        result = ReconciliationResult()
        for row in rows:
            value = self.search_value(row)
            if not value:
                continue

            item = self._find_item(value, items)
            if item is None:
                result.unmatched.append(
                    UnmatchedRow(
                        csv_row=dict(row),
                        search_value=value,
                        method=self.mapping.method,
                        suggestion=self._suggest(value, items),
                    )
                )
                continue

            delta = calculate_stock(self.rule, row, self.mapping.stock_column)
            current = item.stock_count
            result.matched.append(
                MatchedRow(csv_row=dict(row), item=item, current_stock=current, delta=delta, new_stock=current + delta)
            )
        return result

    def _find_item(self, value: str, items: Sequence[RemoteItem]) -> RemoteItem | None:
        if self.mapping.method == MatchMethod.UPC:
            for item in items:
                if item.sku is not None and item.sku.strip() == value:
                    return item
            for item in items:
                if item.code is not None and item.code.strip() == value:
                    return item
            return None

        lowered = value.lower()
        for item in items:
            name = item.name.strip().lower()
            if name and (lowered in name or name in lowered):
                return item
        return None

    def _suggest(self, value: str, items: Sequence[RemoteItem]) -> Suggestion | None:
        if self.mapping.method == MatchMethod.UPC:
            for item in items:
                if fuzzy_match(value, item.sku) or fuzzy_match(value, item.code):
                    return Suggestion(item_id=item.id, name=item.name, score=100.0)
            return None

        choices = {item.id: normalize_text(item.name) for item in items if item.name}
        if not choices:
            return None
        best = process.extractOne(
            normalize_text(value),
            choices,
            scorer=fuzz.token_set_ratio,
            score_cutoff=NAME_SUGGESTION_CUTOFF,
        )
        if best is None:
            return None
        _, score, item_id = best
        item = next(candidate for candidate in items if candidate.id == item_id)
        return Suggestion(item_id=item.id, name=item.name, score=float(score))

    @staticmethod
    def exclude_reconciled(candidates: Iterable[MissingTagItem], items: Sequence[RemoteItem]) -> list[MissingTagItem]:
        tagged_ids = {item.id for item in items}
        return [candidate for candidate in candidates if candidate.item_id not in tagged_ids]
