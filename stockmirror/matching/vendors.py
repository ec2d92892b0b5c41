"""Per-vendor stock-delta rules for shipment CSVs.

Each rule turns one CSV row into the number of units to add. Rules are
total: anything missing or unparseable contributes 0, and ``calculate_stock``
coerces any exception a rule raises to 0 as well.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass

CsvRow = Mapping[str, str]
StockCalculation = Callable[[CsvRow, str | None], int]

DEFAULT_RULE_NAME = "default"
TRUTHY_MARKS = {"✔", "✓", "true"}
INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VendorRule:
    name: str
    display_name: str
    calculate: StockCalculation


def parse_quantity(value: str | None, default: int = 0) -> int:
    """Integer prefix of ``value`` ("12", " 7 cases" -> 7); ``default`` when there is none."""
    if value is None:
        return default
    match = INT_PREFIX_RE.match(str(value))
    if not match:
        return default
    return int(match.group(1))


def first_present(row: CsvRow, *columns: str) -> str | None:
    for column in columns:
        value = row.get(column)
        if value is not None and str(value).strip() != "":
            return str(value)
    return None


def _non_negative(value: int) -> int:
    return value if value > 0 else 0


def _kehe(row: CsvRow, stock_column: str | None = None) -> int:
    return _non_negative(parse_quantity(first_present(row, "ShipQuantity", "Ship Quantity", "Ship Qty")))


def _coremark(row: CsvRow, stock_column: str | None = None) -> int:
    qty = parse_quantity(first_present(row, "Qty", "QTY", "Quantity"))
    broken_case = (first_present(row, "Broken Case", "BrokenCase") or "").strip()
    if broken_case.lower() in TRUTHY_MARKS:
        return _non_negative(qty)
    unit_size = parse_quantity(first_present(row, "Unit Size", "UnitSize"), default=1) or 1
    return _non_negative(qty * unit_size)


def _walmart(row: CsvRow, stock_column: str | None = None) -> int:
    status = (first_present(row, "Status") or "").strip().lower()
    if status != "shopped":
        return 0
    return _non_negative(parse_quantity(first_present(row, "Quantity", "Qty")))


def _selected_column(row: CsvRow, stock_column: str | None = None) -> int:
    if not stock_column:
        return 0
    return _non_negative(parse_quantity(row.get(stock_column)))


VENDOR_RULES: list[VendorRule] = [
    VendorRule(name="Vendor_Kehe", display_name="Kehe", calculate=_kehe),
    VendorRule(name="Vendor_CoreMark", display_name="CoreMark", calculate=_coremark),
    VendorRule(name="Vendor_Walmart", display_name="Walmart", calculate=_walmart),
    VendorRule(name=DEFAULT_RULE_NAME, display_name="Default (Select Stock Column)", calculate=_selected_column),
]

_RULES_BY_NAME = {rule.name: rule for rule in VENDOR_RULES}


def get_vendor_rule(name: str | None) -> VendorRule:
    return _RULES_BY_NAME.get(name or "", _RULES_BY_NAME[DEFAULT_RULE_NAME])


def calculate_stock(rule: VendorRule, row: CsvRow, stock_column: str | None = None) -> int:
    try:
        value = rule.calculate(row, stock_column)
    except Exception:
        logger.warning("Vendor rule %s failed on row; treating delta as 0", rule.name, exc_info=True)
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return _non_negative(value)
