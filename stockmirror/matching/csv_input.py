from __future__ import annotations

import io
from dataclasses import dataclass

import pandas as pd

from stockmirror.core.errors import ParseError

UPC_HINTS = ("upc", "sku")
NAME_HINTS = ("name", "product")
STOCK_HINTS = ("quantity", "qty", "stock", "shipquantity")


@dataclass
class ParsedCsv:
    headers: list[str]
    rows: list[dict[str, str]]


@dataclass
class ColumnGuess:
    upc_column: str | None = None
    name_column: str | None = None
    stock_column: str | None = None


def parse_csv(content: str | bytes) -> ParsedCsv:
    """Parse a vendor CSV (header row first) into string-keyed rows.

    Every cell stays a string so identifiers keep their leading zeros.
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig", errors="replace")
    if not content or not content.strip():
        raise ParseError("CSV file is empty")

    try:
        raw_header = pd.read_csv(
            io.StringIO(content),
            header=None,
            nrows=1,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            skipinitialspace=True,
        )
        frame = pd.read_csv(
            io.StringIO(content),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            skipinitialspace=True,
        )
    except pd.errors.EmptyDataError as exc:
        raise ParseError("CSV file is empty") from exc
    except (pd.errors.ParserError, UnicodeDecodeError) as exc:
        raise ParseError(f"CSV parsing errors: {exc}") from exc

    seen: set[str] = set()
    for header in (str(value) for value in raw_header.iloc[0]):
        if header in seen:
            raise ParseError(f"Duplicate CSV column: {header}")
        seen.add(header)

    headers = [str(column) for column in frame.columns]
    if frame.empty:
        raise ParseError("CSV file is empty")

    rows = [
        {header: "" if value is None else str(value) for header, value in zip(headers, record)}
        for record in frame.itertuples(index=False, name=None)
    ]
    return ParsedCsv(headers=headers, rows=rows)


def _first_header(headers: list[str], hints: tuple[str, ...]) -> str | None:
    for header in headers:
        lowered = header.lower()
        if any(hint in lowered for hint in hints):
            return header
    return None


def infer_columns(headers: list[str]) -> ColumnGuess:
    return ColumnGuess(
        upc_column=_first_header(headers, UPC_HINTS),
        name_column=_first_header(headers, NAME_HINTS),
        stock_column=_first_header(headers, STOCK_HINTS),
    )
