from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def _elements(payload: dict[str, Any], key: str) -> list[dict[str, Any]]:
    block = payload.get(key)
    if isinstance(block, dict):
        elements = block.get("elements")
        if isinstance(elements, list):
            return [element for element in elements if isinstance(element, dict)]
    if isinstance(block, list):
        return [element for element in block if isinstance(element, dict)]
    return []


def _as_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def resolve_stock_count(payload: dict[str, Any]) -> int:
    """Authoritative stock for a raw item payload.

    The expanded ``itemStock`` counter wins whenever it is present; the
    root-level ``stockCount`` is often stale or zero and is only a fallback.
    """
    item_stock = payload.get("itemStock")
    if isinstance(item_stock, dict):
        for key in ("stockCount", "quantity"):
            if item_stock.get(key) is not None:
                return _as_int(item_stock.get(key))
    return _as_int(payload.get("stockCount"))


@dataclass
class RemoteTag:
    id: str
    name: str


@dataclass
class RemoteCategory:
    id: str
    name: str | None


@dataclass
class RemoteItem:
    id: str
    name: str
    price: int
    cost: int | None
    sku: str | None
    code: str | None
    stock_count: int
    available: bool
    modified_time: int | None
    categories: list[RemoteCategory] = field(default_factory=list)
    tag_ids: list[str] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> RemoteItem:
        categories = [
            RemoteCategory(id=str(element["id"]), name=_as_text(element.get("name")))
            for element in _elements(payload, "categories")
            if element.get("id")
        ]
        tag_ids = [str(element["id"]) for element in _elements(payload, "tags") if element.get("id")]
        available = payload.get("available")
        modified_time = payload.get("modifiedTime")
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            price=_as_int(payload.get("price")),
            cost=_as_int(payload.get("cost")) if payload.get("cost") is not None else None,
            sku=_as_text(payload.get("sku")),
            code=_as_text(payload.get("code")),
            stock_count=resolve_stock_count(payload),
            available=True if available is None else bool(available),
            modified_time=_as_int(modified_time) if modified_time is not None else None,
            categories=categories,
            tag_ids=tag_ids,
            raw=payload,
        )

    @property
    def primary_category(self) -> RemoteCategory | None:
        return self.categories[0] if self.categories else None
