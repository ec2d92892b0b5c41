from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from stockmirror.catalog.base import RemoteItem, RemoteTag
from stockmirror.core.config import Settings, get_settings
from stockmirror.core.errors import BadRequestError, RateLimited, UpstreamError, UpstreamServerError, ValidationError

ITEM_EXPANSIONS = "categories,tags,itemStock"
TAG_ITEM_EXPANSIONS = "itemStock"

logger = logging.getLogger(__name__)


@dataclass
class StockWriteOutcome:
    item_id: str
    stock_count: int
    attempts: int
    rate_limited: bool


class CatalogClient:
    """Typed wrapper over the remote catalog's item, tag and stock endpoints."""

    def __init__(
        self,
        merchant_id: str,
        api_key: str,
        base_url: str = "https://api.clover.com/v3",
        timeout_seconds: float = 30.0,
        page_size: int = 1000,
        page_delay_seconds: float = 0.1,
        stock_retry_attempts: int = 3,
        stock_retry_backoff_seconds: float = 2.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not merchant_id or not api_key:
            raise ValueError("Catalog merchant ID and API key are required")

        self.merchant_id = merchant_id
        self.page_size = max(1, page_size)
        self.page_delay_seconds = max(0.0, page_delay_seconds)
        self.stock_retry_attempts = max(0, stock_retry_attempts)
        self.stock_retry_backoff_seconds = max(0.0, stock_retry_backoff_seconds)
        self.client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}/merchants/{merchant_id}",
            timeout=timeout_seconds,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None, transport: httpx.BaseTransport | None = None) -> CatalogClient:
        settings = settings or get_settings()
        return cls(
            merchant_id=settings.catalog_merchant_id,
            api_key=settings.catalog_api_key,
            base_url=settings.catalog_base_url,
            timeout_seconds=settings.catalog_timeout_seconds,
            page_size=settings.catalog_page_size,
            page_delay_seconds=settings.catalog_page_delay_seconds,
            stock_retry_attempts=settings.stock_retry_attempts,
            stock_retry_backoff_seconds=settings.stock_retry_backoff_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> CatalogClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def fetch_all_items(self) -> list[RemoteItem]:
        items: list[RemoteItem] = []
        offset = 0
        while True:
            payload = self._get_json(
                "/items",
                params={"limit": self.page_size, "offset": offset, "expand": ITEM_EXPANSIONS},
            )
            page = self._elements(payload)
            items.extend(RemoteItem.from_payload(element) for element in page)
            logger.debug("Fetched %s items at offset %s", len(page), offset)

            if len(page) < self.page_size:
                break
            offset += self.page_size
            if self.page_delay_seconds > 0:
                time.sleep(self.page_delay_seconds)
        return items

    def fetch_items_by_tag(self, tag_id: str) -> list[RemoteItem]:
        if not tag_id:
            raise ValidationError("tag_id is required")
        payload = self._get_json(
            f"/tags/{tag_id}/items",
            params={"limit": self.page_size, "expand": TAG_ITEM_EXPANSIONS},
        )
        return [RemoteItem.from_payload(element) for element in self._elements(payload)]

    def fetch_tags(self) -> list[RemoteTag]:
        try:
            payload = self._get_json("/tags")
        except UpstreamError as exc:
            logger.warning("Fetching tags failed: %s", exc)
            return []
        return [
            RemoteTag(id=str(element["id"]), name=str(element.get("name") or ""))
            for element in self._elements(payload)
            if element.get("id")
        ]

    def add_tag_to_item(self, item_id: str, tag_id: str) -> None:
        if not item_id or not tag_id:
            raise ValidationError("item_id and tag_id are required")
        body = {"elements": [{"tag": {"id": tag_id}, "item": {"id": item_id}}]}
        response = self._send("POST", "/tag_items", json=body)
        if not response.is_success:
            raise self._error_for(response, f"Adding tag {tag_id} to item {item_id} failed")
        logger.info("Associated tag %s with item %s", tag_id, item_id)

    def update_item_stock(self, item_id: str, stock_count: int) -> StockWriteOutcome:
        """Set an item's absolute stock quantity.

        429 responses are retried with linear backoff (2s, 4s, 6s by default);
        400 and 5xx fail immediately since a repeat cannot succeed.
        """
        if not item_id:
            raise ValidationError("item_id is required")
        if isinstance(stock_count, bool) or not isinstance(stock_count, int):
            raise ValidationError("stock_count must be an integer")
        if stock_count < 0:
            raise ValidationError("stock_count must be a non-negative number")

        rate_limited = False
        attempts = self.stock_retry_attempts + 1
        for attempt in range(attempts):
            response = self._send("POST", f"/item_stocks/{item_id}", json={"quantity": stock_count})
            if response.is_success:
                return StockWriteOutcome(
                    item_id=item_id,
                    stock_count=stock_count,
                    attempts=attempt + 1,
                    rate_limited=rate_limited,
                )

            if response.status_code == 429:
                rate_limited = True
                if attempt >= attempts - 1:
                    raise RateLimited(
                        f"Rate limited updating stock for item {item_id} after {attempts} attempts",
                        status_code=429,
                        body=response.text,
                    )
                wait = self.stock_retry_backoff_seconds * (attempt + 1)
                logger.warning(
                    "Rate limited updating stock for %s, waiting %.1fs (attempt %s/%s)",
                    item_id,
                    wait,
                    attempt + 1,
                    attempts,
                )
                if wait > 0:
                    time.sleep(wait)
                continue

            raise self._error_for(response, f"Updating stock for item {item_id} failed")
        raise RuntimeError(f"Unreachable retry state for item {item_id}")

    def _get_json(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        response = self._send("GET", path, params=params)
        if not response.is_success:
            raise self._error_for(response, f"GET {path} failed")
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(f"GET {path} returned invalid JSON", status_code=response.status_code, body=response.text) from exc
        return payload if isinstance(payload, dict) else {"elements": payload}

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self.client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            raise UpstreamError(f"{method} {path} failed: {exc}") from exc

    @staticmethod
    def _elements(payload: dict[str, Any]) -> list[dict[str, Any]]:
        elements = payload.get("elements") or []
        return [element for element in elements if isinstance(element, dict)]

    @staticmethod
    def _error_for(response: httpx.Response, message: str) -> UpstreamError:
        status = response.status_code
        detail = f"{message}: {status} {response.reason_phrase} - {response.text}"
        if status == 400:
            return BadRequestError(detail, status_code=status, body=response.text)
        if status == 429:
            return RateLimited(detail, status_code=status, body=response.text)
        if status >= 500:
            return UpstreamServerError(detail, status_code=status, body=response.text)
        return UpstreamError(detail, status_code=status, body=response.text)
