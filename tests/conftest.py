import os

os.environ.setdefault("STOCKMIRROR_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("STOCKMIRROR_CACHE_ENABLED", "false")

from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stockmirror.api.deps import get_catalog_client
from stockmirror.catalog.base import RemoteItem, RemoteTag
from stockmirror.catalog.client import StockWriteOutcome
from stockmirror.core.cache import cache_client
from stockmirror.core.errors import ValidationError
from stockmirror.db.base import Base
from stockmirror.db.session import get_db
from stockmirror.main import app
from stockmirror.services.reconciliation import session_registry
from stockmirror.services.tags import tags_cache_key

MERCHANT_ID = "M123"


def make_item(item_id: str, name: str = "", sku: str | None = None, stock: int = 0, **fields) -> RemoteItem:
    return RemoteItem(
        id=item_id,
        name=name or f"Item {item_id}",
        price=fields.pop("price", 0),
        cost=fields.pop("cost", None),
        sku=sku,
        code=fields.pop("code", None),
        stock_count=stock,
        available=fields.pop("available", True),
        modified_time=fields.pop("modified_time", 1_700_000_000_000),
        **fields,
    )


class FakeCatalogClient:
    """In-memory stand-in for CatalogClient; records every write."""

    def __init__(self) -> None:
        self.merchant_id = MERCHANT_ID
        self.items: list[RemoteItem] = []
        self.tag_items: dict[str, list[RemoteItem]] = {}
        self.tags: list[RemoteTag] = []
        self.tag_writes: list[tuple[str, str]] = []
        self.stock_writes: list[tuple[str, int]] = []
        self.failures: dict[str, Exception] = {}
        self.fetch_all_error: Exception | None = None
        self.tag_fetches = 0
        self.tag_list_fetches = 0

    def fetch_all_items(self) -> list[RemoteItem]:
        if self.fetch_all_error is not None:
            raise self.fetch_all_error
        return list(self.items)

    def fetch_items_by_tag(self, tag_id: str) -> list[RemoteItem]:
        self.tag_fetches += 1
        return list(self.tag_items.get(tag_id, []))

    def fetch_tags(self) -> list[RemoteTag]:
        self.tag_list_fetches += 1
        return list(self.tags)

    def add_tag_to_item(self, item_id: str, tag_id: str) -> None:
        self.tag_writes.append((item_id, tag_id))
        tagged = self.tag_items.setdefault(tag_id, [])
        if all(item.id != item_id for item in tagged):
            source = next((item for item in self.items if item.id == item_id), None)
            tagged.append(source or make_item(item_id))

    def update_item_stock(self, item_id: str, stock_count: int) -> StockWriteOutcome:
        if stock_count < 0:
            raise ValidationError("stock_count must be a non-negative number")
        if item_id in self.failures:
            raise self.failures[item_id]
        self.stock_writes.append((item_id, stock_count))
        return StockWriteOutcome(item_id=item_id, stock_count=stock_count, attempts=1, rate_limited=False)

    def close(self) -> None:
        pass

    def __enter__(self) -> "FakeCatalogClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


@pytest.fixture()
def session() -> Session:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture()
def fake_client() -> FakeCatalogClient:
    return FakeCatalogClient()


@pytest.fixture()
def item_factory() -> Callable[..., RemoteItem]:
    return make_item


@pytest.fixture(autouse=True)
def _reset_shared_state():
    cache_client.delete(tags_cache_key(MERCHANT_ID))
    session_registry.clear()
    yield
    cache_client.delete(tags_cache_key(MERCHANT_ID))
    session_registry.clear()


@pytest.fixture()
def client(session: Session, fake_client: FakeCatalogClient) -> TestClient:
    def _get_db() -> Session:
        return session

    def _get_catalog_client() -> FakeCatalogClient:
        return fake_client

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_catalog_client] = _get_catalog_client
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return {"X-Admin-Token": "dev-admin-token"}
