from datetime import datetime

from pydantic import BaseModel, Field


class CatalogItemOut(BaseModel):
    id: str
    name: str
    price: int
    price_formatted: str | None = None
    cost: int | None = None
    sku: str | None = None
    code: str | None = None
    stock_count: int
    available: bool
    category_id: str | None = None
    category_name: str | None = None
    tags: list[str] = Field(default_factory=list)
    modified_time: int
    last_synced: datetime


class CategoryOut(BaseModel):
    id: str
    name: str | None = None


class ItemStatsOut(BaseModel):
    total_items: int
    total_stock_count: int
    total_value: int
    low_stock_count: int
    out_of_stock_count: int


class PaginationOut(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ItemsListOut(BaseModel):
    items: list[CatalogItemOut]
    categories: list[CategoryOut]
    stats: ItemStatsOut
    pagination: PaginationOut
