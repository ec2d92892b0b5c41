from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session, selectinload

from stockmirror.models import CatalogItem, CatalogItemTag
from stockmirror.schemas.items import CatalogItemOut, CategoryOut, ItemsListOut, ItemStatsOut, PaginationOut

LOW_STOCK_THRESHOLD = 10


@dataclass
class ItemSearchParams:
    search: str | None = None
    category: str | None = None
    stock_status: str = "all"
    min_price: int | None = None
    max_price: int | None = None
    available: bool | None = None
    tag: str | None = None
    page: int = 1
    limit: int = 50


def _stock_filter(stock_status: str) -> Any | None:
    if stock_status == "in-stock":
        return CatalogItem.stock_count > LOW_STOCK_THRESHOLD
    if stock_status == "low-stock":
        return and_(CatalogItem.stock_count > 0, CatalogItem.stock_count <= LOW_STOCK_THRESHOLD)
    if stock_status == "less-than-5":
        return CatalogItem.stock_count < 5
    if stock_status == "out-of-stock":
        return CatalogItem.stock_count <= 0
    return None


def _build_filters(params: ItemSearchParams) -> list[Any]:
    filters: list[Any] = []
    if params.search:
        term = params.search.lower()
        filters.append(
            or_(
                func.lower(CatalogItem.name).contains(term, autoescape=True),
                func.lower(func.coalesce(CatalogItem.sku, "")).contains(term, autoescape=True),
                func.lower(func.coalesce(CatalogItem.code, "")).contains(term, autoescape=True),
            )
        )
    if params.category and params.category != "all":
        filters.append(CatalogItem.category_id == params.category)

    stock_filter = _stock_filter(params.stock_status)
    if stock_filter is not None:
        filters.append(stock_filter)

    # Price filters arrive in whole currency units; the mirror stores minor units.
    if params.min_price is not None:
        filters.append(CatalogItem.price >= params.min_price * 100)
    if params.max_price is not None:
        filters.append(CatalogItem.price <= params.max_price * 100)
    if params.available is not None:
        filters.append(CatalogItem.available.is_(params.available))
    if params.tag and params.tag != "all":
        filters.append(
            CatalogItem.id.in_(select(CatalogItemTag.item_id).where(CatalogItemTag.tag_id == params.tag))
        )
    return filters


def format_price(cents: int | None) -> str | None:
    if not cents:
        return None
    return f"${cents / 100:.2f}"


def item_out(item: CatalogItem) -> CatalogItemOut:
    return CatalogItemOut(
        id=item.id,
        name=item.name,
        price=item.price,
        price_formatted=format_price(item.price),
        cost=item.cost,
        sku=item.sku,
        code=item.code,
        stock_count=item.stock_count,
        available=item.available,
        category_id=item.category_id,
        category_name=item.category_name,
        tags=item.tags,
        modified_time=item.modified_time,
        last_synced=item.last_synced,
    )


def search_items(db: Session, params: ItemSearchParams) -> ItemsListOut:
    filters = _build_filters(params)

    stmt = select(CatalogItem).options(selectinload(CatalogItem.tag_links))
    count_stmt = select(func.count(CatalogItem.id))
    if filters:
        stmt = stmt.where(and_(*filters))
        count_stmt = count_stmt.where(and_(*filters))

    total = db.scalar(count_stmt) or 0
    offset = (params.page - 1) * params.limit
    rows = db.scalars(stmt.order_by(CatalogItem.name.asc(), CatalogItem.id.asc()).offset(offset).limit(params.limit)).all()

    categories = db.execute(
        select(CatalogItem.category_id, func.max(CatalogItem.category_name).label("category_name"))
        .where(CatalogItem.category_id.is_not(None))
        .group_by(CatalogItem.category_id)
        .order_by(func.max(CatalogItem.category_name).asc())
    ).all()

    totals = db.execute(
        select(
            func.count(CatalogItem.id),
            func.coalesce(func.sum(CatalogItem.stock_count), 0),
            func.coalesce(func.sum(CatalogItem.price), 0),
        )
    ).one()
    low_stock = db.scalar(select(func.count(CatalogItem.id)).where(_stock_filter("low-stock"))) or 0
    out_of_stock = db.scalar(select(func.count(CatalogItem.id)).where(_stock_filter("out-of-stock"))) or 0

    return ItemsListOut(
        items=[item_out(item) for item in rows],
        categories=[CategoryOut(id=row.category_id, name=row.category_name) for row in categories],
        stats=ItemStatsOut(
            total_items=int(totals[0] or 0),
            total_stock_count=int(totals[1] or 0),
            total_value=int(totals[2] or 0),
            low_stock_count=int(low_stock),
            out_of_stock_count=int(out_of_stock),
        ),
        pagination=PaginationOut(
            page=params.page,
            limit=params.limit,
            total=int(total),
            total_pages=math.ceil(total / params.limit) if params.limit else 0,
        ),
    )
