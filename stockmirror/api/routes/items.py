from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockmirror.db.session import get_db
from stockmirror.schemas.items import ItemsListOut
from stockmirror.services.search import ItemSearchParams, search_items

StockStatus = Literal["all", "in-stock", "low-stock", "less-than-5", "out-of-stock"]

router = APIRouter(prefix="/v1/items", tags=["items"])


@router.get("", response_model=ItemsListOut)
def list_items(
    search: str | None = Query(default=None),
    category: str | None = Query(default=None),
    stock_status: StockStatus = Query(default="all"),
    min_price: int | None = Query(default=None, ge=0),
    max_price: int | None = Query(default=None, ge=0),
    available: bool | None = Query(default=None),
    tag: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> ItemsListOut:
    params = ItemSearchParams(
        search=search.strip() if search else None,
        category=category,
        stock_status=stock_status,
        min_price=min_price,
        max_price=max_price,
        available=available,
        tag=tag,
        page=page,
        limit=limit,
    )
    return search_items(db, params)
