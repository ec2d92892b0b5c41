from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockmirror.api.deps import get_catalog_client, require_admin_token
from stockmirror.catalog.client import CatalogClient
from stockmirror.core.errors import ValidationError
from stockmirror.db.session import get_db
from stockmirror.schemas.inventory import (
    ActionOut,
    AddTagRequest,
    FindMissingItemsOut,
    FindMissingItemsRequest,
    ItemsByTagOut,
    MissingItemOut,
    RemoteItemOut,
    UpdateStockRequest,
)
from stockmirror.services.mirror import MirrorStore

router = APIRouter(prefix="/v1/inventory", tags=["inventory"])


@router.get("/items-by-tag", response_model=ItemsByTagOut)
def items_by_tag(
    tag_id: str = Query(..., min_length=1),
    client: CatalogClient = Depends(get_catalog_client),
) -> ItemsByTagOut:
    items = client.fetch_items_by_tag(tag_id)
    return ItemsByTagOut(
        items=[
            RemoteItemOut(
                id=item.id,
                name=item.name,
                price=item.price,
                sku=item.sku,
                code=item.code,
                stock_count=item.stock_count,
                available=item.available,
                modified_time=item.modified_time,
            )
            for item in items
        ]
    )


@router.post("/find-missing-items", response_model=FindMissingItemsOut)
def find_missing_items(payload: FindMissingItemsRequest, db: Session = Depends(get_db)) -> FindMissingItemsOut:
    if not payload.upcs and not payload.names:
        raise ValidationError("Either upcs or names are required")
    missing = MirrorStore(db).find_missing_tag_items(payload.tag_id, identifiers=payload.upcs, names=payload.names)
    return FindMissingItemsOut(items=[MissingItemOut(id=item.item_id, name=item.name, sku=item.sku) for item in missing])


@router.post("/add-tag", response_model=ActionOut, dependencies=[Depends(require_admin_token)])
def add_tag(
    payload: AddTagRequest,
    db: Session = Depends(get_db),
    client: CatalogClient = Depends(get_catalog_client),
) -> ActionOut:
    client.add_tag_to_item(payload.item_id, payload.tag_id)
    MirrorStore(db).add_tag(payload.item_id, payload.tag_id)
    return ActionOut(success=True, message="Tag added to item")


@router.post("/update-stock", response_model=ActionOut, dependencies=[Depends(require_admin_token)])
def update_stock(
    payload: UpdateStockRequest,
    db: Session = Depends(get_db),
    client: CatalogClient = Depends(get_catalog_client),
) -> ActionOut:
    outcome = client.update_item_stock(payload.item_id, payload.stock_count)
    MirrorStore(db).set_stock(outcome.item_id, outcome.stock_count)
    return ActionOut(success=True, message=f"Stock updated to {outcome.stock_count}")
