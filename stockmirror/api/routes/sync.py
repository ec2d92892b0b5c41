from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockmirror.api.deps import get_catalog_client, require_admin_token
from stockmirror.catalog.client import CatalogClient
from stockmirror.db.session import get_db
from stockmirror.schemas.sync import SyncResponse, SyncStatusOut
from stockmirror.services.sync import FullSyncOrchestrator, get_sync_status

router = APIRouter(prefix="/v1/sync", tags=["sync"])


@router.post("", response_model=SyncResponse, dependencies=[Depends(require_admin_token)])
def run_sync(db: Session = Depends(get_db), client: CatalogClient = Depends(get_catalog_client)) -> SyncResponse:
    summary = FullSyncOrchestrator(db, client).run()
    return SyncResponse(
        success=True,
        message=summary.message,
        items_fetched=summary.items_fetched,
        items_deleted=summary.items_deleted,
        sync_id=summary.run.id,
    )


@router.get("", response_model=SyncStatusOut)
def sync_status(db: Session = Depends(get_db)) -> SyncStatusOut:
    return get_sync_status(db)
