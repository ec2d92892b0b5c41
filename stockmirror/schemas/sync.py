from pydantic import BaseModel


class SyncRunOut(BaseModel):
    id: int
    status: str
    items_fetched: int
    items_deleted: int
    error: str | None = None
    started_at: str
    finished_at: str | None = None


class SyncResponse(BaseModel):
    success: bool
    message: str
    items_fetched: int
    items_deleted: int
    sync_id: int


class SyncStatusOut(BaseModel):
    latest_sync: SyncRunOut | None = None
