from pydantic import BaseModel, Field


class RemoteItemOut(BaseModel):
    id: str
    name: str
    price: int
    sku: str | None = None
    code: str | None = None
    stock_count: int
    available: bool
    modified_time: int | None = None


class ItemsByTagOut(BaseModel):
    success: bool = True
    items: list[RemoteItemOut]


class FindMissingItemsRequest(BaseModel):
    tag_id: str
    upcs: list[str] | None = None
    names: list[str] | None = None


class MissingItemOut(BaseModel):
    id: str
    name: str
    sku: str | None = None


class FindMissingItemsOut(BaseModel):
    success: bool = True
    items: list[MissingItemOut] = Field(default_factory=list)


class AddTagRequest(BaseModel):
    item_id: str
    tag_id: str


class UpdateStockRequest(BaseModel):
    item_id: str
    stock_count: int


class ActionOut(BaseModel):
    success: bool
    message: str
