from pydantic import BaseModel, Field

from stockmirror.matching.engine import MatchMethod


class SessionCreateRequest(BaseModel):
    tag_id: str
    csv_text: str
    vendor: str = "default"
    method: MatchMethod = MatchMethod.UPC
    identifier_column: str | None = None
    stock_column: str | None = None


class MappingUpdateRequest(BaseModel):
    vendor: str | None = None
    method: MatchMethod | None = None
    identifier_column: str | None = None
    stock_column: str | None = None


class SessionAddTagRequest(BaseModel):
    item_id: str


class VendorOut(BaseModel):
    name: str
    display_name: str


class ColumnGuessOut(BaseModel):
    upc_column: str | None = None
    name_column: str | None = None
    stock_column: str | None = None


class SuggestionOut(BaseModel):
    item_id: str
    name: str
    score: float


class MatchedRowOut(BaseModel):
    item_id: str
    item_name: str
    sku: str | None = None
    csv_row: dict[str, str]
    current_stock: int
    delta: int
    new_stock: int


class UnmatchedRowOut(BaseModel):
    csv_row: dict[str, str]
    search_value: str
    method: MatchMethod
    suggestion: SuggestionOut | None = None


class MissingTagOut(BaseModel):
    item_id: str
    name: str
    sku: str | None = None


class StockUpdateSuccessOut(BaseModel):
    item_id: str
    item_name: str
    current_stock: int
    delta: int
    new_stock: int


class StockUpdateFailureOut(BaseModel):
    item_id: str
    item_name: str
    error_message: str


class ApplyReportOut(BaseModel):
    success_count: int
    failure_count: int
    message: str
    successes: list[StockUpdateSuccessOut] = Field(default_factory=list)
    failures: list[StockUpdateFailureOut] = Field(default_factory=list)


class SessionOut(BaseModel):
    id: str
    tag_id: str
    state: str
    vendor: str
    method: MatchMethod
    identifier_column: str
    stock_column: str | None = None
    headers: list[str]
    inferred_columns: ColumnGuessOut
    mapping_error: str | None = None
    remote_item_count: int
    matched: list[MatchedRowOut]
    unmatched: list[UnmatchedRowOut]
    missing_tag: list[MissingTagOut]
    report: ApplyReportOut | None = None
    closed: bool = False
