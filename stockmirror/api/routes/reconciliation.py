from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from stockmirror.api.deps import get_catalog_client, require_admin_token
from stockmirror.catalog.client import CatalogClient
from stockmirror.db.session import get_db
from stockmirror.matching.engine import ColumnMapping
from stockmirror.matching.vendors import VENDOR_RULES, get_vendor_rule
from stockmirror.schemas.reconciliation import (
    MappingUpdateRequest,
    SessionAddTagRequest,
    SessionCreateRequest,
    SessionOut,
    VendorOut,
)
from stockmirror.services.mirror import MirrorStore
from stockmirror.services.reconciliation import open_session, session_out, session_registry
from stockmirror.services.stock import BulkStockApplier

router = APIRouter(prefix="/v1/reconciliation", tags=["reconciliation"])


@router.get("/vendors", response_model=list[VendorOut])
def list_vendors() -> list[VendorOut]:
    return [VendorOut(name=rule.name, display_name=rule.display_name) for rule in VENDOR_RULES]


@router.post("/sessions", response_model=SessionOut, status_code=201)
def create_session(
    payload: SessionCreateRequest,
    db: Session = Depends(get_db),
    client: CatalogClient = Depends(get_catalog_client),
) -> SessionOut:
    session = open_session(
        MirrorStore(db),
        client,
        tag_id=payload.tag_id,
        csv_text=payload.csv_text,
        vendor=payload.vendor,
        method=payload.method,
        identifier_column=payload.identifier_column,
        stock_column=payload.stock_column,
    )
    session_registry.add(session)
    return session_out(session)


@router.get("/sessions/{session_id}", response_model=SessionOut)
def get_session(session_id: str) -> SessionOut:
    return session_out(session_registry.get(session_id))


@router.patch("/sessions/{session_id}/mapping", response_model=SessionOut)
def update_mapping(
    session_id: str,
    payload: MappingUpdateRequest,
    db: Session = Depends(get_db),
    client: CatalogClient = Depends(get_catalog_client),
) -> SessionOut:
    session = session_registry.get(session_id)
    current = session.mapping
    fields = payload.model_fields_set
    mapping = ColumnMapping(
        method=payload.method or current.method,
        identifier_column=payload.identifier_column if "identifier_column" in fields else current.identifier_column,
        stock_column=payload.stock_column if "stock_column" in fields else current.stock_column,
    )
    if mapping.identifier_column is None:
        mapping.identifier_column = ""
    rule = get_vendor_rule(payload.vendor) if payload.vendor else session.rule
    session.update_mapping(mapping, rule)
    session.run_pass(MirrorStore(db), client)
    return session_out(session)


@router.post("/sessions/{session_id}/tags", response_model=SessionOut, dependencies=[Depends(require_admin_token)])
def add_session_tag(
    session_id: str,
    payload: SessionAddTagRequest,
    db: Session = Depends(get_db),
    client: CatalogClient = Depends(get_catalog_client),
) -> SessionOut:
    session = session_registry.get(session_id)
    session.add_tag(payload.item_id, MirrorStore(db), client)
    return session_out(session)


@router.post("/sessions/{session_id}/apply", response_model=SessionOut, dependencies=[Depends(require_admin_token)])
def apply_session(
    session_id: str,
    db: Session = Depends(get_db),
    client: CatalogClient = Depends(get_catalog_client),
) -> SessionOut:
    session = session_registry.get(session_id)
    session.apply(BulkStockApplier(client, MirrorStore(db)))
    if session.closed:
        session_registry.remove(session.id)
    return session_out(session)


@router.delete("/sessions/{session_id}", status_code=204)
def delete_session(session_id: str) -> Response:
    session_registry.get(session_id)
    session_registry.remove(session_id)
    return Response(status_code=204)
