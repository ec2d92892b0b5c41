from collections.abc import Iterator

from fastapi import Header

from stockmirror.catalog.client import CatalogClient
from stockmirror.core.config import get_settings
from stockmirror.core.errors import ApiError, AppHTTPException


def require_admin_token(x_admin_token: str | None = Header(default=None)) -> None:
    settings = get_settings()
    if x_admin_token != settings.admin_token:
        raise AppHTTPException(status_code=401, error=ApiError(code="unauthorized", message="Invalid admin token"))


def get_catalog_client() -> Iterator[CatalogClient]:
    try:
        client = CatalogClient.from_settings()
    except ValueError as exc:
        raise AppHTTPException(
            status_code=503,
            error=ApiError(code="catalog_not_configured", message=str(exc)),
        ) from exc
    try:
        yield client
    finally:
        client.close()
