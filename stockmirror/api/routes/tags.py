from fastapi import APIRouter, Depends

from stockmirror.api.deps import get_catalog_client
from stockmirror.catalog.client import CatalogClient
from stockmirror.schemas.tags import TagOut, TagsOut
from stockmirror.services.tags import list_tags

router = APIRouter(prefix="/v1/tags", tags=["tags"])


@router.get("", response_model=TagsOut)
def get_tags(client: CatalogClient = Depends(get_catalog_client)) -> TagsOut:
    listing = list_tags(client)
    return TagsOut(tags=[TagOut(id=tag.id, name=tag.name) for tag in listing.tags], cached=listing.cached)
