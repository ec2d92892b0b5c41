from __future__ import annotations

from dataclasses import dataclass

from stockmirror.catalog.base import RemoteTag
from stockmirror.catalog.client import CatalogClient
from stockmirror.core.cache import CacheClient, cache_client
from stockmirror.core.config import get_settings


@dataclass
class TagListing:
    tags: list[RemoteTag]
    cached: bool


def tags_cache_key(merchant_id: str) -> str:
    return f"tags:{merchant_id}:v1"


def list_tags(client: CatalogClient, cache: CacheClient = cache_client) -> TagListing:
    key = tags_cache_key(client.merchant_id)
    cached = cache.get_json(key)
    if cached.hit:
        return TagListing(tags=[RemoteTag(**tag) for tag in cached.value], cached=True)

    tags = client.fetch_tags()
    # fetch_tags returns [] on failure; don't pin that for the whole window.
    if tags:
        cache.set_json(
            key,
            [{"id": tag.id, "name": tag.name} for tag in tags],
            ttl_seconds=get_settings().tag_cache_ttl_seconds,
        )
    return TagListing(tags=tags, cached=False)
