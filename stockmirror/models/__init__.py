from stockmirror.models.entities import CatalogItem, CatalogItemTag, SyncRun

__all__ = ["CatalogItem", "CatalogItemTag", "SyncRun"]
