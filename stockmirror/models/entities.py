from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockmirror.db.base import Base


SYNC_IN_PROGRESS = "in_progress"
SYNC_SUCCESS = "success"
SYNC_ERROR = "error"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CatalogItem(Base):
    __tablename__ = "catalog_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(512), index=True)
    price: Mapped[int] = mapped_column(Integer, default=0)
    cost: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sku: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True)
    code: Mapped[str | None] = mapped_column(String(128), index=True, nullable=True)
    stock_count: Mapped[int] = mapped_column(Integer, default=0, index=True)
    available: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    category_id: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    category_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    modified_time: Mapped[int] = mapped_column(BigInteger, default=0)
    last_synced: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    tag_links: Mapped[list[CatalogItemTag]] = relationship(
        back_populates="item",
        cascade="all, delete-orphan",
        order_by="CatalogItemTag.position",
    )

    @property
    def tags(self) -> list[str]:
        return [link.tag_id for link in self.tag_links]

    def set_tags(self, tag_ids: list[str]) -> None:
        ordered: list[str] = []
        for tag_id in tag_ids:
            if tag_id and tag_id not in ordered:
                ordered.append(tag_id)

        existing = {link.tag_id: link for link in self.tag_links}
        for tag_id, link in existing.items():
            if tag_id not in ordered:
                self.tag_links.remove(link)
        for position, tag_id in enumerate(ordered):
            link = existing.get(tag_id)
            if link is None:
                self.tag_links.append(CatalogItemTag(tag_id=tag_id, position=position))
            else:
                link.position = position

    def add_tag(self, tag_id: str) -> bool:
        if tag_id in self.tags:
            return False
        self.tag_links.append(CatalogItemTag(tag_id=tag_id, position=len(self.tag_links)))
        return True


class CatalogItemTag(Base):
    __tablename__ = "catalog_item_tags"

    item_id: Mapped[str] = mapped_column(ForeignKey("catalog_items.id", ondelete="CASCADE"), primary_key=True)
    tag_id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    position: Mapped[int] = mapped_column(Integer, default=0)

    item: Mapped[CatalogItem] = relationship(back_populates="tag_links")


class SyncRun(Base):
    __tablename__ = "sync_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    status: Mapped[str] = mapped_column(String(32), index=True, default=SYNC_IN_PROGRESS)
    items_fetched: Mapped[int] = mapped_column(Integer, default=0)
    items_deleted: Mapped[int] = mapped_column(Integer, default=0)
    error: Mapped[str | None] = mapped_column(Text)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
