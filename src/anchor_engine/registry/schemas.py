"""Pydantic schemas for registry listings."""

from pydantic import BaseModel

from anchor_engine.anchors.schemas import AnchorResponse


class RegistryPage(BaseModel):
    items: list[AnchorResponse]
    total: int
    page: int
    page_size: int
    pages: int
