"""Shared Pydantic schemas for Anchor-Engine."""

from typing import Optional

from pydantic import BaseModel, Field

from anchor_engine.common.config import AnchorSettings


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    service: str = "anchor-engine"


class PaginationParams(BaseModel):
    page: int = Field(default=1, ge=1)
    page_size: Optional[int] = Field(default=None, ge=1)

    def bounded(self, settings: AnchorSettings) -> "PaginationParams":
        """Fill in the configured default page size and cap it at the configured max."""
        size = self.page_size or settings.default_page_size
        return PaginationParams(page=self.page, page_size=min(size, settings.max_page_size))

    @property
    def offset(self) -> int:
        return (self.page - 1) * (self.page_size or 0)
