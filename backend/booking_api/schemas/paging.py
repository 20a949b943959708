"""
Pagination arguments shared by every list operation.
"""

from pydantic import BaseModel, Field

DEFAULT_MAX_ITEMS = 20
MAX_ITEMS_LIMIT = 100


class PageArgs(BaseModel):
    page: int = Field(default=0, ge=0)
    max_items: int = Field(default=DEFAULT_MAX_ITEMS, ge=1, le=MAX_ITEMS_LIMIT, alias="maxItems")

    model_config = {"populate_by_name": True}
