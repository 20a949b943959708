"""
Pydantic schemas for booking mutation input validation.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator


class AddBookingArgs(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    start_time: datetime
    end_time: datetime
    item_ids: list[int] = Field(..., min_length=1)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be blank")
        return value

    @field_validator("item_ids")
    @classmethod
    def _dedupe_items(cls, value: list[int]) -> list[int]:
        # Keep first occurrence order; the association key is (bookable, booking)
        return list(dict.fromkeys(value))

    @model_validator(mode="after")
    def _check_time_range(self):
        if (self.start_time.tzinfo is None) != (self.end_time.tzinfo is None):
            raise ValueError("start_time and end_time must both carry a timezone or neither")
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class SetAcceptedArgs(BaseModel):
    id: int
    accept: bool = True
