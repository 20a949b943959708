"""
Typed caller identity produced by the authentication middleware.
"""

from pydantic import BaseModel, Field, field_validator


class CallerIdentity(BaseModel):
    userid: str = Field(..., min_length=1)
    permissions: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("userid", mode="before")
    @classmethod
    def _coerce_userid(cls, value):
        # Identity providers emit numeric and string ids alike
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value
