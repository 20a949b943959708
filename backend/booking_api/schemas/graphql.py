"""
Request body accepted by the GraphQL endpoint.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class GraphQLRequest(BaseModel):
    query: str = Field(..., min_length=1)
    variables: Optional[dict[str, Any]] = None
    operationName: Optional[str] = None
