"""
GraphQL endpoint: the single entry point for every booking operation.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse
from graphql import GraphQLError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_api.api.schema import schema
from booking_api.core.config import Settings
from booking_api.core.exceptions import BookingAPIError
from booking_api.core.logging import get_logger
from booking_api.db.session import get_db
from booking_api.schemas.caller import CallerIdentity
from booking_api.schemas.graphql import GraphQLRequest
from booking_api.services.context import RequestContext

logger = get_logger(__name__)
router = APIRouter(prefix="/graphql", tags=["GraphQL"])

GRAPHIQL_HTML = """<!DOCTYPE html>
<html>
<head>
  <title>{title}</title>
  <link rel="stylesheet" href="https://unpkg.com/graphiql@3/graphiql.min.css" />
</head>
<body style="margin: 0;">
  <div id="graphiql" style="height: 100vh;"></div>
  <script crossorigin src="https://unpkg.com/react@18/umd/react.production.min.js"></script>
  <script crossorigin src="https://unpkg.com/react-dom@18/umd/react-dom.production.min.js"></script>
  <script crossorigin src="https://unpkg.com/graphiql@3/graphiql.min.js"></script>
  <script>
    const fetcher = GraphiQL.createFetcher({{ url: window.location.pathname }});
    ReactDOM.createRoot(document.getElementById("graphiql")).render(
      React.createElement(GraphiQL, {{ fetcher }})
    );
  </script>
</body>
</html>
"""


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_caller(request: Request) -> Optional[CallerIdentity]:
    """Caller identity decoded by AuthenticationMiddleware, None if anonymous."""
    return getattr(request.state, "caller", None)


def format_error(error: GraphQLError, debug: bool = False) -> dict:
    formatted = dict(error.formatted)
    original = error.original_error

    if isinstance(original, BookingAPIError):
        formatted["extensions"] = original.as_extensions()
    elif original is not None:
        logger.error(
            "operation_unhandled_error",
            path=error.path,
            error=str(original),
            exc_info=original,
        )
        if not debug:
            formatted["message"] = "Internal server error"
        formatted["extensions"] = {"code": "INTERNAL_SERVER_ERROR"}
    elif error.path is None:
        formatted["extensions"] = {"code": "GRAPHQL_VALIDATION_FAILED"}
    else:
        # Raised by the executor itself, e.g. a null in a non-null field
        logger.error("operation_execution_error", path=error.path, error=error.message)
        formatted["extensions"] = {"code": "INTERNAL_SERVER_ERROR"}
    return formatted


@router.post("")
async def graphql_endpoint(
    payload: GraphQLRequest,
    db: AsyncSession = Depends(get_db),
    caller: Optional[CallerIdentity] = Depends(get_caller),
    settings: Settings = Depends(get_app_settings),
):
    """
    Execute a query or mutation document.

    Returns 200 whenever execution started, with per-field failures in
    `errors`; 400 when the document itself could not be executed.
    """
    context = RequestContext(db=db, settings=settings, caller=caller)
    result = await schema.execute_async(
        payload.query,
        variable_values=payload.variables,
        operation_name=payload.operationName,
        context_value=context,
    )

    body = {"data": result.data}
    status_code = status.HTTP_200_OK
    if result.errors:
        body["errors"] = [format_error(e, settings.DEBUG) for e in result.errors]
        if result.data is None and all(e.path is None for e in result.errors):
            status_code = status.HTTP_400_BAD_REQUEST

    return JSONResponse(content=body, status_code=status_code)


@router.get("", response_class=HTMLResponse)
async def graphiql(settings: Settings = Depends(get_app_settings)):
    """Interactive query explorer, served in development only."""
    if not settings.graphiql_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    return HTMLResponse(GRAPHIQL_HTML.format(title=settings.APP_NAME))
