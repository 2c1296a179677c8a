"""GraphQL schema and the FastAPI routes serving it."""

import logging
from pathlib import Path
from typing import Any

from ariadne import format_error, load_schema_from_path, make_executable_schema, unwrap_graphql_error
from ariadne.asgi import GraphQL
from fastapi import APIRouter, Depends, Request
from graphql import GraphQLError

from Database.deps import Services, get_services
from errors import TicketingError

from . import activity_resolvers, event_resolvers, ticket_resolvers, user_resolvers

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.graphql")

type_defs = load_schema_from_path(str(SCHEMA_PATH))

schema = make_executable_schema(
    type_defs,
    user_resolvers.query,
    user_resolvers.mutation,
    user_resolvers.user_type,
    event_resolvers.query,
    event_resolvers.mutation,
    event_resolvers.event_type,
    activity_resolvers.query,
    activity_resolvers.mutation,
    activity_resolvers.activity_type,
    ticket_resolvers.query,
    ticket_resolvers.ticket_type,
)


def format_ticketing_error(error: GraphQLError, debug: bool = False) -> dict[str, Any]:
    """
    Render resolver errors as field-addressable GraphQL errors.

    Classified errors carry ``code`` and ``invalidArgs`` extensions; any other
    exception raised by a resolver is reported as an internal error.
    """

    formatted = format_error(error, debug)
    original = unwrap_graphql_error(error)
    extensions = formatted.setdefault("extensions", {})

    if isinstance(original, TicketingError):
        extensions["code"] = original.code
        extensions["invalidArgs"] = original.invalid_args
    elif original is not None and not isinstance(original, GraphQLError):
        extensions["code"] = "INTERNAL_SERVER_ERROR"
        if not debug:
            formatted["message"] = "Internal server error"
    return formatted


def _context(request: Request, data: Any = None) -> dict[str, Any]:
    return {"request": request, "services": request.scope["services"]}


def build_graphql_router(debug: bool = False) -> APIRouter:
    """Mount the GraphQL endpoint on a router whose services come from Depends."""

    graphql_app = GraphQL(
        schema,
        context_value=_context,
        error_formatter=format_ticketing_error,
        debug=debug,
    )
    router = APIRouter()

    @router.get("/graphql")
    async def graphql_explorer(request: Request, services: Services = Depends(get_services)):
        request.scope["services"] = services
        return await graphql_app.handle_request(request)

    @router.post("/graphql")
    async def graphql_query(request: Request, services: Services = Depends(get_services)):
        request.scope["services"] = services
        return await graphql_app.handle_request(request)

    return router
