'''
FastAPI application for a Ticketing System.

The app exposes a GraphQL API to manage users, events, activities and the
tickets users bring from Sympla.

Available endpoints:
- /graphql: POST queries and mutations, GET serves the GraphQL explorer.
- /health: liveness probe.

The Supabase client and the HTTP client used for Sympla are created once at
startup, shared by every request, and closed at shutdown.
'''

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, status

from api.graphql_app import build_graphql_router
from api.models import MessageResponse
from config import env_flag, load_settings
from Database.db import TicketingDB
from Database.deps import build_services
from Tickets.sympla import SymplaClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup ---
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    db = TicketingDB(settings)   # create ONCE
    http_client = httpx.AsyncClient()
    sympla = SymplaClient(settings.sympla_key, http_client, base_url=settings.sympla_base_url)
    app.state.services = build_services(db.client, sympla)
    logger.info("Ticketing API started")
    yield
    # --- Shutdown ---
    await http_client.aclose()
    db.close()
    logger.info("Ticketing API stopped")

# Initialize FastAPI app
app = FastAPI(title="Ticketing System API", version="1.0.0", lifespan=lifespan)

app.include_router(build_graphql_router(debug=env_flag("GRAPHQL_DEBUG")), tags=["GraphQL"])

@app.get("/")
async def root():
    return {"message": "Welcome to the Ticketing System API"}

@app.get("/health", response_model=MessageResponse)
async def health_check() -> MessageResponse:
    """Quick liveness probe for the API."""

    return MessageResponse(status=status.HTTP_200_OK, message="Ticketing service is healthy")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="localhost", port=8000, reload=True)
