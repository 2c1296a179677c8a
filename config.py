'''
Runtime configuration for the Ticketing API.

Values are read from the environment (optionally seeded from a .env file):
- SUPABASE_URL, SUPABASE_KEY: database endpoint and service key
- SYMPLA_KEY: token sent to the Sympla API
- SYMPLA_BASE_URL: Sympla public API root
- LOG_LEVEL: root logging level
- GRAPHQL_DEBUG: include tracebacks in GraphQL errors when truthy
'''

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

SYMPLA_DEFAULT_URL = "https://api.sympla.com.br/public/v3"


class Settings(BaseModel):

    supabase_url: str
    supabase_key: str
    sympla_key: str
    sympla_base_url: str = SYMPLA_DEFAULT_URL
    log_level: str = "INFO"


def _required(name: str) -> str:
    value: Optional[str] = os.environ.get(name)
    if not value:
        raise ValueError(f"{name} not found in environment variables.")
    return value


def env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean switch such as GRAPHQL_DEBUG=1 from the environment."""

    load_dotenv()
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    """Build the Settings from the process environment."""

    load_dotenv()
    return Settings(
        supabase_url=_required("SUPABASE_URL"),
        supabase_key=_required("SUPABASE_KEY"),
        sympla_key=_required("SYMPLA_KEY"),
        sympla_base_url=os.environ.get("SYMPLA_BASE_URL", SYMPLA_DEFAULT_URL),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )
