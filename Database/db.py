'''
This file contains the database configuration for the Ticketing System.
'''
import logging

from supabase import create_client, Client

from config import Settings, load_settings

logger = logging.getLogger(__name__)


class TicketingDB:
    """Database Client"""

    def __init__(self, settings: Settings):
        self.client: Client = create_client(settings.supabase_url, settings.supabase_key)
        logger.info("Supabase client created")

    def close(self) -> None:
        # the Supabase client keeps its PostgREST session open until closed
        session = getattr(self.client.postgrest, "session", None)
        if session is not None:
            session.close()
        logger.info("Supabase client closed")


if __name__ == "__main__":
    db_conn = TicketingDB(load_settings())

    _ = db_conn.client.table("users").select("*").limit(1).execute()
    print(_)
    db_conn.close()
