"""
Cocoa Connect - Supabase Client.

Low-level database access. All Supabase clients are created here.
"""

from supabase import Client, create_client

from cocoa_connect.config import settings

# Singleton client instances
_client: Client | None = None
_service_client: Client | None = None


def get_client() -> Client:
    """
    Get the Supabase client (anon key, row-level security applies).

    Uses singleton pattern to reuse connection.
    """
    global _client

    if _client is None:
        if not settings.has_supabase:
            raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")
        _client = create_client(
            settings.supabase_url,
            settings.supabase_anon_key,
        )

    return _client


def get_service_client() -> Client:
    """
    Get a Supabase client with the service role key.

    Used server-side to validate access tokens and to write profiles on
    behalf of an authenticated account.
    """
    global _service_client

    if _service_client is None:
        key = settings.supabase_service_role_key or settings.supabase_anon_key
        if not settings.supabase_url or not key:
            raise RuntimeError("SUPABASE_URL and a Supabase key must be set")
        _service_client = create_client(settings.supabase_url, key)

    return _service_client
