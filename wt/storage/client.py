"""Supabase client singleton"""
from typing import Optional

from supabase import Client, create_client  # type: ignore

from wt.common.logger import log
from wt.core.config import Identity, RemoteSettings

_supabase_client: Optional[Client] = None


def get_supabase_client(remote: RemoteSettings, identity: Optional[Identity] = None) -> Client:
    """Get or create the Supabase client singleton.

    When the identity carries an access token it is applied to the PostgREST
    client, so row-level security evaluates requests as that user.
    """
    global _supabase_client

    if _supabase_client is None:
        if not remote.url or not remote.key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set to sync timers remotely")

        _supabase_client = create_client(remote.url, remote.key)
        if identity is not None and identity.access_token:
            _supabase_client.postgrest.auth(identity.access_token)
        log.info(f"Created Supabase client for '{remote.url}'")

    return _supabase_client


def reset_supabase_client():
    """Reset the Supabase client singleton (useful for testing)"""
    global _supabase_client
    _supabase_client = None
