from functools import lru_cache
from supabase import create_client, Client
from .config import settings


# Public client for regular operations
@lru_cache
def get_supabase() -> Client:
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)


# Service client for admin operations
@lru_cache
def get_supabase_admin() -> Client:
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
