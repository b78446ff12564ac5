"""Supabase client configuration for report storage."""

import logging
import os
from typing import Optional
from supabase import create_client, Client
from dotenv import load_dotenv

load_dotenv()
logger = logging.getLogger(__name__)

# Global Supabase client
_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get the shared Supabase client, creating it on first use."""
    global _supabase_client

    if _supabase_client is None:
        supabase_url = os.getenv("SUPABASE_URL")
        # The anon key works too when row-level security policies allow the writes
        supabase_key = os.getenv("SUPABASE_KEY") or os.getenv("SUPABASE_ANON_KEY")

        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set in .env file")

        supabase_url = supabase_url.strip()
        supabase_key = supabase_key.strip()

        if not supabase_url.startswith(("http://", "https://")):
            supabase_url = f"https://{supabase_url}"

        logger.info(f"Creating Supabase client for {supabase_url}")
        _supabase_client = create_client(supabase_url, supabase_key)

    return _supabase_client


def reset_supabase_client() -> None:
    """Drop the cached client so the next call re-reads the environment."""
    global _supabase_client
    _supabase_client = None
