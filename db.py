"""Supabase client and session store. Cached via Streamlit for the app."""
import logging

import streamlit as st
from supabase import Client, create_client

import config
from src.database import DatabaseClient
from src.session_store import SessionStore

logger = logging.getLogger(__name__)


def _env_client() -> Client:
    if not config.SUPABASE_URL or not config.SUPABASE_KEY:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
    return create_client(config.SUPABASE_URL, config.SUPABASE_KEY)


@st.cache_resource
def get_database() -> DatabaseClient:
    logger.info("Connecting to Supabase at %s", config.SUPABASE_URL)
    return DatabaseClient(_env_client())


def get_database_uncached() -> DatabaseClient:
    """For CLI/scripts (no Streamlit context)."""
    return DatabaseClient(_env_client())


@st.cache_resource
def get_session_store() -> SessionStore:
    return SessionStore(config.SESSION_DIR)
