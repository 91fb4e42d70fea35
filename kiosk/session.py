from __future__ import annotations

import streamlit as st

from kiosk.config import Settings, get_settings
from kiosk.logging import configure_logging, get_logger
from kiosk.services.demo_data import default_state, upsert_reference_data
from kiosk.services.ledger import Ledger
from kiosk.stores import RecordStore, load_state, open_store

SESSION_LEDGER = "kiosk_ledger"

logger = get_logger(__name__)


@st.cache_resource
def get_store(_settings: Settings, db_path: str) -> RecordStore:
    # db_path is the cache key; Settings itself is not hashed.
    store = open_store(_settings)
    upsert_reference_data(store)
    return store


def get_ledger() -> Ledger:
    """
    The operator session's Ledger. Built once per browser session from the
    store; if the store cannot be read the defaults are used in memory.
    """
    settings = get_settings()
    configure_logging(settings.environment, settings.log_level)

    ledger = st.session_state.get(SESSION_LEDGER)
    if ledger is not None:
        return ledger

    store = get_store(settings, str(settings.db_path))
    defaults = default_state(settings.rules)
    state = load_state(store, defaults, settings.rules)
    if state is None:
        logger.warning("using_in_memory_defaults", store=store.name)
        state = defaults

    ledger = Ledger(state, store)
    st.session_state[SESSION_LEDGER] = ledger
    return ledger


def reload_ledger() -> Ledger:
    st.session_state.pop(SESSION_LEDGER, None)
    return get_ledger()


def money(amount: float) -> str:
    return f"{amount:,.2f} {get_settings().currency}"
