"""
State Manager - Wizard Session State
====================================

All wizard data lives in the user's session (Streamlit session state in the
app, a plain dict in tests). Nothing survives a reload.

Keys:
- wizard_step / wizard_history: Step Controller position
- form_state: FormState (file, recipients, instructions)
- proxy_result: last ProxyResult from a submission
- processing_monitor: countdown/poll tasks while processing
- submission_in_flight: guards against duplicate submissions
"""

import copy
import logging
from typing import Any, MutableMapping, Optional

import streamlit as st

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# Default session state values
DEFAULT_STATE = {
    # Step Controller
    "wizard_step": 0,
    "wizard_history": [0],

    # Job data
    "form_state": None,
    "proxy_result": None,

    # Processing state
    "processing_monitor": None,
    "submission_in_flight": False,
}


def _resolve(state: Optional[MutableMapping]) -> MutableMapping:
    return st.session_state if state is None else state


def init_session_state(state: Optional[MutableMapping] = None, force_reset: bool = False):
    """
    Initialize wizard keys with defaults.

    Args:
        state: Mapping to initialize (defaults to st.session_state)
        force_reset: If True, reset wizard values to defaults
    """
    state = _resolve(state)
    for key, default_value in DEFAULT_STATE.items():
        if force_reset or key not in state:
            state[key] = copy.deepcopy(default_value)


def get_state(key: str, default: Any = None, state: Optional[MutableMapping] = None) -> Any:
    """Get a value from session state."""
    return _resolve(state).get(key, default)


def set_state(key: str, value: Any, state: Optional[MutableMapping] = None):
    """Set a value in session state."""
    if key not in DEFAULT_STATE:
        logger.warning(f"Saving unknown state key: {key}")
    _resolve(state)[key] = value
