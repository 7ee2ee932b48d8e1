"""
Handlers Package
================
Core handlers for the Intextive Generator.

This package contains:
- file_handler: PDF type check, preview files, PDF inspection
- timeout_handler: time budgets and repeating background tasks
- state_manager: wizard session state
"""

from .file_handler import PreviewFile, inspect_pdf, is_pdf_mime
from .timeout_handler import TimeoutManager, RepeatingTimer
from .state_manager import init_session_state, get_state, set_state, DEFAULT_STATE

__all__ = [
    'PreviewFile',
    'inspect_pdf',
    'is_pdf_mime',
    'TimeoutManager',
    'RepeatingTimer',
    'init_session_state',
    'get_state',
    'set_state',
    'DEFAULT_STATE',
]
