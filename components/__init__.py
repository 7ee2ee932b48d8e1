"""
Intextive Generator Components
==============================

Feature modules for the 5-step upload wizard:
- upload_form: file, recipients and instructions (Steps 1-3)
- stage_navigator: step controller (all steps)
- background_processor: countdown and status polling (Step 5)
- result_viewer: HTML output and error display
- posts_admin: admin editor for news posts
"""

from .upload_form import FormState, RecipientParseResult, split_recipients
from .background_processor import ProcessingMonitor, render_processing_ui
from .stage_navigator import StepController, WizardStep, STAGES, ALLOWED_TRANSITIONS
from .result_viewer import render_result_html, render_proxy_error
from .posts_admin import get_posts_store, render_posts_admin

__all__ = [
    'FormState',
    'RecipientParseResult',
    'split_recipients',
    'ProcessingMonitor',
    'render_processing_ui',
    'StepController',
    'WizardStep',
    'STAGES',
    'ALLOWED_TRANSITIONS',
    'render_result_html',
    'render_proxy_error',
    'get_posts_store',
    'render_posts_admin',
]
