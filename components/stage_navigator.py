"""
Stage Navigator Component
=========================

5-step upload wizard:
1. Upload - Select the PDF
2. Recipients - Who receives the output
3. Instructions - Optional processing notes
4. Review - Confirm and submit
5. Processing - Countdown and status polling

Steps are an enum; every move goes through the ALLOWED_TRANSITIONS table.
Forward moves run the current step's validation first; Processing only
leaves via reset().
"""

import streamlit as st
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, MutableMapping, Optional, Set

from config import Config, get_config
from components.background_processor import ProcessingMonitor
from components.upload_form import FormState
from handlers.state_manager import get_state, init_session_state, set_state
from models import ErrorCode, ErrorKind, ProxyResult
from status_client import StatusClient
from workflow_proxy import WorkflowProxy

logger = logging.getLogger(__name__)


class WizardStep(Enum):
    """Wizard steps in order"""
    UPLOAD = 0
    RECIPIENTS = 1
    INSTRUCTIONS = 2
    REVIEW = 3
    PROCESSING = 4


@dataclass
class Stage:
    """Stage definition"""
    step: WizardStep
    name: str
    icon: str
    description: str


STAGES: List[Stage] = [
    Stage(WizardStep.UPLOAD, "Upload", "📁", "Select a PDF document"),
    Stage(WizardStep.RECIPIENTS, "Recipients", "✉️", "Who should receive the output"),
    Stage(WizardStep.INSTRUCTIONS, "Instructions", "📝", "Processing instructions (optional)"),
    Stage(WizardStep.REVIEW, "Review", "🔍", "Confirm and submit"),
    Stage(WizardStep.PROCESSING, "Processing", "⚙️", "Generating output"),
]

ALLOWED_TRANSITIONS: Dict[WizardStep, Set[WizardStep]] = {
    WizardStep.UPLOAD: {WizardStep.RECIPIENTS},
    WizardStep.RECIPIENTS: {WizardStep.UPLOAD, WizardStep.INSTRUCTIONS},
    WizardStep.INSTRUCTIONS: {WizardStep.RECIPIENTS, WizardStep.REVIEW},
    WizardStep.REVIEW: {WizardStep.INSTRUCTIONS, WizardStep.PROCESSING},
    WizardStep.PROCESSING: {WizardStep.UPLOAD},
}


class StepController:
    """Drives the wizard; all state lives in the session mapping"""

    def __init__(
        self,
        state: Optional[MutableMapping] = None,
        config: Optional[Config] = None,
        proxy: Optional[WorkflowProxy] = None,
        monitor_factory: Optional[Callable[[Optional[str]], ProcessingMonitor]] = None
    ):
        """
        Initialize the controller.

        Args:
            state: Session mapping (defaults to st.session_state)
            config: Application config
            proxy: Submission proxy (defaults to WorkflowProxy(config))
            monitor_factory: Builds the ProcessingMonitor for a job id
        """
        self._state = st.session_state if state is None else state
        self.config = config or get_config()
        self.proxy = proxy or WorkflowProxy(self.config)
        self.monitor_factory = monitor_factory or self._default_monitor
        init_session_state(self._state)

    def _default_monitor(self, job_id: Optional[str]) -> ProcessingMonitor:
        return ProcessingMonitor(
            job_id,
            StatusClient(self.config) if self.config.status_configured else None,
            countdown_seconds=self.config.processing_countdown_seconds,
            poll_interval=self.config.status_poll_interval_seconds,
            poll_timeout=self.config.status_poll_timeout_seconds,
        )

    # ==================== STATE ====================

    @property
    def current_step(self) -> WizardStep:
        return WizardStep(get_state("wizard_step", 0, self._state))

    @property
    def current_stage(self) -> Stage:
        return STAGES[self.current_step.value]

    @property
    def history(self) -> List[WizardStep]:
        return [WizardStep(value) for value in get_state("wizard_history", [], self._state)]

    @property
    def form(self) -> FormState:
        form = get_state("form_state", None, self._state)
        if form is None:
            form = FormState(max_upload_size_mb=self.config.max_upload_size_mb)
            set_state("form_state", form, self._state)
        return form

    @property
    def last_result(self) -> Optional[ProxyResult]:
        return get_state("proxy_result", None, self._state)

    @property
    def monitor(self) -> Optional[ProcessingMonitor]:
        return get_state("processing_monitor", None, self._state)

    @property
    def submitting(self) -> bool:
        return bool(get_state("submission_in_flight", False, self._state))

    # ==================== TRANSITIONS ====================

    def _transition(self, target: WizardStep) -> bool:
        current = self.current_step
        if target not in ALLOWED_TRANSITIONS[current]:
            logger.warning(f"Blocked wizard transition {current.name} -> {target.name}")
            return False
        set_state("wizard_step", target.value, self._state)
        self._state["wizard_history"].append(target.value)
        return True

    def next_step(self) -> bool:
        """
        Move forward one step if the current step validates.

        Review moves forward only through submit(); Processing never does.
        """
        current = self.current_step

        if current == WizardStep.UPLOAD:
            if not self.form.validate_file():
                return False
        elif current == WizardStep.RECIPIENTS:
            if not self.form.validate_recipients():
                return False
        elif current != WizardStep.INSTRUCTIONS:
            return False

        return self._transition(WizardStep(current.value + 1))

    def prev_step(self) -> bool:
        """Move back one step (not from Upload or Processing)"""
        current = self.current_step
        if current in (WizardStep.UPLOAD, WizardStep.PROCESSING):
            return False
        return self._transition(WizardStep(current.value - 1))

    def submit(self) -> ProxyResult:
        """
        Submit the job from the Review step.

        On success the wizard enters Processing and the countdown/poll
        starts; on failure it stays at Review with the error stored.
        """
        if self.submitting:
            return ProxyResult.failure(
                ErrorKind.CLIENT_INPUT_INVALID,
                ErrorCode.SUBMISSION_IN_PROGRESS,
                "A submission is already in progress",
                http_status=409,
            )

        if self.current_step != WizardStep.REVIEW:
            return ProxyResult.failure(
                ErrorKind.CLIENT_INPUT_INVALID,
                ErrorCode.SUBMISSION_NOT_READY,
                "Review the job before submitting",
                details=f"Current step: {self.current_stage.name}",
                http_status=400,
            )

        form = self.form
        file_ok = form.validate_file()
        recipients_ok = form.validate_recipients()
        if not (file_ok and recipients_ok):
            result = ProxyResult.failure(
                ErrorKind.CLIENT_INPUT_INVALID,
                ErrorCode.FILE_MISSING if not file_ok else ErrorCode.EMAILS_MISSING,
                form.errors.get('file') if not file_ok else form.errors['recipients'],
                http_status=400,
            )
            set_state("proxy_result", result, self._state)
            return result

        set_state("submission_in_flight", True, self._state)
        try:
            result = self.proxy.submit(form.to_upload_job())
        finally:
            set_state("submission_in_flight", False, self._state)

        set_state("proxy_result", result, self._state)
        if not result.ok:
            logger.warning(f"Submission failed: {result.code} - {result.message}")
            return result

        self._stop_monitor()
        self._transition(WizardStep.PROCESSING)
        monitor = self.monitor_factory(result.job_id)
        set_state("processing_monitor", monitor, self._state)
        monitor.start()
        logger.info(f"Submission accepted (job id: {result.job_id or 'none'})")
        return result

    # ==================== RESET ====================

    @property
    def can_reset(self) -> bool:
        if self.current_step != WizardStep.PROCESSING:
            return True
        monitor = self.monitor
        return monitor is None or monitor.can_reset

    def reset(self) -> bool:
        """Return to Upload with everything cleared; no-op while processing is still counting down"""
        if not self.can_reset:
            return False
        self.discard()
        init_session_state(self._state, force_reset=True)
        return True

    def discard(self):
        """Cancel timers and release the preview unconditionally"""
        self._stop_monitor()
        form = get_state("form_state", None, self._state)
        if form is not None:
            form.discard()

    def _stop_monitor(self):
        monitor = self.monitor
        if monitor is not None:
            monitor.stop()
            set_state("processing_monitor", None, self._state)


def render_progress_bar(controller: StepController):
    """Render the step progress bar"""
    current = controller.current_step.value
    st.progress((current + 1) / len(STAGES))

    cols = st.columns(len(STAGES))
    for i, (col, stage) in enumerate(zip(cols, STAGES)):
        with col:
            if i < current:
                # Completed stage
                st.markdown(f"<div style='text-align:center; color:#28a745;'>{stage.icon}<br><small>✓ {stage.name}</small></div>", unsafe_allow_html=True)
            elif i == current:
                # Current stage
                st.markdown(f"<div style='text-align:center; color:#1f77b4; font-weight:bold;'>{stage.icon}<br><small>{stage.name}</small></div>", unsafe_allow_html=True)
            else:
                # Future stage
                st.markdown(f"<div style='text-align:center; color:#ccc;'>{stage.icon}<br><small>{stage.name}</small></div>", unsafe_allow_html=True)


def render_stage_header(controller: StepController):
    """Render the stage header with progress bar"""
    st.markdown("---")
    render_progress_bar(controller)

    current = controller.current_stage
    st.markdown(f"### {current.icon} Step {current.step.value + 1}: {current.name}")
    st.caption(current.description)
    st.markdown("---")


def render_navigation_buttons(controller: StepController, next_label: str = "Continue"):
    """Back / Continue buttons for the editable steps"""
    col1, _, col3 = st.columns([1, 1, 1])

    with col1:
        if controller.current_step not in (WizardStep.UPLOAD, WizardStep.PROCESSING):
            if st.button("← Back", use_container_width=True):
                controller.prev_step()
                st.rerun()

    with col3:
        if controller.current_step in (WizardStep.UPLOAD, WizardStep.RECIPIENTS, WizardStep.INSTRUCTIONS):
            if st.button(f"{next_label} →", type="primary", use_container_width=True):
                controller.next_step()
                st.rerun()
