"""
Intextive Generator
===================

Upload a PDF, choose who receives the result, add instructions, and let the
n8n workflow turn it into HTML.

Steps:
1. Upload - Select the PDF
2. Recipients - Email addresses for the output
3. Instructions - Optional processing notes
4. Review - Confirm and submit
5. Processing - Countdown and status polling

Run with: streamlit run app.py
"""

import streamlit as st

from config import get_config
from components.background_processor import render_processing_ui
from components.result_viewer import render_proxy_error, render_result_html
from components.stage_navigator import (
    StepController,
    WizardStep,
    render_navigation_buttons,
    render_stage_header,
)
from components.upload_form import render_file_picker, render_recipient_editor


# Page config
st.set_page_config(
    page_title="Intextive Generator",
    page_icon="📄",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Custom CSS
st.markdown("""
<style>
    .main-header {
        font-size: 2.2rem;
        font-weight: bold;
        color: #1f77b4;
        text-align: center;
        margin-bottom: 0.5rem;
    }
    .sub-header {
        font-size: 1.1rem;
        color: #666;
        text-align: center;
        margin-bottom: 1rem;
    }
</style>
""", unsafe_allow_html=True)


def render_sidebar(config):
    """Configuration status (no secrets)"""
    with st.sidebar:
        st.markdown(f"**{config.app_name}** v{config.app_version}")
        settings = config.to_dict()
        if settings['has_webhook_url']:
            st.success("Webhook configured")
        else:
            st.error("N8N_WEBHOOK_URL is not set")
        if settings['has_status_api']:
            st.success("Status API configured")
        else:
            st.warning("Status API not configured: results arrive by email only")

        if config.debug:
            with st.expander("Settings"):
                st.json(settings)


def render_step_upload(controller: StepController):
    st.markdown("Select the PDF you want to process.")
    render_file_picker(controller.form, widget_key=f"upload_file_{st.session_state.get('upload_nonce', 0)}")
    render_navigation_buttons(controller)


def render_step_recipients(controller: StepController):
    st.markdown("Who should receive the generated output?")
    render_recipient_editor(controller.form)
    render_navigation_buttons(controller)


def render_step_instructions(controller: StepController):
    form = controller.form
    instructions = st.text_area(
        "Processing Instructions",
        value=form.instructions,
        placeholder="Add any specific instructions (optional)",
        height=220
    )
    form.set_instructions(instructions)
    render_navigation_buttons(controller, next_label="Review")


def render_step_review(controller: StepController):
    form = controller.form
    info = form.file_info()

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("**Document**")
        if info:
            st.write(f"📄 {info['filename']} ({info['size_mb']:.2f} MB)")
            if info['encrypted'] or not info['readable']:
                st.warning(info['message'])
            else:
                st.caption(info['message'])
        st.markdown("**Instructions**")
        st.write(form.instructions or "_None_")
    with col2:
        st.markdown(f"**Recipients ({len(form.recipients)})**")
        for email in form.recipients:
            st.write(f"✉️ {email}")

    last = controller.last_result
    if last is not None and not last.ok:
        render_proxy_error(last)

    st.markdown("---")
    col1, _, col3 = st.columns([1, 1, 1])
    with col1:
        if st.button("← Back", use_container_width=True, disabled=controller.submitting):
            controller.prev_step()
            st.rerun()
    with col3:
        if st.button(
            "🚀 Generate Output",
            type="primary",
            use_container_width=True,
            disabled=controller.submitting or not (form.has_file and form.recipients)
        ):
            with st.spinner("Sending to workflow..."):
                controller.submit()
            st.rerun()


def render_step_processing(controller: StepController):
    result = controller.last_result
    monitor = controller.monitor

    if result is not None and result.html:
        render_result_html(result.html)

    if monitor is not None and monitor.record is not None:
        final_html = monitor.record.decoded_html()
        if final_html and final_html != (result.html if result else None):
            render_result_html(final_html)

    st.markdown("---")
    if st.button(
        "🔄 Start New Job",
        type="primary",
        disabled=not controller.can_reset,
        use_container_width=True
    ):
        if controller.reset():
            st.session_state['upload_nonce'] = st.session_state.get('upload_nonce', 0) + 1
            st.rerun()

    # reruns itself until reset is available and polling has stopped
    render_processing_ui(monitor)


STEP_RENDERERS = {
    WizardStep.UPLOAD: render_step_upload,
    WizardStep.RECIPIENTS: render_step_recipients,
    WizardStep.INSTRUCTIONS: render_step_instructions,
    WizardStep.REVIEW: render_step_review,
    WizardStep.PROCESSING: render_step_processing,
}


def main():
    config = get_config()
    render_sidebar(config)

    st.markdown('<div class="main-header">Intextive Generator</div>', unsafe_allow_html=True)
    st.markdown('<div class="sub-header">PDF in, HTML out: delivered to your recipients</div>', unsafe_allow_html=True)

    controller = StepController(config=config)
    render_stage_header(controller)
    STEP_RENDERERS[controller.current_step](controller)


main()
