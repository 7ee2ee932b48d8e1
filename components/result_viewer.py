"""
Result Viewer Component
=======================

Displays the workflow output or a structured failure.
- Sandboxed HTML preview with download
- Proxy errors with code, details and numbered troubleshooting steps
"""

import streamlit as st
import streamlit.components.v1 as components
from datetime import datetime
from typing import Optional

from models import ProxyResult


def output_filename(now: Optional[datetime] = None) -> str:
    """Download name for the generated HTML"""
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return f"output-{stamp}.html"


def troubleshooting_markdown(result: ProxyResult) -> str:
    """Numbered list of remediation steps"""
    return "\n".join(f"{i}. {step}" for i, step in enumerate(result.troubleshooting, 1))


def render_result_html(html: str, height: int = 600):
    """Render generated HTML with copy/download controls"""
    st.subheader("📄 Output Preview")

    st.download_button(
        "⬇️ Download HTML",
        data=html.encode('utf-8'),
        file_name=output_filename(),
        mime="text/html",
    )
    with st.expander("HTML source", expanded=False):
        st.code(html, language="html")

    # components.html renders inside a sandboxed iframe
    components.html(html, height=height, scrolling=True)


def render_proxy_error(result: ProxyResult):
    """Render a failed submission"""
    if result.ok:
        return

    st.error(f"❌ {result.message}")
    st.caption(f"Error code: `{result.code}`" + (f" · HTTP {result.http_status}" if result.http_status else ""))

    if result.details:
        st.write(result.details)

    if result.troubleshooting:
        with st.expander("Troubleshooting", expanded=True):
            st.markdown(troubleshooting_markdown(result))

    preview = result.extra.get('responsePreview')
    if preview:
        with st.expander("Response preview", expanded=False):
            st.code(preview)
