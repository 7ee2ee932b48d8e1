"""
Upload Form Component
=====================

Holds and validates the three job inputs:
- PDF file (exactly application/pdf), with a preview file
- Recipients (delimited block or one-at-a-time entry)
- Instructions (optional, free text)

Field errors are kept per field and never clear previously accepted values.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import streamlit as st

from handlers.file_handler import PreviewFile, inspect_pdf, is_pdf_mime
from models import UploadJob, is_valid_email

logger = logging.getLogger(__name__)

# comma, semicolon or newline
RECIPIENT_DELIMITERS = re.compile(r"[,;\r\n]+")


@dataclass
class RecipientParseResult:
    """Outcome of adding recipients"""
    added: List[str] = field(default_factory=list)
    invalid: List[str] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.invalid)


def split_recipients(text: str) -> List[str]:
    """Split a delimited block into trimmed, non-empty candidates"""
    if not text:
        return []
    return [part.strip() for part in RECIPIENT_DELIMITERS.split(text) if part.strip()]


class FormState:
    """Form data for one upload job"""

    def __init__(self, max_upload_size_mb: int = 50):
        self.max_upload_size_mb = max_upload_size_mb
        self.filename: Optional[str] = None
        self.mime_type: Optional[str] = None
        self.file_bytes: Optional[bytes] = None
        self.preview: Optional[PreviewFile] = None
        self.instructions: str = ""
        self.recipients: List[str] = []
        self.errors: Dict[str, str] = {}
        # identity of the last uploader value applied to this form
        self.upload_signature: Optional[Tuple[str, int, Optional[str]]] = None

    @property
    def has_file(self) -> bool:
        return self.file_bytes is not None

    # ==================== FILE ====================

    def select_file(self, filename: str, mime_type: Optional[str], data: bytes) -> bool:
        """
        Accept a new file selection.

        A rejected candidate clears the current file and its preview; no
        preview is created for it.

        Returns:
            True if the file was accepted
        """
        if not is_pdf_mime(mime_type):
            self.clear_file()
            self.errors['file'] = f"Please select a PDF file (received {mime_type or 'unknown type'})"
            logger.info(f"Rejected file {filename}: {mime_type}")
            return False

        size_mb = len(data) / (1024 * 1024)
        if size_mb > self.max_upload_size_mb:
            self.clear_file()
            self.errors['file'] = f"File too large ({size_mb:.2f} MB). Max {self.max_upload_size_mb} MB"
            return False

        # release the old preview before taking ownership of the new one
        if self.preview:
            self.preview.release()
        self.preview = PreviewFile(data, filename)

        self.filename = filename
        self.mime_type = mime_type
        self.file_bytes = data
        self.errors.pop('file', None)
        return True

    def sync_upload(self, uploaded: Any) -> bool:
        """
        Apply the file uploader's current value.

        A new file (by name, size and upload id) is selected; the same file is
        ignored; None means the user cleared the uploader.

        Returns:
            True if the form holds a file afterwards
        """
        if uploaded is None:
            self.clear_file()
            self.errors.pop('file', None)
            return False

        signature = (uploaded.name, uploaded.size, getattr(uploaded, 'file_id', None))
        if signature == self.upload_signature:
            return self.has_file

        self.select_file(uploaded.name, uploaded.type, uploaded.getvalue())
        self.upload_signature = signature
        return self.has_file

    def clear_file(self):
        """Drop the current file and release its preview"""
        if self.preview:
            self.preview.release()
        self.preview = None
        self.filename = None
        self.mime_type = None
        self.file_bytes = None
        self.upload_signature = None

    def file_info(self) -> Dict[str, object]:
        """Summary for the review step"""
        if not self.has_file:
            return {}
        info = inspect_pdf(self.file_bytes)
        info['filename'] = self.filename
        info['size_mb'] = len(self.file_bytes) / (1024 * 1024)
        return info

    # ==================== RECIPIENTS ====================

    def add_recipients(self, text: str) -> RecipientParseResult:
        """Add every address in a comma/semicolon/newline separated block"""
        return self._commit(split_recipients(text))

    def add_recipient(self, entry: str) -> RecipientParseResult:
        """Commit a single typed entry (trailing delimiters are ignored)"""
        candidate = entry.strip().strip(',;').strip()
        return self._commit([candidate] if candidate else [])

    def _commit(self, candidates: List[str]) -> RecipientParseResult:
        result = RecipientParseResult()
        for candidate in candidates:
            if candidate in self.recipients or candidate in result.added:
                result.duplicates.append(candidate)
            elif not is_valid_email(candidate):
                result.invalid.append(candidate)
            else:
                result.added.append(candidate)

        self.recipients.extend(result.added)

        if result.invalid:
            self.errors['recipients'] = f"Invalid email address: {', '.join(result.invalid)}"
        elif candidates:
            self.errors.pop('recipients', None)
        return result

    def remove_recipient(self, email: str):
        if email in self.recipients:
            self.recipients.remove(email)

    # ==================== INSTRUCTIONS ====================

    def set_instructions(self, text: Optional[str]):
        self.instructions = text or ""

    # ==================== VALIDATION ====================

    def validate_file(self) -> bool:
        if not self.has_file:
            self.errors['file'] = "Please select a PDF file"
            return False
        return True

    def validate_recipients(self) -> bool:
        if not self.recipients:
            self.errors['recipients'] = "Add at least one recipient email"
            return False
        return True

    def to_upload_job(self) -> UploadJob:
        return UploadJob(
            file_bytes=self.file_bytes,
            filename=self.filename or "document.pdf",
            mime_type=self.mime_type or "",
            instructions=self.instructions,
            recipients=list(self.recipients),
        )

    def discard(self):
        """Clear everything and release the preview"""
        self.clear_file()
        self.instructions = ""
        self.recipients = []
        self.errors = {}


# ==================== RENDERING ====================

def _on_upload_change(form: FormState, widget_key: str):
    form.sync_upload(st.session_state.get(widget_key))


def render_file_picker(form: FormState, disabled: bool = False, widget_key: str = "upload_file_input"):
    """Render the PDF picker and preview"""
    # on_change only fires on user action, not when the widget state is dropped
    # after navigating to another step
    st.file_uploader(
        "PDF File *",
        type=["pdf"],
        accept_multiple_files=False,
        disabled=disabled,
        key=widget_key,
        on_change=_on_upload_change,
        args=(form, widget_key),
        help="A single PDF document"
    )

    if form.errors.get('file'):
        st.error(form.errors['file'])

    if form.preview and not form.preview.released:
        st.caption(f"📄 {form.filename}")
        st.markdown(
            f'<iframe src="{form.preview.data_url()}#toolbar=0&navpanes=0" '
            f'width="100%" height="480" style="border:1px solid #ddd;"></iframe>',
            unsafe_allow_html=True
        )


def render_recipient_editor(form: FormState, disabled: bool = False):
    """Render recipient entry (block paste or one at a time)"""
    mode = st.radio(
        "Entry mode",
        options=["Paste a list", "One at a time"],
        horizontal=True,
        label_visibility="collapsed",
        key="recipient_entry_mode"
    )

    if mode == "Paste a list":
        with st.form("recipient_block_form", clear_on_submit=True):
            block = st.text_area(
                "Recipient emails",
                placeholder="name@example.com, other@example.com",
                help="Separate addresses with commas, semicolons or new lines"
            )
            if st.form_submit_button("Add recipients", disabled=disabled):
                result = form.add_recipients(block)
                if result.duplicates:
                    st.info(f"Already added: {', '.join(result.duplicates)}")
    else:
        with st.form("recipient_single_form", clear_on_submit=True):
            entry = st.text_input("Recipient email", placeholder="name@example.com")
            if st.form_submit_button("Add", disabled=disabled):
                form.add_recipient(entry)

    if form.errors.get('recipients'):
        st.warning(form.errors['recipients'])

    for email in list(form.recipients):
        col1, col2 = st.columns([5, 1])
        with col1:
            st.write(f"✉️ {email}")
        with col2:
            if st.button("✕", key=f"remove_{email}", disabled=disabled):
                form.remove_recipient(email)
                st.rerun()
