"""
File Handler - PDF Validation, Preview Files and Inspection
===========================================================

- MIME check for the single accepted type (application/pdf)
- PreviewFile: temporary on-disk copy used to preview the selected PDF;
  must be released when replaced, rejected or discarded
- inspect_pdf: page count and encrypted-PDF detection (informative only)
"""

import base64
import os
import tempfile
from io import BytesIO
from typing import Any, Dict, Optional
import logging

from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from models import PDF_MIME_TYPE

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def is_pdf_mime(mime_type: Optional[str]) -> bool:
    """Only the exact PDF MIME type is accepted"""
    return mime_type == PDF_MIME_TYPE


class PreviewFile:
    """
    Temporary copy of an uploaded PDF for in-page preview.

    Single owner: whoever holds the handle releases it. `release()` is
    idempotent.
    """

    def __init__(self, data: bytes, filename: str = "document.pdf"):
        fd, self.path = tempfile.mkstemp(prefix='intextive_preview_', suffix='.pdf')
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        self.filename = filename
        self.released = False
        logger.debug(f"Created preview file {self.path} for {filename}")

    def read(self) -> bytes:
        if self.released:
            raise ValueError(f"Preview for {self.filename} has been released")
        with open(self.path, 'rb') as f:
            return f.read()

    def data_url(self) -> str:
        """Base64 data URL for an <iframe> preview"""
        encoded = base64.b64encode(self.read()).decode('ascii')
        return f"data:{PDF_MIME_TYPE};base64,{encoded}"

    def release(self):
        """Delete the temporary file."""
        if self.released:
            return
        if os.path.exists(self.path):
            os.remove(self.path)
        self.released = True
        logger.debug(f"Released preview file {self.path}")

    def __enter__(self) -> 'PreviewFile':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()


def inspect_pdf(data: bytes) -> Dict[str, Any]:
    """
    Read basic facts about a PDF.

    Args:
        data: PDF bytes

    Returns:
        Dict with:
        - encrypted: bool
        - readable: bool
        - page_count: int (0 if unreadable)
        - message: str (status/warning message)
    """
    try:
        reader = PdfReader(BytesIO(data))

        if reader.is_encrypted:
            return {
                "encrypted": True,
                "readable": False,
                "page_count": 0,
                "message": "Password-protected PDF: the workflow may not be able to read it"
            }

        page_count = len(reader.pages)
        return {
            "encrypted": False,
            "readable": True,
            "page_count": page_count,
            "message": f"{page_count} page{'s' if page_count != 1 else ''}"
        }

    except PdfReadError as e:
        logger.warning(f"Could not read PDF: {e}")
        return {
            "encrypted": False,
            "readable": False,
            "page_count": 0,
            "message": f"Corrupted PDF: {str(e)[:50]}"
        }

    except Exception as e:
        logger.warning(f"Error reading PDF: {e}")
        return {
            "encrypted": False,
            "readable": False,
            "page_count": 0,
            "message": f"Error reading PDF: {str(e)[:50]}"
        }
