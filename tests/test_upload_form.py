"""Tests for the upload form state"""

import os
from unittest.mock import patch

import pytest

from components.upload_form import FormState, split_recipients
from models import is_valid_email


@pytest.fixture
def form():
    state = FormState(max_upload_size_mb=5)
    yield state
    state.discard()


class TestFileSelection:

    def test_pdf_accepted_with_preview(self, form, pdf_bytes):
        assert form.select_file("report.pdf", "application/pdf", pdf_bytes)

        assert form.has_file
        assert form.preview is not None
        assert os.path.exists(form.preview.path)
        assert form.preview.read() == pdf_bytes
        assert 'file' not in form.errors

    @pytest.mark.parametrize("mime_type", ["image/png", "application/x-pdf", "", None])
    def test_non_pdf_creates_no_preview(self, form, mime_type):
        with patch('components.upload_form.PreviewFile') as preview_cls:
            assert not form.select_file("image.png", mime_type, b"not a pdf")

        preview_cls.assert_not_called()
        assert form.preview is None
        assert not form.has_file
        assert "PDF" in form.errors['file']

    def test_replacing_file_releases_old_preview(self, form, pdf_bytes):
        form.select_file("first.pdf", "application/pdf", pdf_bytes)
        first = form.preview

        form.select_file("second.pdf", "application/pdf", pdf_bytes)

        assert first.released
        assert not os.path.exists(first.path)
        assert form.preview is not first
        assert form.filename == "second.pdf"

    def test_rejection_releases_current_preview(self, form, pdf_bytes):
        form.select_file("report.pdf", "application/pdf", pdf_bytes)
        preview = form.preview

        form.select_file("notes.txt", "text/plain", b"hello")

        assert preview.released
        assert form.preview is None
        assert form.filename is None

    def test_oversized_file_rejected(self, form):
        data = b"%PDF" + b"0" * (6 * 1024 * 1024)

        assert not form.select_file("huge.pdf", "application/pdf", data)
        assert "too large" in form.errors['file']
        assert form.preview is None

    def test_discard_releases_preview(self, form, pdf_bytes):
        form.select_file("report.pdf", "application/pdf", pdf_bytes)
        form.add_recipients("a@x.com")
        form.set_instructions("notes")
        preview = form.preview

        form.discard()

        assert preview.released
        assert not form.has_file
        assert form.recipients == []
        assert form.instructions == ""
        assert form.errors == {}

    def test_file_info(self, form, pdf_bytes):
        assert form.file_info() == {}

        form.select_file("report.pdf", "application/pdf", pdf_bytes)
        info = form.file_info()

        assert info['filename'] == "report.pdf"
        assert info['page_count'] == 1
        assert info['readable']


class FakeUpload:
    """Stands in for streamlit's UploadedFile"""

    def __init__(self, name, data, type="application/pdf", file_id=None):
        self.name = name
        self.type = type
        self.size = len(data)
        self.file_id = file_id
        self._data = data

    def getvalue(self):
        return self._data


class TestUploaderSync:

    def test_same_name_different_file_is_reselected(self, form, pdf_bytes):
        form.sync_upload(FakeUpload("report.pdf", pdf_bytes, file_id="1"))
        first = form.preview
        other = pdf_bytes + b"\n% revised\n"

        assert form.sync_upload(FakeUpload("report.pdf", other, file_id="2"))

        assert first.released
        assert form.file_bytes == other

    def test_same_file_not_reselected(self, form, pdf_bytes):
        upload = FakeUpload("report.pdf", pdf_bytes, file_id="1")
        form.sync_upload(upload)
        preview = form.preview

        with patch('components.upload_form.PreviewFile') as preview_cls:
            assert form.sync_upload(upload)

        preview_cls.assert_not_called()
        assert form.preview is preview

    def test_cleared_uploader_clears_file(self, form, pdf_bytes):
        form.sync_upload(FakeUpload("report.pdf", pdf_bytes))
        preview = form.preview

        assert not form.sync_upload(None)

        assert preview.released
        assert not form.has_file
        assert form.upload_signature is None
        assert 'file' not in form.errors

    def test_reupload_after_clear(self, form, pdf_bytes):
        upload = FakeUpload("report.pdf", pdf_bytes, file_id="1")
        form.sync_upload(upload)
        form.sync_upload(None)

        assert form.sync_upload(upload)
        assert form.has_file

    def test_rejected_upload(self, form):
        assert not form.sync_upload(FakeUpload("photo.png", b"\x89PNG", type="image/png"))

        assert form.preview is None
        assert form.errors['file']


class TestRecipients:

    def test_block_split_on_delimiters(self, form):
        result = form.add_recipients("a@x.com, b@y.org;c@z.net\nd@w.io\r\n")

        assert result.added == ["a@x.com", "b@y.org", "c@z.net", "d@w.io"]
        assert form.recipients == result.added
        assert 'recipients' not in form.errors

    def test_duplicates_and_invalid_skipped(self, form):
        form.add_recipients("a@x.com")
        result = form.add_recipients("a@x.com, bad, b@y.org, b@y.org, also bad@x.com")

        assert form.recipients == ["a@x.com", "b@y.org"]
        assert result.duplicates == ["a@x.com", "b@y.org"]
        assert result.invalid == ["bad", "also bad@x.com"]
        assert "bad" in form.errors['recipients']

    def test_invalid_entry_keeps_accepted_addresses(self, form):
        form.add_recipients("a@x.com")
        form.add_recipients("nope")

        assert form.recipients == ["a@x.com"]
        assert form.errors['recipients']

    def test_valid_batch_clears_error(self, form):
        form.add_recipients("nope")
        form.add_recipients("a@x.com")

        assert 'recipients' not in form.errors

    def test_single_entry_strips_trailing_delimiter(self, form):
        form.add_recipient("  a@x.com; ")
        form.add_recipient("b@y.org,")
        form.add_recipient("   ")

        assert form.recipients == ["a@x.com", "b@y.org"]

    def test_remove_recipient(self, form):
        form.add_recipients("a@x.com, b@y.org")
        form.remove_recipient("a@x.com")
        form.remove_recipient("missing@x.com")

        assert form.recipients == ["b@y.org"]

    @pytest.mark.parametrize("block", [
        "a@x.com,a@x.com,A@x.com",
        ";;a@x.com;;\n\n b@y.org ,",
        "x, y@z, @q.com, q@.com, ok@ok.ok",
        "",
    ])
    def test_recipients_stay_unique_and_valid(self, form, block):
        form.add_recipients(block)
        form.add_recipients(block)

        assert len(form.recipients) == len(set(form.recipients))
        assert all(is_valid_email(email) for email in form.recipients)


class TestValidation:

    def test_validate_file(self, form, pdf_bytes):
        assert not form.validate_file()
        assert form.errors['file'] == "Please select a PDF file"

        form.select_file("report.pdf", "application/pdf", pdf_bytes)
        assert form.validate_file()

    def test_validate_recipients(self, form):
        assert not form.validate_recipients()
        form.add_recipients("a@x.com")
        assert form.validate_recipients()

    def test_to_upload_job(self, form, pdf_bytes):
        form.select_file("report.pdf", "application/pdf", pdf_bytes)
        form.add_recipients("a@x.com")
        form.set_instructions(None)

        job = form.to_upload_job()

        assert job.file_bytes == pdf_bytes
        assert job.filename == "report.pdf"
        assert job.mime_type == "application/pdf"
        assert job.instructions == ""
        assert job.recipients == ["a@x.com"]
        job.recipients.append("b@y.org")
        assert form.recipients == ["a@x.com"]


def test_split_recipients():
    assert split_recipients("") == []
    assert split_recipients(" a@x.com ;\n b@y.org ") == ["a@x.com", "b@y.org"]
