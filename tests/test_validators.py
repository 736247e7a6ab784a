"""Tests for the validators module.

This module contains tests for file classification: container
detection, processability and extraction path selection.
"""

import pytest

from docmapper.validators import FileValidator


class TestFileValidator:
    """Test cases for FileValidator class."""

    @pytest.mark.parametrize("name, media_type", [
        ("bundle.zip", "application/zip"),
        ("bundle.zip", "application/x-zip-compressed"),
        ("BUNDLE.ZIP", ""),
        ("bundle", "application/zip"),
    ])
    def test_containers_are_not_processable(self, make_file, name, media_type):
        """Test that archives are never sent for extraction."""
        file = make_file(name, media_type=media_type)
        assert FileValidator.is_container(file)
        assert not FileValidator.is_processable(file)

    def test_empty_file_is_not_processable(self, make_file):
        """Test that empty files are skipped."""
        assert not FileValidator.is_processable(make_file("empty.txt", size=0))

    def test_regular_file_is_processable(self, make_file):
        assert FileValidator.is_processable(make_file("a.txt"))

    def test_pdf_detection(self, make_file):
        """Test PDF detection by media type and extension."""
        assert FileValidator.is_pdf(make_file("a.bin", media_type="application/pdf"))
        assert FileValidator.is_pdf(make_file("Report.PDF", media_type=""))
        assert not FileValidator.is_pdf(make_file("a.txt"))

    def test_needs_vision(self, make_file):
        """Test extraction path selection."""
        image = make_file("a.png", media_type="image/png", data_url="data:image/png;base64,AA==")
        pdf_pages = make_file("a.pdf", media_type="application/pdf", page_images=["data:image/png;base64,AA=="])
        bare_pdf = make_file("b.pdf", media_type="application/pdf", content="extracted text")
        text = make_file("a.txt", data_url="data:text/plain;base64,AA==")

        assert FileValidator.needs_vision(image)
        assert FileValidator.needs_vision(pdf_pages)
        assert not FileValidator.needs_vision(bare_pdf)
        assert not FileValidator.needs_vision(text)
