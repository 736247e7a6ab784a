"""Validators module for the docmapper pipeline.

This module contains the file classification checks used to decide
whether a file is sent for extraction and which extraction path it
takes.
"""

from pathlib import Path

from ..config import Config
from ..models import FileRecord

__all__ = ["FileValidator"]


class FileValidator:
    """Classifies uploaded files for scheduling and extraction.

    This class provides static methods only; none of them raise.
    """

    @staticmethod
    def is_processable(file: FileRecord) -> bool:
        """Check if a file should be sent for AI processing.

        Container formats are visual groupings only, and empty files have
        nothing to analyze.

        Args:
            file: File record to check

        Returns:
            True if the file has content and is not an archive
        """
        if FileValidator.is_container(file):
            return False
        return file.size > 0

    @staticmethod
    def is_container(file: FileRecord) -> bool:
        """Check if a file is an archive/container format."""
        if file.media_type in Config.CONTAINER_MEDIA_TYPES:
            return True
        return Path(file.name).suffix.lower() in Config.CONTAINER_EXTENSIONS

    @staticmethod
    def is_image(file: FileRecord) -> bool:
        return file.media_type.startswith("image/")

    @staticmethod
    def is_pdf(file: FileRecord) -> bool:
        return file.media_type == "application/pdf" or file.name.lower().endswith(".pdf")

    @staticmethod
    def needs_vision(file: FileRecord) -> bool:
        """Check if a file goes through the vision-capable path.

        Images and PDFs do, provided there is something to attach:
        pre-rendered pages or an encoded payload.
        """
        if not (FileValidator.is_image(file) or FileValidator.is_pdf(file)):
            return False
        return bool(file.page_images or file.data_url)
