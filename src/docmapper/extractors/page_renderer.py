"""Page renderer for the docmapper pipeline.

This module contains the PageRenderer class that turns PDF payloads into
PNG page images for the vision-capable extraction path.
"""

import base64
import io
import logging
from typing import List, Optional, Tuple

import pdfplumber

from ..config import Config
from ..exceptions import DocumentRenderError

__all__ = ["PageRenderer", "decode_data_url", "encode_data_url"]

logger = logging.getLogger(__name__)


def decode_data_url(data_url: str) -> Tuple[str, bytes]:
    """Split a base64 data URL into media type and raw bytes.

    Raises:
        DocumentRenderError: If the URL is not a base64 data URL
    """
    header, sep, payload = data_url.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise DocumentRenderError("Payload is not a base64 data URL")
    media_type = header[len("data:"):-len(";base64")]
    try:
        return media_type, base64.b64decode(payload)
    except ValueError as e:
        raise DocumentRenderError(f"Invalid base64 payload: {str(e)}")


def encode_data_url(media_type: str, raw: bytes) -> str:
    return f"data:{media_type};base64,{base64.b64encode(raw).decode('ascii')}"


class PageRenderer:
    """Renders PDF pages to PNG data URLs.

    Uses pdfplumber for rasterization. Pages that fail to render are
    skipped, so a partially broken PDF still yields the readable pages.
    """

    def __init__(self, resolution: int = Config.PDF_RENDER_RESOLUTION) -> None:
        self.resolution: int = resolution

    def render_pdf(self, pdf_bytes: bytes, max_pages: Optional[int] = None) -> Tuple[List[str], int]:
        """Render the first pages of a PDF.

        Args:
            pdf_bytes: Raw PDF file content
            max_pages: Maximum number of pages to render, all when None

        Returns:
            Tuple of rendered page data URLs and the document's total page count

        Raises:
            DocumentRenderError: If the PDF cannot be opened or no page renders
        """
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                total_pages = len(pdf.pages)
                if not total_pages:
                    raise DocumentRenderError("PDF contains no pages")

                limit = total_pages if max_pages is None else min(total_pages, max_pages)
                images: List[str] = []
                for i, page in enumerate(pdf.pages[:limit]):
                    try:
                        page_image = page.to_image(resolution=self.resolution)
                        buffer = io.BytesIO()
                        page_image.original.save(buffer, format="PNG")
                        images.append(encode_data_url("image/png", buffer.getvalue()))
                    except Exception as e:
                        logger.warning("Failed to render page %d: %s", i + 1, e)
                        continue

                if not images:
                    raise DocumentRenderError("Failed to render any page")

                return images, total_pages

        except Exception as e:
            if isinstance(e, DocumentRenderError):
                raise
            raise DocumentRenderError(f"PDF reading error: {str(e)}")
