"""Plain-text extraction from uploaded documents (text, markdown, PDF, HTML)."""

import os

import fitz  # PyMuPDF
from bs4 import BeautifulSoup

from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import ValidationError

_TEXT_TYPES = ("text/plain", "text/markdown", "text/x-markdown")
_TEXT_SUFFIXES = (".txt", ".md", ".markdown")
_HTML_TYPES = ("text/html", "application/xhtml+xml")
_HTML_SUFFIXES = (".html", ".htm")
_PDF_TYPES = ("application/pdf",)
_PDF_SUFFIXES = (".pdf",)


class TextExtractor:
    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()

    def detect_kind(self, content_type: str | None, filename: str | None = None) -> str:
        """Classify a file as "text", "html" or "pdf" from its content type or file suffix.

        Raises:
            ValidationError: If the type is not supported.
        """
        mime = (content_type or "").split(";")[0].strip().lower()
        suffix = os.path.splitext(filename or "")[1].lower()
        if mime in _PDF_TYPES or suffix in _PDF_SUFFIXES:
            return "pdf"
        if mime in _HTML_TYPES or suffix in _HTML_SUFFIXES:
            return "html"
        if mime in _TEXT_TYPES or suffix in _TEXT_SUFFIXES:
            return "text"
        raise ValidationError(f"Unsupported document type '{content_type or suffix or 'unknown'}'.")

    def extract(self, data: bytes, content_type: str | None, filename: str | None = None) -> str:
        """Extract the text of a document.

        Args:
            data (bytes): Raw file content.
            content_type (str | None): MIME type as reported by the source.
            filename (str | None): File name, used when the content type is missing or generic.

        Returns:
            str: The extracted text, stripped.

        Raises:
            ValidationError: If the type is unsupported or the file cannot be read.
        """
        kind = self.detect_kind(content_type, filename)
        if kind == "pdf":
            text = self._extract_pdf(data)
        elif kind == "html":
            text = self._extract_html(data)
        else:
            text = data.decode("utf-8", errors="replace")
        text = text.strip()
        self.logging.debug("Extracted %d characters from %s document %s", len(text), kind, filename or "")
        return text

    @staticmethod
    def _extract_pdf(data: bytes) -> str:
        try:
            with fitz.open(stream=data, filetype="pdf") as doc:
                return "\n\n".join(page.get_text() for page in doc)
        except RuntimeError as e:
            raise ValidationError(f"Could not read PDF document: {e}")

    @staticmethod
    def _extract_html(data: bytes) -> str:
        soup = BeautifulSoup(data, "html.parser")
        for element in soup(["script", "style", "nav", "footer", "header"]):
            element.decompose()
        return soup.get_text("\n")
