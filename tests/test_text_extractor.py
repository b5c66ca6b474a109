import fitz
import pytest

from services.kb_ingest.TextExtractor import TextExtractor
from shared.models.errors import ValidationError

PAGE = """<html>
<head><style>body { color: red; }</style><script>track()</script></head>
<body>
<nav>Home | Listings</nav>
<h1>Nội quy</h1>
<p>Không hút thuốc trong phòng.</p>
<footer>© 2024</footer>
</body>
</html>"""


class TestTextExtractor:
    @pytest.fixture
    def extractor(self, helper_config):
        return TextExtractor(helper_config=helper_config)

    @pytest.mark.parametrize("content_type, filename, kind", [
        ("application/pdf", None, "pdf"),
        ("application/octet-stream", "contract.PDF", "pdf"),
        ("text/html; charset=utf-8", None, "html"),
        (None, "page.htm", "html"),
        ("text/markdown", None, "text"),
        (None, "rules.md", "text"),
        ("text/plain", "notes", "text"),
    ])
    def test_detect_kind(self, extractor, content_type, filename, kind):
        assert extractor.detect_kind(content_type, filename) == kind

    def test_unsupported_type(self, extractor):
        with pytest.raises(ValidationError, match="Unsupported document type 'image/png'"):
            extractor.extract(b"\x89PNG", "image/png", "photo.png")

    def test_unknown_type_without_hints(self, extractor):
        with pytest.raises(ValidationError, match="'unknown'"):
            extractor.detect_kind(None, None)

    def test_plain_text_is_decoded_and_stripped(self, extractor):
        text = extractor.extract("  Giá thuê: 3.500.000 VND \n".encode("utf-8"), "text/plain")

        assert text == "Giá thuê: 3.500.000 VND"

    def test_html_drops_page_chrome(self, extractor):
        text = extractor.extract(PAGE.encode("utf-8"), "text/html")

        assert "Nội quy" in text
        assert "Không hút thuốc trong phòng." in text
        assert "track()" not in text
        assert "Listings" not in text
        assert "color" not in text
        assert "2024" not in text

    def test_pdf_text(self, extractor):
        doc = fitz.open()
        page = doc.new_page()
        page.insert_text((72, 72), "Monthly rent 3500000 VND")
        data = doc.tobytes()
        doc.close()

        text = extractor.extract(data, "application/pdf", "listing.pdf")

        assert "Monthly rent 3500000 VND" in text

    def test_unreadable_pdf(self, extractor):
        with pytest.raises(ValidationError, match="Could not read PDF document"):
            extractor.extract(b"definitely not a pdf", "application/pdf")
