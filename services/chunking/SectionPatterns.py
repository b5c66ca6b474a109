"""Section pattern table used by the semantic chunker.

Each canonical section is recognised in two shapes:

* block: a heading line ("2. Giá thuê", "## Pricing", "II. Địa chỉ" or a bare
  "Address:" line) followed by everything up to the next heading or known label.
* inline label: "Price: 3,500,000 VND/month" plus the consecutive non-blank
  lines after it, stopping at a blank line or the next heading or label.

Keywords cover Vietnamese and English listings. Keyword matching is
case-insensitive; heading numerals are not, so "I." is a heading and "i." is not.
"""

import re

from pydantic import BaseModel, ConfigDict

OTHER_TITLE = "Other description"
OTHER_PRIORITY = 3

# (canonical title, priority, keywords)
SECTION_DEFINITIONS: list[tuple[str, int, tuple[str, ...]]] = [
    ("Basic information", 10, (
        "Thông tin cơ bản", "Thông tin chung", "Giới thiệu",
        "Basic information", "General information", "Introduction", "Overview",
    )),
    ("Room information", 10, (
        "Thông tin phòng trọ", "Thông tin phòng", "Mô tả phòng",
        "Room information", "Room description", "Room details",
    )),
    ("Pricing", 9, (
        "Giá thuê", "Giá cả", "Chi phí", "Giá",
        "Rental price", "Pricing", "Price", "Rent", "Costs", "Cost", "Fees",
    )),
    ("Address", 9, (
        "Địa chỉ", "Vị trí", "Khu vực",
        "Address", "Location",
    )),
    ("Contract terms", 8, (
        "Điều khoản hợp đồng", "Hợp đồng", "Thỏa thuận", "Thoả thuận",
        "Contract terms", "Contract", "Lease terms", "Agreement",
    )),
    ("Rules and regulations", 7, (
        "Quy định", "Nội quy", "Quy tắc", "Lưu ý",
        "House rules", "Rules", "Regulations", "Notes",
    )),
    ("Amenities", 6, (
        "Tiện ích", "Tiện nghi", "Cơ sở vật chất",
        "Amenities", "Facilities", "Utilities",
    )),
    ("Contact", 5, (
        "Thông tin liên hệ", "Liên hệ",
        "Contact information", "Contact",
    )),
    ("Summary", 5, (
        "Tóm tắt", "Kết luận", "Tổng kết",
        "Summary", "Conclusion",
    )),
]

HEADING_PREFIX = r"(?:(?:[IVXLC]+|\d{1,2})[.)]|#{1,6})"


class SectionPattern(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    title: str
    priority: int
    kind: str
    regex: re.Pattern


def _keyword_group(keywords) -> str:
    # longest first so "Giá thuê" wins over "Giá"
    ordered = sorted(set(keywords), key=len, reverse=True)
    return "(?i:" + "|".join(re.escape(k) for k in ordered) + ")"


def _boundary(all_keywords: str) -> str:
    """Lookahead body matching a line that starts another section."""
    return (
        r"[ \t]*(?:"
        r"#{1,6}[ \t]"
        r"|[IVXLC]+[.)][ \t]"
        rf"|\d{{1,2}}[.)][ \t]*{all_keywords}\b"
        rf"|{all_keywords}[ \t]*(?::|$)"
        r")"
    )


def build_section_patterns(definitions: list[tuple[str, int, tuple[str, ...]]] = SECTION_DEFINITIONS) -> list[SectionPattern]:
    """Compile the pattern table, ordered by priority (descending, stable).

    Args:
        definitions: (title, priority, keywords) tuples.

    Returns:
        list[SectionPattern]: Block and inline pattern of every section, block first.
    """
    all_keywords = _keyword_group(kw for _, _, keywords in definitions for kw in keywords)
    boundary = _boundary(all_keywords)

    patterns: list[SectionPattern] = []
    for title, priority, keywords in definitions:
        kw = _keyword_group(keywords)
        block = re.compile(
            rf"^[ \t]*(?:{HEADING_PREFIX}[ \t]*{kw}\b[^\n]*|{kw}[ \t]*:?[ \t]*$)"
            rf"(?:\n(?!{boundary})[^\n]*)*",
            re.MULTILINE,
        )
        inline = re.compile(
            rf"^[ \t]*{kw}[ \t]*:[ \t]*\S[^\n]*"
            rf"(?:\n(?!{boundary})[^\n]*\S[^\n]*)*",
            re.MULTILINE,
        )
        patterns.append(SectionPattern(title=title, priority=priority, kind="block", regex=block))
        patterns.append(SectionPattern(title=title, priority=priority, kind="inline", regex=inline))
    return sorted(patterns, key=lambda p: -p.priority)


SECTION_PATTERNS: list[SectionPattern] = build_section_patterns()
