"""Rebuild readable text from positioned PDF fragments, the way an ATS parser sees it."""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

LINE_THRESHOLD = 5.0
PARAGRAPH_THRESHOLD = 15.0
SPACE_GAP = 5.0
SEPARATOR = "=" * 60

PRIVATE_USE_AREA = re.compile(r"[\ue000-\uf8ff]")

KEYWORD_CATEGORIES = {
    "Contact Info": ["@", "phone", "linkedin", "email"],
    "Education": ["university", "gpa", "degree", "b.sc", "b.a", "m.sc"],
    "Experience": ["experience", "intern", "engineer", "developer"],
    "Skills": ["python", "java", "javascript", "git", "sql"],
    "Sections": ["education", "experience", "skills", "projects"],
}


@dataclass(frozen=True)
class TextFragment:
    """A run of text at a position. ``y`` grows upward, as in PDF space."""

    text: str
    x: float
    y: float
    width: float = 0.0


def page_marker(page_number: int) -> str:
    return f"\n\n--- Page {page_number} ---\n\n"


def _reading_order(a: TextFragment, b: TextFragment) -> float:
    y_diff = b.y - a.y
    if abs(y_diff) > LINE_THRESHOLD:
        return y_diff
    return a.x - b.x


def layout_page(fragments: Iterable[TextFragment]) -> str:
    """Join one page's fragments into lines and paragraphs."""
    ordered = sorted(fragments, key=functools.cmp_to_key(_reading_order))
    result = ""
    last_y = None
    last_x = None

    for fragment in ordered:
        if not fragment.text.strip():
            continue
        if last_y is not None:
            y_gap = abs(last_y - fragment.y)
            if y_gap > PARAGRAPH_THRESHOLD:
                result += "\n\n"
            elif y_gap > LINE_THRESHOLD:
                result += "\n"
            elif last_x is not None and fragment.x > last_x + SPACE_GAP:
                result += " "
            elif result and not result.endswith((" ", "\n")):
                result += " "
        result += fragment.text
        last_y = fragment.y
        last_x = fragment.x + fragment.width

    return result.strip()


def join_pages(pages: Sequence[str]) -> str:
    text = ""
    for index, page_text in enumerate(pages, start=1):
        if index > 1:
            text += page_marker(index)
        text += page_text
    return text


def fragments_from_page(page) -> List[TextFragment]:
    """Collect word fragments from a PyMuPDF page, flipped to bottom-up y."""
    height = page.rect.height
    fragments = []
    # Word tuples: (x0, y0, x1, y1, text, block_no, line_no, word_no)
    for x0, _y0, x1, y1, text, *_ in page.get_text("words"):
        fragments.append(TextFragment(text=text, x=x0, y=height - y1, width=x1 - x0))
    return fragments


@dataclass
class AtsAnalysis:
    passed: List[str] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)


def analyze_text(text: str) -> AtsAnalysis:
    """Keyword coverage, icon-font glyphs and word count."""
    analysis = AtsAnalysis()
    lowered = text.lower()

    for category, words in KEYWORD_CATEGORIES.items():
        found = [word for word in words if word in lowered]
        if found:
            joined = '", "'.join(found)
            analysis.passed.append(f'  [OK] {category}: Found "{joined}"')
        else:
            analysis.issues.append(f"  [WARN] {category}: No keywords found")

    glyphs = PRIVATE_USE_AREA.findall(text)
    if glyphs:
        analysis.issues.append(
            f"  [WARN] Found {len(glyphs)} icon characters (Font Awesome symbols in text layer)"
        )
    else:
        analysis.passed.append("  [OK] No garbage icon characters detected")

    analysis.passed.append(f"  [INFO] Word count: {len(text.split())}")
    return analysis


def format_report(document_name: str, page_count: int, text: str, saved_to: str) -> str:
    """Plain-text report printed by the extraction CLI."""
    analysis = analyze_text(text)
    line_count = len(text.split("\n"))
    lines = [
        f"[ATS] Starting text extraction for: {document_name}",
        "",
        SEPARATOR,
        f"ATS EXTRACTED TEXT: {document_name}",
        SEPARATOR,
        f"Pages: {page_count}",
        SEPARATOR,
        "",
        text,
        "",
        SEPARATOR,
        "END OF EXTRACTED TEXT",
        SEPARATOR,
        "",
        f"[ATS] Text saved to: {saved_to}",
        f"[ATS] Characters: {len(text)}",
        f"[ATS] Lines: {line_count}",
        "",
        "[ATS] Analysis:",
    ]
    if analysis.passed:
        lines += ["", "  Passed checks:", *analysis.passed]
    if analysis.issues:
        lines += ["", "  Potential issues:", *analysis.issues]
    return "\n".join(lines) + "\n"
