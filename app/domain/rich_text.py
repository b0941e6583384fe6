"""Observation narrative: a small line/run document model with list auto-continuation.

The narrative is stored on the record as an HTML fragment (lines joined by
``<br>``, inline ``<b>``/``<u>``). Lists are plain line prefixes rather than
structural lists: a bullet glyph or an ``N.`` counter at the start of a line.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from html.parser import HTMLParser

from markupsafe import escape

BULLET = "•"
BULLET_PREFIX = f"{BULLET} "
INLINE_STYLES = ("bold", "underline")

_NUMBERED_PREFIX = re.compile(r"^(\d+)\.")
_BLOCK_TAGS = {"div", "p", "li"}
_BOLD_TAGS = {"b", "strong"}


@dataclass
class TextRun:
    text: str
    bold: bool = False
    underline: bool = False

    def same_style(self, other: TextRun) -> bool:
        return self.bold == other.bold and self.underline == other.underline


@dataclass
class Line:
    runs: list[TextRun] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)

    def append(self, text: str, *, bold: bool = False, underline: bool = False) -> None:
        if not text:
            return
        run = TextRun(text, bold=bold, underline=underline)
        if self.runs and self.runs[-1].same_style(run):
            self.runs[-1].text += text
            return
        self.runs.append(run)

    def characters(self) -> list[TextRun]:
        return [replace(run, text=char) for run in self.runs for char in run.text]

    @classmethod
    def from_characters(cls, chars: list[TextRun]) -> Line:
        line = cls()
        for char in chars:
            line.append(char.text, bold=char.bold, underline=char.underline)
        return line


@dataclass(frozen=True)
class Selection:
    line: int
    start: int
    end: int


def numbered_prefix_value(text: str) -> int | None:
    match = _NUMBERED_PREFIX.match(text.strip())
    if match is None:
        return None
    return int(match.group(1))


def continuation_prefix(text: str) -> str:
    """Prefix the next line inherits from ``text``; empty when it carries none."""
    number = numbered_prefix_value(text)
    if number is not None:
        return f"{number + 1}. "
    if text.strip().startswith(BULLET):
        return BULLET_PREFIX
    return ""


class _NarrativeParser(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.lines: list[Line] = [Line()]
        self._bold = 0
        self._underline = 0
        self._pending_break = False
        self._fresh_block = False

    def _flush_pending_break(self) -> None:
        if self._pending_break:
            self.lines.append(Line())
            self._pending_break = False

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag == "br":
            self._flush_pending_break()
            if self._fresh_block:
                # A lone <br> inside a fresh block is the placeholder of an empty line.
                self._fresh_block = False
                return
            self.lines.append(Line())
        elif tag in _BLOCK_TAGS:
            if self.lines[-1].runs or self._pending_break:
                self.lines.append(Line())
            self._pending_break = False
            self._fresh_block = True
        elif tag in _BOLD_TAGS:
            self._bold += 1
        elif tag == "u":
            self._underline += 1

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self.handle_starttag(tag, attrs)

    def handle_endtag(self, tag: str) -> None:
        if tag in _BLOCK_TAGS:
            self._pending_break = True
            self._fresh_block = False
        elif tag in _BOLD_TAGS:
            self._bold = max(0, self._bold - 1)
        elif tag == "u":
            self._underline = max(0, self._underline - 1)

    def handle_data(self, data: str) -> None:
        if not data:
            return
        self._flush_pending_break()
        self._fresh_block = False
        self.lines[-1].append(
            data.replace("\xa0", " "),
            bold=self._bold > 0,
            underline=self._underline > 0,
        )


class RichTextDocument:
    def __init__(self, lines: list[Line] | None = None) -> None:
        self.lines: list[Line] = lines if lines is not None else []

    @classmethod
    def from_html(cls, html: str) -> RichTextDocument:
        if not html or not html.strip():
            return cls()
        parser = _NarrativeParser()
        parser.feed(html)
        parser.close()
        lines = parser.lines
        if len(lines) == 1 and not lines[0].runs:
            return cls()
        return cls(lines)

    def to_html(self) -> str:
        return self.to_markup("<br>")

    def to_markup(self, separator: str) -> str:
        """Escaped runs wrapped in ``<b>``/``<u>``, lines joined with ``separator``."""
        return separator.join(self._line_markup(line) for line in self.lines)

    def _line_markup(self, line: Line) -> str:
        parts: list[str] = []
        for run in line.runs:
            chunk = str(escape(run.text))
            if run.underline:
                chunk = f"<u>{chunk}</u>"
            if run.bold:
                chunk = f"<b>{chunk}</b>"
            parts.append(chunk)
        return "".join(parts)

    def plain_text(self) -> str:
        return "\n".join(line.text for line in self.lines)

    def is_blank(self) -> bool:
        return not any(line.text.strip() for line in self.lines)

    def last_non_blank_text(self) -> str:
        for line in reversed(self.lines):
            if line.text.strip():
                return line.text
        return ""

    def highest_number(self) -> int:
        numbers = [numbered_prefix_value(line.text) for line in self.lines]
        return max((value for value in numbers if value is not None), default=0)

    def append_line(self, text: str = "") -> Line:
        line = Line()
        line.append(text)
        self.lines.append(line)
        return line

    def _characters(self, selection: Selection) -> tuple[list[TextRun], int, int]:
        if not 0 <= selection.line < len(self.lines):
            raise ValueError(f"selection line {selection.line} is out of range")
        chars = self.lines[selection.line].characters()
        start = max(0, min(selection.start, len(chars)))
        end = max(start, min(selection.end, len(chars)))
        return chars, start, end

    def has_style(self, selection: Selection, style: str) -> bool:
        chars, start, end = self._characters(selection)
        span = chars[start:end]
        return bool(span) and all(getattr(char, style) for char in span)

    def set_style(self, selection: Selection, style: str, enabled: bool) -> None:
        if style not in INLINE_STYLES:
            raise ValueError(f"unsupported inline style: {style}")
        chars, start, end = self._characters(selection)
        for char in chars[start:end]:
            setattr(char, style, enabled)
        self.lines[selection.line] = Line.from_characters(chars)


class NarrativeEditor:
    """Editing surface for the narrative; every command pushes HTML through ``on_change``."""

    def __init__(
        self,
        document: RichTextDocument | None = None,
        on_change: Callable[[str], None] | None = None,
    ) -> None:
        self.document = document or RichTextDocument()
        self._on_change = on_change
        self._typing = {style: False for style in INLINE_STYLES}

    @property
    def html(self) -> str:
        return self.document.to_html()

    def typing_style(self, style: str) -> bool:
        return self._typing[style]

    def load_html(self, html: str) -> None:
        self.document = RichTextDocument.from_html(html)
        self._typing = {style: False for style in INLINE_STYLES}

    def type_text(self, text: str) -> None:
        if not self.document.lines:
            self.document.append_line()
        self.document.lines[-1].append(text, **self._typing)
        self._sync()

    def toggle_bold(self, selection: Selection | None = None) -> None:
        self._toggle("bold", selection)

    def toggle_underline(self, selection: Selection | None = None) -> None:
        self._toggle("underline", selection)

    def insert_bullet(self) -> None:
        self._append_prefixed(BULLET_PREFIX)

    def insert_numbered(self) -> None:
        self._append_prefixed(f"{self.document.highest_number() + 1}. ")

    def line_break(self) -> None:
        prefix = continuation_prefix(self.document.last_non_blank_text())
        if prefix:
            self._append_prefixed(prefix)
            return
        if not self.document.lines:
            self.document.append_line()
        self.document.append_line()
        self._sync()

    def _toggle(self, style: str, selection: Selection | None) -> None:
        if selection is None:
            self._typing[style] = not self._typing[style]
            return
        enabled = not self.document.has_style(selection, style)
        self.document.set_style(selection, style, enabled)
        self._sync()

    def _append_prefixed(self, prefix: str) -> None:
        if self.document.is_blank():
            self.document.lines = []
        self.document.append_line(prefix)
        self._sync()

    def _sync(self) -> None:
        if self._on_change is not None:
            self._on_change(self.document.to_html())
