from __future__ import annotations

from app.domain.rich_text import (
    BULLET_PREFIX,
    NarrativeEditor,
    RichTextDocument,
    Selection,
    continuation_prefix,
)


def _editor_with(html: str) -> tuple[NarrativeEditor, list[str]]:
    pushed: list[str] = []
    editor = NarrativeEditor(on_change=pushed.append)
    editor.load_html(html)
    return editor, pushed


def test_numbered_line_break_continues_sequence() -> None:
    editor, pushed = _editor_with("3. foo")
    editor.line_break()

    assert editor.document.lines[-1].text == "4. "
    assert pushed[-1] == "3. foo<br>4. "


def test_bullet_line_break_continues_bullets() -> None:
    editor, _ = _editor_with(f"{BULLET_PREFIX}first")
    editor.line_break()

    assert editor.document.lines[-1].text == BULLET_PREFIX


def test_plain_line_break_adds_empty_line() -> None:
    editor, pushed = _editor_with("plain text")
    editor.line_break()

    assert [line.text for line in editor.document.lines] == ["plain text", ""]
    assert pushed[-1] == "plain text<br>"


def test_line_break_looks_past_trailing_blank_lines() -> None:
    editor, _ = _editor_with("7. seven<br><br>")
    editor.line_break()

    assert editor.document.lines[-1].text == "8. "


def test_insert_numbered_uses_highest_existing_number() -> None:
    editor, _ = _editor_with("2. two<br>5. five<br>3. three")
    editor.insert_numbered()

    assert editor.document.lines[-1].text == "6. "


def test_insert_numbered_on_empty_document_starts_at_one() -> None:
    editor, pushed = _editor_with("")
    editor.insert_numbered()

    assert [line.text for line in editor.document.lines] == ["1. "]
    assert pushed == ["1. "]


def test_insert_bullet_appends_new_line() -> None:
    editor, _ = _editor_with("intro")
    editor.insert_bullet()

    assert [line.text for line in editor.document.lines] == ["intro", BULLET_PREFIX]


def test_typing_style_toggle_applies_to_next_text() -> None:
    editor, pushed = _editor_with("")
    editor.toggle_bold()
    editor.type_text("Loud")
    editor.toggle_bold()
    editor.type_text(" quiet")

    assert pushed[-1] == "<b>Loud</b> quiet"


def test_selection_toggle_applies_then_removes_style() -> None:
    editor, pushed = _editor_with("hello world")
    editor.toggle_underline(Selection(line=0, start=0, end=5))
    assert pushed[-1] == "<u>hello</u> world"

    editor.toggle_underline(Selection(line=0, start=0, end=5))
    assert pushed[-1] == "hello world"


def test_bold_and_underline_nest() -> None:
    editor, pushed = _editor_with("<b>x</b>")
    editor.toggle_underline(Selection(line=0, start=0, end=1))

    assert pushed[-1] == "<b><u>x</u></b>"


def test_parse_block_markup_and_entities() -> None:
    document = RichTextDocument.from_html("<div>first &amp; one</div><div><br></div><p><strong>bold</strong>&nbsp;end</p>")

    assert [line.text for line in document.lines] == ["first & one", "", "bold end"]
    assert document.lines[2].runs[0].bold is True
    assert document.plain_text() == "first & one\n\nbold end"


def test_serialization_escapes_text() -> None:
    document = RichTextDocument.from_html("a &lt; b")

    assert document.to_html() == "a &lt; b"


def test_continuation_prefix_rules() -> None:
    assert continuation_prefix("12. twelve") == "13. "
    assert continuation_prefix("• item") == BULLET_PREFIX
    assert continuation_prefix("no prefix") == ""
    assert continuation_prefix("") == ""


def test_markup_separator_is_the_only_difference_from_html() -> None:
    document = RichTextDocument.from_html("<b><u>1. Cracks</u></b><br>a &lt; b")

    assert document.to_markup("<br/>") == "<b><u>1. Cracks</u></b><br/>a &lt; b"
    assert document.to_html() == document.to_markup("<br>")
