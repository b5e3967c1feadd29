"""Tests for the template parser."""

import io

import pytest

from dspc.ast import (
    CodeNode,
    ExprNode,
    IncludeNode,
    Parser,
    SlotNode,
    Template,
    TextNode,
    VarNode,
    parse_template,
    parse_template_file,
)
from dspc.ast.parser import escape_text, split_sigils
from dspc.ast.scanner import CharStream
from dspc.exceptions import (
    DuplicateDirectiveError,
    MalformedTagError,
    TemplateSyntaxError,
    UnknownDirectiveError,
    UnterminatedTagError,
)


# =============================================================================
# Text
# =============================================================================


def test_plain_text_is_one_node():
    templ = parse_template("Hello, world")
    assert templ.nodes == (TextNode("Hello, world"),)
    assert templ.layout is None
    assert templ.head is None
    assert templ.attrs is None
    assert templ.has_slot is False


def test_empty_template_has_no_nodes():
    assert parse_template("").nodes == ()


def test_quotes_are_escaped_while_reading():
    templ = parse_template('say "hi"')
    assert templ.nodes == (TextNode('say \\"hi\\"'),)


def test_newlines_and_backslashes_are_escaped():
    templ = parse_template("a\\b\nc\r\n")
    assert templ.nodes == (TextNode("a\\\\b\\nc\\r\\n"),)


def test_escape_text_keeps_tabs_and_hex_escapes_controls():
    assert escape_text("\tx") == "\tx"
    assert escape_text("\x00") == "\\x00"


def test_start_characters_without_marker_are_text():
    templ = parse_template("a < b { c [ d")
    assert templ.nodes == (TextNode("a < b { c [ d"),)


@pytest.mark.parametrize("text", ["x<", "x{", "x["])
def test_start_character_at_end_of_input_is_text(text):
    assert parse_template(text).nodes == (TextNode(text),)


def test_rejected_second_character_is_scanned_again():
    templ = parse_template("<<%d x = 1 %>")
    assert templ.nodes == (TextNode("<"), CodeNode("x = 1 "))


# =============================================================================
# Expressions and variables
# =============================================================================


def test_expression_keeps_raw_text():
    templ = parse_template("{% 1+1 %}")
    assert templ.nodes == (ExprNode(" 1+1 "),)


def test_expression_may_contain_percent():
    templ = parse_template("{% 7 % 4 %}")
    assert templ.nodes == (ExprNode(" 7 % 4 "),)


def test_variable_key_is_trimmed():
    templ = parse_template("Hello [[ name ]]!")
    assert templ.nodes == (TextNode("Hello "), VarNode("name"), TextNode("!"))


def test_variable_reads_until_double_bracket():
    templ = parse_template("[[ a]b ]]")
    assert templ.nodes == (VarNode("a]b"),)


def test_unterminated_expression():
    with pytest.raises(UnterminatedTagError):
        parse_template("{% 1+1")


def test_unterminated_variable():
    with pytest.raises(UnterminatedTagError):
        parse_template("[[ name ]")


# =============================================================================
# Directives
# =============================================================================


def test_layout_sets_reference():
    templ = parse_template("<%layout base%>hi")
    assert templ.layout == "base"
    assert templ.nodes == (TextNode("hi"),)


def test_layout_allows_surrounding_whitespace():
    assert parse_template("<%layout   pages/base  %>").layout == "pages/base"


def test_layout_and_attrs_do_not_split_text():
    templ = parse_template("a<%layout base%>b<%attrs @x %>c")
    assert templ.nodes == (TextNode("abc"),)


def test_head_is_appended():
    templ = parse_template("<%head\nimport os\n%>x<%head\nimport sys\n%>")
    assert templ.head == "import os\nimport sys\n"
    assert templ.nodes == (TextNode("x"),)


def test_code_block():
    templ = parse_template('<%d x = @["a"] %>')
    assert templ.nodes == (CodeNode('x = @["a"] '),)


def test_code_block_may_contain_percent():
    templ = parse_template("<%d x = 5 % 3 %>")
    assert templ.nodes == (CodeNode("x = 5 % 3 "),)


def test_slot_splits_text():
    templ = parse_template("a<%slot%>b")
    assert templ.has_slot is True
    assert templ.nodes == (TextNode("a"), SlotNode(), TextNode("b"))


def test_slot_allows_trailing_whitespace():
    assert parse_template("<%slot  %>").nodes == (SlotNode(),)


def test_include_without_context():
    templ = parse_template("<%inc nav%>")
    assert templ.nodes == (IncludeNode("nav", None),)


def test_include_with_context_expression():
    templ = parse_template('<%inc  partials/nav  @["user"] %>')
    assert templ.nodes == (IncludeNode("partials/nav", '@["user"]'),)


def test_attrs_are_trimmed():
    assert parse_template("<%attrs   @cache  %>").attrs == "@cache"


def test_empty_directive_is_accepted():
    assert parse_template("a<%%>b").nodes == (TextNode("ab"),)


# =============================================================================
# Errors
# =============================================================================


@pytest.mark.parametrize(
    "text, directive",
    [
        ("<%layout a%><%layout b%>", "layout"),
        ("<%slot%><%slot%>", "slot"),
        ("<%attrs x%><%attrs y%>", "attrs"),
    ],
)
def test_duplicate_directives(text, directive):
    with pytest.raises(DuplicateDirectiveError) as exc_info:
        parse_template(text)
    assert exc_info.value.directive == directive


def test_unknown_directive():
    with pytest.raises(UnknownDirectiveError) as exc_info:
        parse_template("<%foo%>")
    assert exc_info.value.directive == "foo"


@pytest.mark.parametrize(
    "text",
    ["<%", "<%slot", "<%d x = 1", "<%d x = 1 %", "<%layout base", "<%head import os"],
)
def test_unterminated_directives(text):
    with pytest.raises(UnterminatedTagError):
        parse_template(text)


@pytest.mark.parametrize(
    "text",
    ["<%slot x%>", "<%layout base x%>", "<%layout %>", "<%inc %>"],
)
def test_malformed_directives(text):
    with pytest.raises(MalformedTagError):
        parse_template(text)


def test_errors_carry_source_and_line():
    with pytest.raises(TemplateSyntaxError) as exc_info:
        Parser().parse("line one\n<%foo%>", source_name="page.dsp")
    err = exc_info.value
    assert err.source == "page.dsp"
    assert err.line == 2
    assert err.message == "page.dsp:2: Unknown template directive: foo"


# =============================================================================
# Sources
# =============================================================================


def test_parse_accepts_streams():
    templ = Parser().parse(io.StringIO("[[ a ]]"))
    assert templ.nodes == (VarNode("a"),)


def test_parse_file_keeps_carriage_returns(tmp_path):
    path = tmp_path / "page.dsp"
    path.write_bytes(b"a\r\n[[ b ]]")
    templ = parse_template_file(path)
    assert templ.nodes == (TextNode("a\\r\\n"), VarNode("b"))


def test_parse_file_error_mentions_path(tmp_path):
    path = tmp_path / "broken.dsp"
    path.write_text("<%nope%>")
    with pytest.raises(UnknownDirectiveError) as exc_info:
        parse_template_file(path)
    assert str(path) in exc_info.value.message


def test_parser_is_reusable():
    parser = Parser()
    first = parser.parse("<%layout base%><%slot%>")
    second = parser.parse("<%layout base%><%slot%>")
    assert first == second
    assert parser.parse("x").nodes == (TextNode("x"),)


def test_template_is_frozen():
    templ = parse_template("x")
    with pytest.raises(AttributeError):
        templ.layout = "base"


def test_template_json_uses_node_tags():
    templ = parse_template("a[[ b ]]<%slot%>")
    data = templ.to_json()
    assert b'"type":"text"' in data
    assert b'"type":"var"' in data
    assert Template.from_json(data) == templ


# =============================================================================
# Scanner
# =============================================================================


def test_split_sigils():
    assert split_sigils("d") == ("d", False, False)
    assert split_sigils("-d") == ("d", True, False)
    assert split_sigils("d-") == ("d", False, True)
    assert split_sigils("!d") == ("d", True, True)
    assert split_sigils("d!") == ("d", True, True)


def test_char_stream_pushback_is_limited_to_two():
    stream = CharStream("abc")
    a, b, c = stream.read(), stream.read(), stream.read()
    stream.unread(c)
    stream.unread(b)
    with pytest.raises(RuntimeError):
        stream.unread(a)
    assert stream.read() + stream.read() == "bc"
    assert stream.read() == ""


def test_char_stream_tracks_lines():
    stream = CharStream("a\nb")
    stream.read()
    stream.read()
    assert stream.line == 2
    stream.unread("\n")
    assert stream.line == 1


def test_parse_file_rejects_invalid_utf8(tmp_path):
    path = tmp_path / "bad.dsp"
    path.write_bytes(b"hello \xff\xfe world")
    with pytest.raises(TemplateSyntaxError) as exc_info:
        parse_template_file(path)
    assert exc_info.value.source == str(path)
    assert exc_info.value.message.startswith(f"{path}: Template is not valid UTF-8")
    assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)
