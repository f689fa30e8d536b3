"""Tests for the build-script lexer."""

from __future__ import annotations

from unidep.engines.dependency_scanner.blocks import (
    detect_newline,
    extend_statement,
    find_blocks,
    indentation_at,
    line_terminator_length,
    mask,
    match_brace,
    statement_starts,
    top_level_blocks,
)


class TestMask:
    def test_keeps_length_and_offsets(self):
        text = 'implementation "g:a:1" // comment {\n/* { */ api \'x\'\n'
        masked = mask(text)
        assert len(masked.code) == len(text)
        assert masked.is_complete
        assert masked.code.index("api") == text.index("api")

    def test_blanks_string_and_comment_contents(self):
        text = 'x = "{" // }\ny = \'}\'\n'
        code = mask(text).code
        assert "{" not in code
        assert "}" not in code
        assert code.count('"') == 2
        assert code.count("\n") == 2

    def test_triple_quoted_string(self):
        text = 'val s = """\n{ not a block }\n"""\n'
        code = mask(text).code
        assert "{" not in code
        assert code.count("\n") == 3

    def test_escaped_quote_inside_string(self):
        text = 'x = "a\\"{"\ny {\n}\n'
        masked = mask(text)
        assert masked.is_complete
        assert masked.code.count("{") == 1

    def test_unterminated_string_reported(self):
        masked = mask('dependencies {\n    implementation "g:a:1\n}\n')
        assert not masked.is_complete
        assert masked.error_reason == "unterminated string literal"
        assert masked.limit == masked.text.index('"')

    def test_unterminated_block_comment_reported(self):
        masked = mask("plugins {\n/* never closed\n}\n")
        assert not masked.is_complete
        assert masked.error_reason == "unterminated block comment"


class TestBlocks:
    def test_match_brace(self):
        code = "a { b { c } d }"
        assert match_brace(code, 2) == len(code) - 1
        assert match_brace("a { b", 2) == -1

    def test_nested_blocks_tagged_with_depth(self):
        text = (
            "buildscript {\n"
            "    dependencies {\n"
            "        classpath 'g:plugin:1'\n"
            "    }\n"
            "}\n"
            "dependencies {\n"
            "    implementation 'g:a:1'\n"
            "}\n"
        )
        masked = mask(text)
        blocks = find_blocks(masked, "dependencies")
        assert [b.depth for b in blocks] == [1, 0]
        top = top_level_blocks(masked, "dependencies")
        assert len(top) == 1
        assert text[top[0].start :].startswith("dependencies {\n    implementation")
        assert text[top[0].close_brace] == "}"

    def test_qualified_name_is_not_a_block(self):
        masked = mask("project.dependencies {\n}\nallDependencies {\n}\n")
        assert find_blocks(masked, "dependencies") == []

    def test_unclosed_block(self):
        masked = mask("dependencies {\n    implementation 'g:a:1'\n")
        (block,) = find_blocks(masked, "dependencies")
        assert not block.is_closed
        assert block.body_end(masked) == len(masked.text)

    def test_block_name_in_comment_ignored(self):
        masked = mask("// dependencies {\ndependencies {\n}\n")
        blocks = find_blocks(masked, "dependencies")
        assert len(blocks) == 1
        assert blocks[0].start == masked.text.index("\n") + 1


class TestStatements:
    def test_statement_starts_skips_continuations(self):
        text = "{\n    a(\n        b\n    )\n    c { d\n    }\n    // note\n    e\n}"
        code = mask(text).code
        starts = list(statement_starts(code, 1, len(text) - 1))
        assert [text[s] for s in starts] == ["a", "c", "e"]

    def test_only_first_statement_of_a_line(self):
        text = "{\n    a; b\n}"
        code = mask(text).code
        starts = list(statement_starts(code, 1, len(text) - 1))
        assert [text[s] for s in starts] == ["a"]

    def test_extend_statement_includes_semicolon_and_comment(self):
        text = "api(x);  // why\nnext"
        masked = mask(text)
        end = extend_statement(masked, text.index(")") + 1, len(text))
        assert text[:end] == "api(x);  // why"

    def test_extend_statement_stops_before_next_code(self):
        text = "api(x) foo\n"
        masked = mask(text)
        end = extend_statement(masked, text.index(")") + 1, len(text))
        assert text[:end] == "api(x)"


class TestLineHelpers:
    def test_indentation_at(self):
        text = "a\n\t  b\n"
        assert indentation_at(text, text.index("b")) == "\t  "

    def test_line_terminator_length(self):
        assert line_terminator_length("a\r\nb", 1) == 2
        assert line_terminator_length("a\nb", 1) == 1
        assert line_terminator_length("a\rb", 1) == 1
        assert line_terminator_length("ab", 1) == 0

    def test_detect_newline(self):
        assert detect_newline("a\r\nb\r\n") == "\r\n"
        assert detect_newline("a\rb\r") == "\r"
        assert detect_newline("a\nb") == "\n"
        assert detect_newline("") == "\n"
