"""Tests for wgslpp.directives.grammar — line classification and parsing."""

import pytest

from wgslpp.directives.grammar import (
    GrammarError,
    LineKind,
    classify_line,
    find_constant,
    identifier,
    import_path,
    parse_bare,
    parse_if,
    parse_import,
)


# ═══════════════════════════════════════════════════════════════════
# Import paths
# ═══════════════════════════════════════════════════════════════════

class TestParseImport:
    @pytest.mark.parametrize(
        "line, expected",
        [
            ('#import"shaders/test1.wgsl"   \t', "shaders/test1.wgsl"),
            ('#import "shaders/test1.wgsl"   \t', "shaders/test1.wgsl"),
            ('#import "./shaders/test1.wgsl"   \t', "./shaders/test1.wgsl"),
            ('#import "../shaders/test1.wgsl"   \t', "../shaders/test1.wgsl"),
            ('#import "../shaders/../test1.wgsl"   \t', "../shaders/../test1.wgsl"),
        ],
    )
    def test_valid_paths_returned_verbatim(self, line, expected):
        assert parse_import(line) == expected

    @pytest.mark.parametrize(
        "line",
        [
            '#import "shaders/test1.glsl"',
            '#import "shaders//test1.wgsl"',
            '#import "____/test1.wgsl"',
            '#import "shaders/test1"',
        ],
    )
    def test_invalid_paths_rejected(self, line):
        with pytest.raises(GrammarError):
            parse_import(line)

    def test_leading_indentation_and_newline(self):
        assert parse_import('\t  #import\t"lib.wgsl"\n') == "lib.wgsl"

    def test_underscore_prefixed_segments(self):
        assert parse_import('#import "__private/_util.wgsl"') == "__private/_util.wgsl"

    def test_trailing_garbage_rejected(self):
        with pytest.raises(GrammarError):
            parse_import('#import "lib.wgsl" extra')

    def test_missing_quotes_rejected(self):
        with pytest.raises(GrammarError):
            parse_import("#import lib.wgsl")

    def test_unterminated_quote_rejected(self):
        with pytest.raises(GrammarError):
            parse_import('#import "lib.wgsl')


class TestImportPath:
    def test_sixteen_segments_accepted(self):
        path = "a/" * 16 + "f.wgsl"
        assert import_path(path) == (path, len(path))

    def test_seventeen_segments_rejected(self):
        with pytest.raises(GrammarError):
            import_path("a/" * 17 + "f.wgsl")

    def test_absolute_path(self):
        assert import_path("/shaders/lib.wgsl")[0] == "/shaders/lib.wgsl"

    def test_double_leading_slash_rejected(self):
        with pytest.raises(GrammarError):
            import_path("//shaders/lib.wgsl")

    def test_bare_file_name(self):
        assert import_path("lib.wgsl")[0] == "lib.wgsl"

    def test_hyphen_rejected(self):
        with pytest.raises(GrammarError):
            import_path("my-lib.wgsl")


# ═══════════════════════════════════════════════════════════════════
# Identifiers
# ═══════════════════════════════════════════════════════════════════

class TestIdentifier:
    def test_simple(self):
        assert identifier("workgroup_x") == ("workgroup_x", 11)

    def test_leading_underscores(self):
        assert identifier("__private") == ("__private", 9)

    def test_stops_before_dangling_underscore(self):
        assert identifier("value_)") == ("value", 5)

    def test_underscore_only_rejected(self):
        with pytest.raises(GrammarError):
            identifier("___")

    def test_starts_at_offset(self):
        assert identifier("#(abc)", 2) == ("abc", 5)

    def test_unit_limit(self):
        name, pos = identifier("a_" * 16 + "a")
        assert name == "a_" * 15 + "a"
        assert pos == len(name)


# ═══════════════════════════════════════════════════════════════════
# Classification and conditional lines
# ═══════════════════════════════════════════════════════════════════

class TestClassifyLine:
    @pytest.mark.parametrize(
        "line, kind",
        [
            ('#import "a.wgsl"', LineKind.IMPORT),
            ('   #import "a.wgsl"', LineKind.IMPORT),
            ("#if FOO", LineKind.IF),
            ("\t#else", LineKind.ELSE),
            ("#endif", LineKind.ENDIF),
            ("#ifdef FOO", LineKind.CONTENT),
            ("#endiff", LineKind.CONTENT),
            ("var a = #(x);", LineKind.CONTENT),
            ("", LineKind.CONTENT),
        ],
    )
    def test_kinds(self, line, kind):
        assert classify_line(line) is kind


class TestParseIf:
    def test_name(self):
        assert parse_if("#if USE_SHADOWS") == "USE_SHADOWS"

    def test_whitespace_tolerated(self):
        assert parse_if("  #if\tdebug  \n") == "debug"

    def test_missing_name(self):
        with pytest.raises(GrammarError):
            parse_if("#if")

    def test_two_names(self):
        with pytest.raises(GrammarError):
            parse_if("#if A B")


class TestParseBare:
    def test_else(self):
        parse_bare("  #else  ", "#else")

    def test_endif_with_comment_rejected(self):
        with pytest.raises(GrammarError):
            parse_bare("#endif // SHADOWS", "#endif")


# ═══════════════════════════════════════════════════════════════════
# Constant references
# ═══════════════════════════════════════════════════════════════════

class TestFindConstant:
    def test_no_hash(self):
        assert find_constant("var a = 5;") is None

    def test_located(self):
        ref = find_constant("var b = #(workgroup_x);")
        assert ref.name == "workgroup_x"
        assert (ref.start, ref.end) == (8, 22)

    def test_only_first_token(self):
        ref = find_constant("#(a) + #(b)")
        assert ref.name == "a"

    def test_hash_without_paren(self):
        with pytest.raises(GrammarError):
            find_constant("// issue #12")

    def test_unclosed(self):
        with pytest.raises(GrammarError):
            find_constant("var a = #(size;")

    def test_too_many_units(self):
        with pytest.raises(GrammarError):
            find_constant("#(" + "a_" * 16 + "a)")
