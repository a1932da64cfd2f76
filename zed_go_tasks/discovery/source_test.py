"""Unit tests for static test discovery in Go source files."""

from __future__ import annotations

import re
import tempfile
from pathlib import Path

import pytest

from zed_go_tasks.discovery.source import extract_test_names, find_tests_in_source
from zed_go_tasks.errors import InputError, ParseError

TEST_PATTERN = re.compile("^Test")

CALC_TEST_SOURCE = """\
package calc

import "testing"

type suite struct{}

// TestInComment is not a declaration.
func TestAdd(t *testing.T) {
	t.Run("small numbers", func(t *testing.T) {})
}

func (s *suite) TestMethod(t *testing.T) {}

func helper() string {
	return "func TestInString(t *testing.T) {}"
}

func TestSub(t *testing.T) {
	_ = `func TestInRaw(t *testing.T) {}`
	_ = '}'
}

/* func TestInBlock(t *testing.T) {} */
var fn = func() {}
"""


class TestFindTestsInSource:
    """Tests for find_tests_in_source."""

    def test_free_functions_only(self):
        """Methods, helpers, comments and literals are not reported."""
        names = find_tests_in_source(CALC_TEST_SOURCE, TEST_PATTERN)
        assert names == ["TestAdd", "TestSub"]

    def test_declaration_order_kept(self):
        source = "package p\nfunc TestB() {}\nfunc TestA() {}\n"
        assert find_tests_in_source(source, TEST_PATTERN) == ["TestB", "TestA"]

    def test_duplicates_reported_once(self):
        source = "package p\nfunc TestA() {}\nfunc TestA() {}\n"
        assert find_tests_in_source(source, TEST_PATTERN) == ["TestA"]

    def test_pattern_is_unanchored_search(self):
        pattern = re.compile("Example")
        source = "package p\nfunc ExampleAdd() {}\nfunc TestExample() {}\nfunc TestX() {}\n"
        assert find_tests_in_source(source, pattern) == ["ExampleAdd", "TestExample"]

    def test_nested_func_ignored(self):
        source = (
            "package p\n"
            "func TestOuter(t *T) {\n"
            "\tinner := func() {}\n"
            "\t_ = inner\n"
            "}\n"
        )
        assert find_tests_in_source(source, TEST_PATTERN) == ["TestOuter"]

    def test_generic_function(self):
        source = "package p\nfunc TestGeneric[T any](t *T) {}\n"
        assert find_tests_in_source(source, TEST_PATTERN) == ["TestGeneric"]

    def test_no_tests(self):
        assert find_tests_in_source("package p\n", TEST_PATTERN) == []


class TestFindTestsInSourceErrors:
    """Tests for malformed source."""

    def test_missing_package_clause(self):
        with pytest.raises(ParseError, match="package"):
            find_tests_in_source("func TestA() {}\n", TEST_PATTERN, "a_test.go")

    def test_empty_source(self):
        with pytest.raises(ParseError, match="package"):
            find_tests_in_source("", TEST_PATTERN)

    def test_incomplete_statement_in_body(self):
        """A body that does not parse is rejected even with balanced braces."""
        with pytest.raises(ParseError, match="syntax error"):
            find_tests_in_source("package p\nfunc TestA(t *testing.T) { x := }\n", TEST_PATTERN)

    def test_garbage_between_declarations(self):
        with pytest.raises(ParseError, match="syntax error"):
            find_tests_in_source("package p\n\n+++ ; 42 func TestB() {}\n", TEST_PATTERN)

    def test_statement_outside_function(self):
        with pytest.raises(ParseError, match="syntax error|outside function body"):
            find_tests_in_source("package p\nx := 1\nfunc TestA() {}\n", TEST_PATTERN)

    def test_unbalanced_braces(self):
        with pytest.raises(ParseError, match="syntax error"):
            find_tests_in_source("package p\nfunc TestA() {\n", TEST_PATTERN)

    def test_unexpected_closer(self):
        with pytest.raises(ParseError, match="syntax error"):
            find_tests_in_source("package p\nfunc TestA() {)\n", TEST_PATTERN)

    def test_unterminated_string(self):
        source = 'package p\nfunc TestA() {\n\t_ = "open\n}\n'
        with pytest.raises(ParseError, match="syntax error"):
            find_tests_in_source(source, TEST_PATTERN)

    def test_unterminated_block_comment(self):
        with pytest.raises(ParseError):
            find_tests_in_source("package p\n/* never closed\n", TEST_PATTERN)

    def test_func_without_name(self):
        with pytest.raises(ParseError, match="syntax error"):
            find_tests_in_source("package p\nfunc {}\n", TEST_PATTERN)

    def test_error_carries_location(self):
        source = "package p\n\nfunc TestA() { x := }\n\nfunc TestB() {}\n"
        with pytest.raises(ParseError) as exc_info:
            find_tests_in_source(source, TEST_PATTERN, "x_test.go")
        assert exc_info.value.path == "x_test.go"
        assert exc_info.value.line == 3
        assert str(exc_info.value).startswith("x_test.go:3:")


class TestExtractTestNames:
    """Tests for reading files from disk."""

    def test_reads_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "calc_test.go"
            path.write_text(CALC_TEST_SOURCE)
            assert extract_test_names(path, TEST_PATTERN) == ["TestAdd", "TestSub"]

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(InputError):
                extract_test_names(Path(tmpdir) / "missing_test.go", TEST_PATTERN)

    def test_invalid_utf8(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "bad_test.go"
            path.write_bytes(b"package p\n\xff\xfe\n")
            with pytest.raises(ParseError, match="UTF-8"):
                extract_test_names(path, TEST_PATTERN)
