"""Tests for document decoding and line splitting."""

import io

import pytest

from reaper_project_parser.character import (
    DetectionMethod,
    DocumentTextProcessor,
    normalize_lines,
    split_lines,
)
from reaper_project_parser.shared import (
    ApiConfig,
    DiagnosticSeverity,
    TokenizationConfig,
)


class TestSplitLines:
    """Test line splitting and line ending normalization."""

    def test_splits_on_newline(self):
        assert split_lines("a\nb\nc") == ["a", "b", "c"]

    def test_final_terminator_does_not_add_a_line(self):
        assert split_lines("a\n") == ["a"]

    def test_blank_lines_before_final_terminator_are_kept(self):
        assert split_lines("a\n\n") == ["a", ""]

    def test_crlf_normalized(self):
        assert split_lines("<A\r\n  B 1\r\n>") == ["<A", "  B 1", ">"]

    def test_lone_cr_normalized(self):
        assert split_lines("<A\r  B 1\r>") == ["<A", "  B 1", ">"]

    def test_without_normalization_cr_is_kept(self):
        assert split_lines("a\r\nb", normalize_line_endings=False) == ["a\r", "b"]

    def test_empty_text(self):
        assert split_lines("") == []


class TestNormalizeLines:
    """Test normalization of already split lines."""

    def test_trailing_cr_removed(self):
        assert normalize_lines(["<A\r", "B\r", ">"]) == ["<A", "B", ">"]

    def test_disabled_returns_copy(self):
        lines = ["a\r"]
        result = normalize_lines(lines, normalize_line_endings=False)

        assert result == ["a\r"]
        assert result is not lines


class TestDocumentTextProcessor:
    """Test decoding of the supported input types."""

    def test_string_input(self):
        result = DocumentTextProcessor().process("<A\n>")

        assert result.lines == ["<A", ">"]
        assert result.encoding.method is DetectionMethod.NATIVE_STRING
        assert result.diagnostics == []

    def test_utf8_bytes(self):
        result = DocumentTextProcessor().process('NAME "Café"'.encode("utf-8"))

        assert result.text == 'NAME "Café"'
        assert result.encoding.encoding == "utf-8"
        assert result.encoding.method is DetectionMethod.UTF8_VALIDATION

    def test_utf8_bom_removed(self):
        result = DocumentTextProcessor().process(b"\xef\xbb\xbf<A\n>")

        assert result.lines == ["<A", ">"]
        assert result.encoding.method is DetectionMethod.BOM

    def test_utf16_bom(self):
        data = b"\xff\xfe" + "<A\n>".encode("utf-16-le")

        result = DocumentTextProcessor().process(data)

        assert result.lines == ["<A", ">"]
        assert result.encoding.encoding == "utf-16-le"

    def test_bom_in_string_removed(self):
        result = DocumentTextProcessor().process("\ufeff<A\n>")

        assert result.lines[0] == "<A"

    def test_latin1_fallback_adds_warning(self):
        result = DocumentTextProcessor().process(b'NAME "Caf\xe9"')

        assert result.text == 'NAME "Café"'
        assert result.encoding.method is DetectionMethod.FALLBACK
        assert result.encoding.confidence < 1.0
        assert len(result.diagnostics) == 1
        assert result.diagnostics[0].severity is DiagnosticSeverity.WARNING

    def test_strict_errors_raise(self):
        processor = DocumentTextProcessor(api=ApiConfig(encoding_errors="strict"))

        with pytest.raises(UnicodeDecodeError):
            processor.process(b"\xff\xfe\x00")

    def test_invalid_utf8_strict_raises(self):
        processor = DocumentTextProcessor(api=ApiConfig(encoding_errors="strict"))

        with pytest.raises(UnicodeDecodeError):
            processor.process(b"NAME \xe9")

    def test_declared_encoding(self):
        result = DocumentTextProcessor().process(b"NAME \xe9", encoding="cp1252")

        assert result.text == "NAME é"
        assert result.encoding.method is DetectionMethod.DECLARED

    def test_configured_default_encoding(self):
        processor = DocumentTextProcessor(api=ApiConfig(default_encoding="latin-1"))

        result = processor.process(b"NAME \xe9")

        assert result.encoding.method is DetectionMethod.DECLARED
        assert result.diagnostics == []

    def test_unknown_encoding_raises_lookup_error(self):
        with pytest.raises(LookupError):
            DocumentTextProcessor().process(b"A", encoding="no-such-codec")

    def test_binary_file_object(self):
        result = DocumentTextProcessor().process(io.BytesIO(b"<A\r\n>"))

        assert result.lines == ["<A", ">"]

    def test_text_file_object(self):
        result = DocumentTextProcessor().process(io.StringIO("<A\n  B\n>"))

        assert result.line_count == 3

    def test_line_endings_kept_when_disabled(self):
        processor = DocumentTextProcessor(
            tokenization=TokenizationConfig(normalize_line_endings=False)
        )

        result = processor.process("<A\r\n>")

        assert result.lines == ["<A\r", ">"]
