"""Tests for the core parser API with progressive disclosure.

Tests the module-level parsing functions and the ReaperProjectParser class,
including how failures to read a document are reported or raised.
"""

import io
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from reaper_project_parser.api.parser import (
    DocumentAccessError,
    ReaperProjectParser,
    parse,
    parse_file,
    parse_lines,
    parse_string,
)
from reaper_project_parser.shared import DiagnosticSeverity, ParserConfig
from reaper_project_parser.tree import ParseResult

EXAMPLE = """<REAPER_PROJECT 0.1 "6.80/linux64" 1700000000
  CURSOR 42.0
  <TRACK
    NAME "Drums"
    <ITEM
      NAME "Kick"
    >
  >
>
"""


@pytest.fixture
def project_dir():
    with tempfile.TemporaryDirectory() as directory:
        yield Path(directory)


class TestSimpleParsingFunctions:
    """Test Level 1: Simple module-level parsing functions."""

    def test_parse_string_end_to_end(self):
        result = parse_string(EXAMPLE)
        root = result.root

        assert isinstance(result, ParseResult)
        assert result.success is True
        assert root.type == "REAPER_PROJECT"
        assert root.first_child_of_type("CURSOR").value == "42.0"
        item = root.first_child_of_type("TRACK").first_child_of_type("ITEM")
        assert item.first_child_of_type("NAME").value == "Kick"

    def test_trailing_newline_adds_no_node(self):
        root = parse_string(EXAMPLE).root

        assert [child.type for child in root.children] == ["CURSOR", "TRACK"]

    def test_find_by_type_and_name(self):
        root = parse_string(EXAMPLE).root

        assert root.find_by_type_and_name("ITEM", "Kick") is not None
        assert root.find_by_type_and_name("ITEM", "Snare") is None

    def test_crlf_document(self):
        result = parse_string(EXAMPLE.replace("\n", "\r\n"))

        assert result.root.first_child_of_type("CURSOR").values == ["42.0"]
        assert not result.has_warnings()

    def test_cr_only_document(self):
        result = parse_string(EXAMPLE.replace("\n", "\r"))

        assert result.node_count == 6

    def test_faithful_preset_keeps_carriage_returns(self):
        result = parse_string("<A\r\n  B 1\r\n>", config=ParserConfig.faithful())

        # The carriage return is whitespace to the tokenizer
        assert result.root.first_child_of_type("B").values == ["1"]

    def test_parse_string_empty(self):
        result = parse_string("")

        assert result.success is True
        assert result.root is None
        assert len(result.diagnostics) > 0

    def test_parse_universal_string(self):
        assert parse(EXAMPLE).root.type == "REAPER_PROJECT"

    def test_parse_bytes(self):
        result = parse(EXAMPLE.encode("utf-8"))

        assert result.root.type == "REAPER_PROJECT"
        assert result.document.encoding == "utf-8"

    def test_parse_file_like(self):
        result = parse(io.StringIO(EXAMPLE))

        assert result.node_count == 6

    def test_parse_string_has_no_encoding_or_path(self):
        document = parse_string(EXAMPLE).document

        assert document.encoding is None
        assert document.path is None

    def test_parse_lines(self):
        result = parse_lines(["<A\r", "  B 1\r", ">\r"])

        assert result.root.first_child_of_type("B").values == ["1"]

    def test_parse_lines_records_path(self):
        result = parse_lines(["<A", ">"], path="/tmp/song.rpp")

        assert result.document.directory == Path("/tmp")

    def test_correlation_id_generated(self):
        result = parse_string(EXAMPLE)

        assert result.correlation_id is not None
        assert len(result.correlation_id) == 8

    def test_correlation_id_passed_through(self):
        result = parse_string(EXAMPLE, correlation_id="req-1")

        assert result.correlation_id == "req-1"
        assert result.document.correlation_id == "req-1"

    def test_correlation_tracking_disabled(self):
        config = ParserConfig().override(global___enable_correlation_tracking=False)

        assert parse_string(EXAMPLE, config=config).correlation_id is None

    def test_performance_metrics(self):
        result = parse_string(EXAMPLE)

        assert result.performance.lines_processed == 9
        assert result.performance.characters_processed == len(EXAMPLE)
        assert result.performance.processing_time_ms >= 0


class TestParseFile:
    """Test file parsing and access failures."""

    def test_parse_file(self, project_dir):
        path = project_dir / "song.rpp"
        path.write_text(EXAMPLE, encoding="utf-8")

        result = parse_file(path)

        assert result.success is True
        assert result.document.path == path
        assert result.document.directory == project_dir
        assert result.document.encoding == "utf-8"

    def test_parse_file_string_path(self, project_dir):
        path = project_dir / "song.rpp"
        path.write_text(EXAMPLE)

        assert parse_file(str(path)).root.type == "REAPER_PROJECT"

    def test_parse_path_object_through_parse(self, project_dir):
        path = project_dir / "song.rpp"
        path.write_text(EXAMPLE)

        result = parse(path)

        assert result.document.path == path

    def test_item_media_resolves_against_file_directory(self, project_dir):
        path = project_dir / "song.rpp"
        path.write_text(
            "<REAPER_PROJECT\n"
            "  <TRACK\n"
            "    <ITEM\n"
            "      <SOURCE WAVE\n"
            '        FILE "Media/kick.wav"\n'
            "      >\n"
            "    >\n"
            "  >\n"
            ">\n"
        )

        document = parse_file(path).document
        item = document.find_all("ITEM")[0]

        assert document.item_source_path(item) == project_dir / "Media" / "kick.wav"

    def test_encoding_override(self, project_dir):
        path = project_dir / "legacy.rpp"
        path.write_bytes('<A\n  NAME "Café"\n>'.encode("cp1252"))

        result = parse_file(path, encoding="cp1252")

        assert result.root.name == "Café"
        assert result.document.encoding == "cp1252"

    def test_latin1_fallback(self, project_dir):
        path = project_dir / "legacy.rpp"
        path.write_bytes('<A\n  NAME "Café"\n>'.encode("latin-1"))

        result = parse_file(path)

        assert result.success is True
        assert result.root.name == "Café"
        assert result.has_warnings()

    def test_missing_file(self, project_dir):
        result = parse_file(project_dir / "missing.rpp")

        assert result.success is False
        assert result.root is None
        critical = result.get_diagnostics_by_severity(DiagnosticSeverity.CRITICAL)
        assert "not found" in critical[0].message.lower()
        assert critical[0].details["exception_type"] == "FileNotFoundError"

    def test_missing_file_raises_when_configured(self, project_dir):
        config = ParserConfig().override(api__raise_on_access_error=True)

        with pytest.raises(DocumentAccessError) as exc_info:
            parse_file(project_dir / "missing.rpp", config=config)

        assert exc_info.value.path == project_dir / "missing.rpp"
        assert isinstance(exc_info.value.__cause__, FileNotFoundError)

    def test_directory_is_not_a_file(self, project_dir):
        result = parse_file(project_dir)

        assert result.success is False

    def test_permission_denied(self, project_dir):
        path = project_dir / "locked.rpp"
        path.write_text(EXAMPLE)

        with patch.object(Path, "open", side_effect=PermissionError("denied")):
            result = parse_file(path)

        assert result.success is False
        assert "permission denied" in result.diagnostics[0].message.lower()

    def test_strict_preset_raises_on_undecodable_file(self, project_dir):
        path = project_dir / "bad.rpp"
        path.write_bytes(b"<A\n  NAME \xe9\n>")

        with pytest.raises(DocumentAccessError):
            parse_file(path, config=ParserConfig.strict())

    def test_strict_decoding_without_raise_reports_failure(self, project_dir):
        path = project_dir / "bad.rpp"
        path.write_bytes(b"<A\n  NAME \xe9\n>")
        config = ParserConfig().override(api__encoding_errors="strict")

        result = parse_file(path, config=config)

        assert result.success is False
        assert result.document.path == path

    def test_unknown_encoding_reports_failure(self, project_dir):
        path = project_dir / "song.rpp"
        path.write_text(EXAMPLE)

        result = parse_file(path, encoding="no-such-codec")

        assert result.success is False


class TestReaperProjectParser:
    """Test Level 2: Configured parser class."""

    def test_default_configuration(self):
        parser = ReaperProjectParser()

        assert parser.config == ParserConfig()
        assert parser.correlation_id is None

    def test_parse_applies_configuration(self):
        parser = ReaperProjectParser(
            ParserConfig().override(tokenization__skip_blank_lines=True)
        )

        result = parser.parse("<A\n\n  B 1\n>")

        assert [child.type for child in result.root.children] == ["B"]

    def test_fixed_correlation_id(self):
        parser = ReaperProjectParser(correlation_id="batch-7")

        assert parser.parse(EXAMPLE).correlation_id == "batch-7"
        assert parser.parse(EXAMPLE, "one-off").correlation_id == "one-off"

    def test_statistics(self, project_dir):
        parser = ReaperProjectParser()
        parser.parse(EXAMPLE)
        parser.parse_file(project_dir / "missing.rpp")

        stats = parser.statistics

        assert stats["total_parses"] == 2
        assert stats["successful_parses"] == 1
        assert stats["success_rate"] == 0.5

    def test_reset_statistics(self):
        parser = ReaperProjectParser()
        parser.parse(EXAMPLE)

        parser.reset_statistics()

        assert parser.statistics["total_parses"] == 0
        assert parser.statistics["success_rate"] == 0.0

    def test_reconfigure(self):
        parser = ReaperProjectParser()

        parser.reconfigure(ParserConfig.strict())

        assert parser.config.name == "strict"
        with pytest.raises(DocumentAccessError):
            parser.parse(b"<A\n  NAME \xe9\n>")
