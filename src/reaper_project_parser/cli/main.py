"""Main CLI entry point for the reaper-project command-line tool.

Provides project summaries for batches of ``.rpp`` files, node queries by type
and name, an indented tree listing, and node table export.
"""

import argparse
import csv
import io
import json
import sys
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from reaper_project_parser import __version__
from reaper_project_parser.api import DocumentAccessError, get_adapter, parse_file
from reaper_project_parser.shared import (
    ConfigError,
    DiagnosticSeverity,
    ParserConfig,
    configure_logging,
    get_logger,
)
from reaper_project_parser.tree import ParseResult, ReaperNode, format_line, format_value

PRESETS = {
    "default": ParserConfig.default,
    "faithful": ParserConfig.faithful,
    "strict": ParserConfig.strict,
}

PROJECT_SUFFIXES = {".rpp"}

SUMMARY_COLUMNS = [
    "file",
    "success",
    "nodes",
    "tracks",
    "items",
    "max_depth",
    "lines",
    "time_ms",
    "warnings",
    "errors",
]


class CLIConfig:
    """Configuration management for CLI operations."""

    def __init__(self):
        self.parser_config = ParserConfig.default()
        self.max_workers = None  # Use system default
        self.output_format = "json"

    @classmethod
    def from_file(cls, config_path: Path) -> "CLIConfig":
        """Load CLI configuration from a JSON file.

        Recognized keys are ``parser_preset``, ``parser`` (a dictionary in
        ``ParserConfig.to_dict`` form, applied instead of the preset),
        ``max_workers`` and ``output_format``.

        Raises:
            ConfigError: If the file cannot be read or holds invalid settings
        """
        config = cls()
        try:
            with config_path.open() as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not load config file {config_path}: {e}") from e

        preset = data.get("parser_preset")
        if preset is not None:
            if preset not in PRESETS:
                raise ConfigError(f"Unknown parser preset: {preset}")
            config.parser_config = PRESETS[preset]()
        if "parser" in data:
            config.parser_config = ParserConfig.from_dict(data["parser"])

        config.max_workers = data.get("max_workers", config.max_workers)
        config.output_format = data.get("output_format", config.output_format)
        return config


class ProgressTracker:
    """Progress tracking for long-running operations."""

    def __init__(self, total: int, description: str = "Processing", enabled: bool = True):
        self.total = total
        self.completed = 0
        self.description = description
        self.enabled = enabled
        self.start_time = time.time()
        self.last_update = 0.0

    def update(self, increment: int = 1):
        """Update progress and display if needed."""
        self.completed += increment
        current_time = time.time()

        # Update every second or on completion
        if current_time - self.last_update >= 1.0 or self.completed >= self.total:
            self._display_progress()
            self.last_update = current_time

    def _display_progress(self):
        if not self.enabled or self.total == 0:
            return

        percentage = (self.completed / self.total) * 100
        elapsed = time.time() - self.start_time

        eta_str = ""
        if self.completed > 0 and elapsed > 0:
            rate = self.completed / elapsed
            eta = (self.total - self.completed) / rate
            if eta > 0:
                eta_str = f", ETA: {eta:.0f}s"

        progress_bar = "=" * int(percentage // 2)
        progress_bar += " " * (50 - len(progress_bar))

        print(f"\r{self.description}: [{progress_bar}] "
              f"{percentage:.1f}% ({self.completed}/{self.total}){eta_str}",
              end="", file=sys.stderr)

        if self.completed >= self.total:
            print(file=sys.stderr)


def summarize_result(file_path: Path, result: ParseResult) -> Dict[str, Any]:
    """Build the per-file summary record reported by the ``parse`` command."""
    summary = result.summary()
    return {
        "file": str(file_path),
        "success": result.success,
        "node_count": summary["node_count"],
        "track_count": summary["track_count"],
        "item_count": summary["item_count"],
        "max_depth": summary["max_depth"],
        "line_count": summary["line_count"],
        "encoding": result.document.encoding if result.document else None,
        "processing_time_ms": summary["processing_time_ms"],
        "diagnostics": [diag.to_dict() for diag in result.diagnostics],
    }


def process_single_file(file_path: Path, parser_config: ParserConfig) -> Dict[str, Any]:
    """Parse one project file and summarize it.

    Module level so it can be sent to worker processes.
    """
    try:
        result = parse_file(file_path, config=parser_config)
    except DocumentAccessError as e:
        result = ParseResult(success=False)
        result.add_diagnostic(
            DiagnosticSeverity.CRITICAL, str(e), "cli_processor",
            details={"exception_type": type(e.__cause__ or e).__name__},
        )
    return summarize_result(file_path, result)


class ProjectProcessor:
    """Batch processing of project files for the ``parse`` command."""

    def __init__(self, config: CLIConfig, show_progress: bool = True):
        self.config = config
        self.show_progress = show_progress
        self.logger = get_logger(__name__, None, "cli_processor")

    def find_project_files(self, path: Path, recursive: bool = False) -> Iterator[Path]:
        """Find project files in ``path``.

        Files named explicitly are yielded whatever their suffix; paths that
        do not exist are yielded too so they are reported as failures.
        """
        if path.is_dir():
            pattern = "**/*" if recursive else "*"
            for candidate in sorted(path.glob(pattern)):
                if candidate.is_file() and candidate.suffix.lower() in PROJECT_SUFFIXES:
                    yield candidate
        else:
            yield path

    def batch_process(self, paths: List[Path], recursive: bool = False) -> List[Dict[str, Any]]:
        """Process multiple project files, in parallel when there are several."""
        all_files: List[Path] = []
        for path in paths:
            all_files.extend(self.find_project_files(path, recursive))

        if not all_files:
            return []

        self.logger.info(
            "Starting batch processing",
            extra={"file_count": len(all_files), "max_workers": self.config.max_workers}
        )

        results = []
        progress = ProgressTracker(
            len(all_files), "Parsing projects", enabled=self.show_progress
        )
        parser_config = self.config.parser_config

        if len(all_files) == 1 or self.config.max_workers == 1:
            for file_path in all_files:
                results.append(process_single_file(file_path, parser_config))
                progress.update()
        else:
            with ProcessPoolExecutor(max_workers=self.config.max_workers) as executor:
                future_to_file = {
                    executor.submit(process_single_file, file_path, parser_config): file_path
                    for file_path in all_files
                }
                for future in as_completed(future_to_file):
                    results.append(future.result())
                    progress.update()
            # Completion order is arbitrary
            order = {str(file_path): i for i, file_path in enumerate(all_files)}
            results.sort(key=lambda r: order[r["file"]])

        return results


def _count(result: Dict[str, Any], *severities: str) -> int:
    return sum(
        1 for diag in result.get("diagnostics", []) if diag.get("severity") in severities
    )


def format_results(results: List[Dict[str, Any]], format_type: str) -> str:
    """Format processing results for output."""
    if format_type == "csv":
        if not results:
            return ""

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(SUMMARY_COLUMNS)
        for result in results:
            writer.writerow([
                result["file"],
                result["success"],
                result.get("node_count", 0),
                result.get("track_count", 0),
                result.get("item_count", 0),
                result.get("max_depth", 0),
                result.get("line_count", 0),
                f"{result.get('processing_time_ms', 0):.1f}",
                _count(result, "WARNING"),
                _count(result, "ERROR", "CRITICAL"),
            ])
        return buffer.getvalue().rstrip("\n")

    if format_type == "text":
        if not results:
            return "No results to display."

        successful = sum(1 for r in results if r.get("success", False))
        lines = [f"Processed {len(results)} files, {successful} successful", "-" * 60]

        for result in results:
            status = "OK  " if result.get("success", False) else "FAIL"
            lines.append(f"{status} {result['file']}")
            if result.get("success", False):
                lines.append(
                    f"     Nodes: {result.get('node_count', 0)}, "
                    f"Tracks: {result.get('track_count', 0)}, "
                    f"Items: {result.get('item_count', 0)}, "
                    f"Depth: {result.get('max_depth', 0)}, "
                    f"Time: {result.get('processing_time_ms', 0):.1f}ms"
                )

            problems = [
                d for d in result.get("diagnostics", [])
                if d.get("severity") in ("WARNING", "ERROR", "CRITICAL")
            ]
            for problem in problems[:3]:
                lines.append(f"     {problem['severity'].title()}: {problem.get('message', '')}")
            if len(problems) > 3:
                lines.append(f"     ... and {len(problems) - 3} more")

            lines.append("")

        return "\n".join(lines)

    return json.dumps(results, indent=2)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="reaper-project",
        description="Inspect REAPER project (.rpp) files"
    )

    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet output"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Parse command
    parse_parser = subparsers.add_parser("parse", help="Summarize project files")
    parse_parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Project files or directories to parse"
    )
    parse_parser.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Recursively process directories"
    )
    parse_parser.add_argument(
        "--format", "-f",
        choices=["json", "csv", "text"],
        help="Output format (default: json)"
    )
    parse_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file (default: stdout)"
    )
    _add_config_arguments(parse_parser)
    parse_parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Number of parallel workers"
    )

    # Query command
    query_parser = subparsers.add_parser(
        "query",
        help="Find nodes by type and name (exit code 1 when nothing matches)"
    )
    query_parser.add_argument("path", type=Path, help="Project file")
    query_parser.add_argument("--type", "-t", required=True, help="Node type, e.g. TRACK")
    query_parser.add_argument("--name", "-n", help="Required NAME value")
    query_parser.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Search all descendants instead of direct children of the root"
    )
    query_parser.add_argument(
        "--format", "-f",
        choices=["json", "text"],
        default="text",
        help="Output format (default: text)"
    )
    _add_config_arguments(query_parser)

    # Tree command
    tree_parser = subparsers.add_parser("tree", help="Print the node tree")
    tree_parser.add_argument("path", type=Path, help="Project file")
    tree_parser.add_argument(
        "--max-depth",
        type=int,
        help="Do not descend below this depth"
    )
    _add_config_arguments(tree_parser)

    # Export command
    export_parser = subparsers.add_parser("export", help="Export the node table")
    export_parser.add_argument("path", type=Path, help="Project file")
    export_parser.add_argument(
        "--output", "-o",
        type=Path,
        required=True,
        help="Output file"
    )
    export_parser.add_argument(
        "--format", "-f",
        choices=["csv", "json"],
        default="csv",
        help="Output format (default: csv, requires pandas)"
    )
    _add_config_arguments(export_parser)

    return parser


def _add_config_arguments(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument(
        "--config", "-c",
        type=Path,
        help="Configuration file path"
    )
    subparser.add_argument(
        "--preset",
        choices=sorted(PRESETS),
        help="Parser configuration preset"
    )


def _load_config(args: argparse.Namespace) -> CLIConfig:
    config = CLIConfig.from_file(args.config) if args.config else CLIConfig()
    # -v and -q take precedence over the configured level
    if args.config and not (args.verbose or args.quiet):
        configure_logging(config.parser_config.global_.logging_level)
    if args.preset:
        config.parser_config = PRESETS[args.preset]()
    return config


def _parse_one(path: Path, config: CLIConfig) -> Optional[ParseResult]:
    """Parse a single file for the inspection commands, reporting failures."""
    try:
        result = parse_file(path, config=config.parser_config)
    except DocumentAccessError as e:
        print(f"Error: {e}", file=sys.stderr)
        return None
    if not result.success:
        for diag in result.get_diagnostics_by_severity(DiagnosticSeverity.CRITICAL):
            print(f"Error: {diag.message}", file=sys.stderr)
        return None
    return result


def _write_output(text: str, output: Optional[Path]) -> int:
    if output is None:
        print(text)
        return 0
    try:
        output.write_text(text + "\n")
    except OSError as e:
        print(f"Error writing output: {e}", file=sys.stderr)
        return 1
    print(f"Results written to {output}", file=sys.stderr)
    return 0


def cmd_parse(args: argparse.Namespace) -> int:
    """Handle parse command."""
    config = _load_config(args)
    if args.workers:
        config.max_workers = args.workers
    if args.format:
        config.output_format = args.format

    processor = ProjectProcessor(config, show_progress=not args.quiet)
    results = processor.batch_process(args.paths, args.recursive)

    if _write_output(format_results(results, config.output_format), args.output):
        return 1

    if not results:
        return 1
    successful = sum(1 for r in results if r.get("success", False))
    return 0 if successful == len(results) else 1


def describe_node(node: ReaperNode) -> Dict[str, Any]:
    """JSON-ready description of a matched node."""
    return {
        "path": node.get_path(),
        "line_number": node.line_number,
        "type": node.type,
        "name": node.name,
        "values": node.values,
        "child_count": len(node.children),
    }


def cmd_query(args: argparse.Namespace) -> int:
    """Handle query command."""
    result = _parse_one(args.path, _load_config(args))
    if result is None:
        return 1

    root = result.root
    if root is None:
        matches: List[ReaperNode] = []
    elif args.name is not None:
        matches = root.children_of_type_and_name(args.type, args.name, args.recursive)
    else:
        matches = root.all_children_of_type(args.type, args.recursive)

    if args.format == "json":
        print(json.dumps([describe_node(node) for node in matches], indent=2))
    else:
        for node in matches:
            location = f"{node.line_number}:" if node.line_number is not None else ""
            print(f"{location}{node.get_path()}\t{format_line(node)}")

    return 0 if matches else 1


def render_tree(root: ReaperNode, max_depth: Optional[int] = None, indent: str = "  ") -> str:
    """Render an indented listing of ``root`` and its descendants."""
    lines = []
    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        label = format_line(node) or "(empty)"
        marker = "<" if node.is_block else ""
        lines.append(f"{indent * depth}{marker}{label}")
        children = node.children
        if not children:
            continue
        if max_depth is not None and depth >= max_depth:
            lines.append(f"{indent * (depth + 1)}... {len(children)} children")
            continue
        stack.extend((child, depth + 1) for child in reversed(children))
    return "\n".join(lines)


def cmd_tree(args: argparse.Namespace) -> int:
    """Handle tree command."""
    result = _parse_one(args.path, _load_config(args))
    if result is None:
        return 1
    if result.root is None:
        print("Document contains no blocks", file=sys.stderr)
        return 1
    print(render_tree(result.root, args.max_depth))
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    """Handle export command."""
    config = _load_config(args)
    result = _parse_one(args.path, config)
    if result is None:
        return 1

    adapter_name = "pandas" if args.format == "csv" else "dict"
    adapter = get_adapter(adapter_name, result.correlation_id)
    if adapter is None:
        print(
            f"The {adapter_name} adapter is not available; install the "
            f"'dataframe' extra for CSV export",
            file=sys.stderr
        )
        return 1

    conversion = adapter.to_target(result)
    if not conversion.success:
        for error in conversion.errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    if args.format == "csv":
        df = conversion.converted_data
        df["values"] = df["values"].map(
            lambda values: " ".join(format_value(value) for value in values)
        )
        text = df.to_csv(index=False).rstrip("\n")
    else:
        text = json.dumps(conversion.converted_data, indent=2)

    return _write_output(text, args.output)


COMMANDS = {
    "parse": cmd_parse,
    "query": cmd_query,
    "tree": cmd_tree,
    "export": cmd_export,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.verbose:
        configure_logging("DEBUG")
    elif args.quiet:
        configure_logging("ERROR")

    try:
        return COMMANDS[args.command](args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
