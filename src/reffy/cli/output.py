"""
Output - Console output formatting.

Provides colored text output for humans and a single JSON document per run
for scripts.
"""

import json
import sys
from typing import Any

from reffy.application.sync import CleanupResult, PullResult, PushResult, RunResult


class Colors:
    """
    ANSI color codes for terminal output.

    Attributes:
        RESET: Reset all formatting to default.
        BOLD: Make text bold.
        DIM: Make text dimmed/faded.
        RED: Red text color.
        GREEN: Green text color.
        YELLOW: Yellow text color.
        BLUE: Blue text color.
        CYAN: Cyan text color.
    """

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"


class Symbols:
    """Unicode symbols for terminal output."""

    CHECK = "✓"
    CROSS = "✗"
    ARROW = "→"
    DOT = "•"
    WARN = "⚠"
    INFO = "ℹ"
    GEAR = "⚙"

    BOX_H = "─"


class Console:
    """
    Console output helper with colors and formatting.

    Attributes:
        color: Whether to use ANSI color codes.
        verbose: Whether to print debug messages.
        quiet: Whether to suppress most output (for CI/scripting).
        json_mode: Whether to output JSON format for programmatic use.
    """

    def __init__(
        self,
        color: bool = True,
        verbose: bool = False,
        quiet: bool = False,
        json_mode: bool = False,
    ):
        """
        Initialize the console output helper.

        Args:
            color: Enable colored output. Automatically disabled if stdout is not a TTY.
            verbose: Enable verbose debug output.
            quiet: Suppress most output, only show errors and final summary.
            json_mode: Output JSON format instead of text.
        """
        self.json_mode = json_mode
        self.color = color and sys.stdout.isatty() and not json_mode
        self.verbose = verbose
        self.quiet = quiet or json_mode

        # JSON mode collects errors for the final document
        self._json_errors: list[str] = []

        if self.quiet:
            self.verbose = False

    def _c(self, text: str, *codes: str) -> str:
        if not self.color:
            return text
        return "".join(codes) + text + Colors.RESET

    def print(self, text: str = "", force: bool = False) -> None:
        """
        Print text to stdout.

        Args:
            text: Text to print. Defaults to empty string for blank line.
            force: Print even in quiet mode.
        """
        if self.quiet and not force:
            return
        print(text)

    def header(self, text: str) -> None:
        if self.quiet:
            return
        width = max(len(text) + 4, 50)
        border = self._c(Symbols.BOX_H * width, Colors.CYAN) if self.color else "-" * width

        self.print()
        self.print(border)
        self.print(self._c(f"  {text}", Colors.BOLD, Colors.CYAN))
        self.print(border)
        self.print()

    def section(self, text: str) -> None:
        if self.quiet:
            return
        self.print()
        self.print(self._c(f"{Symbols.ARROW} {text}", Colors.BOLD, Colors.BLUE))

    def success(self, text: str) -> None:
        if self.quiet:
            return
        self.print(self._c(f"  {Symbols.CHECK} {text}", Colors.GREEN))

    def error(self, text: str) -> None:
        """
        Print an error message with cross symbol.

        Always prints, even in quiet mode. Collected in JSON mode.
        """
        if self.json_mode:
            self._json_errors.append(text)
            return
        print(self._c(f"  {Symbols.CROSS} {text}", Colors.RED), file=sys.stderr)

    def config_errors(self, errors: list[str]) -> None:
        """Print configuration errors. Always prints, even in quiet mode."""
        if self.json_mode:
            self._json_errors.extend(errors)
            return
        print(self._c(f"  {Symbols.CROSS} Configuration error:", Colors.RED, Colors.BOLD), file=sys.stderr)
        for error in errors:
            print(self._c(f"    {Symbols.DOT} {error}", Colors.RED), file=sys.stderr)

    def warning(self, text: str) -> None:
        if self.quiet:
            return
        self.print(self._c(f"  {Symbols.WARN} {text}", Colors.YELLOW))

    def info(self, text: str) -> None:
        if self.quiet:
            return
        self.print(self._c(f"  {Symbols.INFO} {text}", Colors.CYAN))

    def detail(self, text: str) -> None:
        if self.quiet:
            return
        self.print(self._c(f"    {text}", Colors.DIM))

    def debug(self, text: str) -> None:
        if self.verbose:
            self.print(self._c(f"  [DEBUG] {text}", Colors.DIM))

    def item(self, text: str, status: str | None = None) -> None:
        """
        Print a list item with optional status indicator.

        Args:
            text: Item text to display.
            status: "ok", "skip", "fail", or any other label shown dimmed.
        """
        if self.quiet:
            return
        status_str = ""
        if status == "ok":
            status_str = self._c(f" [{Symbols.CHECK}]", Colors.GREEN)
        elif status == "skip":
            status_str = self._c(" [SKIP]", Colors.YELLOW)
        elif status == "fail":
            status_str = self._c(f" [{Symbols.CROSS}]", Colors.RED)
        elif status:
            status_str = self._c(f" [{status}]", Colors.DIM)

        self.print(f"    {Symbols.DOT} {text}{status_str}")

    def table(self, headers: list[str], rows: list[list[str]]) -> None:
        """Print a table with auto-sized columns."""
        if self.quiet:
            return
        widths = [len(h) for h in headers]
        for row in rows:
            for i, cell in enumerate(row):
                if i < len(widths):
                    widths[i] = max(widths[i], len(str(cell)))

        header_line = "  " + "  ".join(
            self._c(h.ljust(widths[i]), Colors.BOLD) for i, h in enumerate(headers)
        )
        self.print(header_line)
        self.print("  " + "  ".join("-" * w for w in widths))
        for row in rows:
            self.print("  " + "  ".join(str(cell).ljust(widths[i]) for i, cell in enumerate(row)))

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def emit_json(self, payload: dict[str, Any]) -> None:
        """Print the run's JSON document, merging collected errors."""
        if self._json_errors:
            payload = dict(payload)
            payload["errors"] = list(payload.get("errors", [])) + self._json_errors
        print(json.dumps(payload, indent=2))

    def flush_errors(self) -> None:
        """In JSON mode, print an error document holding the collected errors."""
        if self.json_mode and self._json_errors:
            self.emit_json({"status": "error", "errors": []})
            self._json_errors = []

    def run_result(self, title: str, result: RunResult) -> None:
        """
        Print a push, pull or cleanup result.

        In JSON mode the result's dict is printed. In quiet mode a single
        key=value line is printed, followed by any errors.
        """
        if self.json_mode:
            self.emit_json(result.to_dict())
            return

        summary = result.summary()

        if self.quiet:
            print(" ".join([f"status={result.status}", *summary]))
            for e in result.errors:
                print(f"ERROR: {e}")
            return

        self.section(f"{title} Complete")
        if not result.ok:
            self.error(result.message or f"{title} failed")
            return

        self.print()
        self.table(["Metric", "Count"], [s.split("=", 1) for s in summary])
        self._identifiers(result)

        if result.warnings:
            self.print()
            self.warning(f"{len(result.warnings)} warning(s):")
            for w in result.warnings[:5]:
                self.detail(w)
            if len(result.warnings) > 5:
                self.detail(f"... and {len(result.warnings) - 5} more")

        if result.errors:
            self.print()
            self.error(f"{len(result.errors)} error(s):")
            for e in result.errors[:10]:
                self.detail(e)
            if len(result.errors) > 10:
                self.detail(f"... and {len(result.errors) - 10} more")

        self.print()
        if result.has_errors:
            self.warning(f"{title} completed with errors")
        else:
            self.success(f"{title} completed successfully")

    def _identifiers(self, result: RunResult) -> None:
        groups: list[tuple[str, list[str]]] = []
        if isinstance(result, PushResult):
            groups = [
                ("Created", result.created_issue_identifiers),
                ("Updated", result.updated_issue_identifiers),
                ("Reused", result.reused_issue_identifiers),
            ]
        elif isinstance(result, PullResult):
            groups = [
                ("Imported", result.created_issue_identifiers),
                ("Updated", result.updated_issue_identifiers),
                ("Reconciled", result.reconciled_issue_identifiers),
                ("Conflict copies for", result.conflict_artifact_ids),
            ]
        elif isinstance(result, CleanupResult):
            if result.candidates:
                self.print()
                label = "Would archive" if result.dry_run else "Candidates"
                self.info(f"{label}:")
                for candidate in result.candidates:
                    self.item(str(candidate))
            return

        for label, values in groups:
            if values:
                self.detail(f"{label}: {', '.join(values)}")
