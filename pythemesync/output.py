"""Console output for the theme syncer."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.pretty import Pretty
from rich.table import Table


class OutputFormatter:
    """Writes status messages to the terminal.

    Also serves as the status sink of the sync engine through
    :meth:`handle_response`.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """Initialize the formatter.

        Args:
            json_output: Emit one JSON object per message instead of text
            quiet: Suppress informational output (errors are still shown)
            console: Console for regular output
            err_console: Console for warnings and errors
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def _emit(self, level: str, message: str, style: str, err: bool = False) -> None:
        console = self.err_console if err else self.console
        if self.json_output:
            console.print_json(json.dumps({"level": level, "message": message}))
        else:
            console.print(message, style=style, markup=False)

    def print(self, message: Any = "") -> None:
        if self.quiet:
            return
        if self.json_output and not isinstance(message, str):
            self.output_json(message)
            return
        self.console.print(message, markup=False)

    def info(self, message: str) -> None:
        if not self.quiet:
            self._emit("info", message, "")

    def success(self, message: str) -> None:
        if not self.quiet:
            self._emit("success", message, "green")

    def warning(self, message: str) -> None:
        self._emit("warning", message, "yellow", err=True)

    def error(self, message: str) -> None:
        self._emit("error", message, "bold red", err=True)

    def output_json(self, data: Any) -> None:
        self.console.print_json(json.dumps(data, default=str))

    def print_summary(self, title: str, rows: list[tuple[str, str]]) -> None:
        """Print a two-column table of key/value rows."""
        if self.json_output:
            self.output_json({key: value for key, value in rows})
            return
        table = Table(title=title, show_header=False)
        table.add_column("Key", style="cyan")
        table.add_column("Value")
        for key, value in rows:
            table.add_row(key, value)
        self.console.print(table)

    def handle_response(
        self, error: Optional[Exception], data: Any, message: str
    ) -> None:
        """Report the outcome of a sync operation.

        Args:
            error: Transport, application or local error, if any
            data: Response data from the shop
            message: What happened, e.g. ``"<path> created"``
        """
        if error is not None:
            self._emit("error", f"Failed: {message}", "red", err=True)
            details = getattr(error, "errors", None) or str(error)
            if not self.json_output:
                self.err_console.print(Pretty(details))
        elif data:
            if self.quiet:
                return
            self._emit("success", f"Success: {message}", "green")
            if not self.json_output:
                self.console.print(Pretty(data))
        else:
            self._emit("warning", f"Failed?: {message}", "yellow", err=True)
            if not self.json_output:
                self.err_console.print("[No data]", markup=False)
