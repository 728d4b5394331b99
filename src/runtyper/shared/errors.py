"""
Error Reporting

Diagnostics are rendered rustc-style: a header line, an arrow to the
location, and (when the source text is known) the offending line with carets.
"""

import os
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional

from .source_location import SourceLocation
from ..utils.config import ERROR_POINTER_CHAR


# ---------------------------------------------------------------------------
# ANSI color helpers (disabled when NO_COLOR is set)
# ---------------------------------------------------------------------------

def _use_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    explicit = os.environ.get("RUNTYPER_COLOR", "").lower()
    if explicit in ("0", "false", "no", "never"):
        return False
    return sys.stderr.isatty()

_BOLD   = "\033[1m"
_RED    = "\033[31m"
_BLUE   = "\033[34m"
_CYAN   = "\033[36m"
_RESET  = "\033[0m"

def _style(text: str, *codes: str, color: bool = True) -> str:
    if not color:
        return text
    prefix = "".join(codes)
    return f"{prefix}{text}{_RESET}" if prefix else text


# ---------------------------------------------------------------------------
# Error dataclass
# ---------------------------------------------------------------------------

@dataclass
class Error:
    """A rewrite-time diagnostic."""
    message: str
    location: Optional[SourceLocation]
    code: Optional[str] = None
    help: Optional[str] = None
    note: Optional[str] = None


def _format_diagnostic(
    error: Error,
    source_files: Dict[str, str],
    color: bool = False,
) -> str:
    """
    Render a single diagnostic.

    Example output (plain, no color)::

        error[R0001]: constructor of sub class must contain super()
         --> main.js:3:2
          |
        3 |   constructor() {
          |   ^^^^^^^^^^^
    """
    out: List[str] = []
    code_str = f"[{error.code}]" if error.code else ""
    out.append(
        _style(f"error{code_str}", _BOLD, _RED, color=color)
        + _style(f": {error.message}", _BOLD, color=color)
    )

    loc = error.location
    if loc is None:
        out.append(_style(" --> ", _BOLD, _BLUE, color=color) + "<unknown location>")
        _append_annotations(out, error, 1, color)
        return "\n".join(out)

    source = source_files.get(loc.file)
    if source is None:
        out.append(_style(" --> ", _BOLD, _BLUE, color=color) + str(loc))
        _append_annotations(out, error, 1, color)
        return "\n".join(out)

    src_lines = source.split("\n")
    gw = max(len(str(loc.line)), 1)
    out.append(_style(" " * gw + "--> ", _BOLD, _BLUE, color=color) + str(loc))
    out.append(_style(" " * (gw + 1) + "|", _BOLD, _BLUE, color=color))

    idx = loc.line - 1
    code_line = src_lines[idx] if 0 <= idx < len(src_lines) else ""
    out.append(_style(str(loc.line).rjust(gw) + " | ", _BOLD, _BLUE, color=color) + code_line)

    # Babel columns are 0-based
    col_start = max(loc.column, 0)
    if loc.end_line == loc.line and loc.end_column > loc.column:
        span_len = loc.end_column - loc.column
    else:
        span_len = max(1, len(code_line.rstrip()) - col_start)
    carets = " " * col_start + ERROR_POINTER_CHAR * span_len
    out.append(
        _style(" " * (gw + 1) + "| ", _BOLD, _BLUE, color=color)
        + _style(carets, _BOLD, _RED, color=color)
    )
    _append_annotations(out, error, gw, color)
    return "\n".join(out)


def _append_annotations(out: List[str], error: Error, gw: int, color: bool) -> None:
    if not (error.help or error.note):
        return
    pad = " " * (gw + 1)
    out.append(_style(pad + "|", _BOLD, _BLUE, color=color))
    if error.help:
        out.append(_style(f"{pad}= ", _BOLD, _CYAN, color=color) + _style("help: ", _BOLD, color=color) + error.help)
    if error.note:
        out.append(_style(f"{pad}= ", _BOLD, _CYAN, color=color) + _style("note: ", _BOLD, color=color) + error.note)


# ---------------------------------------------------------------------------
# ErrorReporter
# ---------------------------------------------------------------------------

class ErrorReporter:
    """Collects diagnostics and formats them against known source files."""

    def __init__(self, source_files: Optional[Dict[str, str]] = None):
        self.source_files: Dict[str, str] = source_files or {}
        self.errors: List[Error] = []

    def report_error(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        code: Optional[str] = None,
        help: Optional[str] = None,
        note: Optional[str] = None,
    ) -> None:
        self.errors.append(Error(message=message, location=location, code=code, help=help, note=note))

    def report_exception(self, exc: "RuntyperError") -> None:
        self.report_error(exc.message, exc.location, code=exc.error_code, help=exc.help_text)

    def format_error(self, error: Error, color: Optional[bool] = None) -> str:
        use_color = color if color is not None else _use_color()
        return _format_diagnostic(error, self.source_files, color=use_color)

    def format_all_errors(self, color: Optional[bool] = None) -> str:
        parts = [self.format_error(e, color=color) for e in self.errors]
        use_color = color if color is not None else _use_color()
        count = len(self.errors)
        summary = f"aborting due to {count} previous error{'s' if count != 1 else ''}"
        parts.append(
            _style("error", _BOLD, _RED, color=use_color)
            + _style(f": {summary}", _BOLD, color=use_color)
        )
        return "\n\n".join(parts)

    def has_errors(self) -> bool:
        return len(self.errors) > 0


# ============================================================================
# Exception Classes
# ============================================================================

class RuntyperError(Exception):
    """Base exception for all rewrite errors"""
    error_code = "R0000"

    def __init__(self, message: str, location: Optional[SourceLocation] = None, help: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.location = location
        self.help_text = help

    def __str__(self):
        if self.location:
            return f"error[{self.error_code}]: {self.message}\n --> {self.location}"
        return self.message


class StructuralPreconditionError(RuntyperError):
    """
    The input tree lacks a construct the rewrite depends on.

    Raised for classes whose type parameters must be propagated through a
    constructor that does not exist, or a subclass constructor that never
    calls super(). Aborts the whole pass.
    """
    error_code = "R0001"


class TypeSyntaxError(RuntyperError):
    """Malformed type annotation text."""
    error_code = "R0002"


class UnsupportedNodeError(RuntyperError):
    """Input AST contains a node kind the tree cannot represent."""
    error_code = "R0003"


class RuntyperImplementationError(Exception):
    """
    Error in runtyper itself (not in the program being rewritten).

    Use this for internal invariants such as an incomplete rule table.
    """
    def __init__(self, message: str, error_code: str = "R9999"):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

    def __str__(self):
        return f"[{self.error_code}] {self.message}"
