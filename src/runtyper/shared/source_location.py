"""
Source Location (Span)

Positions are carried over from the parser that produced the tree (Babel's
`loc` objects) so diagnostics can point back at the original source.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceLocation:
    """
    Source location.

    - File, line, column (+ optional start/end offsets)
    - Code snippets extracted from source files when needed (not stored here)
    - Immutable (frozen) for hashability
    """
    file: str
    line: int
    column: int
    start: int = 0
    end: int = 0
    end_line: int = 0
    end_column: int = 0

    def __str__(self) -> str:
        """Format as file:line:column"""
        return f"{self.file}:{self.line}:{self.column}"
