"""
Centralized file I/O utilities.

- Single place for encoding
- Use Path.read_text() consistently (no raw open/read)
"""

import json
from pathlib import Path
from typing import Any, Union

from .config import DEFAULT_FILE_ENCODING


def read_source_file(path: Union[Path, str]) -> str:
    """Read source file with standard encoding."""
    p = Path(path) if not isinstance(path, Path) else path
    return p.read_text(encoding=DEFAULT_FILE_ENCODING)


def read_json_file(path: Union[Path, str]) -> Any:
    """Read a JSON document (Babel AST dumps)."""
    return json.loads(read_source_file(path))


def write_output_file(path: Union[Path, str], text: str) -> None:
    p = Path(path) if not isinstance(path, Path) else path
    p.write_text(text, encoding=DEFAULT_FILE_ENCODING)
