"""
Configuration constants to replace magic strings throughout runtyper
"""

import os
from dataclasses import dataclass
from typing import Optional

# Runtime type library (the erased-import target)
DEFAULT_LIBRARY_NAME = "flow-runtime"
DEFAULT_LIBRARY_ID = "t"
TYPE_PARAMETERS_SYMBOL = "TypeParameters"  # emitted as t.TypeParametersSymbol
SYMBOL_SUFFIX = "Symbol"

# Synthesized binding name hints (the uid generator prefixes "_" and numbers repeats)
VALUE_TYPE_SUFFIX = "Type"          # x -> _xType
RETURN_TYPE_HINT = "returnType"
YIELD_TYPE_HINT = "yieldType"
NEXT_TYPE_HINT = "nextType"
TYPE_PARAMETERS_HINT = "typeParameters"
SHADOW_ARGUMENT_HINT = "arg"        # arrow shadowing: _arg, _arg2, ...

# Scope data keys
VALUE_UID_PREFIX = "valueUid:"
RETURN_UID_KEY = "returnTypeUid"
YIELD_UID_KEY = "yieldTypeUid"
NEXT_UID_KEY = "nextTypeUid"

# Code generation
INDENT = "  "

# File encoding constants
DEFAULT_FILE_ENCODING = "utf-8"

# Error display constants
ERROR_POINTER_CHAR = "^"


def default_library_name() -> str:
    """Library module name, overridable through RUNTYPER_LIBRARY for whole test runs."""
    return os.environ.get("RUNTYPER_LIBRARY", DEFAULT_LIBRARY_NAME)


@dataclass
class TransformOptions:
    """Per-run overrides for the rewrite."""
    library_name: Optional[str] = None
    library_id: Optional[str] = None
    dump_tree: bool = False

    def resolved_library_name(self) -> str:
        return self.library_name or default_library_name()
