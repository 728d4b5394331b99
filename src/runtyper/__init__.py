"""
runtyper: rewrites Flow-style type annotations into runtime type checks.

    from runtyper import transform, generate
    code = generate(transform(tree))
"""

from .compiler.driver import CompilerDriver, TransformResult, transform
from .backend.codegen import generate
from .frontend.babel_ast import load_babel_ast
from .frontend.type_syntax import parse_type
from .shared.errors import (
    RuntyperError, StructuralPreconditionError, TypeSyntaxError, UnsupportedNodeError,
)
from .utils.config import TransformOptions

__all__ = [
    "CompilerDriver", "TransformResult", "transform", "generate", "load_babel_ast",
    "parse_type", "RuntyperError", "StructuralPreconditionError", "TypeSyntaxError",
    "UnsupportedNodeError", "TransformOptions",
]
