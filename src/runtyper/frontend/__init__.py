"""
Frontends: Babel JSON AST loading and Flow type-annotation parsing.
"""

from .babel_ast import load_babel_ast, BabelASTLoader
from .type_syntax import parse_type

__all__ = ["load_babel_ast", "BabelASTLoader", "parse_type"]
