"""
Shared components: the arena tree, builders, scopes and diagnostics.
"""

from .source_location import SourceLocation
from .errors import (
    Error, ErrorReporter, RuntyperError, StructuralPreconditionError,
    TypeSyntaxError, UnsupportedNodeError, RuntyperImplementationError,
)
from .nodes import NodeId, NodeType, Node, Tree, TYPE_NODE_KINDS, FUNCTION_KINDS, CLASS_KINDS
from .builders import NodeBuilder
from .scope import Scope, ScopeKind, ScopeManager, Entity, UidGenerator
