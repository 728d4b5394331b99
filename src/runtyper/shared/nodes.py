"""
Syntax Tree Definitions

Nodes live in a `Tree` arena and refer to each other by integer `NodeId`.
Rewrites never re-point parents: `Tree.replace` overwrites a slot's content
and `Tree.wrap` moves a slot's content into a fresh slot before putting the
wrapper in its place. A node id therefore names a tree *position*, and no
node is ever reachable from two positions.

Node kinds form a closed enumeration (`NodeType`). Every node class declares
its sub-node fields in `children`, in evaluation order.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Callable, ClassVar, Dict, Iterator, List, Optional, Set, Tuple, Union

from .source_location import SourceLocation
from .errors import RuntyperImplementationError

NodeId = int
LiteralValue = Union[str, int, float, bool, None]


class NodeType(Enum):
    """Node kinds. Values match Babel's node type names where one exists."""
    # Program structure
    PROGRAM = "Program"
    DIRECTIVE = "Directive"
    IMPORT_DECLARATION = "ImportDeclaration"
    IMPORT_SPECIFIER = "ImportSpecifier"
    IMPORT_DEFAULT_SPECIFIER = "ImportDefaultSpecifier"
    IMPORT_NAMESPACE_SPECIFIER = "ImportNamespaceSpecifier"
    EXPORT_NAMED_DECLARATION = "ExportNamedDeclaration"
    EXPORT_DEFAULT_DECLARATION = "ExportDefaultDeclaration"
    EXPORT_SPECIFIER = "ExportSpecifier"
    TYPE_ALIAS = "TypeAlias"

    # Declarations and statements
    VARIABLE_DECLARATION = "VariableDeclaration"
    VARIABLE_DECLARATOR = "VariableDeclarator"
    FUNCTION_DECLARATION = "FunctionDeclaration"
    CLASS_DECLARATION = "ClassDeclaration"
    CLASS_METHOD = "ClassMethod"
    CLASS_PROPERTY = "ClassProperty"
    DECORATOR = "Decorator"
    BLOCK_STATEMENT = "BlockStatement"
    EXPRESSION_STATEMENT = "ExpressionStatement"
    RETURN_STATEMENT = "ReturnStatement"
    IF_STATEMENT = "IfStatement"
    THROW_STATEMENT = "ThrowStatement"
    TRY_STATEMENT = "TryStatement"
    CATCH_CLAUSE = "CatchClause"
    WHILE_STATEMENT = "WhileStatement"
    FOR_STATEMENT = "ForStatement"
    FOR_OF_STATEMENT = "ForOfStatement"
    BREAK_STATEMENT = "BreakStatement"
    CONTINUE_STATEMENT = "ContinueStatement"
    EMPTY_STATEMENT = "EmptyStatement"

    # Expressions
    IDENTIFIER = "Identifier"
    STRING_LITERAL = "StringLiteral"
    NUMERIC_LITERAL = "NumericLiteral"
    BOOLEAN_LITERAL = "BooleanLiteral"
    NULL_LITERAL = "NullLiteral"
    THIS_EXPRESSION = "ThisExpression"
    SUPER = "Super"
    CALL_EXPRESSION = "CallExpression"
    NEW_EXPRESSION = "NewExpression"
    MEMBER_EXPRESSION = "MemberExpression"
    ASSIGNMENT_EXPRESSION = "AssignmentExpression"
    BINARY_EXPRESSION = "BinaryExpression"
    LOGICAL_EXPRESSION = "LogicalExpression"
    UNARY_EXPRESSION = "UnaryExpression"
    UPDATE_EXPRESSION = "UpdateExpression"
    CONDITIONAL_EXPRESSION = "ConditionalExpression"
    OBJECT_EXPRESSION = "ObjectExpression"
    OBJECT_PROPERTY = "ObjectProperty"
    ARRAY_EXPRESSION = "ArrayExpression"
    SPREAD_ELEMENT = "SpreadElement"
    FUNCTION_EXPRESSION = "FunctionExpression"
    ARROW_FUNCTION_EXPRESSION = "ArrowFunctionExpression"
    CLASS_EXPRESSION = "ClassExpression"
    YIELD_EXPRESSION = "YieldExpression"
    AWAIT_EXPRESSION = "AwaitExpression"
    TYPE_CAST_EXPRESSION = "TypeCastExpression"

    # Patterns
    OBJECT_PATTERN = "ObjectPattern"
    ARRAY_PATTERN = "ArrayPattern"
    ASSIGNMENT_PATTERN = "AssignmentPattern"
    REST_ELEMENT = "RestElement"

    # Type annotations
    KEYWORD_TYPE = "KeywordTypeAnnotation"
    LITERAL_TYPE = "LiteralTypeAnnotation"
    GENERIC_TYPE = "GenericTypeAnnotation"
    QUALIFIED_TYPE_IDENTIFIER = "QualifiedTypeIdentifier"
    NULLABLE_TYPE = "NullableTypeAnnotation"
    UNION_TYPE = "UnionTypeAnnotation"
    INTERSECTION_TYPE = "IntersectionTypeAnnotation"
    ARRAY_TYPE = "ArrayTypeAnnotation"
    TUPLE_TYPE = "TupleTypeAnnotation"
    OBJECT_TYPE = "ObjectTypeAnnotation"
    OBJECT_TYPE_PROPERTY = "ObjectTypeProperty"
    FUNCTION_TYPE = "FunctionTypeAnnotation"
    FUNCTION_TYPE_PARAM = "FunctionTypeParam"
    TYPE_PARAMETER = "TypeParameter"


TYPE_NODE_KINDS = frozenset({
    NodeType.KEYWORD_TYPE, NodeType.LITERAL_TYPE, NodeType.GENERIC_TYPE,
    NodeType.QUALIFIED_TYPE_IDENTIFIER, NodeType.NULLABLE_TYPE, NodeType.UNION_TYPE,
    NodeType.INTERSECTION_TYPE, NodeType.ARRAY_TYPE, NodeType.TUPLE_TYPE,
    NodeType.OBJECT_TYPE, NodeType.OBJECT_TYPE_PROPERTY, NodeType.FUNCTION_TYPE,
    NodeType.FUNCTION_TYPE_PARAM, NodeType.TYPE_PARAMETER,
})

FUNCTION_KINDS = frozenset({
    NodeType.FUNCTION_DECLARATION, NodeType.FUNCTION_EXPRESSION,
    NodeType.ARROW_FUNCTION_EXPRESSION, NodeType.CLASS_METHOD,
})

CLASS_KINDS = frozenset({NodeType.CLASS_DECLARATION, NodeType.CLASS_EXPRESSION})

# Nodes whose listed field holds a statement list
STATEMENT_LIST_FIELDS: Dict[NodeType, str] = {
    NodeType.PROGRAM: "body",
    NodeType.BLOCK_STATEMENT: "body",
}

# Nodes whose listed fields hold a single statement (not a list)
STATEMENT_SLOT_FIELDS: Dict[NodeType, Tuple[str, ...]] = {
    NodeType.IF_STATEMENT: ("consequent", "alternate"),
    NodeType.WHILE_STATEMENT: ("body",),
    NodeType.FOR_STATEMENT: ("body",),
    NodeType.FOR_OF_STATEMENT: ("body",),
}


# =============================================================================
# Base node
# =============================================================================

@dataclass
class Node:
    """
    Base class for all nodes.

    `kind` tags the node with its NodeType; `children` lists the fields that
    hold sub-node ids (a NodeId, an optional NodeId, or a list of NodeIds).
    """
    kind: ClassVar[NodeType]
    children: ClassVar[Tuple[str, ...]] = ()

    location: Optional[SourceLocation] = field(default=None, kw_only=True, compare=False, repr=False)

    def child_ids(self) -> Iterator[NodeId]:
        for name in self.children:
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, list):
                for item in value:
                    if item is not None:
                        yield item
            else:
                yield value

    @property
    def is_type(self) -> bool:
        return self.kind in TYPE_NODE_KINDS


# =============================================================================
# Program structure
# =============================================================================

@dataclass
class Program(Node):
    kind = NodeType.PROGRAM
    children = ("directives", "body")
    body: List[NodeId] = field(default_factory=list)
    directives: List[NodeId] = field(default_factory=list)


@dataclass
class Directive(Node):
    """A leading string-literal directive such as "use strict"."""
    kind = NodeType.DIRECTIVE
    value: str = ""


@dataclass
class ImportDeclaration(Node):
    kind = NodeType.IMPORT_DECLARATION
    children = ("specifiers",)
    specifiers: List[NodeId] = field(default_factory=list)
    source: str = ""
    import_kind: str = "value"


@dataclass
class ImportSpecifier(Node):
    kind = NodeType.IMPORT_SPECIFIER
    children = ("local",)
    imported: str = ""
    local: NodeId = -1
    import_kind: Optional[str] = None


@dataclass
class ImportDefaultSpecifier(Node):
    kind = NodeType.IMPORT_DEFAULT_SPECIFIER
    children = ("local",)
    local: NodeId = -1


@dataclass
class ImportNamespaceSpecifier(Node):
    kind = NodeType.IMPORT_NAMESPACE_SPECIFIER
    children = ("local",)
    local: NodeId = -1


@dataclass
class ExportNamedDeclaration(Node):
    kind = NodeType.EXPORT_NAMED_DECLARATION
    children = ("declaration", "specifiers")
    declaration: Optional[NodeId] = None
    specifiers: List[NodeId] = field(default_factory=list)
    source: Optional[str] = None
    export_kind: str = "value"


@dataclass
class ExportDefaultDeclaration(Node):
    kind = NodeType.EXPORT_DEFAULT_DECLARATION
    children = ("declaration",)
    declaration: NodeId = -1
    export_kind: str = "value"


@dataclass
class ExportSpecifier(Node):
    kind = NodeType.EXPORT_SPECIFIER
    local: str = ""
    exported: str = ""


@dataclass
class TypeAlias(Node):
    """`type Name<T> = right;`"""
    kind = NodeType.TYPE_ALIAS
    children = ("id", "type_parameters", "right")
    id: NodeId = -1
    right: NodeId = -1
    type_parameters: List[NodeId] = field(default_factory=list)


# =============================================================================
# Declarations and statements
# =============================================================================

@dataclass
class VariableDeclaration(Node):
    kind = NodeType.VARIABLE_DECLARATION
    children = ("declarations",)
    declaration_kind: str = "let"
    declarations: List[NodeId] = field(default_factory=list)


@dataclass
class VariableDeclarator(Node):
    kind = NodeType.VARIABLE_DECLARATOR
    children = ("id", "init")
    id: NodeId = -1
    init: Optional[NodeId] = None


@dataclass
class FunctionNode(Node):
    """Shared shape of every function-like node."""
    params: List[NodeId] = field(default_factory=list)
    body: NodeId = -1
    is_async: bool = False
    is_generator: bool = False
    return_type: Optional[NodeId] = None
    type_parameters: List[NodeId] = field(default_factory=list)


@dataclass
class FunctionDeclaration(FunctionNode):
    kind = NodeType.FUNCTION_DECLARATION
    children = ("id", "type_parameters", "params", "return_type", "body")
    id: Optional[NodeId] = None


@dataclass
class FunctionExpression(FunctionNode):
    kind = NodeType.FUNCTION_EXPRESSION
    children = ("id", "type_parameters", "params", "return_type", "body")
    id: Optional[NodeId] = None


@dataclass
class ArrowFunctionExpression(FunctionNode):
    """`body` is either a BlockStatement or an expression."""
    kind = NodeType.ARROW_FUNCTION_EXPRESSION
    children = ("type_parameters", "params", "return_type", "body")


@dataclass
class ClassMethod(FunctionNode):
    kind = NodeType.CLASS_METHOD
    children = ("key", "type_parameters", "params", "return_type", "body")
    method_kind: str = "method"  # constructor | method | get | set
    key: NodeId = -1
    computed: bool = False
    is_static: bool = False


@dataclass
class ClassNode(Node):
    body: List[NodeId] = field(default_factory=list)
    id: Optional[NodeId] = None
    super_class: Optional[NodeId] = None
    type_parameters: List[NodeId] = field(default_factory=list)
    super_type_parameters: List[NodeId] = field(default_factory=list)


@dataclass
class ClassDeclaration(ClassNode):
    kind = NodeType.CLASS_DECLARATION
    children = ("id", "type_parameters", "super_class", "super_type_parameters", "body")


@dataclass
class ClassExpression(ClassNode):
    kind = NodeType.CLASS_EXPRESSION
    children = ("id", "type_parameters", "super_class", "super_type_parameters", "body")


@dataclass
class ClassProperty(Node):
    kind = NodeType.CLASS_PROPERTY
    children = ("decorators", "key", "type_annotation", "value")
    key: NodeId = -1
    value: Optional[NodeId] = None
    type_annotation: Optional[NodeId] = None
    decorators: List[NodeId] = field(default_factory=list)
    computed: bool = False
    is_static: bool = False


@dataclass
class Decorator(Node):
    kind = NodeType.DECORATOR
    children = ("expression",)
    expression: NodeId = -1


@dataclass
class BlockStatement(Node):
    kind = NodeType.BLOCK_STATEMENT
    children = ("body",)
    body: List[NodeId] = field(default_factory=list)


@dataclass
class ExpressionStatement(Node):
    kind = NodeType.EXPRESSION_STATEMENT
    children = ("expression",)
    expression: NodeId = -1


@dataclass
class ReturnStatement(Node):
    kind = NodeType.RETURN_STATEMENT
    children = ("argument",)
    argument: Optional[NodeId] = None


@dataclass
class IfStatement(Node):
    kind = NodeType.IF_STATEMENT
    children = ("test", "consequent", "alternate")
    test: NodeId = -1
    consequent: NodeId = -1
    alternate: Optional[NodeId] = None


@dataclass
class ThrowStatement(Node):
    kind = NodeType.THROW_STATEMENT
    children = ("argument",)
    argument: NodeId = -1


@dataclass
class TryStatement(Node):
    kind = NodeType.TRY_STATEMENT
    children = ("block", "handler", "finalizer")
    block: NodeId = -1
    handler: Optional[NodeId] = None
    finalizer: Optional[NodeId] = None


@dataclass
class CatchClause(Node):
    kind = NodeType.CATCH_CLAUSE
    children = ("param", "body")
    param: Optional[NodeId] = None
    body: NodeId = -1


@dataclass
class WhileStatement(Node):
    kind = NodeType.WHILE_STATEMENT
    children = ("test", "body")
    test: NodeId = -1
    body: NodeId = -1


@dataclass
class ForStatement(Node):
    kind = NodeType.FOR_STATEMENT
    children = ("init", "test", "update", "body")
    init: Optional[NodeId] = None
    test: Optional[NodeId] = None
    update: Optional[NodeId] = None
    body: NodeId = -1


@dataclass
class ForOfStatement(Node):
    kind = NodeType.FOR_OF_STATEMENT
    children = ("left", "right", "body")
    left: NodeId = -1
    right: NodeId = -1
    body: NodeId = -1
    is_await: bool = False


@dataclass
class BreakStatement(Node):
    kind = NodeType.BREAK_STATEMENT


@dataclass
class ContinueStatement(Node):
    kind = NodeType.CONTINUE_STATEMENT


@dataclass
class EmptyStatement(Node):
    kind = NodeType.EMPTY_STATEMENT


# =============================================================================
# Expressions
# =============================================================================

@dataclass
class Identifier(Node):
    """Also used for binding positions; those may carry an annotation."""
    kind = NodeType.IDENTIFIER
    children = ("type_annotation",)
    name: str = ""
    type_annotation: Optional[NodeId] = None
    optional: bool = False


@dataclass
class StringLiteral(Node):
    kind = NodeType.STRING_LITERAL
    value: str = ""


@dataclass
class NumericLiteral(Node):
    kind = NodeType.NUMERIC_LITERAL
    value: Union[int, float] = 0


@dataclass
class BooleanLiteral(Node):
    kind = NodeType.BOOLEAN_LITERAL
    value: bool = False


@dataclass
class NullLiteral(Node):
    kind = NodeType.NULL_LITERAL


@dataclass
class ThisExpression(Node):
    kind = NodeType.THIS_EXPRESSION


@dataclass
class Super(Node):
    kind = NodeType.SUPER


@dataclass
class CallExpression(Node):
    kind = NodeType.CALL_EXPRESSION
    children = ("callee", "arguments")
    callee: NodeId = -1
    arguments: List[NodeId] = field(default_factory=list)


@dataclass
class NewExpression(Node):
    kind = NodeType.NEW_EXPRESSION
    children = ("callee", "arguments")
    callee: NodeId = -1
    arguments: List[NodeId] = field(default_factory=list)


@dataclass
class MemberExpression(Node):
    kind = NodeType.MEMBER_EXPRESSION
    children = ("object", "property")
    object: NodeId = -1
    property: NodeId = -1
    computed: bool = False


@dataclass
class AssignmentExpression(Node):
    kind = NodeType.ASSIGNMENT_EXPRESSION
    children = ("left", "right")
    operator: str = "="
    left: NodeId = -1
    right: NodeId = -1


@dataclass
class BinaryExpression(Node):
    kind = NodeType.BINARY_EXPRESSION
    children = ("left", "right")
    operator: str = "+"
    left: NodeId = -1
    right: NodeId = -1


@dataclass
class LogicalExpression(Node):
    kind = NodeType.LOGICAL_EXPRESSION
    children = ("left", "right")
    operator: str = "&&"
    left: NodeId = -1
    right: NodeId = -1


@dataclass
class UnaryExpression(Node):
    kind = NodeType.UNARY_EXPRESSION
    children = ("argument",)
    operator: str = "!"
    argument: NodeId = -1


@dataclass
class UpdateExpression(Node):
    kind = NodeType.UPDATE_EXPRESSION
    children = ("argument",)
    operator: str = "++"
    argument: NodeId = -1
    prefix: bool = False


@dataclass
class ConditionalExpression(Node):
    kind = NodeType.CONDITIONAL_EXPRESSION
    children = ("test", "consequent", "alternate")
    test: NodeId = -1
    consequent: NodeId = -1
    alternate: NodeId = -1


@dataclass
class ObjectExpression(Node):
    kind = NodeType.OBJECT_EXPRESSION
    children = ("properties",)
    properties: List[NodeId] = field(default_factory=list)


@dataclass
class ObjectProperty(Node):
    """Property of an object literal or an object pattern."""
    kind = NodeType.OBJECT_PROPERTY
    children = ("key", "value")
    key: NodeId = -1
    value: NodeId = -1
    computed: bool = False
    shorthand: bool = False


@dataclass
class ArrayExpression(Node):
    kind = NodeType.ARRAY_EXPRESSION
    children = ("elements",)
    elements: List[NodeId] = field(default_factory=list)


@dataclass
class SpreadElement(Node):
    kind = NodeType.SPREAD_ELEMENT
    children = ("argument",)
    argument: NodeId = -1


@dataclass
class YieldExpression(Node):
    kind = NodeType.YIELD_EXPRESSION
    children = ("argument",)
    argument: Optional[NodeId] = None
    delegate: bool = False


@dataclass
class AwaitExpression(Node):
    kind = NodeType.AWAIT_EXPRESSION
    children = ("argument",)
    argument: NodeId = -1


@dataclass
class TypeCastExpression(Node):
    """`(expression: Type)`"""
    kind = NodeType.TYPE_CAST_EXPRESSION
    children = ("expression", "type_annotation")
    expression: NodeId = -1
    type_annotation: NodeId = -1


# =============================================================================
# Patterns
# =============================================================================

@dataclass
class ObjectPattern(Node):
    kind = NodeType.OBJECT_PATTERN
    children = ("properties", "type_annotation")
    properties: List[NodeId] = field(default_factory=list)
    type_annotation: Optional[NodeId] = None
    optional: bool = False


@dataclass
class ArrayPattern(Node):
    kind = NodeType.ARRAY_PATTERN
    children = ("elements", "type_annotation")
    elements: List[NodeId] = field(default_factory=list)
    type_annotation: Optional[NodeId] = None
    optional: bool = False


@dataclass
class AssignmentPattern(Node):
    """A parameter or pattern element with a default: `left = right`."""
    kind = NodeType.ASSIGNMENT_PATTERN
    children = ("left", "right")
    left: NodeId = -1
    right: NodeId = -1


@dataclass
class RestElement(Node):
    kind = NodeType.REST_ELEMENT
    children = ("argument", "type_annotation")
    argument: NodeId = -1
    type_annotation: Optional[NodeId] = None


# =============================================================================
# Type annotations
# =============================================================================

@dataclass
class KeywordType(Node):
    """number, string, boolean, any, mixed, void, null, empty, symbol"""
    kind = NodeType.KEYWORD_TYPE
    name: str = "any"


@dataclass
class LiteralType(Node):
    kind = NodeType.LITERAL_TYPE
    value: LiteralValue = None


@dataclass
class GenericType(Node):
    """`Name` or `Name<Args...>`; `id` is an Identifier or QualifiedTypeIdentifier."""
    kind = NodeType.GENERIC_TYPE
    children = ("id", "type_arguments")
    id: NodeId = -1
    type_arguments: List[NodeId] = field(default_factory=list)


@dataclass
class QualifiedTypeIdentifier(Node):
    kind = NodeType.QUALIFIED_TYPE_IDENTIFIER
    children = ("qualification", "id")
    qualification: NodeId = -1
    id: NodeId = -1


@dataclass
class NullableType(Node):
    kind = NodeType.NULLABLE_TYPE
    children = ("type_annotation",)
    type_annotation: NodeId = -1


@dataclass
class UnionType(Node):
    kind = NodeType.UNION_TYPE
    children = ("types",)
    types: List[NodeId] = field(default_factory=list)


@dataclass
class IntersectionType(Node):
    kind = NodeType.INTERSECTION_TYPE
    children = ("types",)
    types: List[NodeId] = field(default_factory=list)


@dataclass
class ArrayType(Node):
    """Shorthand `T[]`."""
    kind = NodeType.ARRAY_TYPE
    children = ("element_type",)
    element_type: NodeId = -1


@dataclass
class TupleType(Node):
    kind = NodeType.TUPLE_TYPE
    children = ("types",)
    types: List[NodeId] = field(default_factory=list)


@dataclass
class ObjectType(Node):
    kind = NodeType.OBJECT_TYPE
    children = ("properties",)
    properties: List[NodeId] = field(default_factory=list)
    exact: bool = False


@dataclass
class ObjectTypeProperty(Node):
    kind = NodeType.OBJECT_TYPE_PROPERTY
    children = ("value",)
    key: str = ""
    value: NodeId = -1
    optional: bool = False


@dataclass
class FunctionType(Node):
    kind = NodeType.FUNCTION_TYPE
    children = ("type_parameters", "params", "rest", "return_type")
    params: List[NodeId] = field(default_factory=list)
    return_type: NodeId = -1
    rest: Optional[NodeId] = None
    type_parameters: List[NodeId] = field(default_factory=list)


@dataclass
class FunctionTypeParam(Node):
    kind = NodeType.FUNCTION_TYPE_PARAM
    children = ("type_annotation",)
    name: Optional[str] = None
    type_annotation: NodeId = -1
    optional: bool = False


@dataclass
class TypeParameter(Node):
    """Declared type parameter `T` or `T: Bound`."""
    kind = NodeType.TYPE_PARAMETER
    children = ("bound",)
    name: str = ""
    bound: Optional[NodeId] = None


_NODE_CLASSES: Dict[NodeType, type] = {}


def _register_node_classes() -> None:
    pending = list(Node.__subclasses__())
    while pending:
        cls = pending.pop()
        pending.extend(cls.__subclasses__())
        node_kind = cls.__dict__.get("kind")
        if isinstance(node_kind, NodeType):
            _NODE_CLASSES[node_kind] = cls
    missing = set(NodeType) - set(_NODE_CLASSES)
    if missing:
        raise RuntyperImplementationError(
            f"node kinds without a node class: {sorted(k.value for k in missing)}"
        )


_register_node_classes()


# =============================================================================
# Arena
# =============================================================================

class Tree:
    """
    Arena of nodes addressed by NodeId.

    Released slots hold None; reading one is an implementation error.
    """

    def __init__(self) -> None:
        self._slots: List[Optional[Node]] = []
        self.root: Optional[NodeId] = None

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, node_id: NodeId) -> Node:
        node = self._slots[node_id] if 0 <= node_id < len(self._slots) else None
        if node is None:
            raise RuntyperImplementationError(f"node {node_id} is not allocated")
        return node

    def add(self, node: Node) -> NodeId:
        self._slots.append(node)
        return len(self._slots) - 1

    def replace(self, node_id: NodeId, replacement_id: NodeId) -> None:
        """Put the content of `replacement_id` into slot `node_id` and release the former."""
        if node_id == replacement_id:
            return
        self._slots[node_id] = self[replacement_id]
        self._slots[replacement_id] = None

    def wrap(self, node_id: NodeId, make: Callable[[NodeId], NodeId]) -> NodeId:
        """
        Wrap the node at `node_id` in a new node built by `make`.

        The original content moves to a fresh slot whose id is passed to
        `make`; the wrapper takes over `node_id`. Returns the moved id.
        """
        moved = self.add(self[node_id])
        wrapper = make(moved)
        self.replace(node_id, wrapper)
        return moved

    def clone(self, node_id: NodeId) -> NodeId:
        """Deep-copy the subtree at `node_id` into fresh slots."""
        original = self[node_id]
        duplicate = copy.copy(original)
        for name in original.children:
            value = getattr(original, name)
            if value is None:
                continue
            if isinstance(value, list):
                setattr(duplicate, name, [self.clone(item) for item in value])
            else:
                setattr(duplicate, name, self.clone(value))
        return self.add(duplicate)

    def walk(self, node_id: Optional[NodeId] = None, include_types: bool = True) -> Iterator[NodeId]:
        """Pre-order ids of the subtree at `node_id` (default: the root)."""
        start = self.root if node_id is None else node_id
        if start is None:
            return
        stack = [start]
        while stack:
            current = stack.pop()
            node = self[current]
            if not include_types and node.is_type:
                continue
            yield current
            stack.extend(reversed(list(node.child_ids())))

    def check_unique_positions(self, node_id: Optional[NodeId] = None) -> None:
        """Raise if any node id is reachable from more than one position."""
        seen: Set[NodeId] = set()
        for current in self.walk(node_id):
            if current in seen:
                raise RuntyperImplementationError(f"node {current} appears in two tree positions")
            seen.add(current)

    def kind(self, node_id: Optional[NodeId]) -> Optional[NodeType]:
        if node_id is None:
            return None
        return self[node_id].kind

    def is_kind(self, node_id: Optional[NodeId], *kinds: NodeType) -> bool:
        return node_id is not None and self[node_id].kind in kinds

    def name_of(self, node_id: Optional[NodeId]) -> Optional[str]:
        """Name of an Identifier node, else None."""
        if node_id is None:
            return None
        node = self[node_id]
        return node.name if isinstance(node, Identifier) else None


def annotation_fields(node: Node) -> List[str]:
    """Fields of a statement/expression node that hold annotation syntax."""
    return [
        f.name for f in fields(node)
        if f.name in ("type_annotation", "return_type", "type_parameters", "super_type_parameters")
    ]
