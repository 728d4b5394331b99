"""
Node builders.

`NodeBuilder` allocates new nodes into a Tree and returns their ids. Every
call creates fresh nodes (and fresh lists), so the same builder result is
never placed in two positions; reuse of a name means building a new
Identifier.
"""

from typing import Iterable, Optional, Sequence, Union

from .nodes import (
    NodeId, Tree, Program, Directive, ImportDeclaration, ImportDefaultSpecifier,
    VariableDeclaration, VariableDeclarator, BlockStatement, ExpressionStatement,
    ReturnStatement, IfStatement, ThrowStatement, Identifier, StringLiteral,
    NumericLiteral, BooleanLiteral, NullLiteral, ThisExpression, CallExpression,
    MemberExpression, AssignmentExpression, BinaryExpression, UnaryExpression,
    ConditionalExpression, ObjectExpression, ObjectProperty, ArrayExpression,
    YieldExpression, FunctionExpression, ArrowFunctionExpression, Decorator,
)

Name = Union[str, NodeId]


class NodeBuilder:
    """Constructors for the nodes rewrite rules synthesize."""

    def __init__(self, tree: Tree):
        self.tree = tree

    def _ident(self, value: Name) -> NodeId:
        return self.identifier(value) if isinstance(value, str) else value

    # -- literals and names ---------------------------------------------------

    def identifier(self, name: str, type_annotation: Optional[NodeId] = None, optional: bool = False) -> NodeId:
        return self.tree.add(Identifier(name=name, type_annotation=type_annotation, optional=optional))

    def string(self, value: str) -> NodeId:
        return self.tree.add(StringLiteral(value=value))

    def number(self, value: Union[int, float]) -> NodeId:
        return self.tree.add(NumericLiteral(value=value))

    def boolean(self, value: bool) -> NodeId:
        return self.tree.add(BooleanLiteral(value=value))

    def null(self) -> NodeId:
        return self.tree.add(NullLiteral())

    def this(self) -> NodeId:
        return self.tree.add(ThisExpression())

    # -- expressions ----------------------------------------------------------

    def call(self, callee: Name, arguments: Iterable[NodeId] = ()) -> NodeId:
        return self.tree.add(CallExpression(callee=self._ident(callee), arguments=list(arguments)))

    def member(self, obj: Name, prop: Name, computed: bool = False) -> NodeId:
        return self.tree.add(MemberExpression(object=self._ident(obj), property=self._ident(prop), computed=computed))

    def method_call(self, obj: Name, method: str, arguments: Iterable[NodeId] = ()) -> NodeId:
        """`obj.method(arguments...)`"""
        return self.call(self.member(obj, method), arguments)

    def assign(self, left: Name, right: NodeId, operator: str = "=") -> NodeId:
        return self.tree.add(AssignmentExpression(operator=operator, left=self._ident(left), right=right))

    def binary(self, operator: str, left: NodeId, right: NodeId) -> NodeId:
        return self.tree.add(BinaryExpression(operator=operator, left=left, right=right))

    def unary(self, operator: str, argument: NodeId) -> NodeId:
        return self.tree.add(UnaryExpression(operator=operator, argument=argument))

    def conditional(self, test: NodeId, consequent: NodeId, alternate: NodeId) -> NodeId:
        return self.tree.add(ConditionalExpression(test=test, consequent=consequent, alternate=alternate))

    def object(self, properties: Iterable[NodeId] = ()) -> NodeId:
        return self.tree.add(ObjectExpression(properties=list(properties)))

    def object_property(self, key: Name, value: NodeId, computed: bool = False) -> NodeId:
        return self.tree.add(ObjectProperty(key=self._ident(key), value=value, computed=computed))

    def array(self, elements: Iterable[NodeId] = ()) -> NodeId:
        return self.tree.add(ArrayExpression(elements=list(elements)))

    def yield_(self, argument: Optional[NodeId] = None, delegate: bool = False) -> NodeId:
        return self.tree.add(YieldExpression(argument=argument, delegate=delegate))

    def function_expression(self, params: Sequence[NodeId], body: Sequence[NodeId]) -> NodeId:
        return self.tree.add(FunctionExpression(params=list(params), body=self.block(body)))

    def arrow(self, params: Sequence[NodeId], body: NodeId) -> NodeId:
        return self.tree.add(ArrowFunctionExpression(params=list(params), body=body))

    # -- statements -----------------------------------------------------------

    def declarator(self, target: Name, init: Optional[NodeId] = None) -> NodeId:
        return self.tree.add(VariableDeclarator(id=self._ident(target), init=init))

    def declaration(self, kind: str, declarators: Sequence[NodeId]) -> NodeId:
        return self.tree.add(VariableDeclaration(declaration_kind=kind, declarations=list(declarators)))

    def declare(self, kind: str, target: Name, init: Optional[NodeId] = None) -> NodeId:
        """Single-declarator declaration: `kind target = init;`"""
        return self.declaration(kind, [self.declarator(target, init)])

    def expression_statement(self, expression: NodeId) -> NodeId:
        return self.tree.add(ExpressionStatement(expression=expression))

    def block(self, body: Iterable[NodeId] = ()) -> NodeId:
        return self.tree.add(BlockStatement(body=list(body)))

    def if_(self, test: NodeId, consequent: NodeId, alternate: Optional[NodeId] = None) -> NodeId:
        return self.tree.add(IfStatement(test=test, consequent=consequent, alternate=alternate))

    def throw(self, argument: NodeId) -> NodeId:
        return self.tree.add(ThrowStatement(argument=argument))

    def return_(self, argument: Optional[NodeId] = None) -> NodeId:
        return self.tree.add(ReturnStatement(argument=argument))

    def decorator(self, expression: NodeId) -> NodeId:
        return self.tree.add(Decorator(expression=expression))

    def import_default(self, local: str, source: str) -> NodeId:
        specifier = self.tree.add(ImportDefaultSpecifier(local=self.identifier(local)))
        return self.tree.add(ImportDeclaration(specifiers=[specifier], source=source))

    def directive(self, value: str) -> NodeId:
        return self.tree.add(Directive(value=value))

    def program(self, body: Iterable[NodeId] = (), directives: Iterable[NodeId] = ()) -> NodeId:
        """Create a Program node and make it the tree root."""
        root = self.tree.add(Program(body=list(body), directives=list(directives)))
        self.tree.root = root
        return root
