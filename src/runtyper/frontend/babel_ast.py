"""
Babel AST Loader

Converts the JSON AST produced by `@babel/parser` (with the `flow` plugin)
into a Tree. Only the node kinds the tree can represent are accepted;
anything else raises UnsupportedNodeError with the node's source location.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from ..shared.errors import UnsupportedNodeError
from ..shared.nodes import (
    NodeId, Tree, Node, Program, Directive, ImportDeclaration, ImportSpecifier,
    ImportDefaultSpecifier, ImportNamespaceSpecifier, ExportNamedDeclaration,
    ExportDefaultDeclaration, ExportSpecifier, TypeAlias, VariableDeclaration,
    VariableDeclarator, FunctionDeclaration, FunctionExpression, ArrowFunctionExpression,
    ClassMethod, ClassDeclaration, ClassExpression, ClassProperty, Decorator,
    BlockStatement, ExpressionStatement, ReturnStatement, IfStatement, ThrowStatement,
    TryStatement, CatchClause, WhileStatement, ForStatement, ForOfStatement,
    BreakStatement, ContinueStatement, EmptyStatement, Identifier, StringLiteral,
    NumericLiteral, BooleanLiteral, NullLiteral, ThisExpression, Super, CallExpression,
    NewExpression, MemberExpression, AssignmentExpression, BinaryExpression,
    LogicalExpression, UnaryExpression, UpdateExpression, ConditionalExpression,
    ObjectExpression, ObjectProperty, ArrayExpression, SpreadElement, YieldExpression,
    AwaitExpression, TypeCastExpression, ObjectPattern, ArrayPattern, AssignmentPattern,
    RestElement, KeywordType, LiteralType, GenericType, QualifiedTypeIdentifier,
    NullableType, UnionType, IntersectionType, ArrayType, TupleType, ObjectType,
    ObjectTypeProperty, FunctionType, FunctionTypeParam, TypeParameter,
)
from ..shared.source_location import SourceLocation

logger = logging.getLogger("runtyper.frontend.babel_ast")

JsonNode = Dict[str, Any]

KEYWORD_ANNOTATIONS = {
    "NumberTypeAnnotation": "number",
    "StringTypeAnnotation": "string",
    "BooleanTypeAnnotation": "boolean",
    "AnyTypeAnnotation": "any",
    "MixedTypeAnnotation": "mixed",
    "VoidTypeAnnotation": "void",
    "NullLiteralTypeAnnotation": "null",
    "EmptyTypeAnnotation": "empty",
    "SymbolTypeAnnotation": "symbol",
}

LITERAL_ANNOTATIONS = frozenset({
    "StringLiteralTypeAnnotation", "NumberLiteralTypeAnnotation", "BooleanLiteralTypeAnnotation",
})


class BabelASTLoader:
    """
    One loader per input file.

    Each `_load_<Type>` method receives the JSON node and returns the new
    node's id in `self.tree`.
    """

    def __init__(self, source_file: str = "<input>"):
        self.source_file = source_file
        self.tree = Tree()

    def load(self, document: JsonNode) -> Tree:
        program = document.get("program") if document.get("type") == "File" else document
        if not program or program.get("type") != "Program":
            raise UnsupportedNodeError("expected a Babel File or Program node at the root")
        self.tree.root = self.node(program)
        logger.debug(f"loaded {len(self.tree)} nodes from {self.source_file}")
        return self.tree

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def location(self, data: JsonNode) -> Optional[SourceLocation]:
        loc = data.get("loc")
        if not loc:
            return None
        start, end = loc.get("start", {}), loc.get("end", {})
        return SourceLocation(
            file=self.source_file,
            line=start.get("line", 0),
            column=start.get("column", 0),
            start=data.get("start") or 0,
            end=data.get("end") or 0,
            end_line=end.get("line", 0),
            end_column=end.get("column", 0),
        )

    def node(self, data: JsonNode) -> NodeId:
        node_type = data.get("type")
        if node_type == "ParenthesizedExpression":
            return self.node(data["expression"])
        if node_type == "TypeAnnotation":
            return self.node(data["typeAnnotation"])
        if node_type in KEYWORD_ANNOTATIONS:
            return self._add(KeywordType(name=KEYWORD_ANNOTATIONS[node_type]), data)
        if node_type in LITERAL_ANNOTATIONS:
            return self._add(LiteralType(value=data.get("value")), data)
        loader: Optional[Callable[[JsonNode], NodeId]] = getattr(self, f"_load_{node_type}", None)
        if loader is None:
            raise UnsupportedNodeError(f"unsupported node type '{node_type}'", location=self.location(data))
        return loader(data)

    def optional(self, data: Optional[JsonNode]) -> Optional[NodeId]:
        return None if data is None else self.node(data)

    def nodes(self, items: Optional[List[Optional[JsonNode]]]) -> List[NodeId]:
        return [self.node(item) for item in items or [] if item is not None]

    def annotation(self, data: JsonNode, key: str = "typeAnnotation") -> Optional[NodeId]:
        value = data.get(key)
        return None if value is None else self.node(value)

    def type_parameters(self, data: JsonNode, key: str = "typeParameters") -> List[NodeId]:
        holder = data.get(key)
        return self.nodes(holder.get("params")) if holder else []

    def _add(self, node: Node, data: JsonNode) -> NodeId:
        node.location = self.location(data)
        return self.tree.add(node)

    @staticmethod
    def _name(data: JsonNode) -> str:
        if data.get("type") == "StringLiteral":
            return data["value"]
        return data["name"]

    # -------------------------------------------------------------------------
    # Program structure
    # -------------------------------------------------------------------------

    def _load_Program(self, data: JsonNode) -> NodeId:
        directives = [
            self._add(Directive(value=d["value"]["value"]), d) for d in data.get("directives", [])
        ]
        return self._add(Program(body=self.nodes(data.get("body")), directives=directives), data)

    def _load_ImportDeclaration(self, data: JsonNode) -> NodeId:
        return self._add(ImportDeclaration(
            specifiers=self.nodes(data.get("specifiers")),
            source=data["source"]["value"],
            import_kind=data.get("importKind") or "value",
        ), data)

    def _load_ImportSpecifier(self, data: JsonNode) -> NodeId:
        return self._add(ImportSpecifier(
            imported=self._name(data["imported"]),
            local=self.node(data["local"]),
            import_kind=data.get("importKind"),
        ), data)

    def _load_ImportDefaultSpecifier(self, data: JsonNode) -> NodeId:
        return self._add(ImportDefaultSpecifier(local=self.node(data["local"])), data)

    def _load_ImportNamespaceSpecifier(self, data: JsonNode) -> NodeId:
        return self._add(ImportNamespaceSpecifier(local=self.node(data["local"])), data)

    def _load_ExportNamedDeclaration(self, data: JsonNode) -> NodeId:
        source = data.get("source")
        return self._add(ExportNamedDeclaration(
            declaration=self.optional(data.get("declaration")),
            specifiers=self.nodes(data.get("specifiers")),
            source=source["value"] if source else None,
            export_kind=data.get("exportKind") or "value",
        ), data)

    def _load_ExportDefaultDeclaration(self, data: JsonNode) -> NodeId:
        return self._add(ExportDefaultDeclaration(
            declaration=self.node(data["declaration"]),
            export_kind=data.get("exportKind") or "value",
        ), data)

    def _load_ExportSpecifier(self, data: JsonNode) -> NodeId:
        return self._add(ExportSpecifier(
            local=self._name(data["local"]), exported=self._name(data["exported"]),
        ), data)

    def _load_TypeAlias(self, data: JsonNode) -> NodeId:
        return self._add(TypeAlias(
            id=self.node(data["id"]),
            right=self.node(data["right"]),
            type_parameters=self.type_parameters(data),
        ), data)

    # -------------------------------------------------------------------------
    # Declarations and statements
    # -------------------------------------------------------------------------

    def _load_VariableDeclaration(self, data: JsonNode) -> NodeId:
        return self._add(VariableDeclaration(
            declaration_kind=data["kind"], declarations=self.nodes(data.get("declarations")),
        ), data)

    def _load_VariableDeclarator(self, data: JsonNode) -> NodeId:
        return self._add(VariableDeclarator(id=self.node(data["id"]), init=self.optional(data.get("init"))), data)

    def _function_fields(self, data: JsonNode) -> Dict[str, Any]:
        return dict(
            params=self.nodes(data.get("params")),
            body=self.node(data["body"]),
            is_async=bool(data.get("async")),
            is_generator=bool(data.get("generator")),
            return_type=self.annotation(data, "returnType"),
            type_parameters=self.type_parameters(data),
        )

    def _load_FunctionDeclaration(self, data: JsonNode) -> NodeId:
        return self._add(FunctionDeclaration(id=self.optional(data.get("id")), **self._function_fields(data)), data)

    def _load_FunctionExpression(self, data: JsonNode) -> NodeId:
        return self._add(FunctionExpression(id=self.optional(data.get("id")), **self._function_fields(data)), data)

    def _load_ArrowFunctionExpression(self, data: JsonNode) -> NodeId:
        return self._add(ArrowFunctionExpression(**self._function_fields(data)), data)

    def _load_ClassMethod(self, data: JsonNode) -> NodeId:
        return self._add(ClassMethod(
            method_kind=data.get("kind", "method"),
            key=self.node(data["key"]),
            computed=bool(data.get("computed")),
            is_static=bool(data.get("static")),
            **self._function_fields(data),
        ), data)

    def _class_fields(self, data: JsonNode) -> Dict[str, Any]:
        return dict(
            id=self.optional(data.get("id")),
            super_class=self.optional(data.get("superClass")),
            type_parameters=self.type_parameters(data),
            super_type_parameters=self.type_parameters(data, "superTypeParameters"),
            body=self.nodes(data["body"]["body"]),
        )

    def _load_ClassDeclaration(self, data: JsonNode) -> NodeId:
        return self._add(ClassDeclaration(**self._class_fields(data)), data)

    def _load_ClassExpression(self, data: JsonNode) -> NodeId:
        return self._add(ClassExpression(**self._class_fields(data)), data)

    def _load_ClassProperty(self, data: JsonNode) -> NodeId:
        return self._add(ClassProperty(
            key=self.node(data["key"]),
            value=self.optional(data.get("value")),
            type_annotation=self.annotation(data),
            decorators=self.nodes(data.get("decorators")),
            computed=bool(data.get("computed")),
            is_static=bool(data.get("static")),
        ), data)

    def _load_Decorator(self, data: JsonNode) -> NodeId:
        return self._add(Decorator(expression=self.node(data["expression"])), data)

    def _load_BlockStatement(self, data: JsonNode) -> NodeId:
        return self._add(BlockStatement(body=self.nodes(data.get("body"))), data)

    def _load_ExpressionStatement(self, data: JsonNode) -> NodeId:
        return self._add(ExpressionStatement(expression=self.node(data["expression"])), data)

    def _load_ReturnStatement(self, data: JsonNode) -> NodeId:
        return self._add(ReturnStatement(argument=self.optional(data.get("argument"))), data)

    def _load_IfStatement(self, data: JsonNode) -> NodeId:
        return self._add(IfStatement(
            test=self.node(data["test"]),
            consequent=self.node(data["consequent"]),
            alternate=self.optional(data.get("alternate")),
        ), data)

    def _load_ThrowStatement(self, data: JsonNode) -> NodeId:
        return self._add(ThrowStatement(argument=self.node(data["argument"])), data)

    def _load_TryStatement(self, data: JsonNode) -> NodeId:
        return self._add(TryStatement(
            block=self.node(data["block"]),
            handler=self.optional(data.get("handler")),
            finalizer=self.optional(data.get("finalizer")),
        ), data)

    def _load_CatchClause(self, data: JsonNode) -> NodeId:
        return self._add(CatchClause(param=self.optional(data.get("param")), body=self.node(data["body"])), data)

    def _load_WhileStatement(self, data: JsonNode) -> NodeId:
        return self._add(WhileStatement(test=self.node(data["test"]), body=self.node(data["body"])), data)

    def _load_ForStatement(self, data: JsonNode) -> NodeId:
        return self._add(ForStatement(
            init=self.optional(data.get("init")),
            test=self.optional(data.get("test")),
            update=self.optional(data.get("update")),
            body=self.node(data["body"]),
        ), data)

    def _load_ForOfStatement(self, data: JsonNode) -> NodeId:
        return self._add(ForOfStatement(
            left=self.node(data["left"]),
            right=self.node(data["right"]),
            body=self.node(data["body"]),
            is_await=bool(data.get("await")),
        ), data)

    def _load_BreakStatement(self, data: JsonNode) -> NodeId:
        return self._add(BreakStatement(), data)

    def _load_ContinueStatement(self, data: JsonNode) -> NodeId:
        return self._add(ContinueStatement(), data)

    def _load_EmptyStatement(self, data: JsonNode) -> NodeId:
        return self._add(EmptyStatement(), data)

    # -------------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------------

    def _load_Identifier(self, data: JsonNode) -> NodeId:
        return self._add(Identifier(
            name=data["name"],
            type_annotation=self.annotation(data),
            optional=bool(data.get("optional")),
        ), data)

    def _load_StringLiteral(self, data: JsonNode) -> NodeId:
        return self._add(StringLiteral(value=data["value"]), data)

    def _load_NumericLiteral(self, data: JsonNode) -> NodeId:
        return self._add(NumericLiteral(value=data["value"]), data)

    def _load_BooleanLiteral(self, data: JsonNode) -> NodeId:
        return self._add(BooleanLiteral(value=bool(data["value"])), data)

    def _load_NullLiteral(self, data: JsonNode) -> NodeId:
        return self._add(NullLiteral(), data)

    def _load_ThisExpression(self, data: JsonNode) -> NodeId:
        return self._add(ThisExpression(), data)

    def _load_Super(self, data: JsonNode) -> NodeId:
        return self._add(Super(), data)

    def _load_CallExpression(self, data: JsonNode) -> NodeId:
        return self._add(CallExpression(callee=self.node(data["callee"]), arguments=self.nodes(data.get("arguments"))), data)

    def _load_NewExpression(self, data: JsonNode) -> NodeId:
        return self._add(NewExpression(callee=self.node(data["callee"]), arguments=self.nodes(data.get("arguments"))), data)

    def _load_MemberExpression(self, data: JsonNode) -> NodeId:
        return self._add(MemberExpression(
            object=self.node(data["object"]),
            property=self.node(data["property"]),
            computed=bool(data.get("computed")),
        ), data)

    def _load_AssignmentExpression(self, data: JsonNode) -> NodeId:
        return self._add(AssignmentExpression(
            operator=data["operator"], left=self.node(data["left"]), right=self.node(data["right"]),
        ), data)

    def _load_BinaryExpression(self, data: JsonNode) -> NodeId:
        return self._add(BinaryExpression(
            operator=data["operator"], left=self.node(data["left"]), right=self.node(data["right"]),
        ), data)

    def _load_LogicalExpression(self, data: JsonNode) -> NodeId:
        return self._add(LogicalExpression(
            operator=data["operator"], left=self.node(data["left"]), right=self.node(data["right"]),
        ), data)

    def _load_UnaryExpression(self, data: JsonNode) -> NodeId:
        return self._add(UnaryExpression(operator=data["operator"], argument=self.node(data["argument"])), data)

    def _load_UpdateExpression(self, data: JsonNode) -> NodeId:
        return self._add(UpdateExpression(
            operator=data["operator"], argument=self.node(data["argument"]), prefix=bool(data.get("prefix")),
        ), data)

    def _load_ConditionalExpression(self, data: JsonNode) -> NodeId:
        return self._add(ConditionalExpression(
            test=self.node(data["test"]),
            consequent=self.node(data["consequent"]),
            alternate=self.node(data["alternate"]),
        ), data)

    def _load_ObjectExpression(self, data: JsonNode) -> NodeId:
        return self._add(ObjectExpression(properties=self.nodes(data.get("properties"))), data)

    def _load_ObjectProperty(self, data: JsonNode) -> NodeId:
        return self._add(ObjectProperty(
            key=self.node(data["key"]),
            value=self.node(data["value"]),
            computed=bool(data.get("computed")),
            shorthand=bool(data.get("shorthand")),
        ), data)

    def _load_ArrayExpression(self, data: JsonNode) -> NodeId:
        # holes are not representable; drop them
        return self._add(ArrayExpression(elements=self.nodes(data.get("elements"))), data)

    def _load_SpreadElement(self, data: JsonNode) -> NodeId:
        return self._add(SpreadElement(argument=self.node(data["argument"])), data)

    def _load_YieldExpression(self, data: JsonNode) -> NodeId:
        return self._add(YieldExpression(
            argument=self.optional(data.get("argument")), delegate=bool(data.get("delegate")),
        ), data)

    def _load_AwaitExpression(self, data: JsonNode) -> NodeId:
        return self._add(AwaitExpression(argument=self.node(data["argument"])), data)

    def _load_TypeCastExpression(self, data: JsonNode) -> NodeId:
        return self._add(TypeCastExpression(
            expression=self.node(data["expression"]),
            type_annotation=self.node(data["typeAnnotation"]),
        ), data)

    # -------------------------------------------------------------------------
    # Patterns
    # -------------------------------------------------------------------------

    def _load_ObjectPattern(self, data: JsonNode) -> NodeId:
        return self._add(ObjectPattern(
            properties=self.nodes(data.get("properties")),
            type_annotation=self.annotation(data),
            optional=bool(data.get("optional")),
        ), data)

    def _load_ArrayPattern(self, data: JsonNode) -> NodeId:
        return self._add(ArrayPattern(
            elements=self.nodes(data.get("elements")),
            type_annotation=self.annotation(data),
            optional=bool(data.get("optional")),
        ), data)

    def _load_AssignmentPattern(self, data: JsonNode) -> NodeId:
        return self._add(AssignmentPattern(left=self.node(data["left"]), right=self.node(data["right"])), data)

    def _load_RestElement(self, data: JsonNode) -> NodeId:
        return self._add(RestElement(argument=self.node(data["argument"]), type_annotation=self.annotation(data)), data)

    # -------------------------------------------------------------------------
    # Type annotations
    # -------------------------------------------------------------------------

    def _load_GenericTypeAnnotation(self, data: JsonNode) -> NodeId:
        return self._add(GenericType(id=self.node(data["id"]), type_arguments=self.type_parameters(data)), data)

    def _load_QualifiedTypeIdentifier(self, data: JsonNode) -> NodeId:
        return self._add(QualifiedTypeIdentifier(
            qualification=self.node(data["qualification"]), id=self.node(data["id"]),
        ), data)

    def _load_NullableTypeAnnotation(self, data: JsonNode) -> NodeId:
        return self._add(NullableType(type_annotation=self.node(data["typeAnnotation"])), data)

    def _load_UnionTypeAnnotation(self, data: JsonNode) -> NodeId:
        return self._add(UnionType(types=self.nodes(data.get("types"))), data)

    def _load_IntersectionTypeAnnotation(self, data: JsonNode) -> NodeId:
        return self._add(IntersectionType(types=self.nodes(data.get("types"))), data)

    def _load_ArrayTypeAnnotation(self, data: JsonNode) -> NodeId:
        return self._add(ArrayType(element_type=self.node(data["elementType"])), data)

    def _load_TupleTypeAnnotation(self, data: JsonNode) -> NodeId:
        return self._add(TupleType(types=self.nodes(data.get("types"))), data)

    def _load_ObjectTypeAnnotation(self, data: JsonNode) -> NodeId:
        return self._add(ObjectType(
            properties=self.nodes(data.get("properties")), exact=bool(data.get("exact")),
        ), data)

    def _load_ObjectTypeProperty(self, data: JsonNode) -> NodeId:
        return self._add(ObjectTypeProperty(
            key=self._name(data["key"]),
            value=self.node(data["value"]),
            optional=bool(data.get("optional")),
        ), data)

    def _load_FunctionTypeAnnotation(self, data: JsonNode) -> NodeId:
        return self._add(FunctionType(
            params=self.nodes(data.get("params")),
            rest=self.optional(data.get("rest")),
            return_type=self.node(data["returnType"]),
            type_parameters=self.type_parameters(data),
        ), data)

    def _load_FunctionTypeParam(self, data: JsonNode) -> NodeId:
        name = data.get("name")
        return self._add(FunctionTypeParam(
            name=name["name"] if name else None,
            type_annotation=self.node(data["typeAnnotation"]),
            optional=bool(data.get("optional")),
        ), data)

    def _load_TypeParameter(self, data: JsonNode) -> NodeId:
        return self._add(TypeParameter(name=data["name"], bound=self.annotation(data, "bound")), data)


def load_babel_ast(document: JsonNode, source_file: str = "<input>") -> Tree:
    """Build a Tree from a Babel `File` or `Program` JSON document."""
    return BabelASTLoader(source_file).load(document)
