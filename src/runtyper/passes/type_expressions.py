"""
Type Expression Builder

Compiles type-annotation subtrees into expressions that build the equivalent
runtime type value (`t.number()`, `t.array(t.string())`, `t.ref(Foo)`, ...).
Annotation nodes are only read; every call returns freshly allocated nodes.
"""

import logging
from dataclasses import dataclass
from typing import List, Set

from .base import RewriteContext
from ..analysis.type_parameters import iter_annotation_identifiers
from ..shared.errors import RuntyperImplementationError
from ..shared.nodes import NodeId, NodeType, Node

logger = logging.getLogger("runtyper.passes.type_expressions")

# Generic names with a dedicated runtime constructor when not shadowed
_BUILTIN_GENERICS = {
    "Array": "array",
    "$ReadOnlyArray": "array",
    "Class": "Class",
    "Function": "function",
    "Object": "object",
}


@dataclass
class CompiledType:
    """
    A compiled runtime type that is either usable right away or must be
    computed lazily (it reads `this` or a binding not yet initialized when
    the class body is evaluated).
    """
    expression: NodeId
    deferred: bool = False

    def as_argument(self, context: RewriteContext) -> NodeId:
        """`expr`, or `function () { return expr; }` when deferred."""
        if not self.deferred:
            return self.expression
        b = context.builder
        return b.function_expression([], [b.return_(self.expression)])


class TypeExpressionBuilder:
    """Compiles annotation nodes of `context.tree`."""

    def __init__(self, context: RewriteContext):
        self.context = context
        self.tree = context.tree
        self.b = context.builder
        # Type parameters introduced by function types being compiled
        self._local_type_parameters: List[Set[str]] = []

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def convert(self, node_id: NodeId) -> NodeId:
        node = self.tree[node_id]
        method = getattr(self, f"_convert_{node.kind.name.lower()}", None)
        if method is None:
            raise RuntyperImplementationError(f"cannot compile {node.kind.value} as a runtime type")
        return method(node_id, node)

    def convert_all(self, node_ids) -> List[NodeId]:
        return [self.convert(n) for n in node_ids]

    def compile_deferrable(self, annotation_id: NodeId) -> CompiledType:
        """Compile an annotation evaluated at class definition time."""
        return CompiledType(self.convert(annotation_id), self.references_late_binding(annotation_id))

    def references_late_binding(self, annotation_id: NodeId) -> bool:
        """True when the annotation names a class type parameter or a local value."""
        for ident in iter_annotation_identifiers(self.tree, annotation_id):
            entity = self.context.get_entity(self.tree[ident].name, ident)
            if entity is None:
                continue
            if entity.is_class_type_parameter:
                return True
            if entity.is_value and not entity.is_global:
                return True
        return False

    # -------------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------------

    def _convert_type_alias(self, node_id: NodeId, node: Node) -> NodeId:
        """`type A<T> = R` -> `const A = t.type("A", A => { const T = A.typeParameter("T"); return R; })`"""
        b = self.b
        name = self.tree[node.id].name
        if not node.type_parameters:
            body = self.convert(node.right)
        else:
            definitions = []
            for param_id in node.type_parameters:
                param = self.tree[param_id]
                args = [b.string(param.name)]
                if param.bound is not None:
                    args.append(self.convert(param.bound))
                definitions.append(b.declare("const", param.name, b.method_call(name, "typeParameter", args)))
            definitions.append(b.return_(self.convert(node.right)))
            body = b.arrow([b.identifier(name)], b.block(definitions))
        return b.declare("const", name, self.context.call("type", b.string(name), body))

    def _convert_type_parameter(self, node_id: NodeId, node: Node) -> NodeId:
        args = [self.b.string(node.name)]
        if node.bound is not None:
            args.append(self.convert(node.bound))
        return self.context.call("typeParameter", *args)

    # -------------------------------------------------------------------------
    # Types
    # -------------------------------------------------------------------------

    def _convert_keyword_type(self, node_id: NodeId, node: Node) -> NodeId:
        return self.context.call(node.name)

    def _convert_literal_type(self, node_id: NodeId, node: Node) -> NodeId:
        value = node.value
        if value is None:
            return self.context.call("null")
        if isinstance(value, bool):
            return self.context.call("boolean", self.b.boolean(value))
        if isinstance(value, (int, float)):
            return self.context.call("number", self.b.number(value))
        return self.context.call("string", self.b.string(value))

    def _convert_nullable_type(self, node_id: NodeId, node: Node) -> NodeId:
        return self.context.call("nullable", self.convert(node.type_annotation))

    def _convert_union_type(self, node_id: NodeId, node: Node) -> NodeId:
        return self.context.call("union", *self.convert_all(node.types))

    def _convert_intersection_type(self, node_id: NodeId, node: Node) -> NodeId:
        return self.context.call("intersection", *self.convert_all(node.types))

    def _convert_array_type(self, node_id: NodeId, node: Node) -> NodeId:
        return self.context.call("array", self.convert(node.element_type))

    def _convert_tuple_type(self, node_id: NodeId, node: Node) -> NodeId:
        return self.context.call("tuple", *self.convert_all(node.types))

    def _convert_object_type(self, node_id: NodeId, node: Node) -> NodeId:
        method = "exactObject" if node.exact else "object"
        return self.context.call(method, *self.convert_all(node.properties))

    def _convert_object_type_property(self, node_id: NodeId, node: Node) -> NodeId:
        args = [self.b.string(node.key), self.convert(node.value)]
        if node.optional:
            args.append(self.b.boolean(True))
        return self.context.call("property", *args)

    def _convert_function_type(self, node_id: NodeId, node: Node) -> NodeId:
        b = self.b
        names = {self.tree[p].name for p in node.type_parameters}
        self._local_type_parameters.append(names)
        try:
            members = [self._function_type_param(p, i) for i, p in enumerate(node.params)]
            if node.rest is not None:
                rest = self.tree[node.rest]
                members.append(self.context.call(
                    "rest", b.string(rest.name or "rest"), self.convert(rest.type_annotation),
                ))
            members.append(self.context.call("return", self.convert(node.return_type)))
            if not node.type_parameters:
                return self.context.call("function", *members)

            # t.function(_fn => { const T = _fn.typeParameter("T"); return [...]; })
            fn_name = self.context.uids.generate("fn")
            definitions = []
            for param_id in node.type_parameters:
                param = self.tree[param_id]
                args = [b.string(param.name)]
                if param.bound is not None:
                    args.append(self.convert(param.bound))
                definitions.append(b.declare("const", param.name, b.method_call(fn_name, "typeParameter", args)))
            definitions.append(b.return_(b.array(members)))
            return self.context.call("function", b.arrow([b.identifier(fn_name)], b.block(definitions)))
        finally:
            self._local_type_parameters.pop()

    def _function_type_param(self, param_id: NodeId, index: int) -> NodeId:
        param = self.tree[param_id]
        args = [self.b.string(param.name or f"_arg{index}"), self.convert(param.type_annotation)]
        if param.optional:
            args.append(self.b.boolean(True))
        return self.context.call("param", *args)

    def _convert_function_type_param(self, node_id: NodeId, node: Node) -> NodeId:
        return self._function_type_param(node_id, 0)

    def _convert_generic_type(self, node_id: NodeId, node: Node) -> NodeId:
        b = self.b
        args = self.convert_all(node.type_arguments)

        if self.tree.kind(node.id) == NodeType.QUALIFIED_TYPE_IDENTIFIER:
            return self.context.call("ref", self._qualified_reference(node.id), *args)

        name = self.tree[node.id].name
        if any(name in names for names in self._local_type_parameters):
            return b.identifier(name)

        entity = self.context.get_entity(name, node.id)
        if entity is None:
            builtin = _BUILTIN_GENERICS.get(name)
            if builtin is not None:
                return self.context.call(builtin, *args)
            logger.debug(f"unresolved type name '{name}', emitting a named reference")
            return self.context.call("ref", b.string(name), *args)

        if entity.is_class_type_parameter:
            # this[t.TypeParametersSymbol].T
            holder = b.member(b.this(), self.context.symbol("TypeParameters"), computed=True)
            return b.member(holder, name)
        if entity.is_type_parameter:
            return b.identifier(name)
        if entity.is_type and not args:
            return b.identifier(name)
        return self.context.call("ref", b.identifier(name), *args)

    def _qualified_reference(self, node_id: NodeId) -> NodeId:
        """`A.B.C` as a member expression."""
        node = self.tree[node_id]
        if node.kind == NodeType.IDENTIFIER:
            return self.b.identifier(node.name)
        return self.b.member(self._qualified_reference(node.qualification), self.tree[node.id].name)

    def _convert_qualified_type_identifier(self, node_id: NodeId, node: Node) -> NodeId:
        return self.context.call("ref", self._qualified_reference(node_id))
