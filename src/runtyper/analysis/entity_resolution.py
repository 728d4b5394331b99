"""
Entity Resolution Pass

Walks the whole tree once before any rewrite and records, for every node,
the scope it appears in. Each scope maps declared names to Entities that
say whether the name is a value or a type, a (class) type parameter, a
catch parameter, or a program-level global.

Also collects every name used anywhere so synthesized bindings never collide.
"""

import logging
from typing import Iterator, Optional

from ..passes.base import BasePass, RewriteContext
from ..shared.nodes import NodeId, NodeType, Tree, FUNCTION_KINDS, CLASS_KINDS
from ..shared.scope import Entity, Scope, ScopeKind, ScopeManager

logger = logging.getLogger("runtyper.analysis.entity_resolution")


class EntityResolutionPass(BasePass):
    """Fills `context.node_scopes` and reserves used names in `context.uids`."""
    requires = []

    def run(self, tree: Tree, context: RewriteContext) -> Tree:
        if tree.root is None:
            return tree
        resolver = EntityResolver(tree, context)
        program_scope = resolver.resolve()
        context.set_analysis(EntityResolutionPass, program_scope)
        _choose_library_id(context, program_scope)
        return tree


def _choose_library_id(context: RewriteContext, program_scope: Scope) -> None:
    """Reuse an existing default import of the library, else avoid user names."""
    for name in program_scope.names():
        entity = program_scope.lookup(name)
        if entity is not None and entity.is_library_import:
            context.library_id = name
            context.has_library_import = True
            logger.debug(f"reusing existing library import '{name}'")
            return
    if context.uids.is_used(context.library_id):
        renamed = context.uids.generate(context.library_id)
        logger.debug(f"library id '{context.library_id}' is taken, using '{renamed}'")
        context.library_id = renamed
    else:
        context.uids.reserve(context.library_id)


def pattern_names(tree: Tree, pattern_id: Optional[NodeId]) -> Iterator[NodeId]:
    """Identifier nodes bound by a binding pattern."""
    if pattern_id is None:
        return
    node = tree[pattern_id]
    kind = node.kind
    if kind == NodeType.IDENTIFIER:
        yield pattern_id
    elif kind == NodeType.OBJECT_PATTERN:
        for prop in node.properties:
            prop_node = tree[prop]
            if prop_node.kind == NodeType.OBJECT_PROPERTY:
                yield from pattern_names(tree, prop_node.value)
            else:
                yield from pattern_names(tree, prop)
    elif kind == NodeType.ARRAY_PATTERN:
        for element in node.elements:
            yield from pattern_names(tree, element)
    elif kind == NodeType.ASSIGNMENT_PATTERN:
        yield from pattern_names(tree, node.left)
    elif kind == NodeType.REST_ELEMENT:
        yield from pattern_names(tree, node.argument)


class EntityResolver:
    """
    Scope-tracking walk over the original tree.

    Function bodies share the function's scope; catch bodies share the catch
    clause's scope. `var` declarations land in the nearest function (or
    program) scope.
    """

    def __init__(self, tree: Tree, context: RewriteContext):
        self.tree = tree
        self.context = context
        self.scopes = ScopeManager()

    def resolve(self) -> Scope:
        root = self.tree.root
        with self.scopes.scope(ScopeKind.PROGRAM, root) as program_scope:
            self._record(root)
            for child in self.tree[root].child_ids():
                self._visit(child)
        return program_scope

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _record(self, node_id: NodeId) -> None:
        self.context.node_scopes[node_id] = self.scopes.current_scope()
        node = self.tree[node_id]
        name = getattr(node, "name", None)
        if isinstance(name, str):
            self.context.uids.reserve(name)

    def _declare(self, name_id: NodeId, scope: Optional[Scope] = None, **flags) -> None:
        target = scope or self.scopes.current_scope()
        name = self.tree.name_of(name_id)
        if name is None:
            return
        flags.setdefault("is_global", target.kind == ScopeKind.PROGRAM)
        target.define(Entity(name=name, declaration=name_id, **flags))

    def _declare_pattern(self, pattern_id: Optional[NodeId], scope: Optional[Scope] = None, **flags) -> None:
        for name_id in pattern_names(self.tree, pattern_id):
            self._declare(name_id, scope, **flags)

    def _declare_type_parameters(self, params, **flags) -> None:
        for param_id in params:
            param = self.tree[param_id]
            scope = self.scopes.current_scope()
            scope.define(Entity(
                name=param.name, declaration=param_id, is_value=False, is_type=True, **flags,
            ))

    def _var_scope(self) -> Scope:
        scope = self.scopes.current_scope()
        return scope.function_scope() or scope.program_scope()

    def _visit_children(self, node_id: NodeId) -> None:
        for child in self.tree[node_id].child_ids():
            self._visit(child)

    # -------------------------------------------------------------------------
    # Walk
    # -------------------------------------------------------------------------

    def _visit(self, node_id: NodeId) -> None:
        self._record(node_id)
        node = self.tree[node_id]
        kind = node.kind

        if kind in FUNCTION_KINDS:
            self._visit_function(node_id)
        elif kind in CLASS_KINDS:
            self._visit_class(node_id)
        elif kind == NodeType.TYPE_ALIAS:
            self._visit_type_alias(node_id)
        elif kind == NodeType.CATCH_CLAUSE:
            self._visit_catch_clause(node_id)
        elif kind == NodeType.BLOCK_STATEMENT:
            with self.scopes.scope(ScopeKind.BLOCK, node_id):
                self._visit_children(node_id)
        elif kind in (NodeType.FOR_STATEMENT, NodeType.FOR_OF_STATEMENT):
            with self.scopes.scope(ScopeKind.LOOP, node_id):
                self._visit_children(node_id)
        elif kind == NodeType.VARIABLE_DECLARATION:
            scope = self._var_scope() if node.declaration_kind == "var" else None
            for declarator in node.declarations:
                self._declare_pattern(self.tree[declarator].id, scope)
            self._visit_children(node_id)
        elif kind == NodeType.IMPORT_DECLARATION:
            self._visit_import(node_id)
        else:
            self._visit_children(node_id)

    def _visit_function(self, node_id: NodeId) -> None:
        node = self.tree[node_id]
        kind = node.kind

        if kind == NodeType.FUNCTION_DECLARATION and node.id is not None:
            self._declare(node.id)
        if kind == NodeType.CLASS_METHOD:
            self._visit(node.key)

        with self.scopes.scope(ScopeKind.FUNCTION, node_id):
            name_id = getattr(node, "id", None)
            if name_id is not None:
                if kind == NodeType.FUNCTION_EXPRESSION:
                    self._declare(name_id)
                self._record(name_id)

            self._declare_type_parameters(node.type_parameters, is_type_parameter=True)
            for param_id in node.type_parameters:
                self._visit(param_id)
            for param_id in node.params:
                self._declare_pattern(param_id)
            for param_id in node.params:
                self._visit(param_id)
            if node.return_type is not None:
                self._visit(node.return_type)

            body = node.body
            if self.tree.is_kind(body, NodeType.BLOCK_STATEMENT):
                self._record(body)
                self._visit_children(body)
            else:
                self._visit(body)

    def _visit_class(self, node_id: NodeId) -> None:
        node = self.tree[node_id]
        if node.id is not None:
            if node.kind == NodeType.CLASS_DECLARATION:
                self._declare(node.id)
            self._record(node.id)
        if node.super_class is not None:
            self._visit(node.super_class)

        with self.scopes.scope(ScopeKind.CLASS, node_id):
            if node.kind == NodeType.CLASS_EXPRESSION and node.id is not None:
                self._declare(node.id)
            self._declare_type_parameters(node.type_parameters, is_class_type_parameter=True)
            for param_id in node.type_parameters:
                self._visit(param_id)
            for arg_id in node.super_type_parameters:
                self._visit(arg_id)
            for member in node.body:
                self._visit(member)

    def _visit_type_alias(self, node_id: NodeId) -> None:
        node = self.tree[node_id]
        self._declare(node.id, is_value=False, is_type=True)
        self._record(node.id)
        with self.scopes.scope(ScopeKind.TYPE_ALIAS, node_id):
            self._declare_type_parameters(node.type_parameters, is_type_parameter=True)
            for param_id in node.type_parameters:
                self._visit(param_id)
            self._visit(node.right)

    def _visit_catch_clause(self, node_id: NodeId) -> None:
        node = self.tree[node_id]
        with self.scopes.scope(ScopeKind.CATCH, node_id):
            self._declare_pattern(node.param, is_catch_parameter=True)
            if node.param is not None:
                self._visit(node.param)
            self._record(node.body)
            self._visit_children(node.body)

    def _visit_import(self, node_id: NodeId) -> None:
        node = self.tree[node_id]
        for spec_id in node.specifiers:
            spec = self.tree[spec_id]
            type_import = node.import_kind in ("type", "typeof") or getattr(spec, "import_kind", None) in ("type", "typeof")
            library_import = (
                spec.kind == NodeType.IMPORT_DEFAULT_SPECIFIER
                and node.source == self.context.library_name
                and not type_import
            )
            self._declare(
                spec.local,
                is_value=not type_import,
                is_type=type_import,
                is_library_import=library_import,
            )
        self._visit_children(node_id)
