"""
Runtime Check Pass

One depth-first traversal that replaces type annotations with runtime
validation: typed bindings get a cached runtime type (`_xType`) and every
write to them is asserted, function headers assert their parameters and
wrap returns/yields, type aliases become runtime type values, class type
parameters are attached to instances, and annotated class fields are
decorated.

Rules are declared per node kind in `enter_rules` / `exit_rules`; every
other statement or expression kind must be listed in `passthrough`.
"""

import logging
from contextlib import nullcontext
from dataclasses import dataclass
from typing import ClassVar, Dict, FrozenSet, List, Optional, Tuple

from .base import BasePass, RewriteContext
from .type_expressions import TypeExpressionBuilder
from ..analysis.entity_resolution import EntityResolutionPass
from ..analysis.type_parameters import get_type_parameters
from ..shared.builders import Name
from ..shared.errors import RuntyperImplementationError, StructuralPreconditionError
from ..shared.nodes import (
    NodeId, NodeType, Tree, TYPE_NODE_KINDS, FUNCTION_KINDS, CLASS_KINDS,
    STATEMENT_LIST_FIELDS, STATEMENT_SLOT_FIELDS, annotation_fields,
)
from ..shared.scope import Scope, ScopeKind, ScopeManager
from ..utils.config import (
    VALUE_UID_PREFIX, VALUE_TYPE_SUFFIX, RETURN_UID_KEY, YIELD_UID_KEY, NEXT_UID_KEY,
    RETURN_TYPE_HINT, YIELD_TYPE_HINT, NEXT_TYPE_HINT, TYPE_PARAMETERS_HINT,
    TYPE_PARAMETERS_SYMBOL, SHADOW_ARGUMENT_HINT,
)

logger = logging.getLogger("runtyper.passes.runtime_checks")

# `x op= y` rewritten as `x = _xType.assert(x op y)`
COMPOUND_ASSIGNMENT_OPERATORS = frozenset({
    "+=", "-=", "*=", "/=", "%=", "**=", "<<=", ">>=", ">>>=", "|=", "^=", "&=",
})

_PATTERN_KINDS = (NodeType.OBJECT_PATTERN, NodeType.ARRAY_PATTERN)


@dataclass
class Frame:
    """Position of a node during traversal: the node, its parent frame and the parent field."""
    node_id: NodeId
    parent: Optional["Frame"] = None
    field: Optional[str] = None


@dataclass
class ValueBinding:
    """Cached runtime type of a declared name and the entity scope that declares it."""
    uid: str
    owner: Optional[Scope]


class RuleVisitor:
    """
    Traversal with per-kind enter/exit rules.

    Subclasses map NodeTypes to method names. A subclass whose tables leave
    any statement or expression kind unaccounted for is rejected at class
    creation time. Type-annotation nodes are never visited.
    """
    enter_rules: ClassVar[Dict[NodeType, str]] = {}
    exit_rules: ClassVar[Dict[NodeType, str]] = {}
    passthrough: ClassVar[FrozenSet[NodeType]] = frozenset()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        covered = set(cls.enter_rules) | set(cls.exit_rules) | set(cls.passthrough)
        missing = set(NodeType) - TYPE_NODE_KINDS - covered
        if missing:
            raise RuntyperImplementationError(
                f"{cls.__name__} has no rule for {sorted(k.value for k in missing)}"
            )
        for method_name in list(cls.enter_rules.values()) + list(cls.exit_rules.values()):
            if not callable(getattr(cls, method_name, None)):
                raise RuntyperImplementationError(f"{cls.__name__} lacks rule method {method_name}")

    def __init__(self, tree: Tree):
        self.tree = tree
        self.scopes = ScopeManager()

    def visit(self, node_id: NodeId, parent: Optional[Frame] = None, field: Optional[str] = None) -> None:
        if self.skip(node_id):
            return
        node = self.tree[node_id]
        if node.is_type:
            return
        frame = Frame(node_id, parent, field)
        kind = node.kind
        scope_kind = self.scope_kind(frame, kind)
        with self.scopes.scope(scope_kind, node_id) if scope_kind is not None else nullcontext():
            enter = self.enter_rules.get(kind)
            if enter is not None:
                getattr(self, enter)(frame)
            self.visit_children(frame)
            # a rule may have replaced the node in place
            if self.tree[node_id].kind is kind:
                exit_rule = self.exit_rules.get(kind)
                if exit_rule is not None:
                    getattr(self, exit_rule)(frame)

    def visit_children(self, frame: Frame) -> None:
        node = self.tree[frame.node_id]
        list_field = STATEMENT_LIST_FIELDS.get(node.kind)
        for name in node.children:
            value = getattr(node, name)
            if value is None:
                continue
            if not isinstance(value, list):
                self.visit(value, frame, name)
            elif name == list_field:
                self._visit_statement_list(frame, name)
            else:
                for item in list(value):
                    self.visit(item, frame, name)

    def _visit_statement_list(self, frame: Frame, name: str) -> None:
        """Visit a statement list that rules may insert into while it is walked."""
        index = 0
        while True:
            items = getattr(self.tree[frame.node_id], name)
            if index >= len(items):
                return
            child = items[index]
            self.visit(child, frame, name)
            items = getattr(self.tree[frame.node_id], name)
            index = items.index(child) + 1 if child in items else index + 1

    def skip(self, node_id: NodeId) -> bool:
        return False

    def scope_kind(self, frame: Frame, kind: NodeType) -> Optional[ScopeKind]:
        """Rewrite scope opened by the node, if any."""
        if kind == NodeType.PROGRAM:
            return ScopeKind.PROGRAM
        if kind in FUNCTION_KINDS:
            return ScopeKind.FUNCTION
        if kind in CLASS_KINDS:
            return ScopeKind.CLASS
        if kind == NodeType.CATCH_CLAUSE:
            return ScopeKind.CATCH
        if kind in (NodeType.FOR_STATEMENT, NodeType.FOR_OF_STATEMENT, NodeType.WHILE_STATEMENT):
            return ScopeKind.LOOP
        parent_kind = self.tree.kind(frame.parent.node_id) if frame.parent else None
        if kind == NodeType.BLOCK_STATEMENT:
            # function and catch bodies share the scope of their owner
            if frame.field == "body" and (parent_kind in FUNCTION_KINDS or parent_kind == NodeType.CATCH_CLAUSE):
                return None
            return ScopeKind.BLOCK
        if parent_kind is not None and frame.field in STATEMENT_SLOT_FIELDS.get(parent_kind, ()):
            # a lone statement in an if/loop slot is scoped like a block
            return ScopeKind.BLOCK
        return None


class RuntimeCheckVisitor(RuleVisitor):
    enter_rules = {
        NodeType.PROGRAM: "enter_program",
        NodeType.FUNCTION_DECLARATION: "enter_function",
        NodeType.FUNCTION_EXPRESSION: "enter_function",
        NodeType.ARROW_FUNCTION_EXPRESSION: "enter_function",
        NodeType.CLASS_METHOD: "enter_function",
    }
    exit_rules = {
        NodeType.PROGRAM: "exit_program",
        NodeType.IMPORT_DECLARATION: "exit_import_declaration",
        NodeType.EXPORT_NAMED_DECLARATION: "exit_export_declaration",
        NodeType.EXPORT_DEFAULT_DECLARATION: "exit_export_declaration",
        NodeType.TYPE_ALIAS: "exit_type_alias",
        NodeType.TYPE_CAST_EXPRESSION: "exit_type_cast",
        NodeType.VARIABLE_DECLARATOR: "exit_variable_declarator",
        NodeType.ASSIGNMENT_EXPRESSION: "exit_assignment",
        NodeType.RETURN_STATEMENT: "exit_return",
        NodeType.YIELD_EXPRESSION: "exit_yield",
        NodeType.CLASS_PROPERTY: "exit_class_property",
        NodeType.CLASS_DECLARATION: "exit_class",
        NodeType.CLASS_EXPRESSION: "exit_class",
    }
    passthrough = frozenset({
        NodeType.DIRECTIVE, NodeType.IMPORT_SPECIFIER, NodeType.IMPORT_DEFAULT_SPECIFIER,
        NodeType.IMPORT_NAMESPACE_SPECIFIER, NodeType.EXPORT_SPECIFIER,
        NodeType.VARIABLE_DECLARATION, NodeType.DECORATOR, NodeType.BLOCK_STATEMENT,
        NodeType.EXPRESSION_STATEMENT, NodeType.IF_STATEMENT, NodeType.THROW_STATEMENT,
        NodeType.TRY_STATEMENT, NodeType.CATCH_CLAUSE, NodeType.WHILE_STATEMENT,
        NodeType.FOR_STATEMENT, NodeType.FOR_OF_STATEMENT, NodeType.BREAK_STATEMENT,
        NodeType.CONTINUE_STATEMENT, NodeType.EMPTY_STATEMENT, NodeType.IDENTIFIER,
        NodeType.STRING_LITERAL, NodeType.NUMERIC_LITERAL, NodeType.BOOLEAN_LITERAL,
        NodeType.NULL_LITERAL, NodeType.THIS_EXPRESSION, NodeType.SUPER,
        NodeType.CALL_EXPRESSION, NodeType.NEW_EXPRESSION, NodeType.MEMBER_EXPRESSION,
        NodeType.BINARY_EXPRESSION, NodeType.LOGICAL_EXPRESSION, NodeType.UNARY_EXPRESSION,
        NodeType.UPDATE_EXPRESSION, NodeType.CONDITIONAL_EXPRESSION,
        NodeType.OBJECT_EXPRESSION, NodeType.OBJECT_PROPERTY, NodeType.ARRAY_EXPRESSION,
        NodeType.SPREAD_ELEMENT, NodeType.AWAIT_EXPRESSION, NodeType.OBJECT_PATTERN,
        NodeType.ARRAY_PATTERN, NodeType.ASSIGNMENT_PATTERN, NodeType.REST_ELEMENT,
    })

    def __init__(self, context: RewriteContext):
        super().__init__(context.tree)
        self.context = context
        self.b = context.builder
        self.types = TypeExpressionBuilder(context)

    def skip(self, node_id: NodeId) -> bool:
        return node_id in self.context.visited

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _synthesized(self, *node_ids: NodeId) -> List[NodeId]:
        self.context.visited.update(node_ids)
        return list(node_ids)

    def _assert_call(self, type_expr: Name, argument: Optional[NodeId]) -> NodeId:
        """`<type_expr>.assert(argument)`; `type_expr` is a binding name or an expression id."""
        return self.b.method_call(type_expr, "assert", [] if argument is None else [argument])

    def _wrap_in_assert(self, node_id: NodeId, type_expr: Name) -> None:
        self.tree.wrap(node_id, lambda moved: self._assert_call(type_expr, moved))

    def _statement_frame(self, frame: Frame) -> Frame:
        current = frame
        while current.parent is not None:
            parent_kind = self.tree[current.parent.node_id].kind
            if STATEMENT_LIST_FIELDS.get(parent_kind) == current.field:
                return current
            if current.field in STATEMENT_SLOT_FIELDS.get(parent_kind, ()):
                return current
            current = current.parent
        raise RuntyperImplementationError(f"node {frame.node_id} is not inside a statement")

    def insert_before_statement(self, frame: Frame, statements: List[NodeId]) -> None:
        """Insert statements before the statement enclosing `frame`."""
        stmt = self._statement_frame(frame)
        parent = self.tree[stmt.parent.node_id]
        list_field = STATEMENT_LIST_FIELDS.get(parent.kind)
        if list_field == stmt.field:
            items = getattr(parent, list_field)
            index = items.index(stmt.node_id)
            items[index:index] = statements
            return
        # lone statement in an if/loop slot: give it a block
        block = self.b.block(statements + [stmt.node_id])
        setattr(parent, stmt.field, block)
        stmt.parent = Frame(block, stmt.parent, stmt.field)
        stmt.field = "body"

    def _function_scope(self) -> Optional[Scope]:
        return self.scopes.current_scope().function_scope()

    def _declared_return_scope(self) -> Optional[Scope]:
        """Scope of the nearest function, when that function declares a return type."""
        scope = self._function_scope()
        if scope is None or self.tree[scope.node].return_type is None:
            return None
        return scope

    def _bind_value(self, scope: Scope, name: str, uid: str, name_id: NodeId) -> None:
        owner = self.context.get_declaring_scope(name, name_id)
        scope.set_data(VALUE_UID_PREFIX + name, ValueBinding(uid, owner))

    def _visible_value_uid(self, name: str, name_id: NodeId) -> Optional[str]:
        """`_xType` of the declaration `name_id` refers to, if that declaration has one."""
        binding = self.scopes.current_scope().get_data(VALUE_UID_PREFIX + name)
        if binding is None:
            return None
        if binding.owner is not self.context.get_declaring_scope(name, name_id):
            logger.debug(f"'{name}' refers to an unannotated declaration, leaving it unchecked")
            return None
        return binding.uid

    # -------------------------------------------------------------------------
    # Program, imports and exports
    # -------------------------------------------------------------------------

    def enter_program(self, frame: Frame) -> None:
        program = self.tree[frame.node_id]
        if not program.body or self.context.has_library_import:
            return
        import_id = self.b.import_default(self.context.library_id, self.context.library_name)
        program.body.insert(0, import_id)
        self.context.visited.add(import_id)
        logger.debug(f"inserted import of '{self.context.library_name}' as '{self.context.library_id}'")

    def exit_program(self, frame: Frame) -> None:
        erase_annotations(self.tree, frame.node_id)

    def exit_import_declaration(self, frame: Frame) -> None:
        node = self.tree[frame.node_id]
        if node.import_kind == "type":
            node.import_kind = "value"
        for spec_id in node.specifiers:
            spec = self.tree[spec_id]
            if getattr(spec, "import_kind", None) == "type":
                spec.import_kind = "value"

    def exit_export_declaration(self, frame: Frame) -> None:
        node = self.tree[frame.node_id]
        if node.export_kind == "type":
            node.export_kind = "value"

    # -------------------------------------------------------------------------
    # Type aliases and casts
    # -------------------------------------------------------------------------

    def exit_type_alias(self, frame: Frame) -> None:
        replacement = self.types.convert(frame.node_id)
        self.tree.replace(frame.node_id, replacement)

    def exit_type_cast(self, frame: Frame) -> None:
        cast_id = frame.node_id
        cast = self.tree[cast_id]
        expression = cast.expression
        expr_node = self.tree[expression]

        if expr_node.kind != NodeType.IDENTIFIER:
            self.tree.replace(cast_id, self._assert_call(self.types.convert(cast.type_annotation), expression))
            return

        name = expr_node.name
        entity = self.context.get_entity(name, expression)
        if entity is not None and entity.is_catch_parameter:
            self._guard_catch_parameter(frame, name, cast.type_annotation)
            return

        compiled = self.types.convert(cast.type_annotation)
        value_uid = self._visible_value_uid(name, expression)
        if value_uid is None:
            value_uid = self.context.uids.generate(name + VALUE_TYPE_SUFFIX)
            self._bind_value(self.scopes.current_scope(), name, value_uid, expression)
            statement = self.b.declare("let", value_uid, compiled)
        else:
            statement = self.b.expression_statement(self.b.assign(value_uid, compiled))
        self.insert_before_statement(frame, self._synthesized(statement))
        self.tree.replace(cast_id, self._assert_call(value_uid, expression))

    def _guard_catch_parameter(self, frame: Frame, name: str, annotation: NodeId) -> None:
        """`(e: T)` on a catch parameter: rethrow unless `e` matches."""
        b = self.b
        guard = b.if_(
            b.unary("!", b.method_call(self.types.convert(annotation), "match", [b.identifier(name)])),
            b.block([b.throw(b.identifier(name))]),
        )
        parent = frame.parent
        if parent is not None and self.tree.kind(parent.node_id) == NodeType.EXPRESSION_STATEMENT:
            self.tree.replace(parent.node_id, guard)
            return
        self.insert_before_statement(frame, self._synthesized(guard))
        self.tree.replace(frame.node_id, self.tree[frame.node_id].expression)

    # -------------------------------------------------------------------------
    # Declarations and assignments
    # -------------------------------------------------------------------------

    def exit_variable_declarator(self, frame: Frame) -> None:
        node = self.tree[frame.node_id]
        target = self.tree[node.id]
        annotation = getattr(target, "type_annotation", None)
        if annotation is None:
            return
        declaration = self.tree[frame.parent.node_id]

        if target.kind != NodeType.IDENTIFIER:
            if node.init is None:
                logger.debug("skipping annotated destructuring declarator without initializer")
                return
            self._wrap_in_assert(node.init, self.types.convert(annotation))
            return

        if node.init is not None and declaration.declaration_kind == "const":
            self._wrap_in_assert(node.init, self.types.convert(annotation))
            return

        name = target.name
        scope = self.scopes.current_scope()
        compiled = self.types.convert(annotation)
        # for-of heads take exactly one declarator and no initializer
        in_loop_head = frame.parent.field == "left" and self.tree.is_kind(
            frame.parent.parent.node_id if frame.parent.parent else None, NodeType.FOR_OF_STATEMENT,
        )
        existing = scope.get_own_data(VALUE_UID_PREFIX + name)
        if existing is not None:
            value_uid = existing.uid
            statement = self.b.expression_statement(self.b.assign(value_uid, compiled))
            self.insert_before_statement(frame, self._synthesized(statement))
        elif in_loop_head:
            value_uid = self.context.uids.generate(name + VALUE_TYPE_SUFFIX)
            self.insert_before_statement(frame, self._synthesized(self.b.declare("let", value_uid, compiled)))
            logger.debug(f"bound {value_uid} for loop variable '{name}'")
        else:
            value_uid = self.context.uids.generate(name + VALUE_TYPE_SUFFIX)
            declarator = self.b.declarator(value_uid, compiled)
            index = declaration.declarations.index(frame.node_id)
            declaration.declarations.insert(index, declarator)
            self.context.visited.add(declarator)
            logger.debug(f"bound {value_uid} for '{name}'")
        self._bind_value(scope, name, value_uid, node.id)
        if in_loop_head:
            self._check_loop_variable(frame.parent.parent.node_id, name, value_uid)
        elif node.init is not None:
            self._wrap_in_assert(node.init, value_uid)

    def _check_loop_variable(self, loop_id: NodeId, name: str, value_uid: str) -> None:
        """`_xType.assert(x);` as the first statement of the loop body."""
        loop = self.tree[loop_id]
        check = self._synthesized(self.b.expression_statement(self._assert_call(value_uid, self.b.identifier(name))))
        if self.tree.is_kind(loop.body, NodeType.BLOCK_STATEMENT):
            self.tree[loop.body].body[0:0] = check
        else:
            loop.body = self.b.block(check + [loop.body])

    def exit_assignment(self, frame: Frame) -> None:
        node = self.tree[frame.node_id]
        left = self.tree[node.left]
        if left.kind != NodeType.IDENTIFIER:
            return
        value_uid = self._visible_value_uid(left.name, node.left)
        if value_uid is None:
            return
        if node.operator == "=":
            self._wrap_in_assert(node.right, value_uid)
        elif node.operator in COMPOUND_ASSIGNMENT_OPERATORS:
            combined = self.b.binary(node.operator[:-1], self.b.identifier(left.name), node.right)
            node.operator = "="
            node.right = self._assert_call(value_uid, combined)
        else:
            logger.debug(f"leaving logical assignment '{node.operator}' to '{left.name}' unchecked")

    # -------------------------------------------------------------------------
    # Functions
    # -------------------------------------------------------------------------

    def enter_function(self, frame: Frame) -> None:
        fn_id = frame.node_id
        fn = self.tree[fn_id]
        is_arrow = fn.kind == NodeType.ARROW_FUNCTION_EXPRESSION
        if is_arrow and not self.tree.is_kind(fn.body, NodeType.BLOCK_STATEMENT):
            if not self._arrow_needs_block(fn_id):
                return
            fn.body = self.b.block([self.b.return_(fn.body)])

        b = self.b
        scope = self.scopes.current_scope()
        definitions: List[NodeId] = []
        invocations: List[NodeId] = []
        unpacking: List[NodeId] = []

        for param_id in fn.type_parameters:
            param = self.tree[param_id]
            args = [b.string(param.name)]
            if param.bound is not None:
                args.append(self.types.convert(param.bound))
            definitions.append(b.declare("const", param.name, self.context.call("typeParameter", *args)))

        for index, param_id in enumerate(list(fn.params)):
            default = None
            target_id = param_id
            if self.tree.kind(param_id) == NodeType.ASSIGNMENT_PATTERN:
                default = self.tree[param_id].right
                target_id = self.tree[param_id].left
            target = self.tree[target_id]
            annotation = getattr(target, "type_annotation", None)
            if annotation is None:
                continue
            optional = bool(getattr(target, "optional", False))

            if target.kind in _PATTERN_KINDS:
                if is_arrow:
                    arg_name, unpack = self._shadow_parameter(fn_id, index, target_id, default)
                    unpacking.append(unpack)
                else:
                    arg_name = None
                args = [b.string(f"arguments[{index}]"), self.types.convert(annotation)]
                if optional:
                    args.append(b.boolean(True))
                statement = b.expression_statement(self._assert_call(
                    self.context.call("param", *args), self._argument_reference(arg_name, index),
                ))
                if default is not None:
                    test = b.binary("!==", self._argument_reference(arg_name, index), b.identifier("undefined"))
                    statement = b.if_(test, b.block([statement]))
                invocations.append(statement)
                continue

            name_id = target_id
            if target.kind == NodeType.REST_ELEMENT:
                method = "rest"
                name_id = target.argument
                name = self.tree.name_of(name_id)
            elif target.kind == NodeType.IDENTIFIER:
                method = "param"
                name = target.name
            else:
                name = None
            if name is None:
                logger.debug(f"skipping annotated parameter of kind {target.kind.value}")
                continue

            value_uid = self.context.uids.generate(name + VALUE_TYPE_SUFFIX)
            self._bind_value(scope, name, value_uid, name_id)
            definitions.append(b.declare("let", value_uid, self.types.convert(annotation)))
            args = [b.string(name), b.identifier(value_uid)]
            if optional:
                args.append(b.boolean(True))
            invocations.append(b.expression_statement(
                self._assert_call(self.context.call(method, *args), b.identifier(name))
            ))

        if fn.return_type is not None:
            definitions.extend(self._return_type_definitions(fn_id, scope))

        body = self.tree[fn.body]
        body.body[0:0] = self._synthesized(*definitions, *invocations) + unpacking

    def _arrow_needs_block(self, fn_id: NodeId) -> bool:
        """An expression-bodied arrow needs a block when anything will be inserted into it."""
        fn = self.tree[fn_id]
        if fn.return_type is not None or fn.type_parameters:
            return True
        for param_id in fn.params:
            target = self.tree[param_id]
            if target.kind == NodeType.ASSIGNMENT_PATTERN:
                target = self.tree[target.left]
            if getattr(target, "type_annotation", None) is not None:
                return True
        stack = [fn.body]
        while stack:
            node = self.tree[stack.pop()]
            if node.kind == NodeType.TYPE_CAST_EXPRESSION:
                return True
            if node.kind in FUNCTION_KINDS or node.is_type:
                continue
            stack.extend(node.child_ids())
        return False

    def _shadow_parameter(
        self, fn_id: NodeId, index: int, pattern_id: NodeId, default: Optional[NodeId]
    ) -> Tuple[str, NodeId]:
        """
        Replace an arrow's destructuring parameter with a synthetic identifier.

        Returns the identifier's name and the `let <pattern> = ...;`
        statement that rebinds the original names in the body.
        """
        b = self.b
        fn = self.tree[fn_id]
        arg_name = self.context.uids.generate(SHADOW_ARGUMENT_HINT)
        fn.params[index] = b.identifier(arg_name)
        # the pattern's own annotation is checked through the synthetic argument
        self.tree[pattern_id].type_annotation = None
        if default is None:
            init = b.identifier(arg_name)
        else:
            init = b.conditional(
                b.binary("===", b.identifier(arg_name), b.identifier("undefined")),
                default,
                b.identifier(arg_name),
            )
        return arg_name, b.declare("let", pattern_id, init)

    def _argument_reference(self, arg_name: Optional[str], index: int) -> NodeId:
        """The synthetic argument of a shadowed arrow, else `arguments[index]`."""
        if arg_name is not None:
            return self.b.identifier(arg_name)
        return self.b.member("arguments", self.b.number(index), computed=True)

    def _return_type_definitions(self, fn_id: NodeId, scope: Scope) -> List[NodeId]:
        """Bindings for the declared return type (and yield/next types of generators)."""
        b = self.b
        fn = self.tree[fn_id]
        definitions: List[NodeId] = []
        effective: Optional[NodeId] = fn.return_type
        type_args = []
        if self.tree.kind(fn.return_type) == NodeType.GENERIC_TYPE:
            type_args = get_type_parameters(self.tree, fn.return_type)

        if type_args and fn.is_generator:
            yield_uid = self.context.uids.generate(YIELD_TYPE_HINT)
            scope.set_data(YIELD_UID_KEY, yield_uid)
            definitions.append(b.declare("const", yield_uid, self.types.convert(type_args[0])))
            effective = type_args[1] if len(type_args) > 1 else None
            if len(type_args) > 2:
                next_uid = self.context.uids.generate(NEXT_TYPE_HINT)
                scope.set_data(NEXT_UID_KEY, next_uid)
                definitions.append(b.declare("const", next_uid, self.types.convert(type_args[2])))
        elif type_args and fn.is_async:
            effective = type_args[0]

        compiled = self.types.convert(effective) if effective is not None else self.context.call("any")
        return_uid = self.context.uids.generate(RETURN_TYPE_HINT)
        scope.set_data(RETURN_UID_KEY, return_uid)
        definitions.append(b.declare("const", return_uid, self.context.call("return", compiled)))
        return definitions

    # -------------------------------------------------------------------------
    # Returns and yields
    # -------------------------------------------------------------------------

    def exit_return(self, frame: Frame) -> None:
        scope = self._declared_return_scope()
        if scope is None:
            return
        return_uid = scope.get_own_data(RETURN_UID_KEY)
        if return_uid is None:
            return
        node = self.tree[frame.node_id]
        if node.argument is None:
            node.argument = self._assert_call(return_uid, None)
        else:
            self._wrap_in_assert(node.argument, return_uid)

    def exit_yield(self, frame: Frame) -> None:
        scope = self._declared_return_scope()
        if scope is None:
            return
        yield_uid = scope.get_own_data(YIELD_UID_KEY)
        if yield_uid is None:
            logger.debug("yield in a function whose return type has no yield type")
            return
        next_uid = scope.get_own_data(NEXT_UID_KEY)
        yield_id = frame.node_id
        node = self.tree[yield_id]
        args = [] if node.argument is None else [node.argument]
        if node.delegate:
            node.argument = self.b.call(self.context.call("wrapIterator", self.b.identifier(yield_uid)), args)
        else:
            node.argument = self.b.method_call(yield_uid, "assert", args)

        consumed = frame.parent is None or self.tree.kind(frame.parent.node_id) != NodeType.EXPRESSION_STATEMENT
        if consumed and next_uid is not None:
            moved = self.tree.wrap(yield_id, lambda inner: self._assert_call(next_uid, inner))
            self.context.visited.add(moved)
        else:
            self.context.visited.add(yield_id)

    # -------------------------------------------------------------------------
    # Classes
    # -------------------------------------------------------------------------

    def exit_class_property(self, frame: Frame) -> None:
        node = self.tree[frame.node_id]
        if node.type_annotation is None:
            return
        compiled = self.types.compile_deferrable(node.type_annotation)
        decorator = self.b.decorator(self.context.call("decorate", compiled.as_argument(self.context)))
        node.decorators.append(decorator)

    def exit_class(self, frame: Frame) -> None:
        b = self.b
        class_id = frame.node_id
        node = self.tree[class_id]
        type_parameters = get_type_parameters(self.tree, class_id)
        super_arguments = list(node.super_type_parameters)
        if not type_parameters and not super_arguments:
            return

        constructor = None
        for member_id in node.body:
            member = self.tree[member_id]
            if member.kind == NodeType.CLASS_METHOD and member.method_kind == "constructor":
                constructor = member
                break
        if constructor is None:
            raise StructuralPreconditionError(
                "class with type parameters must declare a constructor",
                location=node.location,
                help="add an explicit constructor so type parameters can be attached to instances",
            )
        body = self.tree[constructor.body]

        if node.super_class is None:
            body.body.insert(0, b.expression_statement(
                b.assign(self._instance_type_parameters(), self._type_parameter_object(type_parameters))
            ))
            return

        trailer: List[NodeId] = []
        if type_parameters:
            uid = self.context.uids.generate(TYPE_PARAMETERS_HINT)
            body.body.insert(0, b.declare("const", uid, self._type_parameter_object(type_parameters)))
            trailer.append(b.if_(
                self._instance_type_parameters(),
                b.block([b.expression_statement(
                    b.method_call("Object", "assign", [self._instance_type_parameters(), b.identifier(uid)])
                )]),
                b.block([b.expression_statement(b.assign(self._instance_type_parameters(), b.identifier(uid)))]),
            ))
        if super_arguments:
            trailer.append(b.expression_statement(
                self.context.call("bindTypeParameters", b.this(), *self.types.convert_all(super_arguments))
            ))

        container_id, statement_id = self._find_super_statement(constructor.body, node)
        items = self.tree[container_id].body
        index = items.index(statement_id) + 1
        items[index:index] = trailer

    def _instance_type_parameters(self) -> NodeId:
        """`this[t.TypeParametersSymbol]`"""
        return self.b.member(self.b.this(), self.context.symbol(TYPE_PARAMETERS_SYMBOL), computed=True)

    def _type_parameter_object(self, type_parameters: List[NodeId]) -> NodeId:
        """`{T: t.typeParameter("T"), ...}`"""
        return self.b.object([
            self.b.object_property(self.tree[p].name, self.types.convert(p)) for p in type_parameters
        ])

    def _find_super_statement(self, block_id: NodeId, class_node) -> Tuple[NodeId, NodeId]:
        """Block and statement containing the last `super(...)` call of a constructor body."""
        parents: Dict[NodeId, NodeId] = {}
        found: Optional[NodeId] = None
        stack = [block_id]
        while stack:
            current = stack.pop()
            node = self.tree[current]
            if node.kind == NodeType.CALL_EXPRESSION and self.tree.kind(node.callee) == NodeType.SUPER:
                found = current
            if node.kind in FUNCTION_KINDS and node.kind != NodeType.ARROW_FUNCTION_EXPRESSION:
                continue
            if node.kind in CLASS_KINDS or node.is_type:
                continue
            for child in reversed(list(node.child_ids())):
                parents[child] = current
                stack.append(child)
        if found is None:
            raise StructuralPreconditionError(
                "constructor of sub class must contain super()",
                location=class_node.location,
            )
        current = found
        while current in parents:
            parent = parents[current]
            if self.tree.kind(parent) == NodeType.BLOCK_STATEMENT:
                return parent, current
            current = parent
        raise RuntyperImplementationError("super() call outside any block")


def erase_annotations(tree: Tree, root: NodeId) -> None:
    """Detach every remaining annotation from statements and expressions."""
    for node_id in tree.walk(root, include_types=False):
        node = tree[node_id]
        for name in annotation_fields(node):
            setattr(node, name, [] if isinstance(getattr(node, name), list) else None)
        if node.kind in (NodeType.IDENTIFIER,) + _PATTERN_KINDS:
            node.optional = False


class RuntimeCheckPass(BasePass):
    """Rewrites annotations into runtime checks."""
    requires = [EntityResolutionPass]

    def run(self, tree: Tree, context: RewriteContext) -> Tree:
        if tree.root is None:
            return tree
        program_scope = context.get_analysis(EntityResolutionPass)
        logger.debug(f"rewriting with {len(list(program_scope.names()))} top-level names, library id '{context.library_id}'")
        RuntimeCheckVisitor(context).visit(tree.root)
        return tree
