"""
JavaScript Code Generator

Prints a Tree as JavaScript source: two-space indentation, one statement per
line, parentheses only where operator precedence requires them. Annotations
still attached to nodes are printed in Flow syntax, so the printer also
shows trees before the rewrite.
"""

import json
import logging
from typing import Dict, List, Optional

from ..shared.errors import RuntyperImplementationError
from ..shared.nodes import NodeId, NodeType, Tree, Node
from ..utils.config import INDENT

logger = logging.getLogger("runtyper.backend.codegen")

# Binary operator precedence (higher binds tighter)
BINARY_PRECEDENCE: Dict[str, int] = {
    "??": 4, "||": 4, "&&": 5, "|": 6, "^": 7, "&": 8,
    "==": 9, "!=": 9, "===": 9, "!==": 9,
    "<": 10, ">": 10, "<=": 10, ">=": 10, "instanceof": 10, "in": 10,
    "<<": 11, ">>": 11, ">>>": 11,
    "+": 12, "-": 12,
    "*": 13, "/": 13, "%": 13,
    "**": 14,
}

PREC_LOWEST = 0
PREC_ASSIGN = 2
PREC_CONDITIONAL = 3
PREC_UNARY = 15
PREC_UPDATE = 16
PREC_CALL = 18
PREC_PRIMARY = 20

_WORD_UNARY = frozenset({"typeof", "void", "delete"})


def _quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _number(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value) if isinstance(value, float) else str(value)


class CodeGenerator:
    """Stateful printer; `level` is the indentation depth of the current line."""

    def __init__(self, tree: Tree):
        self.tree = tree
        self.level = 0

    def pad(self) -> str:
        return INDENT * self.level

    # =========================================================================
    # Program and statements
    # =========================================================================

    def program(self, node_id: NodeId) -> str:
        node = self.tree[node_id]
        lines = [f"{_quote(self.tree[d].value)};" for d in node.directives]
        lines.extend(self.statement(s) for s in node.body)
        return "\n".join(lines) + "\n" if lines else ""

    def statement(self, node_id: NodeId) -> str:
        """Statement text; the first line carries no indentation."""
        node = self.tree[node_id]
        method = getattr(self, f"_stmt_{node.kind.name.lower()}", None)
        if method is None:
            raise RuntyperImplementationError(f"cannot print {node.kind.value} as a statement")
        return method(node)

    def block(self, node_id: NodeId) -> str:
        return self._block_text(self.tree[node_id].body)

    def _block_text(self, body: List[NodeId]) -> str:
        if not body:
            return "{}"
        self.level += 1
        inner = [self.pad() + self.statement(s) for s in body]
        self.level -= 1
        return "{\n" + "\n".join(inner) + "\n" + self.pad() + "}"

    def _clause(self, node_id: NodeId) -> str:
        """Body of if/loop: ` {...}` or an indented statement on its own line."""
        if self.tree.kind(node_id) == NodeType.BLOCK_STATEMENT:
            return " " + self.block(node_id)
        self.level += 1
        text = "\n" + self.pad() + self.statement(node_id)
        self.level -= 1
        return text

    def _stmt_block_statement(self, node: Node) -> str:
        return self._block_text(node.body)

    def _stmt_empty_statement(self, node: Node) -> str:
        return ";"

    def _stmt_expression_statement(self, node: Node) -> str:
        text = self.expression(node.expression)
        if text.startswith(("{", "function", "class", "let [")):
            text = f"({text})"
        return text + ";"

    def _stmt_variable_declaration(self, node: Node) -> str:
        return self.declaration_head(node) + ";"

    def declaration_head(self, node: Node) -> str:
        parts = []
        for declarator_id in node.declarations:
            declarator = self.tree[declarator_id]
            text = self.pattern(declarator.id)
            if declarator.init is not None:
                text += " = " + self.expression(declarator.init, PREC_ASSIGN)
            parts.append(text)
        return f"{node.declaration_kind} " + ", ".join(parts)

    def _stmt_return_statement(self, node: Node) -> str:
        if node.argument is None:
            return "return;"
        return f"return {self.expression(node.argument)};"

    def _stmt_throw_statement(self, node: Node) -> str:
        return f"throw {self.expression(node.argument)};"

    def _stmt_break_statement(self, node: Node) -> str:
        return "break;"

    def _stmt_continue_statement(self, node: Node) -> str:
        return "continue;"

    def _stmt_if_statement(self, node: Node) -> str:
        text = f"if ({self.expression(node.test)})" + self._clause(node.consequent)
        if node.alternate is None:
            return text
        if self.tree.kind(node.consequent) == NodeType.BLOCK_STATEMENT:
            text += " else"
        else:
            text += "\n" + self.pad() + "else"
        if self.tree.kind(node.alternate) == NodeType.IF_STATEMENT:
            return text + " " + self.statement(node.alternate)
        return text + self._clause(node.alternate)

    def _stmt_try_statement(self, node: Node) -> str:
        text = "try " + self.block(node.block)
        if node.handler is not None:
            handler = self.tree[node.handler]
            text += " catch"
            if handler.param is not None:
                text += f" ({self.pattern(handler.param)})"
            text += " " + self.block(handler.body)
        if node.finalizer is not None:
            text += " finally " + self.block(node.finalizer)
        return text

    def _stmt_while_statement(self, node: Node) -> str:
        return f"while ({self.expression(node.test)})" + self._clause(node.body)

    def _stmt_for_statement(self, node: Node) -> str:
        init = ""
        if node.init is not None:
            if self.tree.kind(node.init) == NodeType.VARIABLE_DECLARATION:
                init = self.declaration_head(self.tree[node.init])
            else:
                init = self.expression(node.init)
        test = self.expression(node.test) if node.test is not None else ""
        update = self.expression(node.update) if node.update is not None else ""
        return f"for ({init}; {test}; {update})" + self._clause(node.body)

    def _stmt_for_of_statement(self, node: Node) -> str:
        if self.tree.kind(node.left) == NodeType.VARIABLE_DECLARATION:
            left = self.declaration_head(self.tree[node.left])
        else:
            left = self.pattern(node.left)
        keyword = "for await" if node.is_await else "for"
        return f"{keyword} ({left} of {self.expression(node.right)})" + self._clause(node.body)

    def _stmt_function_declaration(self, node: Node) -> str:
        return self.function(node)

    def _stmt_class_declaration(self, node: Node) -> str:
        return self.class_(node)

    def _stmt_import_declaration(self, node: Node) -> str:
        keyword = "import type" if node.import_kind == "type" else "import"
        if node.import_kind == "typeof":
            keyword = "import typeof"
        defaults, named = [], []
        for spec_id in node.specifiers:
            spec = self.tree[spec_id]
            local = self.tree[spec.local].name
            if spec.kind == NodeType.IMPORT_DEFAULT_SPECIFIER:
                defaults.append(local)
            elif spec.kind == NodeType.IMPORT_NAMESPACE_SPECIFIER:
                defaults.append(f"* as {local}")
            else:
                text = spec.imported if spec.imported == local else f"{spec.imported} as {local}"
                if spec.import_kind in ("type", "typeof"):
                    text = f"{spec.import_kind} {text}"
                named.append(text)
        clauses = list(defaults)
        if named:
            clauses.append("{" + ", ".join(named) + "}")
        if not clauses:
            return f"{keyword} {_quote(node.source)};"
        return f"{keyword} {', '.join(clauses)} from {_quote(node.source)};"

    def _stmt_export_named_declaration(self, node: Node) -> str:
        if node.declaration is not None:
            return "export " + self.statement(node.declaration)
        specifiers = []
        for spec_id in node.specifiers:
            spec = self.tree[spec_id]
            specifiers.append(spec.local if spec.local == spec.exported else f"{spec.local} as {spec.exported}")
        keyword = "export type" if node.export_kind == "type" else "export"
        text = f"{keyword} {{{', '.join(specifiers)}}}"
        if node.source is not None:
            text += f" from {_quote(node.source)}"
        return text + ";"

    def _stmt_export_default_declaration(self, node: Node) -> str:
        declaration = self.tree[node.declaration]
        if declaration.kind in (NodeType.FUNCTION_DECLARATION, NodeType.CLASS_DECLARATION):
            return "export default " + self.statement(node.declaration)
        return f"export default {self.expression(node.declaration, PREC_ASSIGN)};"

    def _stmt_type_alias(self, node: Node) -> str:
        return (
            f"type {self.tree[node.id].name}{self.type_parameters(node.type_parameters)}"
            f" = {self.type_text(node.right)};"
        )

    # =========================================================================
    # Functions and classes
    # =========================================================================

    def params(self, param_ids: List[NodeId]) -> str:
        return "(" + ", ".join(self.pattern(p) for p in param_ids) + ")"

    def return_annotation(self, node: Node) -> str:
        return f": {self.type_text(node.return_type)}" if node.return_type is not None else ""

    def function(self, node: Node) -> str:
        text = "async function" if node.is_async else "function"
        if node.is_generator:
            text += "*"
        if node.id is not None:
            text += f" {self.tree[node.id].name}"
        else:
            text += " "
        text += self.type_parameters(node.type_parameters)
        text += self.params(node.params) + self.return_annotation(node)
        return text + " " + self.block(node.body)

    def arrow(self, node: Node) -> str:
        text = "async " if node.is_async else ""
        text += self.type_parameters(node.type_parameters)
        text += self.params(node.params) + self.return_annotation(node) + " => "
        if self.tree.kind(node.body) == NodeType.BLOCK_STATEMENT:
            return text + self.block(node.body)
        body = self.expression(node.body, PREC_ASSIGN)
        if body.startswith("{"):
            body = f"({body})"
        return text + body

    def class_(self, node: Node) -> str:
        text = "class"
        if node.id is not None:
            text += f" {self.tree[node.id].name}"
        text += self.type_parameters(node.type_parameters)
        if node.super_class is not None:
            text += " extends " + self.expression(node.super_class, PREC_CALL)
            if node.super_type_parameters:
                text += "<" + ", ".join(self.type_text(t) for t in node.super_type_parameters) + ">"
        if not node.body:
            return text + " {}"
        self.level += 1
        members = [self.pad() + self.class_member(m) for m in node.body]
        self.level -= 1
        return text + " {\n" + "\n".join(members) + "\n" + self.pad() + "}"

    def _property_key(self, key_id: NodeId, computed: bool) -> str:
        if computed:
            return f"[{self.expression(key_id, PREC_ASSIGN)}]"
        return self.expression(key_id)

    def class_member(self, member_id: NodeId) -> str:
        member = self.tree[member_id]
        if member.kind == NodeType.CLASS_PROPERTY:
            lines = [f"@{self.expression(d_node.expression, PREC_CALL)}"
                     for d_node in (self.tree[d] for d in member.decorators)]
            text = "static " if member.is_static else ""
            text += self._property_key(member.key, member.computed)
            if member.type_annotation is not None:
                text += f": {self.type_text(member.type_annotation)}"
            if member.value is not None:
                text += " = " + self.expression(member.value, PREC_ASSIGN)
            lines.append(text + ";")
            return ("\n" + self.pad()).join(lines)
        if member.kind != NodeType.CLASS_METHOD:
            raise RuntyperImplementationError(f"cannot print {member.kind.value} as a class member")
        text = "static " if member.is_static else ""
        if member.method_kind in ("get", "set"):
            text += member.method_kind + " "
        if member.is_async:
            text += "async "
        if member.is_generator:
            text += "*"
        text += self._property_key(member.key, member.computed)
        text += self.type_parameters(member.type_parameters)
        text += self.params(member.params) + self.return_annotation(member)
        return text + " " + self.block(member.body)

    # =========================================================================
    # Expressions
    # =========================================================================

    def expression(self, node_id: NodeId, min_precedence: int = PREC_LOWEST) -> str:
        node = self.tree[node_id]
        method = getattr(self, f"_expr_{node.kind.name.lower()}", None)
        if method is None:
            raise RuntyperImplementationError(f"cannot print {node.kind.value} as an expression")
        text, precedence = method(node)
        if precedence < min_precedence:
            return f"({text})"
        return text

    def _expr_identifier(self, node: Node):
        return node.name, PREC_PRIMARY

    def _expr_string_literal(self, node: Node):
        return _quote(node.value), PREC_PRIMARY

    def _expr_numeric_literal(self, node: Node):
        return _number(node.value), PREC_PRIMARY

    def _expr_boolean_literal(self, node: Node):
        return ("true" if node.value else "false"), PREC_PRIMARY

    def _expr_null_literal(self, node: Node):
        return "null", PREC_PRIMARY

    def _expr_this_expression(self, node: Node):
        return "this", PREC_PRIMARY

    def _expr_super(self, node: Node):
        return "super", PREC_PRIMARY

    def _arguments(self, argument_ids: List[NodeId]) -> str:
        return "(" + ", ".join(self.expression(a, PREC_ASSIGN) for a in argument_ids) + ")"

    def _expr_call_expression(self, node: Node):
        return self.expression(node.callee, PREC_CALL) + self._arguments(node.arguments), PREC_CALL

    def _expr_new_expression(self, node: Node):
        return "new " + self.expression(node.callee, PREC_CALL) + self._arguments(node.arguments), PREC_CALL

    def _expr_member_expression(self, node: Node):
        obj = self.expression(node.object, PREC_CALL)
        if self.tree.kind(node.object) == NodeType.NUMERIC_LITERAL:
            obj = f"({obj})"
        if node.computed:
            return f"{obj}[{self.expression(node.property)}]", PREC_CALL
        return f"{obj}.{self.expression(node.property)}", PREC_CALL

    def _expr_assignment_expression(self, node: Node):
        left = self.pattern(node.left)
        return f"{left} {node.operator} {self.expression(node.right, PREC_ASSIGN)}", PREC_ASSIGN

    def _binary(self, node: Node):
        precedence = BINARY_PRECEDENCE[node.operator]
        if node.operator == "**":
            left = self.expression(node.left, precedence + 1)
            right = self.expression(node.right, precedence)
        else:
            left = self.expression(node.left, precedence)
            right = self.expression(node.right, precedence + 1)
        return f"{left} {node.operator} {right}", precedence

    _expr_binary_expression = _binary
    _expr_logical_expression = _binary

    def _expr_unary_expression(self, node: Node):
        argument = self.expression(node.argument, PREC_UNARY)
        separator = " " if node.operator in _WORD_UNARY else ""
        return f"{node.operator}{separator}{argument}", PREC_UNARY

    def _expr_update_expression(self, node: Node):
        argument = self.expression(node.argument, PREC_UPDATE)
        if node.prefix:
            return f"{node.operator}{argument}", PREC_UPDATE
        return f"{argument}{node.operator}", PREC_UPDATE

    def _expr_conditional_expression(self, node: Node):
        test = self.expression(node.test, PREC_CONDITIONAL + 1)
        consequent = self.expression(node.consequent, PREC_ASSIGN)
        alternate = self.expression(node.alternate, PREC_ASSIGN)
        return f"{test} ? {consequent} : {alternate}", PREC_CONDITIONAL

    def _expr_object_expression(self, node: Node):
        return "{" + ", ".join(self._object_member(p) for p in node.properties) + "}", PREC_PRIMARY

    def _object_member(self, prop_id: NodeId) -> str:
        prop = self.tree[prop_id]
        if prop.kind == NodeType.SPREAD_ELEMENT:
            return "..." + self.expression(prop.argument, PREC_ASSIGN)
        if prop.kind == NodeType.REST_ELEMENT:
            return self.pattern(prop_id)
        value_kind = self.tree.kind(prop.value)
        if prop.shorthand and value_kind in (NodeType.IDENTIFIER, NodeType.ASSIGNMENT_PATTERN):
            return self.pattern(prop.value)
        key = self._property_key(prop.key, prop.computed)
        if self.tree.kind(prop.key) == NodeType.STRING_LITERAL and not prop.computed:
            key = _quote(self.tree[prop.key].value)
        return f"{key}: {self.pattern(prop.value)}"

    def _expr_array_expression(self, node: Node):
        elements = ["" if e is None else self.pattern(e) for e in node.elements]
        return "[" + ", ".join(elements) + "]", PREC_PRIMARY

    def _expr_spread_element(self, node: Node):
        return "..." + self.expression(node.argument, PREC_ASSIGN), PREC_PRIMARY

    def _expr_function_expression(self, node: Node):
        return self.function(node), PREC_PRIMARY

    def _expr_arrow_function_expression(self, node: Node):
        return self.arrow(node), PREC_ASSIGN

    def _expr_class_expression(self, node: Node):
        return self.class_(node), PREC_PRIMARY

    def _expr_yield_expression(self, node: Node):
        keyword = "yield*" if node.delegate else "yield"
        if node.argument is None:
            return keyword, PREC_ASSIGN
        return f"{keyword} {self.expression(node.argument, PREC_ASSIGN)}", PREC_ASSIGN

    def _expr_await_expression(self, node: Node):
        return "await " + self.expression(node.argument, PREC_UNARY), PREC_UNARY

    def _expr_type_cast_expression(self, node: Node):
        return f"({self.expression(node.expression)}: {self.type_text(node.type_annotation)})", PREC_PRIMARY

    # -- patterns (binding positions, printed with their annotations) ----------

    def pattern(self, node_id: NodeId) -> str:
        node = self.tree[node_id]
        kind = node.kind
        if kind == NodeType.IDENTIFIER:
            text = node.name
        elif kind == NodeType.OBJECT_PATTERN:
            text = "{" + ", ".join(self._object_member(p) for p in node.properties) + "}"
        elif kind == NodeType.ARRAY_PATTERN:
            text = "[" + ", ".join("" if e is None else self.pattern(e) for e in node.elements) + "]"
        elif kind == NodeType.ASSIGNMENT_PATTERN:
            return f"{self.pattern(node.left)} = {self.expression(node.right, PREC_ASSIGN)}"
        elif kind == NodeType.REST_ELEMENT:
            text = "..." + self.pattern(node.argument)
        else:
            return self.expression(node_id, PREC_ASSIGN)
        if getattr(node, "optional", False):
            text += "?"
        if node.type_annotation is not None:
            text += f": {self.type_text(node.type_annotation)}"
        return text

    # =========================================================================
    # Type annotations
    # =========================================================================

    def type_parameters(self, param_ids: List[NodeId]) -> str:
        if not param_ids:
            return ""
        parts = []
        for param_id in param_ids:
            param = self.tree[param_id]
            text = param.name
            if param.bound is not None:
                text += f": {self.type_text(param.bound)}"
            parts.append(text)
        return "<" + ", ".join(parts) + ">"

    def type_text(self, node_id: NodeId, min_precedence: int = 0) -> str:
        node = self.tree[node_id]
        kind = node.kind
        precedence = 5
        if kind == NodeType.KEYWORD_TYPE:
            text = node.name
        elif kind == NodeType.LITERAL_TYPE:
            value = node.value
            if value is None:
                text = "null"
            elif isinstance(value, bool):
                text = "true" if value else "false"
            elif isinstance(value, (int, float)):
                text = _number(value)
            else:
                text = _quote(value)
        elif kind == NodeType.GENERIC_TYPE:
            text = self.type_text(node.id)
            if node.type_arguments:
                text += "<" + ", ".join(self.type_text(a) for a in node.type_arguments) + ">"
        elif kind == NodeType.IDENTIFIER:
            text = node.name
        elif kind == NodeType.QUALIFIED_TYPE_IDENTIFIER:
            text = f"{self.type_text(node.qualification)}.{self.tree[node.id].name}"
        elif kind == NodeType.NULLABLE_TYPE:
            text, precedence = "?" + self.type_text(node.type_annotation, 3), 3
        elif kind == NodeType.UNION_TYPE:
            text, precedence = " | ".join(self.type_text(t, 2) for t in node.types), 1
        elif kind == NodeType.INTERSECTION_TYPE:
            text, precedence = " & ".join(self.type_text(t, 3) for t in node.types), 2
        elif kind == NodeType.ARRAY_TYPE:
            text, precedence = self.type_text(node.element_type, 4) + "[]", 4
        elif kind == NodeType.TUPLE_TYPE:
            text = "[" + ", ".join(self.type_text(t) for t in node.types) + "]"
        elif kind == NodeType.OBJECT_TYPE:
            members = []
            for prop_id in node.properties:
                prop = self.tree[prop_id]
                marker = "?" if prop.optional else ""
                members.append(f"{prop.key}{marker}: {self.type_text(prop.value)}")
            open_, close = ("{|", "|}") if node.exact else ("{", "}")
            text = open_ + ", ".join(members) + close
        elif kind == NodeType.FUNCTION_TYPE:
            params = [self._function_type_param(p) for p in node.params]
            if node.rest is not None:
                params.append("..." + self._function_type_param(node.rest))
            text = (
                self.type_parameters(node.type_parameters)
                + "(" + ", ".join(params) + ") => " + self.type_text(node.return_type)
            )
            precedence = 0
        elif kind == NodeType.FUNCTION_TYPE_PARAM:
            text = self._function_type_param(node_id)
        else:
            raise RuntyperImplementationError(f"cannot print {kind.value} as a type")
        if precedence < min_precedence:
            return f"({text})"
        return text

    def _function_type_param(self, param_id: NodeId) -> str:
        param = self.tree[param_id]
        type_text = self.type_text(param.type_annotation)
        if param.name is None:
            return type_text
        marker = "?" if param.optional else ""
        return f"{param.name}{marker}: {type_text}"


def generate(tree: Tree, node_id: Optional[NodeId] = None) -> str:
    """
    Print the subtree at `node_id` (default: the root) as JavaScript.

    Programs end with a newline; other statements and expressions do not.
    """
    start = tree.root if node_id is None else node_id
    if start is None:
        return ""
    generator = CodeGenerator(tree)
    node = tree[start]
    logger.debug(f"generating {node.kind.value} at node {start}")
    if node.kind == NodeType.PROGRAM:
        return generator.program(start)
    if node.is_type:
        return generator.type_text(start)
    if hasattr(generator, f"_stmt_{node.kind.name.lower()}"):
        return generator.statement(start)
    return generator.expression(start)
