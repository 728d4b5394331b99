"""
Tests for the Tree Arena and S-Expression Dumps
===============================================
"""

import pytest

from runtyper.backend.codegen import generate
from runtyper.shared.errors import RuntyperImplementationError
from runtyper.shared.nodes import NodeType
from runtyper.shared.serialization import serialize_tree


class TestTree:
    """In-place edits keep node ids stable"""

    def test_replace_moves_content(self, tree, b):
        target = b.identifier("a")
        replacement = b.number(1)
        tree.replace(target, replacement)
        assert tree.kind(target) == NodeType.NUMERIC_LITERAL
        with pytest.raises(RuntyperImplementationError):
            tree[replacement]

    def test_wrap_keeps_position(self, tree, b):
        statement = b.expression_statement(b.identifier("x"))
        expression = tree[statement].expression
        moved = tree.wrap(expression, lambda inner: b.method_call("check", "assert", [inner]))
        assert tree[statement].expression == expression
        assert tree.name_of(moved) == "x"
        assert generate(tree, statement) == "check.assert(x);"

    def test_clone_is_deep(self, tree, b):
        original = b.call("f", [b.identifier("a")])
        duplicate = tree.clone(original)
        assert duplicate != original
        assert tree[duplicate].arguments[0] != tree[original].arguments[0]
        assert generate(tree, duplicate) == "f(a)"

    def test_shared_node_detected(self, tree, b):
        shared = b.identifier("x")
        b.program([b.expression_statement(shared), b.expression_statement(shared)])
        with pytest.raises(RuntyperImplementationError, match="two tree positions"):
            tree.check_unique_positions()

    def test_walk_can_skip_types(self, tree, b, ty):
        annotated = b.identifier("x", ty("number"))
        assert len(list(tree.walk(annotated))) == 2
        assert list(tree.walk(annotated, include_types=False)) == [annotated]


class TestSerialization:
    """S-expression output"""

    def test_compact_identifier(self, tree, b):
        assert serialize_tree(tree, b.identifier("x")) == '(Identifier :name "x")'

    def test_declaration_kind_is_symbol(self, tree, b):
        text = serialize_tree(tree, b.declare("let", "x", b.number(1)))
        assert text.startswith("(VariableDeclaration")
        assert "let" in text.split()
        assert "(NumericLiteral :value 1)" in text

    def test_compact_format(self, tree, b):
        text = serialize_tree(tree, b.identifier("x"), pretty=False)
        assert text.startswith("(Identifier")
        assert ":name" in text

    def test_long_forms_break_lines(self, tree, b):
        calls = [b.call(f"function_number_{i}", [b.string("argument")]) for i in range(4)]
        text = serialize_tree(tree, b.array(calls))
        assert text.startswith("(ArrayExpression")
        assert "\n" in text
