"""
Tests for the Type Annotation Parser
====================================

Flow annotation text parsed with the lark grammar into type nodes.
"""

import pytest

from runtyper.backend.codegen import generate
from runtyper.shared.errors import TypeSyntaxError
from runtyper.shared.nodes import NodeType


class TestNodeShapes:
    """Node kinds produced for each construct"""

    def test_keyword(self, tree, ty):
        node = tree[ty("number")]
        assert node.kind == NodeType.KEYWORD_TYPE
        assert node.name == "number"

    def test_generic_with_arguments(self, tree, ty):
        node = tree[ty("Map<string, number>")]
        assert node.kind == NodeType.GENERIC_TYPE
        assert tree[node.id].name == "Map"
        assert [tree[a].kind for a in node.type_arguments] == [NodeType.KEYWORD_TYPE, NodeType.KEYWORD_TYPE]

    def test_qualified_name(self, tree, ty):
        node = tree[ty("a.b.C")]
        qualified = tree[node.id]
        assert qualified.kind == NodeType.QUALIFIED_TYPE_IDENTIFIER
        assert tree[qualified.id].name == "C"
        assert tree[qualified.qualification].kind == NodeType.QUALIFIED_TYPE_IDENTIFIER

    def test_nullable_binds_tighter_than_union(self, tree, ty):
        node = tree[ty("?number | string")]
        assert node.kind == NodeType.UNION_TYPE
        assert tree[node.types[0]].kind == NodeType.NULLABLE_TYPE

    def test_object_properties(self, tree, ty):
        node = tree[ty("{name: string, age?: number,}")]
        properties = [tree[p] for p in node.properties]
        assert [(p.key, p.optional) for p in properties] == [("name", False), ("age", True)]

    def test_literals(self, tree, ty):
        assert tree[ty("'single'")].value == "single"
        assert tree[ty("1.5")].value == 1.5
        assert tree[ty("false")].value is False

    def test_function_rest_parameter(self, tree, ty):
        node = tree[ty("(a: number, ...more: Array<number>) => void")]
        assert node.kind == NodeType.FUNCTION_TYPE
        assert len(node.params) == 1
        assert tree[node.rest].name == "more"


class TestPrinting:
    """Parsed annotations print back in Flow syntax"""

    @pytest.mark.parametrize("text", [
        "?Array<T>",
        "(number | string)[]",
        "{x: number, y?: string}",
        "(x: number) => void",
        "A & B",
        "[number, string]",
    ])
    def test_round_trip_text(self, tree, ty, text):
        assert generate(tree, ty(text)) == text


class TestErrors:
    """Malformed annotation text"""

    @pytest.mark.parametrize("text", ["Array<", "{x number}", "| number", ""])
    def test_malformed_text_raises(self, ty, text):
        with pytest.raises(TypeSyntaxError):
            ty(text)
