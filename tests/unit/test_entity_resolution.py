"""
Tests for Entity Resolution
===========================

The pre-pass records which scope every node sits in and what each declared
name is.
"""

from runtyper.analysis.entity_resolution import EntityResolutionPass
from runtyper.passes.base import RewriteContext
from runtyper.shared.nodes import ImportDeclaration, ImportSpecifier, TypeParameter

from tests.test_utils import (
    function_declaration, class_declaration, constructor, type_alias, type_parameter, try_catch,
)


def resolve(tree):
    context = RewriteContext(tree)
    EntityResolutionPass().run(tree, context)
    return context


class TestDeclarations:
    """Flags on declared entities"""

    def test_program_binding_is_global_value(self, tree, b):
        ref = b.identifier("x")
        b.program([b.declare("let", "x", b.number(1)), b.expression_statement(ref)])
        entity = resolve(tree).get_entity("x", ref)
        assert entity.is_value and entity.is_global
        assert not entity.is_type

    def test_parameter_is_local(self, tree, b):
        ref = b.identifier("p")
        b.program([function_declaration(tree, "f", params=[b.identifier("p")], body=[b.return_(ref)])])
        entity = resolve(tree).get_entity("p", ref)
        assert entity.is_value and not entity.is_global

    def test_type_alias_is_type_only(self, tree, b, ty):
        ref = b.identifier("ID")
        b.program([type_alias(tree, "ID", ty("string")), b.expression_statement(ref)])
        entity = resolve(tree).get_entity("ID", ref)
        assert entity.is_type and not entity.is_value

    def test_function_type_parameter(self, tree, b):
        ref = b.identifier("T")
        fn = function_declaration(tree, "f", body=[b.expression_statement(ref)], type_parameters=[type_parameter(tree, "T")])
        b.program([fn])
        entity = resolve(tree).get_entity("T", ref)
        assert entity.is_type_parameter and not entity.is_class_type_parameter

    def test_class_type_parameter_seen_from_constructor(self, tree, b):
        ref = b.identifier("T")
        cls = class_declaration(
            tree, "Box", [constructor(tree, body=[b.expression_statement(ref)])],
            type_parameters=[tree.add(TypeParameter(name="T"))],
        )
        b.program([cls])
        entity = resolve(tree).get_entity("T", ref)
        assert entity.is_class_type_parameter

    def test_catch_parameter(self, tree, b):
        ref = b.identifier("e")
        b.program([try_catch(tree, [], "e", [b.expression_statement(ref)])])
        assert resolve(tree).get_entity("e", ref).is_catch_parameter

    def test_type_import(self, tree, b):
        spec = tree.add(ImportSpecifier(imported="User", local=b.identifier("User")))
        ref = b.identifier("User")
        b.program([
            tree.add(ImportDeclaration(specifiers=[spec], source="./user", import_kind="type")),
            b.expression_statement(ref),
        ])
        entity = resolve(tree).get_entity("User", ref)
        assert entity.is_type and not entity.is_value


class TestScopes:
    """Visibility between scopes"""

    def test_var_hoisted_to_function(self, tree, b):
        ref = b.identifier("v")
        body = [b.block([b.declare("var", "v", b.number(1))]), b.expression_statement(ref)]
        b.program([function_declaration(tree, "f", body=body)])
        assert resolve(tree).get_entity("v", ref) is not None

    def test_let_confined_to_block(self, tree, b):
        ref = b.identifier("inner")
        b.program([b.block([b.declare("let", "inner", b.number(1))]), b.expression_statement(ref)])
        assert resolve(tree).get_entity("inner", ref) is None

    def test_inner_declaration_shadows(self, tree, b):
        ref = b.identifier("x")
        fn = function_declaration(tree, "f", params=[b.identifier("x")], body=[b.expression_statement(ref)])
        b.program([b.declare("let", "x", b.number(1)), fn])
        assert not resolve(tree).get_entity("x", ref).is_global


class TestLibraryId:
    """Choice of the runtime library's local name"""

    def test_default_id_reserved(self, tree, b):
        b.program([b.declare("let", "x", b.number(1))])
        context = resolve(tree)
        assert context.library_id == "t"
        assert context.uids.is_used("t")
        assert context.uids.is_used("x")

    def test_taken_id_renamed(self, tree, b):
        b.program([b.declare("let", "t", b.number(1))])
        context = resolve(tree)
        assert context.library_id == "_t"
        assert not context.has_library_import

    def test_existing_default_import(self, tree, b):
        b.program([b.import_default("types", "flow-runtime")])
        context = resolve(tree)
        assert context.library_id == "types"
        assert context.has_library_import
