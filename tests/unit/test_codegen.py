"""
Tests for the JavaScript Code Generator
=======================================
"""

from runtyper.backend.codegen import generate
from runtyper.shared.nodes import (
    ImportDeclaration, ImportDefaultSpecifier, ImportSpecifier, ImportNamespaceSpecifier,
    ExportNamedDeclaration, ExportSpecifier,
)

from tests.test_utils import js, function_declaration, class_declaration, class_property, method


class TestExpressions:
    """Precedence-aware parenthesization"""

    def test_lower_precedence_operand_parenthesized(self, tree, b):
        expr = b.binary("*", b.binary("+", b.identifier("a"), b.identifier("b")), b.identifier("c"))
        assert generate(tree, expr) == "(a + b) * c"

    def test_left_associativity(self, tree, b):
        expr = b.binary("-", b.identifier("a"), b.binary("-", b.identifier("b"), b.identifier("c")))
        assert generate(tree, expr) == "a - (b - c)"

    def test_exponent_right_associative(self, tree, b):
        expr = b.binary("**", b.identifier("a"), b.binary("**", b.identifier("b"), b.identifier("c")))
        assert generate(tree, expr) == "a ** b ** c"

    def test_unary_operators(self, tree, b):
        assert generate(tree, b.unary("typeof", b.identifier("x"))) == "typeof x"
        negated = b.unary("!", b.binary("===", b.identifier("a"), b.identifier("b")))
        assert generate(tree, negated) == "!(a === b)"

    def test_member_on_number_literal(self, tree, b):
        assert generate(tree, b.member(b.number(1), "toString")) == "(1).toString"

    def test_computed_member(self, tree, b):
        assert generate(tree, b.member("arguments", b.number(0), computed=True)) == "arguments[0]"

    def test_conditional(self, tree, b):
        expr = b.conditional(b.identifier("ok"), b.string("yes"), b.null())
        assert generate(tree, expr) == 'ok ? "yes" : null'

    def test_arrow_with_object_body(self, tree, b):
        assert generate(tree, b.arrow([], b.object())) == "() => ({})"

    def test_float_and_integer_numbers(self, tree, b):
        assert generate(tree, b.number(2.0)) == "2"
        assert generate(tree, b.number(0.5)) == "0.5"


class TestStatements:
    """Statement layout"""

    def test_function_expression_statement_parenthesized(self, tree, b):
        statement = b.expression_statement(b.function_expression([], []))
        assert generate(tree, statement) == "(function () {});"

    def test_annotations_printed(self, tree, b, ty):
        statement = b.declare("let", b.identifier("x", ty("?number")), b.number(1))
        assert generate(tree, statement) == "let x: ?number = 1;"

    def test_if_else_chain(self, tree, b):
        statement = b.if_(
            b.identifier("a"),
            b.block([b.expression_statement(b.call("f"))]),
            b.if_(b.identifier("c"), b.block(), b.block()),
        )
        assert generate(tree, statement) == "if (a) {\n  f();\n} else if (c) {} else {}"

    def test_lone_statement_indented(self, tree, b):
        assert generate(tree, b.if_(b.identifier("a"), b.return_())) == "if (a)\n  return;"

    def test_function_with_annotations(self, tree, b, ty):
        fn = function_declaration(
            tree, "f", params=[b.identifier("x", ty("number"), optional=True)],
            body=[b.return_(b.identifier("x"))], return_type=ty("?number"),
        )
        assert generate(tree, fn) == "function f(x?: number): ?number {\n  return x;\n}"

    def test_class_members(self, tree, b, ty):
        cls = class_declaration(tree, "A", [
            class_property(tree, "n", ty("number"), b.number(1)),
            method(tree, "get", body=[b.return_(b.this())]),
        ])
        assert generate(tree, cls) == js("""
            class A {
              n: number = 1;
              get() {
                return this;
              }
            }
        """).rstrip("\n")


class TestModules:
    """Imports, exports and whole programs"""

    def test_import_clauses(self, tree, b):
        specifiers = [
            tree.add(ImportDefaultSpecifier(local=b.identifier("React"))),
            tree.add(ImportSpecifier(imported="Component", local=b.identifier("C"))),
        ]
        statement = tree.add(ImportDeclaration(specifiers=specifiers, source="react"))
        assert generate(tree, statement) == 'import React, {Component as C} from "react";'

    def test_namespace_import(self, tree, b):
        spec = tree.add(ImportNamespaceSpecifier(local=b.identifier("path")))
        statement = tree.add(ImportDeclaration(specifiers=[spec], source="path"))
        assert generate(tree, statement) == 'import * as path from "path";'

    def test_side_effect_import(self, tree):
        assert generate(tree, tree.add(ImportDeclaration(source="./setup"))) == 'import "./setup";'

    def test_export_with_source(self, tree):
        spec = tree.add(ExportSpecifier(local="a", exported="b"))
        statement = tree.add(ExportNamedDeclaration(specifiers=[spec], source="./mod"))
        assert generate(tree, statement) == 'export {a as b} from "./mod";'

    def test_program_with_directive(self, tree, b):
        b.program([b.declare("const", "x", b.number(1))], [b.directive("use strict")])
        assert generate(tree) == '"use strict";\nconst x = 1;\n'
