"""
Tests for Variable Declarations and Assignments
===============================================

Annotated bindings get a cached runtime type (`_xType`) and every later
write to them is asserted against it.
"""

from runtyper.shared.nodes import ForOfStatement

from tests.test_utils import transform_program, js, object_pattern, function_declaration


class TestDeclarators:
    """let/var/const declarators with annotations"""

    def test_let_with_initializer(self, tree, b, ty):
        b.program([b.declare("let", b.identifier("x", ty("number")), b.number(1))])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            let _xType = t.number(), x = _xType.assert(1);
        """)

    def test_let_without_initializer(self, tree, b, ty):
        b.program([
            b.declare("let", b.identifier("z", ty("?number"))),
            b.expression_statement(b.assign("z", b.number(5))),
        ])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            let _zType = t.nullable(t.number()), z;
            z = _zType.assert(5);
        """)

    def test_const_asserts_initializer_directly(self, tree, b, ty):
        b.program([b.declare("const", b.identifier("name", ty("string")), b.string("a"))])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            const name = t.string().assert("a");
        """)

    def test_redeclared_var_reuses_binding(self, tree, b, ty):
        """A second declaration in the same scope reassigns the existing binding."""
        b.program([
            b.declare("var", b.identifier("v", ty("number")), b.number(1)),
            b.declare("var", b.identifier("v", ty("string")), b.string("s")),
        ])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            var _vType = t.number(), v = _vType.assert(1);
            _vType = t.string();
            var v = _vType.assert("s");
        """)

    def test_destructuring_wraps_initializer(self, tree, b, ty):
        pattern = object_pattern(tree, ["a"], ty("{a: number}"))
        b.program([b.declare("const", pattern, b.identifier("obj"))])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            const {a} = t.object(t.property("a", t.number())).assert(obj);
        """)

    def test_destructuring_without_initializer_is_left_alone(self, tree, b, ty):
        pattern = object_pattern(tree, ["a"], ty("{a: number}"))
        b.program([b.declare("let", pattern)])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            let {a};
        """)

    def test_unannotated_declarator_untouched(self, tree, b):
        b.program([b.declare("let", "x", b.number(1))])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            let x = 1;
        """)


class TestAssignments:
    """Writes to annotated bindings"""

    def test_binding_reused_across_assignments(self, tree, b, ty):
        b.program([
            b.declare("let", b.identifier("x", ty("number")), b.number(1)),
            b.expression_statement(b.assign("x", b.number(2))),
            b.expression_statement(b.assign("x", b.number(3))),
        ])
        code = transform_program(tree)
        assert code == js("""
            import t from "flow-runtime";
            let _xType = t.number(), x = _xType.assert(1);
            x = _xType.assert(2);
            x = _xType.assert(3);
        """)
        assert code.count("let _xType") == 1

    def test_compound_assignment_expanded(self, tree, b, ty):
        b.program([
            b.declare("let", b.identifier("x", ty("number")), b.number(1)),
            b.expression_statement(b.assign("x", b.number(2), operator="+=")),
        ])
        assert transform_program(tree).endswith("x = _xType.assert(x + 2);\n")

    def test_logical_assignment_untouched(self, tree, b, ty):
        b.program([
            b.declare("let", b.identifier("x", ty("?number"))),
            b.expression_statement(b.assign("x", b.number(2), operator="??=")),
        ])
        assert transform_program(tree).endswith("x ??= 2;\n")

    def test_unbound_identifier_untouched(self, tree, b):
        b.program([b.expression_statement(b.assign("y", b.number(2)))])
        assert transform_program(tree).endswith("y = 2;\n")

    def test_member_target_untouched(self, tree, b, ty):
        b.program([
            b.declare("let", b.identifier("x", ty("number")), b.number(1)),
            b.expression_statement(b.assign(b.member("obj", "x"), b.number(2))),
        ])
        assert transform_program(tree).endswith("obj.x = 2;\n")

    def test_inner_function_sees_outer_binding(self, tree, b, ty):
        b.program([
            b.declare("let", b.identifier("x", ty("number")), b.number(1)),
            function_declaration(tree, "f", body=[b.expression_statement(b.assign("x", b.number(2)))]),
        ])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            let _xType = t.number(), x = _xType.assert(1);
            function f() {
              x = _xType.assert(2);
            }
        """)


class TestScoping:
    """Bindings are per rewrite scope"""

    def test_block_gets_its_own_binding(self, tree, b, ty):
        b.program([
            b.declare("let", b.identifier("x", ty("number")), b.number(1)),
            b.block([
                b.declare("let", b.identifier("x", ty("string")), b.string("a")),
                b.expression_statement(b.assign("x", b.string("b"))),
            ]),
            b.expression_statement(b.assign("x", b.number(2))),
        ])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            let _xType = t.number(), x = _xType.assert(1);
            {
              let _xType2 = t.string(), x = _xType2.assert("a");
              x = _xType2.assert("b");
            }
            x = _xType.assert(2);
        """)

    def test_sibling_blocks_do_not_share(self, tree, b, ty):
        b.program([
            b.block([b.declare("let", b.identifier("x", ty("number")), b.number(1))]),
            b.block([b.expression_statement(b.assign("x", b.string("s")))]),
        ])
        code = transform_program(tree)
        assert 'x = "s";' in code
        assert "_xType.assert(\"s\")" not in code

    def test_unannotated_inner_declaration_shadows(self, tree, b, ty):
        inner = function_declaration(tree, "f", body=[
            b.declare("let", "x", b.string("s")),
            b.expression_statement(b.assign("x", b.string("t"))),
        ])
        b.program([b.declare("let", b.identifier("x", ty("number")), b.number(1)), inner])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            let _xType = t.number(), x = _xType.assert(1);
            function f() {
              let x = "s";
              x = "t";
            }
        """)

    def test_unannotated_inner_parameter_shadows(self, tree, b, ty):
        inner = function_declaration(
            tree, "g", params=[b.identifier("x")],
            body=[b.expression_statement(b.assign("x", b.string("a")))],
        )
        outer = function_declaration(tree, "f", params=[b.identifier("x", ty("number"))], body=[inner])
        b.program([outer])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            function f(x) {
              let _xType = t.number();
              t.param("x", _xType).assert(x);
              function g(x) {
                x = "a";
              }
            }
        """)


class TestLoops:
    """Annotated for-of loop variables"""

    def _for_of(self, tree, b, ty, kind, name, annotation, body):
        return tree.add(ForOfStatement(
            left=b.declare(kind, b.identifier(name, ty(annotation))),
            right=b.identifier(name + "s"),
            body=body,
        ))

    def test_loop_variable_checked_in_body(self, tree, b, ty):
        b.program([self._for_of(tree, b, ty, "const", "x", "number", b.block())])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            let _xType = t.number();
            for (const x of xs) {
              _xType.assert(x);
            }
        """)

    def test_single_statement_body_becomes_block(self, tree, b, ty):
        body = b.expression_statement(b.call("use", [b.identifier("y")]))
        b.program([self._for_of(tree, b, ty, "let", "y", "string", body)])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            let _yType = t.string();
            for (let y of ys) {
              _yType.assert(y);
              use(y);
            }
        """)

    def test_writes_in_body_are_checked(self, tree, b, ty):
        body = b.block([b.expression_statement(b.assign("y", b.string("z")))])
        b.program([self._for_of(tree, b, ty, "let", "y", "string", body)])
        code = transform_program(tree)
        assert "for (let y of ys) {" in code
        assert 'y = _yType.assert("z");' in code
