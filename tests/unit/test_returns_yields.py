"""
Tests for Return and Yield Rewriting
====================================

Returns are asserted against the declared return type; generators split
their `Generator<Y, R, N>` annotation into yield, return and next types.
"""

from runtyper.shared.nodes import AwaitExpression

from tests.test_utils import transform_program, js, function_declaration


class TestReturns:
    """Return statements of functions with a declared return type"""

    def test_bare_return_asserted(self, tree, b, ty):
        b.program([function_declaration(tree, "v", body=[b.return_()], return_type=ty("void"))])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            function v() {
              const _returnType = t.return(t.void());
              return _returnType.assert();
            }
        """)

    def test_async_unwraps_promise(self, tree, b, ty):
        fn = function_declaration(
            tree, "load",
            body=[b.return_(tree.add(AwaitExpression(argument=b.call("fetchIt"))))],
            return_type=ty("Promise<string>"),
            is_async=True,
        )
        b.program([fn])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            async function load() {
              const _returnType = t.return(t.string());
              return _returnType.assert(await fetchIt());
            }
        """)

    def test_nested_function_without_return_type_untouched(self, tree, b, ty):
        inner = function_declaration(tree, "inner", body=[b.return_(b.string("raw"))])
        outer = function_declaration(
            tree, "outer", body=[inner, b.return_(b.number(1))], return_type=ty("number"),
        )
        b.program([outer])
        code = transform_program(tree)
        assert 'return "raw";' in code
        assert "return _returnType.assert(1);" in code

    def test_return_outside_typed_function_untouched(self, tree, b):
        b.program([function_declaration(tree, "f", body=[b.return_(b.number(1))])])
        assert "return 1;" in transform_program(tree)

    def test_each_function_gets_its_own_return_binding(self, tree, b, ty):
        b.program([
            function_declaration(tree, "f", body=[b.return_(b.number(1))], return_type=ty("number")),
            function_declaration(tree, "g", body=[b.return_(b.string("s"))], return_type=ty("string")),
        ])
        code = transform_program(tree)
        assert "const _returnType = t.return(t.number());" in code
        assert "const _returnType2 = t.return(t.string());" in code
        assert 'return _returnType2.assert("s");' in code


class TestGenerators:
    """Yield/next/return split of generator annotations"""

    def test_three_argument_generator(self, tree, b, ty):
        fn = function_declaration(
            tree, "gen",
            body=[
                b.declare("const", "x", b.yield_(b.number(1))),
                b.return_(b.string("done")),
            ],
            return_type=ty("Generator<number, string, boolean>"),
            is_generator=True,
        )
        b.program([fn])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            function* gen() {
              const _yieldType = t.number();
              const _nextType = t.boolean();
              const _returnType = t.return(t.string());
              const x = _nextType.assert(yield _yieldType.assert(1));
              return _returnType.assert("done");
            }
        """)

    def test_statement_yield_not_wrapped_in_next(self, tree, b, ty):
        fn = function_declaration(
            tree, "gen",
            body=[b.expression_statement(b.yield_(b.number(2)))],
            return_type=ty("Generator<number, void, string>"),
            is_generator=True,
        )
        b.program([fn])
        code = transform_program(tree)
        assert "yield _yieldType.assert(2);" in code
        assert "_nextType.assert(yield" not in code

    def test_delegating_yield_wraps_iterator(self, tree, b, ty):
        fn = function_declaration(
            tree, "gen",
            body=[b.expression_statement(b.yield_(b.call("other"), delegate=True))],
            return_type=ty("Generator<number, void>"),
            is_generator=True,
        )
        b.program([fn])
        assert transform_program(tree) == js("""
            import t from "flow-runtime";
            function* gen() {
              const _yieldType = t.number();
              const _returnType = t.return(t.void());
              yield* t.wrapIterator(_yieldType)(other());
            }
        """)

    def test_single_argument_generator_returns_any(self, tree, b, ty):
        fn = function_declaration(
            tree, "gen", return_type=ty("Iterator<number>"), is_generator=True,
        )
        b.program([fn])
        code = transform_program(tree)
        assert "const _yieldType = t.number();" in code
        assert "const _returnType = t.return(t.any());" in code
        assert "_nextType" not in code

    def test_async_generator_splits_like_generator(self, tree, b, ty):
        fn = function_declaration(
            tree, "stream",
            body=[b.expression_statement(b.yield_(b.string("chunk")))],
            return_type=ty("AsyncGenerator<string, void, void>"),
            is_async=True,
            is_generator=True,
        )
        b.program([fn])
        code = transform_program(tree)
        assert code.startswith('import t from "flow-runtime";\nasync function* stream() {\n')
        assert "const _yieldType = t.string();" in code
        assert 'yield _yieldType.assert("chunk");' in code
