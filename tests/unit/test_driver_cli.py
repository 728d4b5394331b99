"""
Tests for the Compiler Driver and Command Line
==============================================
"""

import json

import pytest

from runtyper.__main__ import main
from runtyper.compiler.driver import CompilerDriver
from runtyper.utils.config import TransformOptions

pytestmark = pytest.mark.cli

CONST_PROGRAM = {
    "type": "File",
    "program": {
        "type": "Program",
        "directives": [],
        "body": [{
            "type": "VariableDeclaration",
            "kind": "const",
            "declarations": [{
                "type": "VariableDeclarator",
                "id": {
                    "type": "Identifier",
                    "name": "n",
                    "typeAnnotation": {"type": "TypeAnnotation", "typeAnnotation": {"type": "NumberTypeAnnotation"}},
                },
                "init": {"type": "NumericLiteral", "value": 1},
            }],
        }],
    },
}

# class Box<T> {}
GENERIC_CLASS_WITHOUT_CONSTRUCTOR = {
    "type": "File",
    "program": {
        "type": "Program",
        "directives": [],
        "body": [{
            "type": "ClassDeclaration",
            "loc": {"start": {"line": 1, "column": 0}, "end": {"line": 1, "column": 15}},
            "id": {"type": "Identifier", "name": "Box"},
            "superClass": None,
            "typeParameters": {
                "type": "TypeParameterDeclaration",
                "params": [{"type": "TypeParameter", "name": "T"}],
            },
            "body": {"type": "ClassBody", "body": []},
        }],
    },
}

EXPECTED_CONST = 'import t from "flow-runtime";\nconst n = t.number().assert(1);\n'


@pytest.fixture
def ast_file(tmp_path):
    def _write(document, name="input.json"):
        path = tmp_path / name
        path.write_text(json.dumps(document), encoding="utf-8")
        return path
    return _write


class TestDriver:
    """CompilerDriver.transform_file"""

    def test_success(self, ast_file, session_driver):
        result = session_driver.transform_file(ast_file(CONST_PROGRAM))
        assert result.success
        assert not result.has_errors()
        assert result.code == EXPECTED_CONST

    def test_library_options(self, ast_file):
        driver = CompilerDriver(TransformOptions(library_name="my-runtime", library_id="types"))
        result = driver.transform_file(ast_file(CONST_PROGRAM))
        assert result.code == 'import types from "my-runtime";\nconst n = types.number().assert(1);\n'

    def test_structural_error_reported(self, ast_file, session_driver):
        result = session_driver.transform_file(ast_file(GENERIC_CLASS_WITHOUT_CONSTRUCTOR))
        assert not result.success
        errors = result.get_errors()
        assert len(errors) == 1
        assert "error[R0001]" in errors[0]
        assert "class with type parameters must declare a constructor" in errors[0]

    def test_error_snippet_from_source(self, ast_file, session_driver, tmp_path):
        source = tmp_path / "box.js"
        source.write_text("class Box<T> {}\n", encoding="utf-8")
        result = session_driver.transform_file(ast_file(GENERIC_CLASS_WITHOUT_CONSTRUCTOR), source_path=source)
        text = result.reporter.format_all_errors(color=False)
        assert "1 | class Box<T> {}" in text
        assert "^^^^^^^^^^^^^^^" in text

    def test_invalid_json(self, tmp_path, session_driver):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        result = session_driver.transform_file(path)
        assert not result.success
        assert "could not read AST file" in result.get_errors()[0]


class TestCommandLine:
    """runtyper.__main__.main"""

    def test_prints_to_stdout(self, ast_file, capsys):
        assert main([str(ast_file(CONST_PROGRAM))]) == 0
        assert capsys.readouterr().out == EXPECTED_CONST

    def test_writes_output_file(self, ast_file, tmp_path):
        output = tmp_path / "out.js"
        assert main([str(ast_file(CONST_PROGRAM)), "-o", str(output)]) == 0
        assert output.read_text(encoding="utf-8") == EXPECTED_CONST

    def test_library_id_flag(self, ast_file, capsys):
        assert main([str(ast_file(CONST_PROGRAM)), "--library-id", "rt"]) == 0
        assert "rt.number().assert(1)" in capsys.readouterr().out

    def test_failure_exit_code(self, ast_file, capsys, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        assert main([str(ast_file(GENERIC_CLASS_WITHOUT_CONSTRUCTOR))]) == 1
        err = capsys.readouterr().err
        assert "error[R0001]" in err
        assert "aborting due to 1 previous error" in err

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.json")]) == 1
        assert "file not found" in capsys.readouterr().err
