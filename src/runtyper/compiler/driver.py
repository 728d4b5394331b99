"""
Compiler Driver

Loads a tree (from a Babel JSON AST file or an in-memory Tree), runs the
entity-resolution and runtime-check passes over a shared RewriteContext, and
prints the result as JavaScript.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from ..analysis.entity_resolution import EntityResolutionPass
from ..backend.codegen import generate
from ..frontend.babel_ast import load_babel_ast
from ..passes.base import PassManager, RewriteContext
from ..passes.runtime_checks import RuntimeCheckPass
from ..shared.errors import ErrorReporter, RuntyperError
from ..shared.nodes import Tree
from ..utils.config import TransformOptions
from ..utils.io_utils import read_json_file, read_source_file

logger = logging.getLogger("runtyper.compiler.driver")


class TransformResult:
    """Transformation result"""
    def __init__(
        self,
        tree: Optional[Tree] = None,
        code: Optional[str] = None,
        reporter: Optional[ErrorReporter] = None,
        success: bool = False
    ):
        self.tree = tree
        self.code = code
        self.reporter = reporter or ErrorReporter()
        self.success = success

    def has_errors(self) -> bool:
        return self.reporter.has_errors() or not self.success

    def get_errors(self) -> list:
        if self.reporter.has_errors():
            return [self.reporter.format_all_errors(color=False)]
        return []


class CompilerDriver:
    """
    Orchestrates one rewrite.

    Pass order:
    1. EntityResolutionPass (scopes, entities, used names)
    2. RuntimeCheckPass (annotations to runtime checks, then erasure)
    """

    def __init__(self, options: Optional[TransformOptions] = None):
        self.options = options or TransformOptions()
        self.pass_manager = PassManager()
        self._register_passes()

    def _register_passes(self) -> None:
        self.pass_manager.register_pass(EntityResolutionPass)
        self.pass_manager.register_pass(RuntimeCheckPass)

    def transform_tree(self, tree: Tree) -> Tree:
        """
        Rewrite `tree` in place. Errors propagate to the caller.

        The passes work on a copy of the program that replaces the original
        root only once every pass has succeeded; a raised error leaves the
        tree as it was.
        """
        if tree.root is None:
            return tree
        original_root = tree.root
        tree.root = tree.clone(original_root)
        context = RewriteContext(tree, self.options)
        try:
            self.pass_manager.run_all(tree, context, dump_tree=self.options.dump_tree)
        except Exception:
            logger.debug("rewrite failed, keeping the original tree")
            tree.root = original_root
            raise
        working_root = tree.root
        tree.root = original_root
        tree.replace(original_root, working_root)
        return tree

    def transform_file(self, path: Union[Path, str], source_path: Optional[Union[Path, str]] = None) -> TransformResult:
        """
        Transform a Babel JSON AST file and print the result.

        Args:
            path: JSON file written by `@babel/parser` (File or Program root)
            source_path: the original source file, used for error snippets
        """
        path = Path(path)
        source_name = str(source_path) if source_path is not None else str(path)
        reporter = ErrorReporter()
        if source_path is not None:
            try:
                reporter.source_files[source_name] = read_source_file(source_path)
            except OSError as e:
                logger.debug(f"source text unavailable for {source_name}: {e}")

        try:
            document = read_json_file(path)
        except (OSError, ValueError) as e:
            reporter.report_error(f"could not read AST file {path}: {e}")
            return TransformResult(reporter=reporter, success=False)

        try:
            tree = load_babel_ast(document, source_name)
            tree = self.transform_tree(tree)
        except RuntyperError as e:
            reporter.report_exception(e)
            return TransformResult(reporter=reporter, success=False)

        code = generate(tree)
        logger.debug(f"transformed {path}: {len(code.splitlines())} lines of output")
        return TransformResult(tree=tree, code=code, reporter=reporter, success=True)


def transform(tree: Tree, options: Optional[TransformOptions] = None) -> Tree:
    """Rewrite all annotations of `tree` into runtime checks (in place) and return it."""
    return CompilerDriver(options).transform_tree(tree)
