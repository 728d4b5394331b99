"""
Base Pass System

Passes share one RewriteContext: the tree being rewritten, the runtime
library naming, analysis results from earlier passes, and the unique-name
generator. Passes declare their dependencies in `requires`; the PassManager
runs them in dependency order.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Set, Type

from ..shared.builders import NodeBuilder
from ..shared.errors import ErrorReporter
from ..shared.nodes import NodeId, Tree
from ..shared.scope import Entity, Scope, UidGenerator
from ..utils.config import DEFAULT_LIBRARY_ID, SYMBOL_SUFFIX, TransformOptions

logger = logging.getLogger("runtyper.passes.base")


class RewriteContext:
    """
    Single source of truth for one transformation run.

    - `node_scopes` maps original node ids to the entity scope they appear in
      (written by entity resolution, read by everything after it)
    - `visited` holds ids of synthesized nodes that must not be rewritten again
    - `call()` / `symbol()` build references into the runtime type library
    """

    def __init__(self, tree: Tree, options: Optional[TransformOptions] = None):
        self.tree = tree
        self.options = options or TransformOptions()
        self.builder = NodeBuilder(tree)

        self.library_name: str = self.options.resolved_library_name()
        self.library_id: str = self.options.library_id or DEFAULT_LIBRARY_ID
        self.has_library_import = False

        self.node_scopes: Dict[NodeId, Scope] = {}
        self.visited: Set[NodeId] = set()
        self.uids = UidGenerator()
        self.reporter = ErrorReporter()

        self._analysis_results: Dict[Type["BasePass"], Any] = {}

    # -------------------------------------------------------------------------
    # Entity queries
    # -------------------------------------------------------------------------

    def get_entity(self, name: str, referencing_node: NodeId) -> Optional[Entity]:
        """Entity `name` resolves to as seen from `referencing_node`."""
        scope = self.node_scopes.get(referencing_node)
        if scope is None:
            return None
        return scope.lookup(name)

    def get_declaring_scope(self, name: str, referencing_node: NodeId) -> Optional[Scope]:
        """Scope whose declaration of `name` is seen from `referencing_node`; None for undeclared names."""
        scope = self.node_scopes.get(referencing_node)
        if scope is None:
            return None
        return scope.defining_scope(name)

    # -------------------------------------------------------------------------
    # Runtime library references
    # -------------------------------------------------------------------------

    def call(self, method: str, *args: NodeId) -> NodeId:
        """`t.method(args...)`"""
        b = self.builder
        return b.call(b.member(self.library_id, method), args)

    def symbol(self, name: str) -> NodeId:
        """`t.<name>Symbol`"""
        b = self.builder
        return b.member(self.library_id, f"{name}{SYMBOL_SUFFIX}")

    # -------------------------------------------------------------------------
    # Analysis results
    # -------------------------------------------------------------------------

    def get_analysis(self, pass_class: Type["BasePass"]) -> Any:
        """Get analysis results from a pass"""
        if pass_class not in self._analysis_results:
            raise RuntimeError(f"Analysis {pass_class.__name__} not available")
        return self._analysis_results[pass_class]

    def set_analysis(self, pass_class: Type["BasePass"], results: Any) -> None:
        self._analysis_results[pass_class] = results


class BasePass(ABC):
    """
    Base class for all passes.

    Passes rewrite `context.tree` in place and return it.
    """
    requires: List[Type["BasePass"]] = []

    @abstractmethod
    def run(self, tree: Tree, context: RewriteContext) -> Tree:
        raise NotImplementedError


class PassManager:
    """Pass manager with dependency resolution."""

    def __init__(self):
        self.passes: List[Type[BasePass]] = []
        self._dependency_graph: Dict[Type[BasePass], Set[Type[BasePass]]] = {}

    def register_pass(self, pass_class: Type[BasePass]) -> None:
        self.passes.append(pass_class)
        self._dependency_graph[pass_class] = set(pass_class.requires)

    def run_all(self, tree: Tree, context: RewriteContext, dump_tree: bool = False) -> Tree:
        """
        Run all passes in dependency order.

        Args:
            tree: input tree
            context: shared context
            dump_tree: if True, log the S-expression dump after each pass (DEBUG)
        """
        for pass_class in self._topological_sort():
            pass_name = pass_class.__name__
            logger.debug(f"running {pass_name}")
            tree = pass_class().run(tree, context)

            if dump_tree:
                from ..shared.serialization import serialize_tree
                logger.debug(f"After {pass_name}:\n{serialize_tree(tree)}")

        return tree

    def _topological_sort(self) -> List[Type[BasePass]]:
        """Topological sort of passes by dependencies"""
        in_degree = {p: len(self._dependency_graph[p]) for p in self.passes}
        queue = [p for p, degree in in_degree.items() if degree == 0]
        result = []

        while queue:
            pass_class = queue.pop(0)
            result.append(pass_class)

            for other_pass in self.passes:
                if pass_class in self._dependency_graph[other_pass]:
                    in_degree[other_pass] -= 1
                    if in_degree[other_pass] == 0:
                        queue.append(other_pass)

        if len(result) != len(self.passes):
            raise RuntimeError("Circular dependency detected in passes")

        return result
