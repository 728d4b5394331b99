"""
Tree Serialization to S-Expressions
===================================

Dumps a Tree (or a subtree) to a canonical S-expression for debugging and
tests. Node kinds and field keywords are symbols; names and string values are
quoted. Unset optional fields and empty lists are omitted.

Example::

    (VariableDeclaration :declaration_kind let
      :declarations ((VariableDeclarator :id (Identifier :name "x") :init (NumericLiteral :value 1))))
"""

from dataclasses import fields
from typing import Any, List

import sexpdata

from .nodes import NodeId, Tree

_SKIPPED_FIELDS = frozenset({"location"})


def _pretty_dumps(sexpr: Any, indent: int = 0, indent_str: str = "  ", max_line: int = 100) -> str:
    """
    Pretty-print structured sexpr. Keeps short forms on one line; breaks only when needed.
    """
    if sexpr is None:
        return "nil"
    if isinstance(sexpr, bool):
        return "true" if sexpr else "false"
    if isinstance(sexpr, (int, float)):
        return str(sexpr)
    # Check Symbol before str (sexpdata.Symbol subclasses str)
    if isinstance(sexpr, sexpdata.Symbol):
        return sexpr.value()
    if isinstance(sexpr, str):
        escaped = sexpr.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(sexpr, list):
        if not sexpr:
            return "()"
        parts = [_pretty_dumps(e, indent + 1, indent_str, max_line) for e in sexpr]
        one_line = "(" + " ".join(parts) + ")"
        if len(one_line) <= max_line and "\n" not in one_line:
            return one_line
        prefix = indent_str * indent
        next_prefix = indent_str * (indent + 1)
        rest = "\n".join(next_prefix + p for p in parts[1:])
        inner = parts[0] + ("\n" + rest if rest else "")
        return f"({inner}\n{prefix})"
    return str(sexpr)


class TreeSerializer:
    """Tree to structured S-expression (nested lists + sexpdata.Symbol)."""

    def __init__(self, tree: Tree):
        self.tree = tree

    def serialize_to_sexpr(self, node_id: NodeId) -> List[Any]:
        node = self.tree[node_id]
        out: List[Any] = [sexpdata.Symbol(node.kind.value)]
        for f in fields(node):
            if f.name in _SKIPPED_FIELDS:
                continue
            value = getattr(node, f.name)
            if f.name in node.children:
                if value is None or value == []:
                    continue
                out.append(sexpdata.Symbol(f":{f.name}"))
                if isinstance(value, list):
                    out.append([self.serialize_to_sexpr(item) for item in value])
                else:
                    out.append(self.serialize_to_sexpr(value))
                continue
            if value is None or value is False:
                continue
            out.append(sexpdata.Symbol(f":{f.name}"))
            if f.name.endswith("kind") and isinstance(value, str):
                out.append(sexpdata.Symbol(value))
            else:
                out.append(value)
        return out


def serialize_tree(tree: Tree, node_id: NodeId = None, pretty: bool = True) -> str:
    """
    Serialize a subtree (default: the root) to an S-expression string.

    Args:
        tree: the arena
        node_id: subtree root; defaults to tree.root
        pretty: use pretty-printed format (default True). Set False for compact single-line.
    """
    start = tree.root if node_id is None else node_id
    sexpr = TreeSerializer(tree).serialize_to_sexpr(start)
    if pretty:
        return _pretty_dumps(sexpr)
    return sexpdata.dumps(sexpr)
