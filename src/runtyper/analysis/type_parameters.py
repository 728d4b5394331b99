"""
Type parameter extraction and annotation identifier iteration.
"""

from typing import Iterator, List, Optional

from ..shared.nodes import NodeId, NodeType, Tree, FUNCTION_KINDS, CLASS_KINDS


def get_type_parameters(tree: Tree, node_id: Optional[NodeId]) -> List[NodeId]:
    """
    Ordered type parameters of a function, class or type alias, or the type
    arguments of a generic type. Anything else has none.
    """
    if node_id is None:
        return []
    node = tree[node_id]
    if node.kind in FUNCTION_KINDS or node.kind in CLASS_KINDS or node.kind == NodeType.TYPE_ALIAS:
        return list(node.type_parameters)
    if node.kind == NodeType.GENERIC_TYPE:
        return list(node.type_arguments)
    return []


def iter_annotation_identifiers(tree: Tree, annotation_id: NodeId) -> Iterator[NodeId]:
    """
    Identifier nodes referenced inside an annotation, in source order.

    For qualified names only the leftmost identifier is a reference; the rest
    are property names.
    """
    stack = [annotation_id]
    while stack:
        current = stack.pop()
        node = tree[current]
        if node.kind == NodeType.IDENTIFIER:
            yield current
            continue
        if node.kind == NodeType.QUALIFIED_TYPE_IDENTIFIER:
            stack.append(node.qualification)
            continue
        stack.extend(reversed(list(node.child_ids())))
