"""
Test utilities for the runtyper test suite.

Tree construction helpers for node kinds the NodeBuilder does not cover
(function/class declarations and members), plus transform-and-print helpers.
"""

import sys
import textwrap
from pathlib import Path
from typing import Iterable, List, Optional

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from runtyper.backend.codegen import generate
from runtyper.compiler.driver import transform
from runtyper.shared.builders import NodeBuilder
from runtyper.shared.nodes import (
    NodeId, Tree, FunctionDeclaration, ClassDeclaration, ClassMethod, ClassProperty,
    TypeParameter, TypeAlias, TypeCastExpression, ObjectPattern, ObjectProperty,
    AssignmentPattern, RestElement, TryStatement, CatchClause,
)
from runtyper.utils.config import TransformOptions


def transform_program(tree: Tree, options: Optional[TransformOptions] = None) -> str:
    """Run the rewrite on `tree`, check the arena stayed a tree, and print it."""
    transform(tree, options)
    tree.check_unique_positions()
    return generate(tree)


def js(text: str) -> str:
    """Expected program text: dedented, without the leading newline, newline-terminated."""
    return textwrap.dedent(text).strip("\n") + "\n"


def code_lines(code: str) -> List[str]:
    """Non-empty lines with indentation stripped."""
    return [line.strip() for line in code.splitlines() if line.strip()]


# =============================================================================
# Node helpers
# =============================================================================

def type_parameter(tree: Tree, name: str, bound: Optional[NodeId] = None) -> NodeId:
    return tree.add(TypeParameter(name=name, bound=bound))


def function_declaration(
    tree: Tree,
    name: str,
    params: Iterable[NodeId] = (),
    body: Iterable[NodeId] = (),
    return_type: Optional[NodeId] = None,
    type_parameters: Iterable[NodeId] = (),
    is_async: bool = False,
    is_generator: bool = False,
) -> NodeId:
    b = NodeBuilder(tree)
    return tree.add(FunctionDeclaration(
        id=b.identifier(name),
        params=list(params),
        body=b.block(body),
        return_type=return_type,
        type_parameters=list(type_parameters),
        is_async=is_async,
        is_generator=is_generator,
    ))


def method(
    tree: Tree,
    key: str,
    params: Iterable[NodeId] = (),
    body: Iterable[NodeId] = (),
    method_kind: str = "method",
    return_type: Optional[NodeId] = None,
) -> NodeId:
    b = NodeBuilder(tree)
    return tree.add(ClassMethod(
        key=b.identifier(key),
        method_kind=method_kind,
        params=list(params),
        body=b.block(body),
        return_type=return_type,
    ))


def constructor(tree: Tree, params: Iterable[NodeId] = (), body: Iterable[NodeId] = ()) -> NodeId:
    return method(tree, "constructor", params, body, method_kind="constructor")


def class_property(
    tree: Tree, key: str, annotation: Optional[NodeId] = None, value: Optional[NodeId] = None,
) -> NodeId:
    b = NodeBuilder(tree)
    return tree.add(ClassProperty(key=b.identifier(key), type_annotation=annotation, value=value))


def class_declaration(
    tree: Tree,
    name: str,
    members: Iterable[NodeId] = (),
    super_class: Optional[str] = None,
    type_parameters: Iterable[NodeId] = (),
    super_type_parameters: Iterable[NodeId] = (),
) -> NodeId:
    b = NodeBuilder(tree)
    return tree.add(ClassDeclaration(
        id=b.identifier(name),
        body=list(members),
        super_class=b.identifier(super_class) if super_class else None,
        type_parameters=list(type_parameters),
        super_type_parameters=list(super_type_parameters),
    ))


def type_alias(tree: Tree, name: str, right: NodeId, type_parameters: Iterable[NodeId] = ()) -> NodeId:
    b = NodeBuilder(tree)
    return tree.add(TypeAlias(id=b.identifier(name), right=right, type_parameters=list(type_parameters)))


def type_cast(tree: Tree, expression: NodeId, annotation: NodeId) -> NodeId:
    return tree.add(TypeCastExpression(expression=expression, type_annotation=annotation))


def object_pattern(tree: Tree, names: Iterable[str], annotation: Optional[NodeId] = None) -> NodeId:
    """`{a, b}` with an optional annotation."""
    b = NodeBuilder(tree)
    properties = [
        tree.add(ObjectProperty(key=b.identifier(n), value=b.identifier(n), shorthand=True))
        for n in names
    ]
    return tree.add(ObjectPattern(properties=properties, type_annotation=annotation))


def with_default(tree: Tree, target: NodeId, default: NodeId) -> NodeId:
    return tree.add(AssignmentPattern(left=target, right=default))


def rest_element(tree: Tree, name: str, annotation: Optional[NodeId] = None) -> NodeId:
    b = NodeBuilder(tree)
    return tree.add(RestElement(argument=b.identifier(name), type_annotation=annotation))


def try_catch(tree: Tree, block: Iterable[NodeId], param: str, handler: Iterable[NodeId]) -> NodeId:
    b = NodeBuilder(tree)
    clause = tree.add(CatchClause(param=b.identifier(param), body=b.block(handler)))
    return tree.add(TryStatement(block=b.block(block), handler=clause))
