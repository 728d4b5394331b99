"""
Type Annotation Parser

Parses Flow-style annotation text ("?Array<T>", "{x: number, y?: string}")
into type nodes of a given Tree. Used to build annotation subtrees without a
full program parser.
"""

import logging
from pathlib import Path
from typing import List, Optional

from lark import Lark, Transformer, v_args
from lark.exceptions import UnexpectedInput
from lark.lexer import Token

from ..shared.errors import TypeSyntaxError
from ..shared.nodes import (
    NodeId, Tree, Identifier, KeywordType, LiteralType, GenericType,
    QualifiedTypeIdentifier, NullableType, UnionType, IntersectionType,
    ArrayType, TupleType, ObjectType, ObjectTypeProperty, FunctionType,
    FunctionTypeParam,
)

logger = logging.getLogger("runtyper.frontend.type_syntax")

KEYWORD_TYPES = frozenset({
    "number", "string", "boolean", "any", "mixed", "void", "null", "empty", "symbol",
})

_parser: Optional[Lark] = None


def _get_parser() -> Lark:
    global _parser
    if _parser is None:
        grammar_path = Path(__file__).parent / "type_syntax.lark"
        _parser = Lark.open(
            str(grammar_path),
            start="start",
            parser="earley",
            maybe_placeholders=False,
        )
    return _parser


def _unquote(token: Token) -> str:
    text = str(token)[1:-1]
    return text.encode("utf-8").decode("unicode_escape")


def _number(token: Token):
    text = str(token)
    return float(text) if "." in text else int(text)


@v_args(inline=True)
class TypeSyntaxTransformer(Transformer):
    """Converts the lark parse tree to type nodes allocated in `tree`."""

    def __init__(self, tree: Tree) -> None:
        super().__init__()
        self.tree = tree

    def start(self, type_id: NodeId) -> NodeId:
        return type_id

    # -- composite types ------------------------------------------------------

    def union_type(self, *members: NodeId) -> NodeId:
        return self.tree.add(UnionType(types=list(members)))

    def intersection_type(self, *members: NodeId) -> NodeId:
        return self.tree.add(IntersectionType(types=list(members)))

    def nullable(self, inner: NodeId) -> NodeId:
        return self.tree.add(NullableType(type_annotation=inner))

    def array_shorthand(self, element: NodeId) -> NodeId:
        return self.tree.add(ArrayType(element_type=element))

    def tuple_type(self, *members: NodeId) -> NodeId:
        return self.tree.add(TupleType(types=list(members)))

    def object_type(self, *properties: NodeId) -> NodeId:
        return self.tree.add(ObjectType(properties=list(properties)))

    def required_property(self, name: Token, value: NodeId) -> NodeId:
        return self.tree.add(ObjectTypeProperty(key=str(name), value=value))

    def optional_property(self, name: Token, value: NodeId) -> NodeId:
        return self.tree.add(ObjectTypeProperty(key=str(name), value=value, optional=True))

    def fn_type(self, *items: NodeId) -> NodeId:
        *params, return_type = items
        rest = None
        positional: List[NodeId] = []
        for param in params:
            if isinstance(param, tuple):
                rest = param[1]
            else:
                positional.append(param)
        return self.tree.add(FunctionType(params=positional, rest=rest, return_type=return_type))

    def required_param(self, name: Token, type_id: NodeId) -> NodeId:
        return self.tree.add(FunctionTypeParam(name=str(name), type_annotation=type_id))

    def optional_param(self, name: Token, type_id: NodeId) -> NodeId:
        return self.tree.add(FunctionTypeParam(name=str(name), type_annotation=type_id, optional=True))

    def rest_param(self, name: Token, type_id: NodeId):
        return ("rest", self.tree.add(FunctionTypeParam(name=str(name), type_annotation=type_id)))

    # -- names and literals ---------------------------------------------------

    def string_literal_type(self, token: Token) -> NodeId:
        return self.tree.add(LiteralType(value=_unquote(token)))

    def number_literal_type(self, token: Token) -> NodeId:
        return self.tree.add(LiteralType(value=_number(token)))

    def qualified_name(self, *names: Token) -> List[str]:
        return [str(n) for n in names]

    def type_args(self, *args: NodeId) -> List[NodeId]:
        return list(args)

    def generic(self, names: List[str], type_args: Optional[List[NodeId]] = None) -> NodeId:
        if len(names) == 1 and not type_args:
            name = names[0]
            if name in KEYWORD_TYPES:
                return self.tree.add(KeywordType(name=name))
            if name in ("true", "false"):
                return self.tree.add(LiteralType(value=name == "true"))
        id_node = self.tree.add(Identifier(name=names[0]))
        for part in names[1:]:
            id_node = self.tree.add(QualifiedTypeIdentifier(
                qualification=id_node,
                id=self.tree.add(Identifier(name=part)),
            ))
        return self.tree.add(GenericType(id=id_node, type_arguments=list(type_args or [])))


def parse_type(tree: Tree, text: str) -> NodeId:
    """
    Parse annotation text into type nodes of `tree`.

    Raises TypeSyntaxError on malformed input.
    """
    try:
        parse_tree = _get_parser().parse(text)
    except UnexpectedInput as e:
        raise TypeSyntaxError(f"Invalid type annotation {text!r}: {e}") from e
    result = TypeSyntaxTransformer(tree).transform(parse_tree)
    logger.debug(f"parsed type {text!r} -> node {result}")
    return result
