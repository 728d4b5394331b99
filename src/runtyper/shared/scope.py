"""
Scope chain used by both passes.

Each scope holds two maps:
- bindings: name -> Entity (filled by entity resolution)
- data: key -> value (rewrite state such as "valueUid:x" -> "_xType")

Lookups walk inner to outer; writes always land in the scope they are made
on. Sibling scopes never see each other's entries.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generator, Iterable, List, Optional, Set

from .nodes import NodeId


class ScopeKind(Enum):
    PROGRAM = "program"
    FUNCTION = "function"
    CLASS = "class"
    BLOCK = "block"
    CATCH = "catch"
    LOOP = "loop"
    TYPE_ALIAS = "type_alias"


# -----------------------------------------------------------------------------
# Entity (what a name refers to)
# -----------------------------------------------------------------------------


@dataclass
class Entity:
    """One declared name."""
    name: str
    declaration: Optional[NodeId] = None
    is_value: bool = True
    is_type: bool = False
    is_global: bool = False
    is_type_parameter: bool = False
    is_class_type_parameter: bool = False
    is_catch_parameter: bool = False
    is_library_import: bool = False


# -----------------------------------------------------------------------------
# Scope
# -----------------------------------------------------------------------------


@dataclass
class Scope:
    parent: Optional[Scope]
    kind: ScopeKind
    node: Optional[NodeId] = None
    _bindings: Dict[str, Entity] = field(default_factory=dict)
    _data: Dict[str, Any] = field(default_factory=dict)

    def lookup(self, name: str) -> Optional[Entity]:
        """Entity for name, innermost scope first."""
        if name in self._bindings:
            return self._bindings[name]
        if self.parent is not None:
            return self.parent.lookup(name)
        return None

    def defining_scope(self, name: str) -> Optional[Scope]:
        """Innermost scope (self included) that declares name."""
        current: Optional[Scope] = self
        while current is not None and name not in current._bindings:
            current = current.parent
        return current

    def define(self, entity: Entity) -> None:
        """Record entity in this scope; a later declaration of the same name wins."""
        self._bindings[entity.name] = entity

    def names(self) -> Iterable[str]:
        return self._bindings.keys()

    def get_data(self, key: str) -> Any:
        """Rewrite data for key, innermost scope first."""
        if key in self._data:
            return self._data[key]
        if self.parent is not None:
            return self.parent.get_data(key)
        return None

    def get_own_data(self, key: str) -> Any:
        return self._data.get(key)

    def set_data(self, key: str, value: Any) -> None:
        self._data[key] = value

    def function_scope(self) -> Optional[Scope]:
        """Nearest enclosing function scope (self included)."""
        current: Optional[Scope] = self
        while current is not None and current.kind != ScopeKind.FUNCTION:
            current = current.parent
        return current

    def program_scope(self) -> Scope:
        current = self
        while current.parent is not None:
            current = current.parent
        return current


# -----------------------------------------------------------------------------
# Scope manager (stack of scopes, scope() push/pop)
# -----------------------------------------------------------------------------


class ScopeManager:
    """Scope stack. enter_scope = push, exit_scope = pop."""

    def __init__(self) -> None:
        self._stack: List[Scope] = []

    def enter_scope(self, kind: ScopeKind, node: Optional[NodeId] = None) -> Scope:
        parent = self._stack[-1] if self._stack else None
        scope = Scope(parent=parent, kind=kind, node=node)
        self._stack.append(scope)
        return scope

    def exit_scope(self) -> None:
        if not self._stack:
            raise RuntimeError("Cannot exit scope: no active scope")
        self._stack.pop()

    @contextmanager
    def scope(self, kind: ScopeKind, node: Optional[NodeId] = None) -> Generator[Scope, None, None]:
        """Context manager: enter on __enter__, exit on __exit__."""
        s = self.enter_scope(kind, node)
        try:
            yield s
        finally:
            self.exit_scope()

    def current_scope(self) -> Scope:
        if not self._stack:
            raise RuntimeError("No active scope")
        return self._stack[-1]


# -----------------------------------------------------------------------------
# Unique names
# -----------------------------------------------------------------------------


class UidGenerator:
    """
    Collision-free names for synthesized bindings.

    `generate("xType")` yields "_xType", then "_xType2", "_xType3", ...
    skipping anything already used in the program.
    """

    def __init__(self, used: Iterable[str] = ()) -> None:
        self._used: Set[str] = set(used)

    def reserve(self, name: str) -> None:
        self._used.add(name)

    def is_used(self, name: str) -> bool:
        return name in self._used

    def generate(self, hint: str) -> str:
        base = hint.lstrip("_").rstrip("0123456789") or "temp"
        i = 1
        while True:
            candidate = f"_{base}" if i == 1 else f"_{base}{i}"
            if candidate not in self._used:
                self._used.add(candidate)
                return candidate
            i += 1
