"""Named scopes holding dependency resolvers, and the means to switch between them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from redirex.commands import CommandError


class Scope:
    """A node in a tree of scopes; resolvers missing here are looked up in the parent."""

    def __init__(self, name: str, parent: Optional[Scope] = None) -> None:
        self.name = name
        self.parent = parent
        self.children: list[Scope] = []
        self._resolvers: dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"Scope({self.name!r})"

    def add_child(self, child: Scope) -> None:
        """Attach a child scope."""
        self.children.append(child)

    def find_child(self, name: str) -> Optional[Scope]:
        """Return the first direct child with the given name, or None."""
        return next((child for child in self.children if child.name == name), None)

    def get_resolver(self, dependency: str) -> Any:
        """Return the resolver for a dependency, searching up through the parents."""
        resolver = self._resolvers.get(dependency)
        if resolver is not None:
            return resolver
        if self.parent is not None:
            return self.parent.get_resolver(dependency)
        return None

    def set_resolver(self, dependency: str, resolver: Any) -> None:
        """Register a resolver; a dependency already registered here is an error."""
        if self._resolvers.get(dependency) is not None:
            raise CommandError(
                f'Scope.set_resolver: dependency "{dependency}" already exists'
            )
        self._resolvers[dependency] = resolver


@dataclass
class ScopeContainer:
    """Holds the scope that is current."""

    scope: Optional[Scope]


class ScopeChanger(ABC):
    """Something that can make a scope the current one."""

    @abstractmethod
    def change(self, scope: Scope) -> None:
        """Make the given scope current."""


class ScopeChangerAdapter(ScopeChanger):
    """Changes the scope held by a ScopeContainer."""

    def __init__(self, container: ScopeContainer) -> None:
        self._container = container

    def change(self, scope: Scope) -> None:
        self._container.scope = scope