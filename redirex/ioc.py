"""Scoped inversion-of-control container resolving dependencies by name."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any, Optional

from redirex.commands import Command, FallbackCommand
from redirex.scope import Scope, ScopeChangerAdapter, ScopeContainer
from redirex.scope_commands import (
    IocNewScopeCommand,
    IocRegisterCommand,
    IocSetScopeAbsoluteCommand,
    IocSetScopeRelativeCommand,
)

Resolver = Callable[..., Any]


class ResolutionError(RuntimeError):
    """Raised when no resolver is registered for a dependency."""


class ResolverCollection:
    """A tree of scopes with a current scope kept separately for every thread.

    Each thread starts at the root scope. The root comes with three
    resolvers: "IoC.Register", "IoC.Scope.New" and "IoC.Scope.Current.Set".
    """

    def __init__(self) -> None:
        self._root = Scope("root", None)
        self._local = threading.local()
        self._register("IoC.Register", self._make_register_command)
        self._register("IoC.Scope.New", self._make_new_scope_command)
        self._register("IoC.Scope.Current.Set", self._make_set_scope_command)

    @property
    def root(self) -> Scope:
        """The root of the scope tree."""
        return self._root

    def _current_container(self) -> ScopeContainer:
        container: Optional[ScopeContainer] = getattr(self._local, "container", None)
        if container is None:
            container = ScopeContainer(self._root)
            self._local.container = container
        return container

    def _current_scope(self) -> Scope:
        scope = self._current_container().scope
        if scope is None:
            raise ResolutionError("current scope is missing")
        return scope

    def _register(self, dependency: str, resolver: Resolver) -> None:
        self._current_scope().set_resolver(dependency, resolver)

    def _make_register_command(self, dependency: str, resolver: Resolver) -> Command:
        return IocRegisterCommand(self._current_scope(), dependency, resolver)

    def _make_new_scope_command(self, name: str) -> Command:
        return IocNewScopeCommand(self._current_scope(), name)

    def _make_set_scope_command(self, name: str) -> Command:
        container = self._current_container()
        return FallbackCommand(
            [
                IocSetScopeRelativeCommand(
                    container.scope, ScopeChangerAdapter(container), name
                ),
                IocSetScopeAbsoluteCommand(
                    self._root, ScopeChangerAdapter(container), name
                ),
            ]
        )

    def find_container(self, dependency: str) -> Optional[Resolver]:
        """Return the resolver visible from the current scope, or None."""
        return self._current_scope().get_resolver(dependency)


class IoC:
    """Resolves dependencies by name through a ResolverCollection."""

    def __init__(self) -> None:
        self._resolvers = ResolverCollection()

    def resolve(self, dependency: str, *args: Any) -> Any:
        """Call the resolver registered for a dependency with the given arguments."""
        resolver = self._resolvers.find_container(dependency)
        if resolver is None:
            raise ResolutionError(f'IoC.resolve: resolver "{dependency}" not found')
        return resolver(*args)


_default = IoC()


def resolve(dependency: str, *args: Any) -> Any:
    """Resolve a dependency through the process-wide container."""
    return _default.resolve(dependency, *args)