"""Commands that create scopes, register resolvers and change the current scope."""

from __future__ import annotations

from typing import Any, Optional

from redirex.commands import Command, CommandError
from redirex.scope import Scope, ScopeChanger


class IocNewScopeCommand(Command):
    """Creates a named child of the current scope."""

    def __init__(self, current_scope: Optional[Scope], name: str) -> None:
        self._current_scope = current_scope
        self._name = name

    def execute(self) -> None:
        if self._current_scope is None:
            raise CommandError("IocNewScopeCommand: current scope is missing")
        if self._current_scope.find_child(self._name) is not None:
            raise CommandError(
                f'IocNewScopeCommand: scope "{self._name}" already exists'
            )
        self._current_scope.add_child(Scope(self._name, self._current_scope))


class IocRegisterCommand(Command):
    """Registers a resolver for a dependency in a scope."""

    def __init__(self, scope: Optional[Scope], dependency: str, resolver: Any) -> None:
        self._scope = scope
        self._dependency = dependency
        self._resolver = resolver

    def execute(self) -> None:
        if self._scope is None:
            raise CommandError("IocRegisterCommand: scope is missing")
        self._scope.set_resolver(self._dependency, self._resolver)


class IocSetScopeAbsoluteCommand(Command):
    """Makes current the scope reached from the root by a path like "/a/b"."""

    def __init__(self, root: Scope, changer: ScopeChanger, target_scope: str) -> None:
        self._root = root
        self._changer = changer
        self._target_scope = target_scope

    def _segments(self) -> list[str]:
        path = self._target_scope
        if not path:
            raise CommandError("IocSetScopeAbsoluteCommand: wrong path")
        head, *rest = path.split("/")
        if head != "":
            raise CommandError("IocSetScopeAbsoluteCommand: wrong path")
        if path.endswith("/"):
            rest = rest[:-1]
        return rest

    def execute(self) -> None:
        scope = self._root
        for name in self._segments():
            if not name:
                raise CommandError("IocSetScopeAbsoluteCommand: wrong path")
            child = scope.find_child(name)
            if child is None:
                raise CommandError("IocSetScopeAbsoluteCommand: wrong path")
            scope = child
        self._changer.change(scope)


class IocSetScopeRelativeCommand(Command):
    """Makes current a named direct child of the current scope."""

    def __init__(
        self,
        current: Optional[Scope],
        changer: Optional[ScopeChanger],
        target_scope: str,
    ) -> None:
        self._current = current
        self._changer = changer
        self._target_scope = target_scope

    def execute(self) -> None:
        if self._current is None:
            raise CommandError("IocSetScopeRelativeCommand: current scope is missing")
        scope = self._current.find_child(self._target_scope)
        if scope is None:
            raise CommandError("IocSetScopeRelativeCommand: wrong scope name")
        if self._changer is None:
            raise CommandError("IocSetScopeRelativeCommand: scope changer is missing")
        self._changer.change(scope)