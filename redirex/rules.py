"""Rules that examine a request and pass it along a chain, ending in a redirect."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Optional


class RuleError(RuntimeError):
    """Raised when a request does not satisfy a rule or a rule cannot run."""


class Rule(ABC):
    """Examines a decoded JSON request; raises RuleError when it does not match."""

    @abstractmethod
    def examine(self, request: Any) -> None:
        """Check the request and hand it to the next rule in the chain."""


def _field_text(request: Any, field: str, prefix: str) -> str:
    if not isinstance(request, dict):
        raise RuleError(f"{prefix}: wrong rule")
    if field not in request:
        raise RuleError(f"{prefix}: rule not exist")
    value = request[field]
    if not isinstance(value, str):
        raise RuleError(f"{prefix}: value of {field!r} is not a string")
    return value


class RuleRedirect(Rule):
    """The end of a chain: answers the endpoint with the redirect target."""

    def __init__(self, target: str, endpoint: Any) -> None:
        self.target = target
        self._endpoint = endpoint

    def examine(self, request: Any) -> None:
        if self._endpoint is None:
            raise RuleError("RedirectRule: endpoint is missing")
        try:
            self._endpoint.write_done(self.target)
        except Exception as error:
            raise RuleError("RedirectRule: send error") from error


class RuleContain(Rule):
    """Matches when a request field contains the condition as a substring."""

    def __init__(
        self, field: str, condition: str, next_rule: Optional[Rule] = None
    ) -> None:
        self.field = field
        self.condition = condition
        self.next_rule = next_rule

    def examine(self, request: Any) -> None:
        value = _field_text(request, self.field, "RuleContainCommand")
        if self.condition not in value:
            raise RuleError(f"RuleContainCommand: condition is not contain {value} ")
        if self.next_rule is not None:
            self.next_rule.examine(request)


class RuleEqual(Rule):
    """Matches when a request field equals the condition exactly."""

    def __init__(
        self, field: str, condition: str, next_rule: Optional[Rule] = None
    ) -> None:
        self.field = field
        self.condition = condition
        self.next_rule = next_rule

    def examine(self, request: Any) -> None:
        value = _field_text(request, self.field, "RuleEqual")
        if value != self.condition:
            raise RuleError("RuleEqual: condition is not equal")
        if self.next_rule is not None:
            self.next_rule.examine(request)


class RuleGTDate(Rule):
    """Matches when today is on or after the condition date, given as DD.MM.YYYY.

    Today's year must be no earlier than the condition's year and today's
    day of the year no earlier than the condition's day of the year.
    """

    def __init__(
        self, field: str, condition: str, next_rule: Optional[Rule] = None
    ) -> None:
        self.field = field
        self.condition = condition
        self.next_rule = next_rule

    def _condition_date(self) -> date:
        try:
            return datetime.strptime(self.condition.strip(), "%d.%m.%Y").date()
        except ValueError as error:
            raise RuleError("RuleGTDate: parse date exception") from error

    def examine(self, request: Any) -> None:
        limit = self._condition_date()
        today = date.today()
        if (
            today.year >= limit.year
            and today.timetuple().tm_yday >= limit.timetuple().tm_yday
        ):
            if self.next_rule is not None:
                self.next_rule.examine(request)
            return
        raise RuleError("RuleGTDate: date is not greater exception")


def contain_plugin(
    rule: str, field: str, condition: str, next_rule: Optional[Rule]
) -> Optional[Rule]:
    """Build a RuleContain for the rule type "Contain", otherwise None."""
    if rule == "Contain":
        return RuleContain(field, condition, next_rule)
    return None


def equal_plugin(
    rule: str, field: str, condition: str, next_rule: Optional[Rule]
) -> Optional[Rule]:
    """Build a RuleEqual for the rule type "Equal", otherwise None."""
    if rule == "Equal":
        return RuleEqual(field, condition, next_rule)
    return None


def gtdate_plugin(
    rule: str, field: str, condition: str, next_rule: Optional[Rule]
) -> Optional[Rule]:
    """Build a RuleGTDate for the rule type "GTDate", otherwise None."""
    if rule == "GTDate":
        return RuleGTDate(field, condition, next_rule)
    return None