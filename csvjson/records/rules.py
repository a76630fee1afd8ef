"""Typed column validators.

Rules are resolved once when the schema is built, either from rule objects or
from tag strings such as ``"required,numeric"`` or ``"datetime=%Y-%m-%d"``.
Each rule is a small frozen dataclass with a ``tag`` and a ``check`` method;
``RULES`` maps tags to the factory that builds the rule from its argument.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, Protocol, runtime_checkable
from urllib.parse import urlparse

from csvjson.errors import SchemaError


@runtime_checkable
class Rule(Protocol):
    tag: ClassVar[str]
    # Values that pass this rule are emitted as bare JSON literals.
    unquoted: ClassVar[bool]

    def check(self, value: str) -> bool: ...

    def render(self, value: str) -> str: ...


class _BaseRule:
    unquoted: ClassVar[bool] = False

    def render(self, value: str) -> str:
        return value

    def __str__(self) -> str:
        return self.tag  # type: ignore[attr-defined]


@dataclass(frozen=True, slots=True)
class Required(_BaseRule):
    tag: ClassVar[str] = "required"

    def check(self, value: str) -> bool:
        return value != ""


@dataclass(frozen=True, slots=True)
class OmitEmpty(_BaseRule):
    """Marker: an empty value skips every other rule of the column."""

    tag: ClassVar[str] = "omitempty"

    def check(self, value: str) -> bool:  # noqa: ARG002 - never rejects
        return True


@dataclass(frozen=True, slots=True)
class Numeric(_BaseRule):
    tag: ClassVar[str] = "numeric"
    unquoted: ClassVar[bool] = True
    _RE: ClassVar[re.Pattern[str]] = re.compile(
        r"([-+]?)([0-9]+)((?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?)",
    )

    def check(self, value: str) -> bool:
        return self._RE.fullmatch(value) is not None

    def render(self, value: str) -> str:
        # "+1" and "007" are accepted but are not JSON numbers as written.
        match = self._RE.fullmatch(value)
        sign = "-" if match[1] == "-" else ""
        return f"{sign}{match[2].lstrip('0') or '0'}{match[3]}"


@dataclass(frozen=True, slots=True)
class Number(_BaseRule):
    tag: ClassVar[str] = "number"
    unquoted: ClassVar[bool] = True
    _RE: ClassVar[re.Pattern[str]] = re.compile(r"[0-9]+")

    def check(self, value: str) -> bool:
        return self._RE.fullmatch(value) is not None

    def render(self, value: str) -> str:
        return value.lstrip("0") or "0"


@dataclass(frozen=True, slots=True)
class Boolean(_BaseRule):
    tag: ClassVar[str] = "boolean"
    unquoted: ClassVar[bool] = True
    _TRUE: ClassVar[frozenset[str]] = frozenset({"true", "t", "1"})
    _FALSE: ClassVar[frozenset[str]] = frozenset({"false", "f", "0"})

    def check(self, value: str) -> bool:
        lowered = value.lower()
        return lowered in self._TRUE or lowered in self._FALSE

    def render(self, value: str) -> str:
        return "true" if value.lower() in self._TRUE else "false"


@dataclass(frozen=True, slots=True)
class Email(_BaseRule):
    tag: ClassVar[str] = "email"
    _RE: ClassVar[re.Pattern[str]] = re.compile(
        r"[A-Za-z0-9!#$%&'*+/=?^_`{|}~.-]+@[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}",
    )

    def check(self, value: str) -> bool:
        return self._RE.fullmatch(value) is not None


@dataclass(frozen=True, slots=True)
class Url(_BaseRule):
    tag: ClassVar[str] = "url"

    def check(self, value: str) -> bool:
        if any(c.isspace() for c in value):
            return False
        parsed = urlparse(value)
        return bool(parsed.scheme and parsed.netloc)


@dataclass(frozen=True, slots=True)
class DateFormat(_BaseRule):
    tag: ClassVar[str] = "datetime"
    fmt: str

    def check(self, value: str) -> bool:
        try:
            datetime.strptime(value, self.fmt)  # noqa: DTZ007 - only the shape is checked
        except ValueError:
            return False
        return True

    def __str__(self) -> str:
        return f"{self.tag}={self.fmt}"


@dataclass(frozen=True, slots=True)
class MinLength(_BaseRule):
    tag: ClassVar[str] = "min"
    length: int

    def check(self, value: str) -> bool:
        return len(value) >= self.length

    def __str__(self) -> str:
        return f"{self.tag}={self.length}"


@dataclass(frozen=True, slots=True)
class MaxLength(_BaseRule):
    tag: ClassVar[str] = "max"
    length: int

    def check(self, value: str) -> bool:
        return len(value) <= self.length

    def __str__(self) -> str:
        return f"{self.tag}={self.length}"


@dataclass(frozen=True, slots=True)
class OneOf(_BaseRule):
    tag: ClassVar[str] = "oneof"
    choices: frozenset[str]

    def check(self, value: str) -> bool:
        return value in self.choices

    def __str__(self) -> str:
        return f"{self.tag}={' '.join(sorted(self.choices))}"


def _no_argument(rule: Rule) -> Callable[[str | None], Rule]:
    def _build(arg: str | None) -> Rule:
        if arg is not None:
            msg = f"Rule {rule.tag!r} takes no argument, got {arg!r}"
            raise SchemaError(msg)
        return rule

    return _build


def _required_argument(
    tag: str,
    build: Callable[[str], Rule],
) -> Callable[[str | None], Rule]:
    def _build(arg: str | None) -> Rule:
        if not arg:
            msg = f"Rule {tag!r} requires an argument, e.g. '{tag}=...'"
            raise SchemaError(msg)
        return build(arg)

    return _build


def _length(cls: type[MinLength] | type[MaxLength]) -> Callable[[str], Rule]:
    def _build(arg: str) -> Rule:
        try:
            length = int(arg)
        except ValueError as exc:
            msg = f"Rule {cls.tag!r} expects an integer, got {arg!r}"
            raise SchemaError(msg) from exc
        if length < 0:
            msg = f"Rule {cls.tag!r} expects a non-negative length, got {length}"
            raise SchemaError(msg)
        return cls(length)

    return _build


RULES: dict[str, Callable[[str | None], Rule]] = {
    Required.tag: _no_argument(Required()),
    OmitEmpty.tag: _no_argument(OmitEmpty()),
    Numeric.tag: _no_argument(Numeric()),
    Number.tag: _no_argument(Number()),
    Boolean.tag: _no_argument(Boolean()),
    # go-playground spelling
    "bool": _no_argument(Boolean()),
    Email.tag: _no_argument(Email()),
    Url.tag: _no_argument(Url()),
    DateFormat.tag: _required_argument(DateFormat.tag, DateFormat),
    MinLength.tag: _required_argument(MinLength.tag, _length(MinLength)),
    MaxLength.tag: _required_argument(MaxLength.tag, _length(MaxLength)),
    OneOf.tag: _required_argument(
        OneOf.tag,
        lambda arg: OneOf(frozenset(arg.split())),
    ),
}


def parse_rules(tags: str) -> tuple[Rule, ...]:
    """Resolve a comma separated tag string into rule objects."""
    rules: list[Rule] = []
    for raw in tags.split(","):
        token = raw.strip()
        if not token:
            continue
        tag, sep, arg = token.partition("=")
        factory = RULES.get(tag.strip())
        if factory is None:
            msg = f"Unknown validation rule {tag!r} in {tags!r}"
            raise SchemaError(msg)
        rules.append(factory(arg if sep else None))
    return tuple(rules)
