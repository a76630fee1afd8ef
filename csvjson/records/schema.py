import json
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from csvjson.errors import RecordArityError, RecordValidationError, SchemaError
from csvjson.records.contracts import Fragment
from csvjson.records.rules import OmitEmpty, Rule, parse_rules


class Quoting(Enum):
    AUTO = "auto"  # bare literal when a rule marks the column numeric/boolean
    ALWAYS = "always"


@dataclass(frozen=True, slots=True)
class ColumnSpec:
    name: str
    rules: tuple[Rule, ...] = ()
    quoting: Quoting = Quoting.AUTO

    # Resolved once from rules + quoting.
    _literal_rule: Rule | None = field(init=False, repr=False, compare=False)
    _omitempty: bool = field(init=False, repr=False, compare=False)
    _key: str = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.name:
            msg = "Column name must not be empty"
            raise SchemaError(msg)
        literal_rule = None
        if self.quoting is Quoting.AUTO:
            literal_rule = next((r for r in self.rules if r.unquoted), None)
        object.__setattr__(self, "_literal_rule", literal_rule)
        object.__setattr__(
            self,
            "_omitempty",
            any(isinstance(r, OmitEmpty) for r in self.rules),
        )
        object.__setattr__(self, "_key", json.dumps(self.name, ensure_ascii=False))

    @classmethod
    def of(
        cls,
        name: str,
        rules: str | Iterable[Rule] = (),
        quoting: Quoting | str = Quoting.AUTO,
    ) -> "ColumnSpec":
        resolved = parse_rules(rules) if isinstance(rules, str) else tuple(rules)
        try:
            quoting = Quoting(quoting)
        except ValueError as exc:
            msg = f"Unknown quoting policy {quoting!r} for column {name!r}"
            raise SchemaError(msg) from exc
        return cls(name=name, rules=resolved, quoting=quoting)

    @property
    def unquoted(self) -> bool:
        return self._literal_rule is not None

    def validate(self, value: str) -> None:
        if self._omitempty and value == "":
            return
        for rule in self.rules:
            if not rule.check(value):
                raise RecordValidationError(self.name, str(rule), value)

    def render_value(self, value: str) -> str:
        if self._literal_rule is None:
            return json.dumps(value, ensure_ascii=False)
        if value == "":
            # Only reachable through omitempty.
            return "null"
        return self._literal_rule.render(value)

    def render_pair(self, value: str) -> str:
        return f"{self._key}:{self.render_value(value)}"


@dataclass(frozen=True, slots=True)
class Schema:
    columns: tuple[ColumnSpec, ...]

    def __post_init__(self) -> None:
        if not self.columns:
            msg = "Schema must declare at least one column"
            raise SchemaError(msg)
        seen: set[str] = set()
        for column in self.columns:
            if column.name in seen:
                msg = f"Duplicate column name {column.name!r}"
                raise SchemaError(msg)
            seen.add(column.name)

    @classmethod
    def from_dicts(cls, columns: Iterable[Mapping[str, Any]]) -> "Schema":
        """Build from ``{"name": ..., "rules": ..., "quoting": ...}`` mappings."""
        specs: list[ColumnSpec] = []
        for i, raw in enumerate(columns):
            name = raw.get("name")
            if not isinstance(name, str):
                msg = f"Column #{i} is missing a string 'name'"
                raise SchemaError(msg)
            rules = raw.get("rules", "")
            if not isinstance(rules, str):
                msg = f"Column {name!r} 'rules' must be a string"
                raise SchemaError(msg)
            specs.append(
                ColumnSpec.of(name, rules, raw.get("quoting", Quoting.AUTO.value)),
            )
        return cls(tuple(specs))

    @classmethod
    def from_json(cls, path: Path) -> "Schema":
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            msg = f"Schema file {path} is not valid JSON: {exc}"
            raise SchemaError(msg) from exc
        if isinstance(payload, Mapping):
            payload = payload.get("columns")
        if not isinstance(payload, list):
            msg = f"Schema file {path} must hold a list of columns"
            raise SchemaError(msg)
        return cls.from_dicts(payload)

    def __len__(self) -> int:
        return len(self.columns)

    def __iter__(self) -> Iterator[ColumnSpec]:
        return iter(self.columns)

    @property
    def names(self) -> list[str]:
        return [c.name for c in self.columns]

    def validate(self, record: Sequence[str]) -> None:
        if len(record) != len(self.columns):
            raise RecordArityError(len(self.columns), len(record))
        for column, value in zip(self.columns, record, strict=True):
            column.validate(value)

    def render(self, record: Sequence[str]) -> Fragment:
        """Validate ``record`` and render it as one JSON object literal.

        Nothing is rendered unless every field passes, so a failing record
        never leaves a partial fragment behind.
        """
        self.validate(record)
        pairs = (
            column.render_pair(value)
            for column, value in zip(self.columns, record, strict=True)
        )
        return ("{" + ",".join(pairs) + "}").encode("utf-8")
