"""Variable declarations and the ordered variable store used for rendering."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterator, Mapping, Optional

_FALSE_VALUES = {"false", "0"}


def is_true(value: Optional[str]) -> bool:
    """Permissive boolean rule: empty, ``false`` and ``0`` are false, anything else is true."""

    if not value:
        return False
    return value.lower() not in _FALSE_VALUES


class VariableType(str, Enum):
    STRING = "String"
    BOOLEAN = "Boolean"

    @classmethod
    def parse(cls, value: str) -> "VariableType":
        for member in cls:
            if member.value.lower() == value.strip().lower():
                return member
        raise ValueError(f"Invalid variable type '{value}'")


@dataclass(frozen=True)
class Variable:
    name: str
    description: str = ""
    value: str = ""
    semantic: Optional[str] = None
    type: VariableType = VariableType.STRING
    hidden: bool = False

    @property
    def has_semantic(self) -> bool:
        return bool(self.semantic)


class VariableStore:
    """Ordered mapping of declared variables.

    Only :meth:`declare` introduces names. :meth:`set` and
    :meth:`with_overrides` update values of names that already exist and
    silently ignore everything else, so caller supplied overrides can never
    inject variables a template does not declare.
    """

    def __init__(self, variables: Mapping[str, Variable] | None = None) -> None:
        self._variables: Dict[str, Variable] = dict(variables or {})

    def declare(
        self,
        name: str,
        description: str | None = "",
        value: str | None = "",
        semantic: str | None = None,
        type: VariableType = VariableType.STRING,
        hidden: bool = False,
    ) -> Variable:
        variable = Variable(
            name=name,
            description=description or "",
            value=value or "",
            semantic=semantic or None,
            type=type,
            hidden=hidden,
        )
        self._variables[name] = variable
        return variable

    def get(self, name: str) -> Variable | None:
        return self._variables.get(name)

    def set(self, name: str, value: str) -> None:
        current = self._variables.get(name)
        if current is None:
            return
        self._variables[name] = replace(current, value=value if value is not None else "")

    def is_truthy(self, name: str) -> bool:
        variable = self._variables.get(name)
        if variable is None:
            return False
        return variable.value.lower() not in _FALSE_VALUES

    def with_overrides(self, overrides: Mapping[str, str] | None) -> "VariableStore":
        merged = self.clone()
        for name, value in (overrides or {}).items():
            merged.set(name, value)
        return merged

    def clone(self) -> "VariableStore":
        return VariableStore(self._variables)

    def values(self) -> list[Variable]:
        return list(self._variables.values())

    def as_dict(self) -> Dict[str, str]:
        return {name: variable.value for name, variable in self._variables.items()}

    def __contains__(self, name: object) -> bool:
        return name in self._variables

    def __iter__(self) -> Iterator[str]:
        return iter(self._variables)

    def __len__(self) -> int:
        return len(self._variables)

    def __repr__(self) -> str:
        return f"VariableStore({self.as_dict()!r})"


__all__ = ["Variable", "VariableStore", "VariableType", "is_true"]
