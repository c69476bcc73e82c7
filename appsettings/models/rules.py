"""
Validation rules.

SettingKeyIsValidRule guards API input; build_rule turns the rule specs
found in a definitions file into types a pydantic TypeAdapter validates.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import Field

from appsettings.core.exceptions import SettingConfigError

RULE_TYPES: Dict[str, Any] = {
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "list": List[Any],
    "dict": Dict[str, Any],
    "any": Any,
}

# pydantic Field constraints a rule spec may carry
RULE_CONSTRAINTS = (
    "gt",
    "ge",
    "lt",
    "le",
    "multiple_of",
    "min_length",
    "max_length",
    "pattern",
)


class SettingKeyIsValidRule:
    """Passes when the key (or alias) is registered in the store."""

    def __init__(self, setting_store):
        self._store = setting_store

    def passes(self, value: str) -> bool:
        return self._store.has(value)

    def message(self, value: str) -> str:
        return f"The {value} setting key does not exist."


def build_rule(spec: Optional[Dict[str, Any]]) -> Any:
    """
    Build an annotated type from a rule spec.

    {"type": "int", "ge": 0, "le": 10} -> Annotated[int, Field(ge=0, le=10)]
    {"type": "str", "nullable": true}  -> Annotated[Optional[str], Field()]
    """
    if not spec:
        return Any
    if not isinstance(spec, dict):
        raise SettingConfigError(f"Rule spec {spec!r} must be an object")

    type_name = spec.get("type", "any")
    if type_name not in RULE_TYPES:
        raise SettingConfigError(f"Unknown rule type '{type_name}', expected one of {sorted(RULE_TYPES)}")

    unknown = set(spec) - set(RULE_CONSTRAINTS) - {"type", "nullable", "choices"}
    if unknown:
        raise SettingConfigError(f"Unknown rule options {sorted(unknown)}")

    base = RULE_TYPES[type_name]
    if "choices" in spec:
        choices = spec["choices"]
        if not isinstance(choices, list) or not choices:
            raise SettingConfigError(f"Rule choices {choices!r} must be a non-empty list")
        try:
            base = Literal[tuple(choices)]
        except TypeError as e:
            # Literal needs hashable members, so nested lists and objects fail
            raise SettingConfigError(f"Rule choices {choices!r} are invalid: {e}") from e
    if spec.get("nullable"):
        base = Optional[base]

    constraints = {name: spec[name] for name in RULE_CONSTRAINTS if name in spec}
    return Annotated[base, Field(**constraints)]
