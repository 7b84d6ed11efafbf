"""Extraction settings and their JSON-backed loader."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from .errors import ConfigError

__all__ = ["ExtractionConfig", "DEFAULT_CONFIG_NAME"]

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "locscan.json"


@dataclass(frozen=True)
class ExtractionConfig:
    """Knobs shared by the scanner, the aggregator and the exporter.

    ``ignore_invalid_functions`` selects what happens to a localize call
    whose key cannot be recovered from literal operands: strict runs abort,
    tolerant runs record the call site in the log and continue.  Call
    targets are matched when their simple name contains ``function_pattern``;
    the comparison ignores case unless ``match_case`` is set so that Java's
    ``localize`` and ``Localize`` style names both qualify.
    """

    ignore_invalid_functions: bool = False
    function_pattern: str = "Localize"
    match_case: bool = False
    indent: int = 2
    output_suffix: str = "_Localizable.json"

    def matches(self, function_name: str) -> bool:
        if not self.function_pattern:
            return False
        if self.match_case:
            return self.function_pattern in function_name
        return self.function_pattern.lower() in function_name.lower()

    def output_name(self, module_id: str) -> str:
        return f"{module_id}{self.output_suffix}"

    def with_overrides(self, **overrides: Any) -> "ExtractionConfig":
        """Return a copy with every non-``None`` override applied."""

        applied = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **applied)

    def to_json(self) -> Dict[str, Any]:
        return {item.name: getattr(self, item.name) for item in fields(self)}

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> "ExtractionConfig":
        """Build settings from ``payload``, keeping defaults for bad values.

        Unknown keys and values whose type does not match the field's default
        are reported through the module logger and skipped.
        """

        defaults = {item.name: item.default for item in fields(cls)}
        unknown = sorted(set(payload) - set(defaults))
        if unknown:
            logger.warning("ignoring unknown configuration keys: %s", ", ".join(unknown))

        values: Dict[str, Any] = {}
        for key, value in payload.items():
            if key not in defaults:
                continue
            expected = type(defaults[key])
            # bool is a subclass of int, so compare the exact type.
            if type(value) is not expected:
                logger.warning(
                    "ignoring configuration key %s: expected %s, got %r",
                    key,
                    expected.__name__,
                    value,
                )
                continue
            values[key] = value
        return cls(**values)

    @classmethod
    def load(cls, path: Path) -> "ExtractionConfig":
        """Load settings from ``path``; a missing file yields the defaults."""

        resolved = path
        if path.is_dir():
            resolved = path / DEFAULT_CONFIG_NAME
        if not resolved.exists():
            return cls()

        try:
            data = json.loads(resolved.read_text("utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(f"configuration file {resolved} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"configuration file {resolved} must contain a JSON object")
        return cls.from_json(data)
