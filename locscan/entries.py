"""Translation units and the key-unique table they are collected in.

Tables are exchanged as a JSON object keyed by the translation key::

    {
      "Greeting": {
        "message": "Hello",
        "description": "MainWindow.<init>"
      }
    }

The same layout is produced by the extractor and consumed by the runtime
registry, so a translated copy of an exported file can be loaded as is.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional

from .errors import CatalogFormatError

__all__ = ["LocEntry", "LocTable"]


@dataclass(frozen=True)
class LocEntry:
    """One translation unit."""

    key: str
    message: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.key, str) or not self.key:
            raise ValueError("LocEntry key must be a non-empty string")

    def to_json(self) -> Dict[str, Optional[str]]:
        return {"message": self.message, "description": self.description}

    @classmethod
    def from_json(cls, key: str, payload: Any) -> "LocEntry":
        if payload is None:
            return cls(key)
        if not isinstance(payload, Mapping):
            raise CatalogFormatError(f"entry {key!r} must be an object, got {type(payload).__name__}")
        message = payload.get("message")
        description = payload.get("description")
        for name, value in (("message", message), ("description", description)):
            if value is not None and not isinstance(value, str):
                raise CatalogFormatError(f"entry {key!r} has a non-string {name}")
        return cls(key, message, description)


class LocTable(Mapping[str, LocEntry]):
    """Mapping of key to :class:`LocEntry` preserving insertion order.

    Equality ignores order; iteration follows insertion so exported files
    are reproducible between runs over the same module.
    """

    def __init__(self, entries: Optional[Iterable[LocEntry]] = None) -> None:
        self._entries: Dict[str, LocEntry] = {}
        for entry in entries or ():
            self.add(entry)

    def __getitem__(self, key: str) -> LocEntry:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"LocTable({list(self._entries.values())!r})"

    def add(self, entry: LocEntry) -> None:
        if entry.key in self._entries:
            raise ValueError(f"duplicate key {entry.key!r}")
        self._entries[entry.key] = entry

    def to_json(self) -> Dict[str, Dict[str, Optional[str]]]:
        return {key: entry.to_json() for key, entry in self._entries.items()}

    @classmethod
    def from_json(cls, payload: Any) -> "LocTable":
        if not isinstance(payload, Mapping):
            raise CatalogFormatError(
                f"catalog must be a JSON object, got {type(payload).__name__}"
            )
        table = cls()
        for key, value in payload.items():
            if not key:
                raise CatalogFormatError("catalog contains an empty key")
            table.add(LocEntry.from_json(key, value))
        return table

    def dumps(self, *, indent: Optional[int] = 2) -> str:
        """Serialise the table, escaping non-ASCII text only when it must.

        Java strings may carry unpaired surrogates, which UTF-8 cannot encode;
        such tables are written with every non-ASCII character escaped.
        """

        payload = self.to_json()
        text = json.dumps(payload, indent=indent, ensure_ascii=False)
        try:
            text.encode("utf-8")
        except UnicodeEncodeError:
            return json.dumps(payload, indent=indent, ensure_ascii=True)
        return text

    @classmethod
    def loads(cls, text: str) -> "LocTable":
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CatalogFormatError(f"catalog is not valid JSON: {exc}") from exc
        return cls.from_json(payload)

    def dump(self, path: Path, *, indent: Optional[int] = 2) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.dumps(indent=indent) + "\n", "utf-8")

    @classmethod
    def load(cls, path: Path) -> "LocTable":
        return cls.loads(path.read_text("utf-8"))
