"""Loading of compiled JVM modules (``.jar`` archives or class directories)."""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from .classfile import ClassFile
from .errors import ClassFormatError

__all__ = ["CompiledModule", "find_modules"]

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = frozenset({".jar", ".zip", ".war"})


def _is_class_entry(name: str) -> bool:
    # Multi-release jars duplicate classes below META-INF/versions.
    return name.endswith(".class") and not name.startswith("META-INF/")


@dataclass
class CompiledModule:
    """A named collection of parsed classes.

    The identity is the name runtime lookups are partitioned by; it defaults
    to the archive stem, the directory name or the class file stem.
    """

    identity: str
    classes: List[ClassFile] = field(default_factory=list)
    path: Optional[Path] = None

    def __iter__(self) -> Iterator[ClassFile]:
        return iter(self.classes)

    def __len__(self) -> int:
        return len(self.classes)

    @property
    def method_count(self) -> int:
        return sum(len(class_file.methods) for class_file in self.classes)

    @classmethod
    def from_bytes(
        cls, identity: str, blobs: Iterable[Tuple[str, bytes]]
    ) -> "CompiledModule":
        """Build a module from ``(entry name, class bytes)`` pairs."""

        classes: List[ClassFile] = []
        for name, data in sorted(blobs, key=lambda item: item[0]):
            try:
                classes.append(ClassFile.parse(data, source=name))
            except ClassFormatError as exc:
                raise ClassFormatError(f"{identity}: {name}: {exc}") from exc
        return cls(identity, classes)

    @classmethod
    def load(cls, path: Path, *, identity: Optional[str] = None) -> "CompiledModule":
        if not path.exists():
            raise FileNotFoundError(path)

        if path.is_dir():
            blobs = [
                (entry.relative_to(path).as_posix(), entry.read_bytes())
                for entry in path.rglob("*.class")
                if _is_class_entry(entry.relative_to(path).as_posix())
            ]
            # "." has no name of its own.
            default_identity = path.resolve().name
        elif path.suffix.lower() in ARCHIVE_SUFFIXES:
            try:
                with zipfile.ZipFile(path) as archive:
                    blobs = [
                        (info.filename, archive.read(info))
                        for info in archive.infolist()
                        if not info.is_dir() and _is_class_entry(info.filename)
                    ]
            except zipfile.BadZipFile as exc:
                raise ClassFormatError(f"{path} is not a valid archive") from exc
            default_identity = path.stem
        else:
            blobs = [(path.name, path.read_bytes())]
            default_identity = path.stem

        resolved_identity = identity or default_identity
        if not resolved_identity:
            raise ClassFormatError(f"cannot derive a module identity from {path}")
        module = cls.from_bytes(resolved_identity, blobs)
        module.path = path
        logger.debug(
            "loaded module %s from %s: %d classes, %d methods",
            module.identity,
            path,
            len(module.classes),
            module.method_count,
        )
        return module


def find_modules(inputs: Iterable[Path]) -> Iterator[Path]:
    """Expand CLI inputs into module paths.

    Archives and class files are used as given.  A directory that directly
    contains archives is treated as a folder of modules; any other directory
    is a class tree and therefore a module of its own.
    """

    for path in inputs:
        if path.is_dir():
            archives = sorted(
                child
                for child in path.iterdir()
                if child.is_file() and child.suffix.lower() in ARCHIVE_SUFFIXES
            )
            if archives:
                yield from archives
            else:
                yield path
        else:
            yield path
