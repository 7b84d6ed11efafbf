"""Parsers for JVM ``.class`` files.

Only the parts of the format the scanner needs are materialised: the
constant pool, the class name and the declared methods together with the raw
bytes of their ``Code`` attribute.  Fields and all other attributes are
skipped using their declared lengths, which keeps the parser tolerant of
newer class file versions that add attributes it does not know about.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import BodyDecodeError, ClassFormatError

__all__ = [
    "CLASS_MAGIC",
    "ClassConstant",
    "MethodRef",
    "ConstantPool",
    "MethodInfo",
    "ClassFile",
    "decode_modified_utf8",
]

CLASS_MAGIC = 0xCAFEBABE

ACC_ABSTRACT = 0x0400

TAG_UTF8 = 1
TAG_INTEGER = 3
TAG_FLOAT = 4
TAG_LONG = 5
TAG_DOUBLE = 6
TAG_CLASS = 7
TAG_STRING = 8
TAG_FIELDREF = 9
TAG_METHODREF = 10
TAG_INTERFACE_METHODREF = 11
TAG_NAME_AND_TYPE = 12
TAG_METHOD_HANDLE = 15
TAG_METHOD_TYPE = 16
TAG_DYNAMIC = 17
TAG_INVOKE_DYNAMIC = 18
TAG_MODULE = 19
TAG_PACKAGE = 20

# Payload layout per tag: number of bytes for fixed-size entries.
_FIXED_SIZES: Dict[int, int] = {
    TAG_INTEGER: 4,
    TAG_FLOAT: 4,
    TAG_LONG: 8,
    TAG_DOUBLE: 8,
    TAG_CLASS: 2,
    TAG_STRING: 2,
    TAG_FIELDREF: 4,
    TAG_METHODREF: 4,
    TAG_INTERFACE_METHODREF: 4,
    TAG_NAME_AND_TYPE: 4,
    TAG_METHOD_HANDLE: 3,
    TAG_METHOD_TYPE: 2,
    TAG_DYNAMIC: 4,
    TAG_INVOKE_DYNAMIC: 4,
    TAG_MODULE: 2,
    TAG_PACKAGE: 2,
}


def decode_modified_utf8(data: bytes) -> str:
    """Decode the "modified UTF-8" flavour used by class file constants.

    NUL is stored as ``C0 80`` and supplementary characters as two encoded
    surrogates.  Lone surrogates are legal Java strings and are preserved.
    """

    text = data.replace(b"\xc0\x80", b"\x00").decode("utf-8", "surrogatepass")
    return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "surrogatepass")


@dataclass(frozen=True)
class ClassConstant:
    """Value pushed by ``ldc`` of a ``CONSTANT_Class`` entry."""

    name: str

    def __str__(self) -> str:  # pragma: no cover - formatting helper
        return f"{self.name.replace('/', '.')}.class"


@dataclass(frozen=True)
class MethodRef:
    """Symbolic reference to the target of an invoke instruction."""

    owner: Optional[str]
    name: str
    descriptor: str
    interface: bool = False

    def __str__(self) -> str:
        owner = self.owner.replace("/", ".") if self.owner else "<dynamic>"
        return f"{owner}.{self.name}{self.descriptor}"


class _Reader:
    """Big-endian cursor over a byte buffer that reports truncation."""

    def __init__(self, data: bytes, *, what: str = "class file") -> None:
        self.data = data
        self.pos = 0
        self.what = what

    def take(self, size: int) -> bytes:
        end = self.pos + size
        if size < 0 or end > len(self.data):
            raise ClassFormatError(
                f"truncated {self.what}: needed {size} byte(s) at offset {self.pos}"
            )
        chunk = self.data[self.pos : end]
        self.pos = end
        return chunk

    def u1(self) -> int:
        return self.take(1)[0]

    def u2(self) -> int:
        return int.from_bytes(self.take(2), "big")

    def u4(self) -> int:
        return int.from_bytes(self.take(4), "big")

    def skip_attributes(self) -> None:
        for _ in range(self.u2()):
            self.u2()
            self.take(self.u4())


class ConstantPool:
    """Resolved view over the ``constant_pool`` table of a class file."""

    def __init__(self, entries: List[Optional[Tuple[int, Any]]]) -> None:
        # Index 0 and the second slot of long/double entries stay ``None``.
        self._entries = entries

    @classmethod
    def parse(cls, reader: _Reader) -> "ConstantPool":
        count = reader.u2()
        entries: List[Optional[Tuple[int, Any]]] = [None] * max(count, 1)
        index = 1
        while index < count:
            tag = reader.u1()
            if tag == TAG_UTF8:
                raw = reader.take(reader.u2())
                try:
                    value: Any = decode_modified_utf8(raw)
                except UnicodeDecodeError as exc:
                    raise ClassFormatError(
                        f"constant #{index} is not valid modified UTF-8"
                    ) from exc
            elif tag in _FIXED_SIZES:
                value = reader.take(_FIXED_SIZES[tag])
            else:
                raise ClassFormatError(f"unknown constant pool tag {tag} at #{index}")
            entries[index] = (tag, value)
            index += 2 if tag in (TAG_LONG, TAG_DOUBLE) else 1
        return cls(entries)

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._entries)

    def _entry(self, index: int, *expected: int) -> Tuple[int, Any]:
        if not 0 < index < len(self._entries) or self._entries[index] is None:
            raise ClassFormatError(f"invalid constant pool index #{index}")
        tag, value = self._entries[index]  # type: ignore[misc]
        if expected and tag not in expected:
            raise ClassFormatError(
                f"constant #{index} has tag {tag}, expected one of {sorted(expected)}"
            )
        return tag, value

    def utf8(self, index: int) -> str:
        return self._entry(index, TAG_UTF8)[1]

    def class_name(self, index: int) -> str:
        _, raw = self._entry(index, TAG_CLASS)
        return self.utf8(int.from_bytes(raw, "big"))

    def name_and_type(self, index: int) -> Tuple[str, str]:
        _, raw = self._entry(index, TAG_NAME_AND_TYPE)
        name_index = int.from_bytes(raw[:2], "big")
        descriptor_index = int.from_bytes(raw[2:], "big")
        return self.utf8(name_index), self.utf8(descriptor_index)

    def method_ref(self, index: int) -> MethodRef:
        tag, raw = self._entry(
            index, TAG_METHODREF, TAG_INTERFACE_METHODREF, TAG_INVOKE_DYNAMIC
        )
        first = int.from_bytes(raw[:2], "big")
        name, descriptor = self.name_and_type(int.from_bytes(raw[2:], "big"))
        if tag == TAG_INVOKE_DYNAMIC:
            # ``first`` indexes the bootstrap method table, not a class.
            return MethodRef(None, name, descriptor)
        return MethodRef(
            self.class_name(first),
            name,
            descriptor,
            interface=tag == TAG_INTERFACE_METHODREF,
        )

    def loadable(self, index: int) -> Tuple[bool, Any]:
        """Resolve an ``ldc`` operand.

        Returns ``(True, value)`` for constants that are plain literals and
        ``(False, None)`` for method handles, method types and dynamically
        computed constants, which are not literals in the scanner's sense.
        """

        tag, raw = self._entry(index)
        if tag == TAG_STRING:
            return True, self.utf8(int.from_bytes(raw, "big"))
        if tag == TAG_INTEGER:
            return True, int.from_bytes(raw, "big", signed=True)
        if tag == TAG_LONG:
            return True, int.from_bytes(raw, "big", signed=True)
        if tag == TAG_FLOAT:
            return True, struct.unpack(">f", raw)[0]
        if tag == TAG_DOUBLE:
            return True, struct.unpack(">d", raw)[0]
        if tag == TAG_CLASS:
            return True, ClassConstant(self.utf8(int.from_bytes(raw, "big")))
        if tag in (TAG_METHOD_HANDLE, TAG_METHOD_TYPE, TAG_DYNAMIC):
            return False, None
        raise ClassFormatError(f"constant #{index} with tag {tag} is not loadable")


@dataclass(frozen=True)
class MethodInfo:
    """A method declared directly on a class."""

    access_flags: int
    name: str
    descriptor: str
    code_attribute: Optional[bytes] = field(default=None, repr=False)

    @property
    def is_abstract(self) -> bool:
        return bool(self.access_flags & ACC_ABSTRACT)

    @property
    def is_constructor(self) -> bool:
        return self.name == "<init>"

    @property
    def has_code(self) -> bool:
        return self.code_attribute is not None

    def code(self) -> bytes:
        """Return the bytecode array of the ``Code`` attribute.

        Methods without a body (abstract, native) return ``b""``.  A
        malformed attribute raises :class:`BodyDecodeError` so callers can
        skip just this method.
        """

        if self.code_attribute is None:
            return b""
        reader = _Reader(self.code_attribute, what=f"Code attribute of {self.name}")
        try:
            reader.u2()  # max_stack
            reader.u2()  # max_locals
            return reader.take(reader.u4())
        except ClassFormatError as exc:
            raise BodyDecodeError(str(exc)) from exc


@dataclass
class ClassFile:
    """Parsed representation of a single ``.class`` file."""

    name: str
    super_name: Optional[str]
    access_flags: int
    major_version: int
    minor_version: int
    constant_pool: ConstantPool = field(repr=False)
    methods: List[MethodInfo] = field(default_factory=list)
    source: Optional[str] = None

    @property
    def simple_name(self) -> str:
        return self.name.rsplit("/", 1)[-1]

    @property
    def dotted_name(self) -> str:
        return self.name.replace("/", ".")

    @classmethod
    def parse(cls, data: bytes, *, source: Optional[str] = None) -> "ClassFile":
        reader = _Reader(data)
        try:
            magic = reader.u4()
        except ClassFormatError as exc:
            raise ClassFormatError(f"{source or 'input'} is too short to be a class file") from exc
        if magic != CLASS_MAGIC:
            raise ClassFormatError(
                f"{source or 'input'} is not a class file (magic 0x{magic:08X})"
            )

        minor = reader.u2()
        major = reader.u2()
        pool = ConstantPool.parse(reader)
        access_flags = reader.u2()
        name = pool.class_name(reader.u2())
        super_index = reader.u2()
        super_name = pool.class_name(super_index) if super_index else None

        reader.take(2 * reader.u2())  # interfaces

        for _ in range(reader.u2()):  # fields
            reader.take(6)
            reader.skip_attributes()

        methods: List[MethodInfo] = []
        for _ in range(reader.u2()):
            flags = reader.u2()
            method_name = pool.utf8(reader.u2())
            descriptor = pool.utf8(reader.u2())
            code_attribute: Optional[bytes] = None
            for _ in range(reader.u2()):
                attribute_name = pool.utf8(reader.u2())
                payload = reader.take(reader.u4())
                if attribute_name == "Code":
                    code_attribute = payload
            methods.append(MethodInfo(flags, method_name, descriptor, code_attribute))

        return cls(
            name=name,
            super_name=super_name,
            access_flags=access_flags,
            major_version=major,
            minor_version=minor,
            constant_pool=pool,
            methods=methods,
            source=source,
        )
