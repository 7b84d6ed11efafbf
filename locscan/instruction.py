"""Decoding of JVM method bodies into linked instruction records."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, List, Optional, Tuple

from . import opcodes
from .classfile import ClassFile, ConstantPool, MethodInfo
from .errors import BodyDecodeError, ClassFormatError

__all__ = [
    "InstructionKind",
    "Instruction",
    "MethodBody",
    "read_instructions",
    "read_method_body",
]

# Opcodes that may follow ``wide``: the local variable loads/stores and ``ret``.
_WIDE_TARGETS = frozenset(range(0x15, 0x1A)) | frozenset(range(0x36, 0x3B)) | {0xA9}


class InstructionKind(Enum):
    LITERAL = "literal"
    CALL = "call"
    OTHER = "other"


@dataclass(frozen=True)
class Instruction:
    """One decoded instruction.

    ``previous`` links to the instruction immediately before this one in
    program order.  It only exists to support short lookbacks and is left out
    of comparisons and ``repr`` so long bodies do not render recursively.
    """

    offset: int
    opcode: int
    mnemonic: str
    kind: InstructionKind
    operand: Any = None
    dispatch: Optional[str] = None
    previous: Optional["Instruction"] = field(default=None, repr=False, compare=False)

    @property
    def is_literal(self) -> bool:
        return self.kind is InstructionKind.LITERAL

    @property
    def is_call(self) -> bool:
        return self.kind is InstructionKind.CALL

    @property
    def is_string_literal(self) -> bool:
        return self.is_literal and isinstance(self.operand, str)

    @property
    def is_static_call(self) -> bool:
        return self.is_call and self.dispatch == "static"

    def lookback(self, steps: int) -> Optional["Instruction"]:
        current: Optional[Instruction] = self
        for _ in range(steps):
            if current is None:
                return None
            current = current.previous
        return current

    def format(self) -> str:
        if self.kind is InstructionKind.OTHER:
            operand = self.operand.hex() if isinstance(self.operand, bytes) else ""
        else:
            operand = repr(self.operand) if self.is_literal else str(self.operand)
        return f"{self.offset:04X}: {self.mnemonic:<16} {operand}".rstrip()


@dataclass(frozen=True)
class MethodBody:
    """Ordered, read-only instruction sequence of one method."""

    type_name: str
    method_name: str
    descriptor: str
    instructions: Tuple[Instruction, ...] = ()

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    def __len__(self) -> int:
        return len(self.instructions)

    def __getitem__(self, index: int) -> Instruction:
        return self.instructions[index]

    @property
    def is_empty(self) -> bool:
        return not self.instructions

    def render(self) -> str:
        lines = [f"; {self.type_name}.{self.method_name}{self.descriptor}"]
        lines.extend(instruction.format() for instruction in self.instructions)
        return "\n".join(lines) + "\n"


def _signed(data: bytes) -> int:
    return int.from_bytes(data, "big", signed=True)


def _classify(
    opcode: int, operand: bytes, pool: ConstantPool
) -> Tuple[InstructionKind, Any, Optional[str]]:
    if opcode in opcodes.IMPLICIT_CONSTANTS:
        return InstructionKind.LITERAL, opcodes.IMPLICIT_CONSTANTS[opcode], None
    if opcode in (opcodes.BIPUSH, opcodes.SIPUSH):
        return InstructionKind.LITERAL, _signed(operand), None
    if opcode in opcodes.CONSTANT_POOL_LOADS:
        index = int.from_bytes(operand, "big")
        is_literal, value = pool.loadable(index)
        if not is_literal:
            return InstructionKind.OTHER, operand, None
        return InstructionKind.LITERAL, value, None
    dispatch = opcodes.INVOKE_DISPATCH.get(opcode)
    if dispatch is not None:
        return InstructionKind.CALL, pool.method_ref(int.from_bytes(operand[:2], "big")), dispatch
    return InstructionKind.OTHER, operand, None


def read_instructions(code: bytes, pool: ConstantPool) -> Tuple[Instruction, ...]:
    """Decode ``code`` into a tuple of linked :class:`Instruction` records.

    ``tableswitch`` and ``lookupswitch`` pad their operands to a four byte
    boundary measured from the start of the code array, so the decoder has to
    walk the array from the beginning; there is no way to resynchronise in
    the middle of a body.  Any undefined opcode or truncated operand raises
    :class:`BodyDecodeError`.
    """

    instructions: List[Instruction] = []
    previous: Optional[Instruction] = None
    pos = 0
    length = len(code)

    def take(start: int, size: int) -> bytes:
        nonlocal pos
        if pos + size > length:
            raise BodyDecodeError("truncated instruction operand", offset=start)
        chunk = code[pos : pos + size]
        pos += size
        return chunk

    while pos < length:
        start = pos
        opcode = code[pos]
        pos += 1
        size = opcodes.operand_size(opcode)
        name = opcodes.mnemonic(opcode)
        if size is None or name is None:
            raise BodyDecodeError(f"undefined opcode 0x{opcode:02X}", offset=start)

        if opcode == opcodes.WIDE:
            target = take(start, 1)[0]
            if target == opcodes.IINC:
                operand = take(start, 4)
            elif target in _WIDE_TARGETS:
                operand = take(start, 2)
            else:
                raise BodyDecodeError(
                    f"wide prefix before unsupported opcode 0x{target:02X}", offset=start
                )
            name = f"wide {opcodes.mnemonic(target)}"
        elif opcode in (opcodes.TABLESWITCH, opcodes.LOOKUPSWITCH):
            padding = (4 - pos % 4) % 4
            header = take(start, padding + (12 if opcode == opcodes.TABLESWITCH else 8))
            if opcode == opcodes.TABLESWITCH:
                low = _signed(header[padding + 4 : padding + 8])
                high = _signed(header[padding + 8 : padding + 12])
                count = high - low + 1
                if count < 0:
                    raise BodyDecodeError("tableswitch with high < low", offset=start)
                operand = header[padding:] + take(start, 4 * count)
            else:
                pairs = _signed(header[padding + 4 : padding + 8])
                if pairs < 0:
                    raise BodyDecodeError("lookupswitch with negative pair count", offset=start)
                operand = header[padding:] + take(start, 8 * pairs)
        else:
            operand = take(start, size)

        try:
            kind, value, dispatch = _classify(opcode, operand, pool)
        except ClassFormatError as exc:
            raise BodyDecodeError(str(exc), offset=start) from exc

        instruction = Instruction(
            offset=start,
            opcode=opcode,
            mnemonic=name,
            kind=kind,
            operand=value,
            dispatch=dispatch,
            previous=previous,
        )
        instructions.append(instruction)
        previous = instruction

    return tuple(instructions)


def read_method_body(class_file: ClassFile, method: MethodInfo) -> MethodBody:
    """Return the decoded body of ``method``.

    Methods without a ``Code`` attribute produce an empty body rather than an
    error; a malformed body raises :class:`BodyDecodeError`.
    """

    instructions: Tuple[Instruction, ...] = ()
    if method.has_code:
        instructions = read_instructions(method.code(), class_file.constant_pool)
    return MethodBody(
        type_name=class_file.name,
        method_name=method.name,
        descriptor=method.descriptor,
        instructions=instructions,
    )
