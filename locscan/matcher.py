"""Recognition of ``localize(key, fallback)`` call sites in method bodies.

The matcher does not model the operand stack.  A localize call compiled from
``Loc.localize("Key", "Fallback")`` always takes the shape

    ldc "Key"
    ldc "Fallback"
    invokestatic Loc.localize

so the two instructions immediately before the call carry the arguments.
Anything else in front of the call (a computed key, a concatenated message,
a local variable) means the call site cannot be captured statically and is
reported as an :class:`InvalidCallSite` instead of being guessed at.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from .classfile import ClassFile, MethodRef
from .config import ExtractionConfig
from .errors import BodyDecodeError
from .instruction import Instruction, MethodBody, read_method_body
from .module import CompiledModule

__all__ = [
    "CallCandidate",
    "InvalidCallSite",
    "DecodeFailure",
    "ScanEvent",
    "ScanStatistics",
    "CallSiteMatcher",
]

logger = logging.getLogger(__name__)


def _simple_type_name(type_name: str) -> str:
    return type_name.rsplit("/", 1)[-1]


def _origin(type_name: str, method_name: str, offset: Optional[int] = None) -> str:
    origin = f"{type_name.replace('/', '.')}.{method_name}"
    if offset is not None:
        origin += f"@0x{offset:04X}"
    return origin


@dataclass(frozen=True)
class CallCandidate:
    """A localize call whose key and fallback were both recovered."""

    key: str
    message: Optional[str]
    type_name: str
    method_name: str
    callee: MethodRef
    offset: int

    @property
    def description(self) -> str:
        return f"{_simple_type_name(self.type_name)}.{self.method_name}"

    @property
    def origin(self) -> str:
        return _origin(self.type_name, self.method_name, self.offset)


@dataclass(frozen=True)
class InvalidCallSite:
    """A localize call whose arguments are not two literal loads."""

    type_name: str
    method_name: str
    callee: MethodRef
    offset: int
    reason: str

    @property
    def origin(self) -> str:
        return _origin(self.type_name, self.method_name, self.offset)


@dataclass(frozen=True)
class DecodeFailure:
    """A method body the instruction reader could not decode."""

    type_name: str
    method_name: str
    reason: str

    @property
    def origin(self) -> str:
        return _origin(self.type_name, self.method_name)


ScanEvent = Union[CallCandidate, InvalidCallSite, DecodeFailure]


@dataclass
class ScanStatistics:
    classes: int = 0
    methods: int = 0
    empty_bodies: int = 0
    instructions: int = 0
    localize_calls: int = 0

    def to_json(self) -> dict:
        return {
            "classes": self.classes,
            "methods": self.methods,
            "empty_bodies": self.empty_bodies,
            "instructions": self.instructions,
            "localize_calls": self.localize_calls,
        }


class CallSiteMatcher:
    """Walk every method of a module and emit localize call site events."""

    def __init__(self, config: Optional[ExtractionConfig] = None) -> None:
        self.config = config or ExtractionConfig()
        self.statistics = ScanStatistics()

    def is_localize_call(self, instruction: Instruction) -> bool:
        # Virtual and interface dispatch would need runtime type information
        # to name the target, so only static calls qualify.
        if not instruction.is_static_call:
            return False
        callee = instruction.operand
        return isinstance(callee, MethodRef) and self.config.matches(callee.name)

    def match(
        self, call: Instruction, type_name: str, method_name: str
    ) -> Optional[ScanEvent]:
        """Recover the arguments of ``call`` or explain why they are missing.

        Returns ``None`` when ``call`` is not a localize call at all.
        """

        if not self.is_localize_call(call):
            return None

        def invalid(reason: str) -> InvalidCallSite:
            return InvalidCallSite(type_name, method_name, call.operand, call.offset, reason)

        fallback = call.previous
        key = call.lookback(2)
        if fallback is None or key is None:
            return invalid("call has fewer than two preceding instructions")
        if not fallback.is_literal or not (
            fallback.operand is None or isinstance(fallback.operand, str)
        ):
            return invalid(f"fallback operand is not a literal string ({fallback.mnemonic})")
        if not key.is_string_literal:
            return invalid(f"key operand is not a literal string ({key.mnemonic})")
        if not key.operand:
            return invalid("key is empty")

        return CallCandidate(
            key=key.operand,
            message=fallback.operand,
            type_name=type_name,
            method_name=method_name,
            callee=call.operand,
            offset=call.offset,
        )

    def scan_body(self, body: MethodBody) -> Iterator[ScanEvent]:
        self.statistics.instructions += len(body)
        for instruction in body:
            event = self.match(instruction, body.type_name, body.method_name)
            if event is None:
                continue
            self.statistics.localize_calls += 1
            if isinstance(event, CallCandidate):
                logger.debug(
                    "%s -> %s: %r = %r",
                    event.origin,
                    event.callee,
                    event.key,
                    event.message,
                )
            yield event

    def scan_class(self, class_file: ClassFile) -> Iterator[ScanEvent]:
        self.statistics.classes += 1
        for method in class_file.methods:
            self.statistics.methods += 1
            try:
                body = read_method_body(class_file, method)
            except BodyDecodeError as exc:
                logger.warning(
                    "couldn't decode %s: %s",
                    _origin(class_file.name, method.name),
                    exc,
                )
                yield DecodeFailure(class_file.name, method.name, str(exc))
                continue
            if body.is_empty:
                self.statistics.empty_bodies += 1
                continue
            yield from self.scan_body(body)

    def scan_module(self, module: CompiledModule) -> Iterator[ScanEvent]:
        for class_file in module:
            yield from self.scan_class(class_file)
