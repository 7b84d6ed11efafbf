"""Public package exports for the localizable string scanner."""

from .aggregator import EntryAggregator, ExtractionLog
from .classfile import ClassFile, MethodRef
from .config import ExtractionConfig
from .entries import LocEntry, LocTable
from .errors import (
    BodyDecodeError,
    CatalogFormatError,
    ClassFormatError,
    ConfigError,
    ConflictingEntryError,
    ExtractionError,
    LocScanError,
    UnrecoverableKeyError,
)
from .extract import ExtractionResult, export_localizable, extract_module
from .instruction import Instruction, InstructionKind, MethodBody, read_instructions
from .matcher import CallCandidate, CallSiteMatcher, InvalidCallSite
from .module import CompiledModule
from .runtime import Localizer, LocRegistry

__all__ = [
    "EntryAggregator",
    "ExtractionLog",
    "ClassFile",
    "MethodRef",
    "ExtractionConfig",
    "LocEntry",
    "LocTable",
    "BodyDecodeError",
    "CatalogFormatError",
    "ClassFormatError",
    "ConfigError",
    "ConflictingEntryError",
    "ExtractionError",
    "LocScanError",
    "UnrecoverableKeyError",
    "ExtractionResult",
    "export_localizable",
    "extract_module",
    "Instruction",
    "InstructionKind",
    "MethodBody",
    "read_instructions",
    "CallCandidate",
    "CallSiteMatcher",
    "InvalidCallSite",
    "CompiledModule",
    "Localizer",
    "LocRegistry",
]
