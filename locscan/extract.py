"""High level extraction entry points."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .aggregator import EntryAggregator, ExtractionLog
from .config import ExtractionConfig
from .entries import LocTable
from .matcher import CallSiteMatcher, ScanStatistics
from .module import CompiledModule

__all__ = ["ExtractionResult", "extract_module", "export_localizable"]

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    module_id: str
    table: LocTable
    log: ExtractionLog
    statistics: ScanStatistics

    def to_json(self) -> dict:
        return {
            "module": self.module_id,
            "entries": len(self.table),
            "duplicates": self.log.duplicates,
            "skipped": self.log.skipped,
            "decode_failures": self.log.decode_failures,
            "statistics": self.statistics.to_json(),
        }


def extract_module(
    module: CompiledModule,
    config: Optional[ExtractionConfig] = None,
    *,
    log: Optional[ExtractionLog] = None,
) -> ExtractionResult:
    """Scan ``module`` and build its translation table.

    Errors raised by the aggregator propagate unchanged; no table is
    returned for a module whose extraction failed.  Passing ``log`` lets the
    caller keep the call site trace written up to such a failure.
    """

    config = config or ExtractionConfig()
    matcher = CallSiteMatcher(config)
    aggregator = EntryAggregator(
        ignore_invalid_functions=config.ignore_invalid_functions, log=log
    )
    aggregator.log.write(f"; module {module.identity}")
    aggregator.consume(matcher.scan_module(module))
    table = aggregator.finish()
    logger.info("extracted %s: %s", module.identity, aggregator.log.summary())
    return ExtractionResult(module.identity, table, aggregator.log, matcher.statistics)


def export_localizable(
    module: CompiledModule,
    output_dir: Path,
    config: Optional[ExtractionConfig] = None,
) -> Path:
    """Extract ``module`` and write ``<module>_Localizable.json`` to ``output_dir``."""

    config = config or ExtractionConfig()
    result = extract_module(module, config)
    output_path = output_dir / config.output_name(result.module_id)
    result.table.dump(output_path, indent=config.indent)
    return output_path
