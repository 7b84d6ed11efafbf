#!/usr/bin/env python3
"""Extract localizable strings from compiled JVM modules."""

from __future__ import annotations

import argparse
import json
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from locscan import (
    CompiledModule,
    ExtractionConfig,
    ExtractionLog,
    LocScanError,
    extract_module,
)
from locscan.module import find_modules


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "inputs",
        nargs="+",
        type=Path,
        help="Jar archives, class files or class directories to scan",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory receiving <module>_Localizable.json files",
    )
    parser.add_argument(
        "--module-id",
        default=None,
        help="Override the module identity (only valid with a single input)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("locscan.json"),
        help="Optional JSON file with extraction settings",
    )
    parser.add_argument(
        "--ignore-invalid",
        action="store_true",
        default=None,
        help="Log and skip localize calls whose key is not a literal instead of aborting",
    )
    parser.add_argument(
        "--pattern",
        default=None,
        help="Substring a call target must contain (default: Localize)",
    )
    parser.add_argument(
        "--match-case",
        action="store_true",
        default=None,
        help="Match the call target name case-sensitively",
    )
    parser.add_argument(
        "--log",
        type=Path,
        default=None,
        help="Write the call site trace to this file (one section per module)",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Write a JSON summary of every processed module",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    start_time = time.perf_counter()
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = ExtractionConfig.load(args.config)
    except LocScanError as exc:
        raise SystemExit(str(exc)) from exc
    config = config.with_overrides(
        ignore_invalid_functions=args.ignore_invalid,
        function_pattern=args.pattern,
        match_case=args.match_case,
    )

    module_paths = list(find_modules(args.inputs))
    if args.module_id and len(module_paths) != 1:
        raise SystemExit("--module-id requires exactly one module")

    traces: List[str] = []
    summaries = []
    identities: Dict[str, Path] = {}
    try:
        for module_path in module_paths:
            if not module_path.exists():
                raise SystemExit(f"missing input file: {module_path}")
            log = ExtractionLog()
            try:
                module = CompiledModule.load(module_path, identity=args.module_id)
                if module.identity in identities:
                    raise SystemExit(
                        f"{module_path}: module identity {module.identity!r} "
                        f"already used by {identities[module.identity]}"
                    )
                identities[module.identity] = module_path
                result = extract_module(module, config, log=log)
            except LocScanError as exc:
                log.write(f"!! {module_path}: {exc}")
                traces.append(log.render())
                raise SystemExit(f"{module_path}: {exc}") from exc

            output_path = args.output_dir / config.output_name(result.module_id)
            result.table.dump(output_path, indent=config.indent)
            traces.append(log.render())
            summaries.append(result.to_json())
            print(f"{result.module_id}: {log.summary()}")
            print(f"catalog written to {output_path}")
    finally:
        if args.log is not None and traces:
            args.log.write_text("".join(traces), "utf-8")
            print(f"log written to {args.log}")

    if args.summary is not None:
        args.summary.write_text(json.dumps(summaries, indent=2), "utf-8")

    total_time = time.perf_counter() - start_time
    print(f"total execution time: {total_time:.2f}s")


if __name__ == "__main__":
    main()
