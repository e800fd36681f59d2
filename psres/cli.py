from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from pydantic import ValidationError

from .config import SimulationInputs
from .exceptions import DataError
from .simulation import run_from_inputs


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def load_inputs(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Input JSON not found: {path}")
    return json.loads(p.read_text())


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Simulate an extreme-weather event and the crew-constrained restoration of a power network."
    )
    parser.add_argument(
        "--input",
        "-i",
        required=True,
        help="Path to simulation input JSON (event, recovery times, crews, solver).",
    )
    parser.add_argument(
        "--output",
        "-o",
        default="resilience_output.json",
        help="Path to write the simulation result JSON.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed; overrides the seed in the input file.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log every status transition and island solve.",
    )

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        raw = load_inputs(args.input)
        if args.seed is not None:
            raw["seed"] = args.seed
        inputs = SimulationInputs.model_validate(raw)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        print(f"Input error: {e}", file=sys.stderr)
        return 2
    except ValidationError as e:
        print("Input validation error:", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    try:
        _, result = run_from_inputs(inputs)
    except DataError as e:
        print(f"Input error: {e}", file=sys.stderr)
        return 2

    Path(args.output).write_text(json.dumps(result.to_dict(), indent=2, default=float))

    # Minimal console summary
    rec = result.recovery
    counts = result.contingencies.counts()
    print(f"Damaged: {len(result.disturbance.damaged)} ({counts}), disconnected: {len(result.disturbance.disconnected)}")
    print(f"Restoration: {rec.iterations} iterations, {rec.total_hours:.1f} h")
    final = rec.summary.iloc[-1]
    print(f"Load served at end: {final['load_served']:.1f} MW, online capacity: {final['gen_online']:.1f} MW")
    if rec.truncated:
        print("\nRestoration was truncated before every component was back in service.", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
