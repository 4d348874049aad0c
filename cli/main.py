"""Command line entry point for IntellGraph chain runs."""

from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Iterable

from intellgraph.training import pipelines


def _format_result(result, run_id: str) -> str:
    payload = {
        "steps": result.steps,
        "final_loss": result.final_loss,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
        "run_id": run_id,
    }
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="mlp-sigmoid-l2",
        help="Preset configuration to execute",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON config override")
    parser.add_argument("--batches", type=int, help="Number of forward/backward sweeps")
    parser.add_argument("--batch-size", type=int, help="Columns per batch")
    parser.add_argument("--seed", type=int, help="Seed for weight init and synthetic data")
    parser.add_argument("--run-dir", type=Path, help="Directory receiving metrics and manifest")
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "WARNING"),
        help="Logging level (DEBUG, INFO, WARNING, ...)",
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    return parser.parse_args(argv)


def configure_logging(level_name: str) -> None:
    level = getattr(logging, str(level_name).upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("intellgraph").setLevel(level)


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = json.loads(args.config.read_text())
        config = _merge(config, override)

    run_cfg = config.setdefault("run", {})
    if args.batches is not None:
        run_cfg["batches"] = int(args.batches)
    if args.batch_size is not None:
        run_cfg["batch_size"] = int(args.batch_size)
    if args.seed is not None:
        run_cfg["seed"] = int(args.seed)
    if args.run_dir is not None:
        run_cfg["run_dir"] = str(args.run_dir)

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    result = pipelines.run_pipeline(config)
    print(_format_result(result, run_id=pipelines.config_hash(config)))


if __name__ == "__main__":
    main()
