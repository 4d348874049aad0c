"""Configuration-driven chain assembly and sweep runs."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Sequence

import numpy as np

from .. import registry
from ..core import initializers
from ..core.activations import sigmoid
from ..core.params import EdgeParameter, NodeParameter
from ..core.types import Batch, RunResult, UnaryFn
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink, MetricsCapture
from .chain import Chain, total_parameters

logger = logging.getLogger(__name__)

_PRESETS: Dict[str, Mapping[str, object]] = {
    "single-layer-sigmoid": {
        "model": {
            "d_in": 3,
            "hidden": [],
            "d_out": 2,
            "input": "input",
            "output": "sigmoid_l2",
            "weight_init": {"name": "zeros"},
        },
        "data": {"name": "ones"},
        "run": {"batches": 1, "batch_size": 4, "seed": 0, "run_dir": "runs/single-layer-sigmoid"},
    },
    "mlp-sigmoid-l2": {
        "model": {
            "d_in": 4,
            "hidden": [8],
            "d_out": 2,
            "activation": "sigmoid",
            "output": "sigmoid_l2",
            "weight_init": {"name": "normal", "mean": 0.0, "std": 0.5},
        },
        "data": {"name": "synthetic"},
        "run": {"batches": 10, "batch_size": 8, "seed": 0, "run_dir": "runs/mlp-sigmoid-l2"},
    },
    "mlp-tanh-bce": {
        "model": {
            "d_in": 4,
            "hidden": [8, 8],
            "d_out": 1,
            "activation": "tanh",
            "output": "sigmoid_bce",
            "weight_init": {"name": "uniform", "low": -0.5, "high": 0.5},
            "bias_init": {"name": "constant", "value": 0.1},
        },
        "data": {"name": "synthetic"},
        "run": {"batches": 10, "batch_size": 16, "seed": 1, "run_dir": "runs/mlp-tanh-bce"},
    },
}


def presets() -> Mapping[str, Mapping[str, object]]:
    return {name: deepcopy(cfg) for name, cfg in _PRESETS.items()}


def load_preset(name: str) -> Mapping[str, object]:
    try:
        return deepcopy(_PRESETS[name])
    except KeyError as exc:
        available = ", ".join(sorted(_PRESETS))
        raise KeyError(f"Unknown preset {name!r}. Available presets: {available}") from exc


def _normalise(value):
    if isinstance(value, Mapping):
        return {str(k): _normalise(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalise(v) for v in value]
    if isinstance(value, Path):
        return str(value)
    return value


def config_hash(config: Mapping[str, object]) -> str:
    """Return a stable 12-character hash for ``config``."""

    canonical = json.dumps(_normalise(config), sort_keys=True, separators=(",", ":"))
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return digest[:12]


# ----------------------------------------------------------------------
# Chain assembly


def _build_dims(model_cfg: Mapping[str, object]) -> List[int]:
    dims = [int(model_cfg.get("d_in", 1))]
    dims.extend(int(h) for h in model_cfg.get("hidden", []))
    dims.append(int(model_cfg.get("d_out", 1)))
    return dims


def _build_initializer(spec: Mapping[str, object] | None, seed: int) -> UnaryFn | None:
    if spec is None:
        return None
    name = str(spec.get("name", "normal"))
    if name == "normal":
        return initializers.normal(
            float(spec.get("mean", 0.0)), float(spec.get("std", 1.0)), seed=spec.get("seed", seed)
        )
    if name == "uniform":
        return initializers.uniform(
            float(spec.get("low", -1.0)), float(spec.get("high", 1.0)), seed=spec.get("seed", seed)
        )
    if name == "constant":
        return initializers.constant(float(spec.get("value", 0.0)))
    if name == "zeros":
        return initializers.zeros()
    raise ValueError(f"Unknown initialiser: {name}")


def build_chain(
    model_cfg: Mapping[str, object],
    *,
    batch_size: int = 1,
    seed: int = 0,
    callbacks: Sequence[object] | None = None,
) -> Chain:
    """Build a chain from a model config.

    ``model_cfg`` keys: ``d_in``, ``hidden`` (list of widths), ``d_out``,
    ``input`` / ``activation`` / ``output`` node type tags, ``edge`` type tag
    and optional ``weight_init`` / ``bias_init`` initialiser specs.
    """

    dims = _build_dims(model_cfg)
    input_type = str(model_cfg.get("input", "input"))
    hidden_type = str(model_cfg.get("activation", "sigmoid"))
    output_type = str(model_cfg.get("output", "sigmoid_l2"))
    edge_type = str(model_cfg.get("edge", "dense"))

    node_types = [input_type] + [hidden_type] * (len(dims) - 2) + [output_type]
    nodes = []
    for idx, (features, node_type) in enumerate(zip(dims, node_types)):
        param = NodeParameter(idx, f"{node_type}-{idx}", (features, batch_size))
        nodes.append(registry.create_node(node_type, param))

    weight_init = _build_initializer(
        model_cfg.get("weight_init", {"name": "normal"}), seed  # type: ignore[arg-type]
    )
    bias_spec = model_cfg.get("bias_init")
    edges = []
    for idx, (node_in, node_out) in enumerate(zip(nodes[:-1], nodes[1:])):
        param = EdgeParameter(idx, f"{edge_type}-{idx}", (node_in.features,), (node_out.features,))
        edge = registry.create_edge(edge_type, param, node_in, node_out)
        edge.initialize_weight(weight_init)
        edges.append(edge)
        if bias_spec is not None:
            node_out.initialize_bias(_build_initializer(bias_spec, seed + idx + 1))  # type: ignore[arg-type]

    return Chain(edges, callbacks=callbacks)


# ----------------------------------------------------------------------
# Batches


def iter_batches(
    data_cfg: Mapping[str, object], d_in: int, d_out: int, batch_size: int, seed: int
) -> Iterator[Batch]:
    """Yield an endless stream of ``[features x batch]`` batches."""

    name = str(data_cfg.get("name", "synthetic"))
    options = dict(data_cfg.get("options", {}))  # type: ignore[arg-type]
    rng = np.random.default_rng(int(options.get("seed", seed)))
    if name == "ones":
        target_value = float(options.get("target", 1.0))
        while True:
            yield Batch(
                inputs=np.ones((d_in, batch_size)),
                targets=np.full((d_out, batch_size), target_value),
            )
    if name == "synthetic":
        projection = rng.normal(0.0, 1.0, size=(d_in, d_out))
        while True:
            inputs = rng.uniform(-1.0, 1.0, size=(d_in, batch_size))
            yield Batch(inputs=inputs, targets=sigmoid(projection.T @ inputs))
    raise ValueError(f"Unsupported data source: {name}")


# ----------------------------------------------------------------------
# Runs


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    """Run forward/backward sweeps for a config and record per-batch telemetry."""

    model_cfg = dict(config["model"])  # type: ignore[arg-type]
    data_cfg = dict(config.get("data", {"name": "synthetic"}))  # type: ignore[arg-type]
    run_cfg = dict(config.get("run", {}))  # type: ignore[arg-type]

    batches = int(run_cfg.get("batches", 1))
    batch_size = int(run_cfg.get("batch_size", 1))
    seed = int(run_cfg.get("seed", 0))
    run_dir = _resolve_run_dir(run_cfg)
    run_dir.mkdir(parents=True, exist_ok=True)

    jsonl = JsonlSink(run_dir / "metrics.jsonl", seed=seed)
    csv_sink = CsvSink(run_dir / "metrics.csv")
    capture = MetricsCapture()
    chain = build_chain(
        model_cfg, batch_size=batch_size, seed=seed, callbacks=[jsonl, csv_sink, capture]
    )
    dims = [node.features for node in chain.nodes]
    logger.info(
        "Running %d batch(es) of %d through chain %s (%d parameters)",
        batches,
        batch_size,
        dims,
        total_parameters(chain),
    )

    stream = iter_batches(data_cfg, dims[0], dims[-1], batch_size, seed)
    for _ in range(batches):
        batch = next(stream)
        chain.step(batch.inputs, batch.targets)

    final_loss = float(capture.last.get("loss", float("nan")))
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=_normalise(config),
        architecture={
            "dims": dims,
            "nodes": [type(node).__name__ for node in chain.nodes],
            "parameters": total_parameters(chain),
            "config_hash": config_hash(config),
        },
        results={"steps": chain.steps, "final_loss": final_loss},
    )
    return RunResult(
        steps=chain.steps,
        final_loss=final_loss,
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
    )


def _resolve_run_dir(run_cfg: Mapping[str, object]) -> Path:
    if "run_dir" in run_cfg:
        return Path(str(run_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp


__all__ = [
    "build_chain",
    "config_hash",
    "iter_batches",
    "load_preset",
    "presets",
    "run_pipeline",
]
