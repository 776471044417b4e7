"""Command-line generator for synthetic switching-dynamics datasets."""

from __future__ import annotations

import argparse
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Optional, Sequence

from snlds.generate import (
    GenConfig,
    ImageObservation,
    SimulatorKind,
    VectorObservation,
    generate_shard,
    generate_train_test,
)
from snlds.io import MANIFEST_SCHEMA_VERSION, Manifest, save_train_test

__all__ = ["build_parser", "main"]


def _package_version() -> str:
    try:
        return version("snlds")
    except PackageNotFoundError:
        return "0.1.0"


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the ``snlds-gen`` command."""
    parser = argparse.ArgumentParser(
        prog="snlds-gen", description="Generate synthetic SDS data"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_package_version()}")
    parser.add_argument("--seed", type=int, default=24)
    parser.add_argument("--dim-obs", type=int, default=2)
    parser.add_argument("--dim-latent", type=int, default=2)
    parser.add_argument("--num-states", type=int, default=3)
    parser.add_argument("--seq-length", type=int, default=200)
    parser.add_argument("--num-samples", type=int, default=5000)
    parser.add_argument("--sparsity-prob", type=float, default=0.0)
    parser.add_argument(
        "--data-type", choices=[kind.value for kind in SimulatorKind], default="cosine"
    )
    parser.add_argument("--degree", type=int, default=3)
    parser.add_argument(
        "--res",
        type=int,
        default=None,
        help="frame side length for --observation image (dim-obs becomes 3*res*res)",
    )
    parser.add_argument("--observation", choices=["vector", "image"], default="vector")
    parser.add_argument(
        "--num-shards",
        type=int,
        default=1,
        help="split generation into N shards written to <out>/shard_000/, ...",
    )
    parser.add_argument(
        "--eval-fraction",
        type=float,
        default=0.0,
        help="fraction of num-samples generated as an extra held-out eval split",
    )
    parser.add_argument("-o", "--out", type=Path, default=Path("./snlds-gen-out"))
    return parser


def _config_from_args(args: argparse.Namespace) -> GenConfig:
    if args.observation == "vector":
        if args.res is not None:
            raise ValueError("--res is only valid with --observation image")
        observation = VectorObservation()
        dim_obs, dim_latent = args.dim_obs, args.dim_latent
    else:
        if args.res is None:
            raise ValueError("--observation image requires --res (e.g. 16, 32)")
        if args.res <= 0:
            raise ValueError("--res must be > 0")
        observation = ImageObservation(res=args.res)
        dim_obs, dim_latent = args.res * args.res * 3, 2

    return GenConfig(
        seed=args.seed,
        num_states=args.num_states,
        dim_obs=dim_obs,
        dim_latent=dim_latent,
        seq_length=args.seq_length,
        num_samples=args.num_samples,
        sparsity_prob=args.sparsity_prob,
        kind=SimulatorKind(args.data_type),
        poly_degree=args.degree,
        observation=observation,
        eval_fraction=args.eval_fraction,
    )


def _manifest(cfg: GenConfig, num_samples: int, num_eval: int) -> Manifest:
    return Manifest(
        schema_version=MANIFEST_SCHEMA_VERSION,
        seed=cfg.seed,
        num_states=cfg.num_states,
        dim_obs=cfg.dim_obs,
        dim_latent=cfg.dim_latent,
        seq_length=cfg.seq_length,
        num_samples=num_samples,
        sparsity_prob=cfg.sparsity_prob,
        data_type=cfg.kind.value,
        degree=cfg.poly_degree if cfg.kind is SimulatorKind.POLY else None,
        init_noise_std=cfg.init_noise_std,
        init_mean_std=cfg.init_mean_std,
        transition_step_var=cfg.transition_step_var,
        emission_hidden_dim=cfg.emission_hidden_dim,
        num_samples_eval=num_eval,
    )


def _run(args: argparse.Namespace) -> None:
    cfg = _config_from_args(args)
    out: Path = args.out

    if args.num_shards <= 1:
        tt = generate_train_test(cfg)
        n_train, n_test, n_eval = (
            tt.obs_train.shape[0],
            tt.obs_test.shape[0],
            tt.obs_eval.shape[0],
        )
        save_train_test(out, tt, _manifest(cfg, cfg.num_samples, n_eval))
        print(
            f"Wrote sequences.safetensors + metadata.json under {out} "
            f"(train={n_train}, test={n_test}, eval={n_eval})",
            file=sys.stderr,
        )
        return

    for shard in range(args.num_shards):
        print(f"Generating shard {shard + 1}/{args.num_shards} ...", file=sys.stderr)
        tt = generate_shard(cfg, shard, args.num_shards)
        n_train, n_test, n_eval = (
            tt.obs_train.shape[0],
            tt.obs_test.shape[0],
            tt.obs_eval.shape[0],
        )
        shard_dir = out / f"shard_{shard:03}"
        save_train_test(shard_dir, tt, _manifest(cfg, n_train, n_eval))
        print(
            f"  -> {shard_dir} ({n_train} train, {n_test} test, {n_eval} eval)",
            file=sys.stderr,
        )
    print(f"Wrote {args.num_shards} shards under {out}", file=sys.stderr)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point; returns the process exit status."""
    args = build_parser().parse_args(argv)
    try:
        _run(args)
    except (ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())