#!/usr/bin/env python3
"""Entry point for the CSB synthetic graph generator.

Run modes:
    gen-dist  extract seed distributions from a saved seed graph
    ba        synthesize a graph with the Barabasi-Albert model
    kro       synthesize a graph with the stochastic Kronecker model
    ver       compute one veracity metric between two saved graphs
    bench     time the analysis workloads on a saved graph

Usage:
    python run_benchmark.py gen-dist seed seed_dists.json
    python run_benchmark.py --output synth ba seed 100 --nodes-per-iter 50
    python run_benchmark.py --output synth kro seed.mtx seed 10
    python run_benchmark.py ver seed synth degree veracity_out
    python run_benchmark.py --config config.json --verbose bench synth
"""

import argparse
import logging
import sys
import time
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Generator

from csb.config import DEFAULT_CONFIG, BenchmarkConfig, config_from_json
from csb.errors import CsbError

log = logging.getLogger(__name__)

VERSION = "0.2.0"


@contextmanager
def stage_timer(name: str) -> Generator[None, None, None]:
    """Context manager that prints stage banners with elapsed time."""
    print(f"\n=== {name} ===")
    log.info("Starting: %s", name)
    t0 = time.monotonic()
    yield
    elapsed = time.monotonic() - t0
    print(f"... done in {elapsed:.1f}s")
    log.info("Completed: %s in %.1fs", name, elapsed)


def build_config(args: argparse.Namespace) -> BenchmarkConfig:
    """Load the JSON config (if any) and apply command line overrides.

    Dataclass validation runs on every replace(), so invalid values fail
    here before the core is invoked.
    """
    config = DEFAULT_CONFIG
    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f"Error: config file not found: {config_path}", file=sys.stderr)
            sys.exit(1)
        config = config_from_json(config_path.read_text())

    run_overrides = {
        "partitions": args.partitions,
        "workers": args.workers,
        "backend": args.backend,
        "data_dir": args.data_dir,
        "checkpoint_dir": args.checkpoint_dir,
        "checkpoint_interval": args.checkpoint_interval,
        "seed": args.seed,
    }
    run_overrides = {k: v for k, v in run_overrides.items() if v is not None}
    config = replace(config, run=replace(config.run, **run_overrides))
    if args.output is not None:
        config = replace(config, output_graph=args.output)

    if args.mode == "ba":
        ba_overrides = {
            "iterations": args.iterations,
            "nodes_per_iter": args.nodes_per_iter,
            "edges_per_node": args.edges_per_node,
            "attachment": args.attachment,
        }
        ba_overrides = {k: v for k, v in ba_overrides.items() if v is not None}
        config = replace(config, ba=replace(config.ba, **ba_overrides))
    elif args.mode == "kro":
        kro_overrides = {"seed_matrix": args.seed_mtx, "depth": args.depth}
        if args.method is not None:
            kro_overrides["method"] = args.method
        config = replace(config, kronecker=replace(config.kronecker, **kro_overrides))
    elif args.mode == "ver":
        config = replace(
            config, veracity=replace(config.veracity, output_dir=args.save_dir)
        )

    if args.mode in ("ba", "kro"):
        config = replace(
            config,
            seed_graph=args.seed_graph,
            generate_properties=config.generate_properties and not args.no_prop,
        )
    return config


def run_gen_dist(args: argparse.Namespace, config: BenchmarkConfig) -> None:
    from csb.distributions import extract_distributions, save_distributions
    from csb.graph import get_persistence

    persistence = get_persistence(config.run.backend, config.run.data_dir)
    with stage_timer("Load Seed Graph"):
        seed = persistence.load_graph(args.seed_graph)
        print(f"Vertices #: {seed.num_vertices}, Edges #: {seed.num_edges}")

    with stage_timer("Distribution Extraction"):
        dists = extract_distributions(
            seed, partitions=config.run.partitions, workers=config.run.workers
        )
        save_distributions(dists, args.dist_file, overwrite=True)
        print(f"Distributions saved to {args.dist_file}")


def run_synth(args: argparse.Namespace, config: BenchmarkConfig) -> None:
    from csb.distributions import extract_distributions, load_distributions
    from csb.graph import get_persistence
    from csb.synth import make_synthesizer
    from csb.veracity import evaluate_all

    persistence = get_persistence(config.run.backend, config.run.data_dir)

    # Validates generator parameters (and loads the seed matrix) first
    synthesizer = make_synthesizer(args.mode, config)

    with stage_timer("Load Seed Graph"):
        seed = persistence.load_graph(config.seed_graph)
        print(f"Vertices #: {seed.num_vertices}, Edges #: {seed.num_edges}")

    with stage_timer("Seed Distributions"):
        if args.dists:
            seed_dists = load_distributions(args.dists)
        else:
            seed_dists = extract_distributions(
                seed, partitions=config.run.partitions, workers=config.run.workers
            )

    with stage_timer("Synthesis"):
        synth = synthesizer.synthesize(seed, seed_dists, config.generate_properties)
        print(f"Vertices #: {synth.num_vertices}, Edges #: {synth.num_edges}")

    with stage_timer("Save Synthetic Graph"):
        persistence.save_graph(synth, config.output_graph, overwrite=True)

    with stage_timer("Veracity Metrics"):
        results = evaluate_all(
            seed, synth,
            config=config.veracity,
            partitions=config.run.partitions,
            workers=config.run.workers,
        )
        for metric, result in results.items():
            print(f"\t{metric} veracity: {result.score:.6f} [{result.elapsed:.3f} s]")


def run_ver(args: argparse.Namespace, config: BenchmarkConfig) -> None:
    from csb.graph import get_persistence
    from csb.veracity import evaluate

    persistence = get_persistence(config.run.backend, config.run.data_dir)
    seed = persistence.load_graph(args.seed_graph)
    synth = persistence.load_graph(args.synth_graph)

    with stage_timer(f"Veracity: {args.metric}"):
        result = evaluate(
            args.metric, seed, synth,
            save_as_csv=True,
            overwrite=True,
            config=config.veracity,
            partitions=config.run.partitions,
            workers=config.run.workers,
        )
        print(f"\t{args.metric} veracity: {result.score:.6f} [{result.elapsed:.3f} s]")


def run_bench(args: argparse.Namespace, config: BenchmarkConfig) -> None:
    from csb.graph import get_persistence
    from csb.workload import run_workloads

    persistence = get_persistence(config.run.backend, config.run.data_dir)
    graph = persistence.load_graph(args.graph)
    with stage_timer(f"Workloads: {args.graph}"):
        timings = run_workloads(graph, args.workload)
        for name, elapsed in timings.items():
            print(f"\t{name}: {elapsed:.3f} s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="run_benchmark.py",
        description=f"CSB {VERSION}: a synthetic graph generator for the busy scientist.",
    )
    parser.add_argument("--config", type=str, help="Path to benchmark config JSON file")
    parser.add_argument("--output", type=str, help="Name to save the output graph under")
    parser.add_argument("--partitions", type=int, help="Number of data partitions")
    parser.add_argument("--workers", type=int, help="Worker threads processing partitions")
    parser.add_argument("--backend", type=str, help="Persistence backend (fs or text)")
    parser.add_argument("--data-dir", type=str, help="Root directory of the backend")
    parser.add_argument(
        "--checkpoint-dir", type=str,
        help="Directory for checkpointing intermediate results",
    )
    parser.add_argument(
        "--checkpoint-interval", type=int,
        help="Iterations between each checkpoint; only used with --checkpoint-dir",
    )
    parser.add_argument("--seed", type=int, help="Master random seed")
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG-level logging")

    sub = parser.add_subparsers(dest="mode", required=True)

    gen = sub.add_parser("gen-dist", help="Generate distribution data for a seed graph")
    gen.add_argument("seed_graph", help="Name of the saved seed graph")
    gen.add_argument("dist_file", help="Output JSON file for the distributions")

    ba = sub.add_parser("ba", help="Synthesize a graph with the Barabasi-Albert model")
    ba.add_argument("seed_graph", help="Name of the saved seed graph")
    ba.add_argument("iterations", type=int, help="Number of iterations")
    ba.add_argument("--no-prop", action="store_true", help="Do not generate properties")
    ba.add_argument("--nodes-per-iter", type=int, help="Nodes added per iteration")
    ba.add_argument("--edges-per-node", type=int, help="Edges attached by each new node")
    ba.add_argument("--attachment", choices=["mean", "sample"], help="Edge count policy")
    ba.add_argument("--dists", type=str, help="Distribution JSON from gen-dist")

    kro = sub.add_parser("kro", help="Synthesize a graph with the stochastic Kronecker model")
    kro.add_argument("seed_mtx", help="Space-separated seed matrix file")
    kro.add_argument("seed_graph", help="Name of the saved seed graph")
    kro.add_argument("depth", type=int, help="Number of Kronecker iterations")
    kro.add_argument("--no-prop", action="store_true", help="Do not generate properties")
    kro.add_argument("--method", choices=["exact", "descent"], help="Edge sampler")
    kro.add_argument("--dists", type=str, help="Distribution JSON from gen-dist")

    ver = sub.add_parser("ver", help="Compute a veracity metric between two graphs")
    ver.add_argument("seed_graph", help="Name of the seed graph")
    ver.add_argument("synth_graph", help="Name of the synthetic graph")
    ver.add_argument("metric", help="degree, inDegree, outDegree or pageRank")
    ver.add_argument("save_dir", help="Directory to save the metric distributions")

    bench = sub.add_parser("bench", help="Time the analysis workloads on a graph")
    bench.add_argument("graph", help="Name of the saved graph")
    bench.add_argument("--workload", action="append", help="Workload to run (repeatable)")

    return parser


RUNNERS = {
    "gen-dist": run_gen_dist,
    "ba": run_synth,
    "kro": run_synth,
    "ver": run_ver,
    "bench": run_bench,
}


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = build_config(args)
        RUNNERS[args.mode](args, config)
    except CsbError as exc:
        log.error("%s failed: %s", args.mode, exc)
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
