"""
Benchmark script comparing execution backends on real MDSplus fetches.

This script measures the wall time of one pipeline (fetch a catalogue signal,
reduce it to its peak) run over a range of shots with each backend, and checks
that every backend reports the same completed and failed shots.

Usage:
    python benchmark_backends.py [--shot SHOT] [--count N] [--signal NAME]
                                 [--workers N] [--verbose]

Example:
    python benchmark_backends.py --shot 165920 --count 32 --workers 8 --verbose
"""

import argparse
import sys
import time
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent))

from shotsearch import (
    DistributedBackend, Pipeline, SequentialBackend, WorkerPoolBackend, configure_logging,
)
from shotsearch.signals import load_signal_catalog


class PeakOf:
    """Map stage storing max(|data|) of a fetched field as '<name>_peak'."""

    def __init__(self, name):
        self.name = name

    def __call__(self, rec):
        rec.set(f"{self.name}_peak", float(np.max(np.abs(rec[self.name]['data']))))


def build_pipeline(shots, signal_name):
    catalog = load_signal_catalog()
    pipe = Pipeline(shots)
    pipe.add_fetch(signal_name, catalog[signal_name])
    pipe.add_map(PeakOf(signal_name))
    pipe.add_keep([f"{signal_name}_peak"])
    return pipe


def benchmark_backend(pipe, backend, verbose=False):
    """
    Run ``pipe`` once with ``backend``.

    Args:
        pipe: Pipeline to run
        backend: Backend instance
        verbose: If True, print progress messages

    Returns:
        Tuple of (elapsed_time, ResultSet)
    """
    if verbose:
        print(f"  Running {backend!r}...")

    start_time = time.time()
    results = pipe.compute(backend)
    elapsed_time = time.time() - start_time

    if verbose:
        print(f"  Completed in {elapsed_time:.2f} seconds "
              f"({len(results)} completed, {len(results.failures)} failed)")

    return elapsed_time, results


def main():
    parser = argparse.ArgumentParser(
        description='Benchmark shotsearch execution backends'
    )
    parser.add_argument(
        '--shot',
        type=int,
        default=165920,
        help='First shot number (default: 165920)'
    )
    parser.add_argument(
        '--count',
        type=int,
        default=16,
        help='Number of consecutive shots (default: 16)'
    )
    parser.add_argument(
        '--signal',
        type=str,
        default='ipmhd',
        help='Catalogue signal to fetch (default: ipmhd)'
    )
    parser.add_argument(
        '--workers',
        type=int,
        default=4,
        help='Worker count for the parallel backends (default: 4)'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Print verbose progress messages'
    )

    args = parser.parse_args()
    if args.verbose:
        configure_logging('INFO')

    shots = list(range(args.shot, args.shot + args.count))
    pipe = build_pipeline(shots, args.signal)

    backends = {
        'sequential': SequentialBackend(),
        'worker_pool (process)': WorkerPoolBackend(num_workers=args.workers, executor='process'),
        'worker_pool (thread)': WorkerPoolBackend(num_workers=args.workers, executor='thread'),
        'distributed (local)': DistributedBackend(),
    }

    print(f"\nshotsearch Backend Benchmark")
    print(f"Shots: {shots[0]}-{shots[-1]} ({len(shots)})")
    print(f"Signal: {args.signal}")
    print(f"Workers: {args.workers}\n")

    timings = {}
    reference = None
    for label, backend in backends.items():
        elapsed, results = benchmark_backend(pipe, backend, verbose=args.verbose)
        timings[label] = elapsed

        outcome = (set(results.shots()), set(results.failures), set(results.dropped))
        if reference is None:
            reference = outcome
        elif outcome != reference:
            print(f"  WARNING: {label} disagrees with the sequential backend")

    # Print results
    baseline = timings['sequential']
    print(f"\n{'='*70}")
    print(f"BACKEND BENCHMARK RESULTS")
    print(f"{'='*70}")
    for label, elapsed in timings.items():
        speedup = baseline / elapsed if elapsed > 0 else float('inf')
        print(f"  {label:<24} {elapsed:8.2f}s   x{speedup:.1f}")
    print(f"{'='*70}\n")


if __name__ == '__main__':
    main()
