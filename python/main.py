#!/usr/bin/env python3
import logging
import math
import os
import sys

from benchmark import convergence, scaling, timed, worker_counts
from monte_carlo import MonteCarloError, estimate, estimate_sequential

MODES = ["estimate", "sequential", "scaling", "converge"]

USAGE = """Usage: {prog} <mode> [args]
  {prog} estimate <samples> <workers> [seed]
  {prog} sequential <samples> [seed]
  {prog} scaling <samples> <max_workers> [repeats]
  {prog} converge <workers> [repeats]"""


def usage(prog):
    print(USAGE.format(prog=prog))
    sys.exit(1)


def print_estimate(total_samples, pi_estimate, elapsed_ms):
    print("Monte Carlo Pi Estimation")
    print(f"Total samples: {total_samples}")
    print(f"Pi estimate: {pi_estimate:.6f}")
    print(f"Error: {math.pi - pi_estimate:.6f}")
    print(f"Estimation took {elapsed_ms:.2f}ms")


def run(argv):
    prog = argv[0] if argv else "main.py"
    if len(argv) < 2 or argv[1].lower() not in MODES:
        usage(prog)

    mode = argv[1].lower()
    args = argv[2:]
    try:
        values = [int(a) for a in args]
    except ValueError:
        print(f"Arguments must be integers: {' '.join(args)}")
        sys.exit(1)

    if mode == "estimate":
        if len(values) not in (2, 3):
            usage(prog)
        samples, workers = values[:2]
        seed = values[2] if len(values) == 3 else None
        pi_estimate, elapsed_ms = timed(estimate, samples, workers, seed=seed)
        print(f"Workers: {workers}")
        print_estimate(samples, pi_estimate, elapsed_ms)

    elif mode == "sequential":
        if len(values) not in (1, 2):
            usage(prog)
        samples = values[0]
        seed = values[1] if len(values) == 2 else None
        pi_estimate, elapsed_ms = timed(estimate_sequential, samples, seed=seed)
        print_estimate(samples, pi_estimate, elapsed_ms)

    elif mode == "scaling":
        if len(values) not in (2, 3):
            usage(prog)
        samples, max_workers = values[:2]
        repeats = values[2] if len(values) == 3 else 3
        if max_workers < 1 or repeats < 1:
            usage(prog)
        rows = scaling(samples, worker_counts(max_workers), repeats=repeats)
        print(f"Scaling over {samples} samples ({repeats} runs each)")
        print(f"{'workers':>8} {'median':>12} {'speedup':>8} {'estimate':>10}")
        for row in rows:
            print(f"{row.workers:>8} {row.median_ms:>10.2f}ms "
                  f"{row.speedup:>7.2f}x {row.estimate:>10.6f}")

    else:  # converge
        if len(values) not in (1, 2):
            usage(prog)
        workers = values[0]
        repeats = values[1] if len(values) == 2 else 30
        if repeats < 2:
            usage(prog)
        rows = convergence(workers, repeats=repeats)
        print(f"Convergence with {workers} workers ({repeats} runs each)")
        print(f"{'samples':>10} {'mean':>10} {'std':>10} {'|error|':>10}")
        for row in rows:
            print(f"{row.n_samples:>10} {row.mean:>10.6f} "
                  f"{row.std:>10.6f} {row.mean_abs_error:>10.6f}")


def log_level():
    """Level named by MONTE_CARLO_LOGLEVEL, WARNING if unset or unknown."""
    name = os.environ.get("MONTE_CARLO_LOGLEVEL", "WARNING").upper()
    if not isinstance(logging.getLevelName(name), int):
        return "WARNING"
    return name


def main(argv=None):
    if argv is None:
        argv = sys.argv
    logging.basicConfig(
        level=log_level(),
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    try:
        run(argv)
    except MonteCarloError as exc:
        print(f"Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
