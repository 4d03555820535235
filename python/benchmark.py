"""Timing harness for the pi estimators: scaling over worker counts and
statistical convergence over sample sizes."""
import logging
import math
import time
from collections import namedtuple

import numpy as np

from monte_carlo import estimate, estimate_sequential

logger = logging.getLogger(__name__)

ScalingRow = namedtuple("ScalingRow", "workers median_ms speedup estimate")
ConvergenceRow = namedtuple("ConvergenceRow", "n_samples mean std mean_abs_error")

SAMPLE_SIZES = (10**4, 10**5, 10**6, 10**7)


def timed(fn, *args, **kwargs):
    """Run ``fn`` once and return ``(result, elapsed_ms)``."""
    start_time = time.time()
    result = fn(*args, **kwargs)
    elapsed = time.time() - start_time
    return result, elapsed * 1000


def worker_counts(max_workers):
    """Powers of two up to ``max_workers``, plus ``max_workers`` itself."""
    if max_workers < 1:
        raise ValueError(f"max_workers must be positive, got {max_workers}")
    counts = []
    n = 1
    while n < max_workers:
        counts.append(n)
        n *= 2
    counts.append(max_workers)
    return counts


def _child_seeds(seed, n):
    if seed is None:
        return [None] * n
    return np.random.SeedSequence(seed).spawn(n)


def scaling(n_samples, counts, repeats=3, seed=None, backend="process"):
    """Time ``estimate`` for each worker count against the sequential baseline.

    Speedup is the median sequential time over the median parallel time.
    """
    if repeats < 1:
        raise ValueError(f"repeats must be at least 1, got {repeats}")
    seeds = _child_seeds(seed, repeats)

    baseline_ms = []
    for i in range(repeats):
        _, ms = timed(estimate_sequential, n_samples, seed=seeds[i])
        baseline_ms.append(ms)
    baseline = float(np.median(baseline_ms))
    logger.info("sequential baseline: %.2fms over %d runs", baseline, repeats)

    rows = []
    for workers in counts:
        times = []
        value = math.nan
        for i in range(repeats):
            value, ms = timed(
                estimate, n_samples, workers, seed=seeds[i], backend=backend
            )
            times.append(ms)
        median_ms = float(np.median(times))
        speedup = baseline / median_ms if median_ms > 0 else math.inf
        rows.append(ScalingRow(workers, median_ms, speedup, value))
    return rows


def convergence(n_workers, sample_sizes=SAMPLE_SIZES, repeats=30, seed=None,
                backend="process"):
    """Repeat ``estimate`` at each sample size and summarise the spread.

    The standard deviation is the sample one (ddof=1), so ``repeats`` must be
    at least 2.
    """
    if repeats < 2:
        raise ValueError(f"repeats must be at least 2, got {repeats}")

    rows = []
    for n_samples in sample_sizes:
        seeds = _child_seeds(seed, repeats)
        values = np.array([
            estimate(n_samples, n_workers, seed=seeds[i], backend=backend)
            for i in range(repeats)
        ])
        rows.append(ConvergenceRow(
            n_samples,
            float(values.mean()),
            float(values.std(ddof=1)),
            float(np.abs(values - math.pi).mean()),
        ))
        logger.debug("n=%d: std=%.6f", n_samples, rows[-1].std)
    return rows
