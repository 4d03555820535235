"""Monte Carlo estimation of pi with a fan-out/reduce over parallel workers.

Points are drawn uniformly from the square [-1, 1] x [-1, 1]; the fraction that
lands inside the unit disk approaches pi / 4. Each worker counts hits over its
own slice of the trials with its own random stream and hands back a single
integer, the counts are summed and scaled.
"""
import logging
import numbers
import os
from concurrent.futures import (
    FIRST_EXCEPTION,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    wait,
)

import numpy as np

logger = logging.getLogger(__name__)

# Points drawn per numpy call inside a worker; bounds worker memory
BATCH_SIZE = 1 << 16

BACKENDS = ("process", "thread")


class MonteCarloError(Exception):
    """Base class for estimator errors."""


class InvalidArgument(MonteCarloError, ValueError):
    """Raised before any work is dispatched when an argument is unusable."""


class WorkerFailure(MonteCarloError, RuntimeError):
    """A worker task terminated abnormally; the whole estimate is discarded."""


def available_parallelism():
    """Number of CPUs this process may run on."""
    try:
        count = len(os.sched_getaffinity(0))
    except AttributeError:
        count = os.cpu_count() or 1
    return max(count, 1)


def _positive_int(name, value):
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidArgument(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidArgument(f"{name} must be positive, got {value}")
    return int(value)


def _seed_sequence(seed):
    # Rebuild a caller's SeedSequence so spawning never advances their copy
    if isinstance(seed, np.random.SeedSequence):
        return np.random.SeedSequence(
            seed.entropy, spawn_key=seed.spawn_key, pool_size=seed.pool_size
        )
    try:
        return np.random.SeedSequence(seed)
    except (TypeError, ValueError) as exc:
        raise InvalidArgument(f"unusable seed {seed!r}: {exc}") from exc


def partition(n_samples, n_workers):
    """Split trials 1..n_samples into n_workers contiguous ranges.

    Every worker gets ``n_samples // n_workers`` trials and the last one also
    takes the remainder, so ``partition(101, 4)`` has sizes 25, 25, 25, 26.
    When there are more workers than trials the leading ranges are empty.
    """
    n_samples = _positive_int("n_samples", n_samples)
    n_workers = _positive_int("n_workers", n_workers)

    samples_per_worker = n_samples // n_workers
    ranges = []
    start = 1
    for i in range(n_workers):
        stop = start + samples_per_worker
        if i == n_workers - 1:
            stop = n_samples + 1
        ranges.append(range(start, stop))
        start = stop
    return ranges


def monte_carlo_worker(args):
    """Count hits for ``samples`` trials drawn from the stream ``seed``.

    Takes a single ``(samples, seed)`` tuple so it can be mapped over a pool.
    """
    samples, seed = args
    rng = np.random.default_rng(seed)
    inside = 0

    remaining = samples
    while remaining > 0:
        size = min(remaining, BATCH_SIZE)
        x = rng.uniform(-1.0, 1.0, size)
        y = rng.uniform(-1.0, 1.0, size)
        inside += int(np.count_nonzero(x * x + y * y <= 1.0))
        remaining -= size

    return inside


def _make_pool(backend, n_workers):
    if backend == "process":
        return ProcessPoolExecutor(max_workers=n_workers)
    return ThreadPoolExecutor(max_workers=n_workers)


def estimate(n_samples, n_workers, seed=None, backend="process"):
    """Estimate pi from ``n_samples`` trials spread over ``n_workers`` workers.

    A pool is created for this call only and joined before returning. Each
    worker draws from an independent child of ``SeedSequence(seed)``; with
    ``seed=None`` fresh entropy is used.

    Raises InvalidArgument before dispatch for bad arguments, and
    WorkerFailure if any worker fails (partial counts are discarded).
    """
    n_samples = _positive_int("n_samples", n_samples)
    n_workers = _positive_int("n_workers", n_workers)
    limit = available_parallelism()
    if n_workers > limit:
        raise InvalidArgument(
            f"n_workers={n_workers} exceeds available parallelism ({limit})"
        )
    if backend not in BACKENDS:
        raise InvalidArgument(
            f"unknown backend {backend!r}, expected one of {', '.join(BACKENDS)}"
        )

    ranges = partition(n_samples, n_workers)
    seeds = _seed_sequence(seed).spawn(n_workers)

    logger.debug(
        "dispatching %d samples to %d %s workers", n_samples, n_workers, backend
    )
    with _make_pool(backend, n_workers) as executor:
        futures = [
            executor.submit(monte_carlo_worker, (len(trials), worker_seed))
            for trials, worker_seed in zip(ranges, seeds)
        ]
        done, not_done = wait(futures, return_when=FIRST_EXCEPTION)

        for i, future in enumerate(futures):
            if future in done and future.exception() is not None:
                for pending in not_done:
                    pending.cancel()
                exc = future.exception()
                logger.warning("worker %d of %d failed: %r", i, n_workers, exc)
                raise WorkerFailure(f"worker {i} failed: {exc!r}") from exc

        results = [future.result() for future in futures]

    total_inside = sum(results)
    return 4.0 * total_inside / n_samples


def estimate_sequential(n_samples, seed=None):
    """Single-worker reference for :func:`estimate`, run in the calling thread.

    Uses the same stream ``estimate(n_samples, 1, seed)`` would give its only
    worker, so for a fixed seed both return the same value.
    """
    n_samples = _positive_int("n_samples", n_samples)
    (worker_seed,) = _seed_sequence(seed).spawn(1)

    total_inside = monte_carlo_worker((n_samples, worker_seed))
    return 4.0 * total_inside / n_samples
