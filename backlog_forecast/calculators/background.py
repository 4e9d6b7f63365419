"""Run forecasts off the calling thread.

`SimulationWorker` owns one background thread. Every submission gets a
`SimulationHandle`; submitting again supersedes the previous handle, which
is rejected with `SimulationAborted` straight away. A superseded simulation
still queued is cancelled; one already running is not interrupted, but its
result is dropped when it finishes. Only the
newest submission ever delivers a result.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Callable, Optional, Union

import numpy as np

from .forecast_models import ForecastRequest, ForecastResult, MilestoneForecastResult
from .monte_carlo_simulator import run_milestone_forecast, run_multi_distribution_forecast

logger = logging.getLogger(__name__)

SimulationResult = Union[ForecastResult, MilestoneForecastResult]


class SimulationAborted(Exception):
    """
    Raised by a handle whose simulation was superseded or whose worker
    shut down. Callers normally ignore it.
    """


def run_forecast_request(
    request: ForecastRequest, random_seed: Optional[int] = None
) -> SimulationResult:
    """Run the milestone variant when the request has thresholds, the
    whole-backlog forecast otherwise."""
    rng = np.random.default_rng(random_seed)
    if request.thresholds:
        return run_milestone_forecast(request, request.thresholds, rng)
    return run_multi_distribution_forecast(request, rng)


class SimulationHandle:
    """Pending result of one submission."""

    def __init__(self, generation: int):
        self.generation = generation
        self._future: Future = Future()
        # Executor future running this submission
        self._work: Optional[Future] = None

    def result(self, timeout: Optional[float] = None) -> SimulationResult:
        """Block until the simulation delivers.

        Raises SimulationAborted if the handle was superseded or the worker
        shut down, and re-raises any error from the simulation itself.
        """
        return self._future.result(timeout)

    def done(self) -> bool:
        return self._future.done()

    def aborted(self) -> bool:
        return self._future.done() and isinstance(self._future.exception(), SimulationAborted)

    def add_done_callback(self, fn: Callable[["SimulationHandle"], None]) -> None:
        self._future.add_done_callback(lambda _: fn(self))

    def _resolve(self, value: SimulationResult) -> None:
        self._future.set_result(value)

    def _reject(self, error: BaseException) -> None:
        self._future.set_exception(error)


class SimulationWorker:
    """Single background thread running one forecast at a time.

    Usable as a context manager; leaving the block shuts the worker down.
    """

    def __init__(
        self,
        random_seed: Optional[int] = None,
        runner: Callable[..., SimulationResult] = run_forecast_request,
    ):
        self._runner = runner
        self._random_seed = random_seed
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="simulation")
        self._lock = threading.Lock()
        self._generation = 0
        self._pending: Optional[SimulationHandle] = None
        self._closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.shutdown()

    def submit(self, request: ForecastRequest) -> SimulationHandle:
        """Queue `request`, superseding any submission still pending."""
        with self._lock:
            if self._closed:
                raise RuntimeError("Cannot submit to a worker that has shut down")

            self._generation += 1
            handle = SimulationHandle(self._generation)
            superseded = self._pending
            if superseded is not None:
                logger.debug("Simulation %d superseded", superseded.generation)
                superseded._reject(SimulationAborted("simulation aborted"))
            self._pending = handle

        # Outside the lock: cancelling runs `_deliver` straight away
        if superseded is not None and superseded._work is not None:
            superseded._work.cancel()

        work = self._executor.submit(self._runner, request, self._random_seed)
        handle._work = work
        work.add_done_callback(partial(self._deliver, handle))
        return handle

    def _deliver(self, handle: SimulationHandle, work: Future) -> None:
        if work.cancelled():
            return
        with self._lock:
            if self._pending is not handle or handle.generation != self._generation:
                logger.debug("Dropping result of stale simulation %d", handle.generation)
                return
            self._pending = None

        error = work.exception()
        if error is not None:
            handle._reject(error)
        else:
            handle._resolve(work.result())

    def shutdown(self, wait: bool = False) -> None:
        """Stop the worker, rejecting the pending handle, if any."""
        with self._lock:
            self._closed = True
            if self._pending is not None:
                self._pending._reject(SimulationAborted("worker terminated"))
                self._pending = None

        self._executor.shutdown(wait=wait, cancel_futures=True)
