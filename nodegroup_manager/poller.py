# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Bounded polling with a wall-clock budget and cooperative cancellation."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_result,
    stop_after_delay,
    stop_when_event_set,
    wait_fixed,
)

from nodegroup_manager import logger
from nodegroup_manager.errors import ConvergenceTimeoutError


class ProbeOutcome(Enum):
    """Classification of a single probe call."""

    TRANSIENT = "transient"
    IN_PROGRESS = "in-progress"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class ProbeResult:
    """What a probe observed.

    Attributes:
        outcome: How the poll loop should proceed.
        status: Human-readable status, reported on timeout.
        error: Exception raised by the poller when ``outcome`` is FAILURE.
    """

    outcome: ProbeOutcome
    status: str = ""
    error: Exception | None = None

    @classmethod
    def transient(cls, status: str) -> ProbeResult:
        return cls(ProbeOutcome.TRANSIENT, status)

    @classmethod
    def in_progress(cls, status: str) -> ProbeResult:
        return cls(ProbeOutcome.IN_PROGRESS, status)

    @classmethod
    def success(cls, status: str = "") -> ProbeResult:
        return cls(ProbeOutcome.SUCCESS, status)

    @classmethod
    def failure(cls, error: Exception, status: str = "") -> ProbeResult:
        return cls(ProbeOutcome.FAILURE, status or str(error), error)

    @property
    def pending(self) -> bool:
        return self.outcome in (ProbeOutcome.TRANSIENT, ProbeOutcome.IN_PROGRESS)


def wait_budget(base: float, per_node: float, fleet_size: int) -> float:
    """Seconds allowed for a fleet of *fleet_size* nodes to converge."""
    return base + per_node * fleet_size


def sleep_or_cancel(cancel: threading.Event, seconds: float) -> bool:
    """Sleep up to *seconds*, waking early on cancellation.

    Returns:
        True if cancellation was signalled before or during the sleep.
    """
    return cancel.wait(seconds)


def poll(
    probe: Callable[[], ProbeResult],
    *,
    interval: float,
    timeout: float,
    cancel: threading.Event,
    what: str,
) -> bool:
    """Call *probe* until it succeeds, fails terminally, or the budget runs out.

    Transient and in-progress results sleep *interval* seconds before the
    next call. Sleeps race the *cancel* event, and the event is checked
    before every probe call.

    Args:
        probe: Zero-argument callable returning a ProbeResult.
        interval: Seconds between probe calls.
        timeout: Wall-clock budget in seconds, measured from the first call.
        cancel: Cooperative cancellation event.
        what: Short description of the awaited state, used in errors.

    Returns:
        True if the probe reported success, False if cancelled.

    Raises:
        Exception: The error carried by a FAILURE result, unchanged.
        ConvergenceTimeoutError: If the budget ran out first.
    """
    last: ProbeResult | None = None
    retrying = Retrying(
        stop=stop_after_delay(timeout) | stop_when_event_set(cancel),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda result: result is not None and result.pending),
        sleep=cancel.wait,
        before_sleep=before_sleep_log(logger, logging.DEBUG),
    )
    try:
        for attempt in retrying:
            with attempt:
                if cancel.is_set():
                    logger.info("Interrupted while waiting for %s", what)
                    return False
                last = probe()
            if not attempt.retry_state.outcome.failed:
                attempt.retry_state.set_result(last)
    except RetryError:
        if cancel.is_set():
            logger.info("Interrupted while waiting for %s", what)
            return False
        raise ConvergenceTimeoutError(what, timeout, last.status if last else "") from None

    if last.outcome is ProbeOutcome.FAILURE:
        raise last.error
    return True
