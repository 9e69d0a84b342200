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

"""Utility functions for command checks and elapsed-time reporting."""

from __future__ import annotations

import signal
import time
from collections.abc import Callable

import sh

from nodegroup_manager import logger


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        RuntimeError: If the command is not found.
    """
    try:
        found = sh.which(cmd)
    except sh.ErrorReturnCode:
        found = None
    if not found:
        raise RuntimeError(f"Required command '{cmd}' not found. Please install it first.")


def format_elapsed(seconds: float) -> str:
    """Render a duration as ``1h2m3s`` / ``2m3s`` / ``3s``.

    Args:
        seconds: Non-negative duration.

    Returns:
        Compact human-readable duration.
    """
    total = int(seconds)
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


def since(started: float) -> str:
    """Elapsed time since the ``time.monotonic()`` reading *started*, e.g. ``2m3s ago``."""
    return f"{format_elapsed(time.monotonic() - started)} ago"


def cancel_on_signals(cancel: Callable[[], None]) -> None:
    """Route SIGINT and SIGTERM to *cancel* so wait loops stop cleanly.

    Args:
        cancel: Called from the signal handler; must only set a flag.
    """
    def _handler(signum: int, _frame: object | None) -> None:
        logger.info("Received %s, stopping at the next check", signal.Signals(signum).name)
        cancel()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)
