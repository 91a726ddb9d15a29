# /*
# Copyright 2026 The offline-kube Authors.
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

"""Bounded readiness polling shared by the socket and API server waits."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from tenacity import RetryCallState, RetryError, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from offline_kube import console
from offline_kube.errors import ReadinessTimeoutError


@dataclass(frozen=True)
class ReadinessPolicy:
    """How long and how often to poll a readiness condition.

    Attributes:
        description: Human-readable name of the awaited dependency.
        interval: Seconds between checks.
        timeout: Maximum elapsed seconds before giving up.
    """

    description: str
    interval: int
    timeout: int

    @property
    def max_attempts(self) -> int:
        # One check at t=0 plus one after every full interval up to the timeout.
        return self.timeout // self.interval + 1


def wait_until(
    check: Callable[[], bool],
    policy: ReadinessPolicy,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Poll ``check`` until it returns True or the policy's timeout elapses.

    Args:
        check: Predicate returning True once the dependency is ready.
        policy: Interval and timeout to poll with.
        sleep: Sleep function, injectable for tests.

    Raises:
        ReadinessTimeoutError: If the check never succeeded within the timeout.
    """
    console.print(f"[yellow]\u2139\ufe0f  Waiting for {policy.description} to be ready...[/yellow]")

    def _report_not_ready(retry_state: RetryCallState) -> None:
        elapsed = (retry_state.attempt_number - 1) * policy.interval
        console.print(f"[yellow]   {policy.description} not ready yet... ({elapsed}s elapsed)[/yellow]")

    retrying = Retrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_fixed(policy.interval),
        retry=retry_if_result(lambda ready: not ready),
        before_sleep=_report_not_ready,
        sleep=sleep,
    )
    try:
        retrying(check)
    except RetryError as err:
        raise ReadinessTimeoutError(
            f"{policy.description} did not become ready within {policy.timeout}s"
        ) from err
    console.print(f"[green]\u2705 {policy.description} is ready[/green]")
