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

"""Bootstrap error types and their process exit codes."""

from __future__ import annotations

from offline_kube.constants import EXIT_GENERAL_ERROR, EXIT_NOT_READY


class BootstrapError(RuntimeError):
    """A step failed; the run stops with ``exit_code``."""

    exit_code = EXIT_GENERAL_ERROR


class UnsupportedOSError(BootstrapError):
    """The host distribution is not one the offline bundle ships RPMs for."""


class ReadinessTimeoutError(BootstrapError):
    """A bounded readiness poll exceeded its deadline."""

    exit_code = EXIT_NOT_READY
