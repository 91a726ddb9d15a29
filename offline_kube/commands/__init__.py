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

"""CLI subcommands and their shared error handling."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import typer

from offline_kube import console, logger
from offline_kube.constants import EXIT_GENERAL_ERROR
from offline_kube.errors import BootstrapError


@contextmanager
def exit_on_error() -> Iterator[None]:
    """Turn a failed step into a red message and the matching exit code."""
    try:
        yield
    except BootstrapError as e:
        console.print(f"[red]\u274c {e}[/red]")
        raise typer.Exit(code=e.exit_code) from e
    except Exception as e:
        logger.debug("Unhandled failure", exc_info=True)
        console.print(f"[red]\u274c {e}[/red]")
        raise typer.Exit(code=EXIT_GENERAL_ERROR) from e
