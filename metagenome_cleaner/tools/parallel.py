#
# Copyright (c) 2023 Mikkel Schubert <MikkelSch@gmail.com>
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#
"""
GNU parallel - A shell tool for executing jobs in parallel

https://www.gnu.org/software/parallel/
"""
from __future__ import annotations

import shlex
from typing import Iterable, Sequence

from metagenome_cleaner.common.command import ToolInvocation
from metagenome_cleaner.common.versions import Requirement

PARALLEL_VERSION = Requirement(
    name="GNU parallel",
    call=("parallel", "--version"),
    regexp=r"GNU parallel (\d+)",
    install="sudo apt-get install parallel",
)

# Replaced by GNU parallel with the current argument
PLACEHOLDER = "{}"


def build_parallel(
    template: Sequence[str],
    arguments: Iterable[str],
    *,
    jobs: int | None = None,
    params: Sequence[str] = (),
) -> ToolInvocation:
    """Runs 'template' once per item in 'arguments', with '{}' replaced by the item.

    GNU parallel passes the template to a shell; words other than the placeholder
    are therefore quoted to preserve spaces and special characters in paths."""
    arguments = list(arguments)
    if not arguments:
        raise ValueError("no arguments for GNU parallel")
    elif PLACEHOLDER not in template:
        raise ValueError(f"{PLACEHOLDER!r} not found in template {template!r}")

    command = ToolInvocation(["parallel"], requirements=[PARALLEL_VERSION])
    if jobs:
        command.append("--jobs", jobs)

    command.append(*params)
    command.append(
        *(word if word == PLACEHOLDER else shlex.quote(word) for word in template)
    )
    command.append(":::", *arguments)

    return command
