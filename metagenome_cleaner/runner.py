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
Sequential execution of tool invocations, with a persistent record of each command.

Every invocation run for a stage is written to 'execution_log.txt' in the module
directory before it is started, followed by its result. A failing invocation is
recorded and logged, but does not prevent the remaining invocations from running.
"""
from __future__ import annotations

import fnmatch
import logging
import os
from typing import Iterable, NamedTuple, Sequence

from metagenome_cleaner.common.command import InvocationFailure, ToolInvocation
from metagenome_cleaner.common.fileutils import try_remove

EXECUTION_LOG = "execution_log.txt"

# Files that are never removed from a module directory
PROTECTED_PATTERNS = (
    "*_log.txt",
    "*.html",
    "*.json",
    "*_fastqc.zip",
    "*_report.txt",
)


class RecordEntry(NamedTuple):
    command: str
    success: bool
    detail: str | None = None


class ExecutionRecord:
    """Append-only record of the invocations run for one stage, mirrored line by line
    to a log-file in the module directory."""

    def __init__(self, module_dir: str, stage: str | None = None) -> None:
        self.filename = os.path.join(module_dir, EXECUTION_LOG)
        self.stage = stage
        self._entries: list[RecordEntry] = []

    @property
    def entries(self) -> tuple[RecordEntry, ...]:
        return tuple(self._entries)

    @property
    def failures(self) -> tuple[RecordEntry, ...]:
        return tuple(entry for entry in self._entries if not entry.success)

    def run(self, invocation: ToolInvocation) -> bool:
        """Runs an invocation to completion; returns true if it succeeded."""
        log = logging.getLogger(__name__)
        extra = {"stage": self.stage}

        command = str(invocation)
        log.info("Executing command: %s", command, extra=extra)
        self._write(f"Executing command: {command}")

        try:
            invocation.run()
        except InvocationFailure as error:
            log.error("Command failed: %s", error, extra=extra)
            self._write(f"Command failed: {error}")
            self._entries.append(RecordEntry(command, False, str(error)))

            return False

        self._write("Command completed successfully")
        self._entries.append(RecordEntry(command, True))

        return True

    def _write(self, line: str) -> None:
        with open(self.filename, "a", encoding="utf-8") as handle:
            print(line, file=handle)

    def __len__(self) -> int:
        return len(self._entries)


def protected_patterns(stage_tag: str) -> tuple[str, ...]:
    """Returns the patterns of files kept in a module directory after a stage has
    run, including the final outputs of the stage."""
    return (
        f"*_{stage_tag}.fastq",
        f"*_{stage_tag}_1.fastq",
        f"*_{stage_tag}_2.fastq",
    ) + PROTECTED_PATTERNS


def prune(module_dir: str, protected: Sequence[str]) -> list[str]:
    """Removes regular files directly in 'module_dir' that do not match any of the
    'protected' patterns; returns the paths of removed files."""
    removed: list[str] = []
    for filename in sorted(os.listdir(module_dir)):
        path = os.path.join(module_dir, filename)
        if not os.path.isfile(path) or os.path.islink(path):
            continue
        elif any(fnmatch.fnmatchcase(filename, pattern) for pattern in protected):
            continue

        if try_remove(path):
            removed.append(path)

    return removed


def run_commands(
    invocations: Iterable[ToolInvocation],
    module_dir: str,
    retain: bool = False,
    *,
    record: ExecutionRecord | None = None,
    protected: Sequence[str] = PROTECTED_PATTERNS,
) -> ExecutionRecord:
    """Runs invocations one at a time, in order, adding each to 'record'. Unless
    'retain' is set, intermediate files are removed from 'module_dir' once every
    invocation has been run."""
    if record is None:
        record = ExecutionRecord(module_dir)

    for invocation in invocations:
        record.run(invocation)

    if not retain:
        log = logging.getLogger(__name__)
        for filename in prune(module_dir, protected):
            log.debug("Removed %r", filename, extra={"stage": record.stage})

    return record
