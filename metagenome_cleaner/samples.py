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
Discovery of FASTQ files and grouping of files into samples.

A SampleGroup is the unit of work for every stage: one or two FASTQ files (mate 1
followed by mate 2) sharing a canonical sample name.
"""
from __future__ import annotations

import collections
import glob
import logging
import os
from typing import Iterable, Sequence

from metagenome_cleaner.common.fileutils import describe_files
from metagenome_cleaner.naming import (
    find_mate_marker,
    is_fastq,
    sample_name,
    strip_extensions,
)

# Patterns used to locate FASTQ files in input directories
FASTQ_PATTERNS = ("*.fastq*", "*.fq*")


class InputError(Exception):
    pass


class MissingInputError(InputError):
    pass


class DuplicateSampleError(InputError):
    pass


class SampleGroup:
    __slots__ = ("_name", "_files")

    def __init__(self, name: str, files: Sequence[str]) -> None:
        files = tuple(files)
        if not name:
            raise ValueError("sample name must not be empty")
        elif not 1 <= len(files) <= 2:
            raise ValueError(f"expected 1 or 2 files for sample {name!r}, not {files}")

        self._name = name
        self._files = files

    @property
    def name(self) -> str:
        return self._name

    @property
    def files(self) -> tuple[str, ...]:
        return self._files

    @property
    def paired(self) -> bool:
        return len(self._files) == 2

    @property
    def mate_1(self) -> str:
        return self._files[0]

    @property
    def mate_2(self) -> str | None:
        return self._files[1] if self.paired else None

    @classmethod
    def single(cls, filename: str) -> SampleGroup:
        return cls(sample_name(filename), (filename,))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SampleGroup):
            return NotImplemented

        return (self._name, self._files) == (other._name, other._files)

    def __hash__(self) -> int:
        return hash((self._name, self._files))

    def __repr__(self) -> str:
        return f"SampleGroup({self._name!r}, {self._files!r})"


def find_fastq_files(directory: str) -> list[str]:
    filenames: set[str] = set()
    for pattern in FASTQ_PATTERNS:
        for filename in glob.glob(os.path.join(glob.escape(directory), pattern)):
            if os.path.isfile(filename) and is_fastq(filename):
                filenames.add(filename)

    return sorted(filenames)


def discover(directory: str) -> list[SampleGroup]:
    """Locates FASTQ files in 'directory' and groups them by sample name.

    Files with exactly one mate 1 and one mate 2 file for a sample name are paired.
    Other files with mate markers (e.g. a mate 1 file without a mate 2 file) are
    processed as single-end reads, as are files without mate markers."""
    log = logging.getLogger(__name__)

    mates: dict[tuple[str, str], dict[int, list[str]]] = collections.defaultdict(
        lambda: collections.defaultdict(list)
    )
    groups: list[SampleGroup] = []
    for filename in find_fastq_files(directory):
        result = find_mate_marker(strip_extensions(filename))
        if result is None:
            groups.append(SampleGroup.single(filename))
        else:
            mate, _ = result
            key = (os.path.dirname(filename), sample_name(filename))
            mates[key][mate].append(filename)

    for (_, name), files in mates.items():
        files_1 = files[1]
        files_2 = files[2]

        if len(files_1) == 1 and len(files_2) == 1:
            groups.append(SampleGroup(name, (files_1[0], files_2[0])))
        else:
            log.warning(
                "Could not pair files for sample %r (%i mate 1 and %i mate 2 files); "
                "processing %s as single-end reads",
                name,
                len(files_1),
                len(files_2),
                describe_files(files_1 + files_2),
            )

            # Mate markers are kept to distinguish these from other samples
            for filename in sorted(files_1 + files_2):
                groups.append(SampleGroup(strip_extensions(filename), (filename,)))

    groups.sort(key=lambda group: group.files)
    _check_unique_names(groups)

    return groups


def _check_unique_names(groups: Iterable[SampleGroup]) -> None:
    """Raises DuplicateSampleError if two samples share a name, since their output
    files would have the same names."""
    files_by_name: dict[str, list[str]] = collections.defaultdict(list)
    for group in groups:
        files_by_name[group.name].append(describe_files(group.files))

    duplicates = [
        f"  {name!r}: {', '.join(files)}"
        for name, files in files_by_name.items()
        if len(files) > 1
    ]

    if duplicates:
        raise DuplicateSampleError(
            "Multiple samples with the same name; rename or move these files:\n"
            + "\n".join(duplicates)
        )


def from_arguments(
    forward: str | None = None,
    reverse: str | None = None,
    single: str | None = None,
) -> list[SampleGroup]:
    """Builds the sample from files specified on the command-line."""
    if forward and reverse:
        return [SampleGroup(sample_name(forward), (forward, reverse))]
    elif single:
        return [SampleGroup.single(single)]
    elif forward:
        return [SampleGroup.single(forward)]

    raise MissingInputError(
        "No input files specified; use --forward/--reverse for paired-end reads, "
        "--single for single-end reads, or --input-dir for a directory of FASTQ "
        "files"
    )


def collect(
    input_dir: str | None = None,
    forward: str | None = None,
    reverse: str | None = None,
    single: str | None = None,
    sample: str | None = None,
) -> list[SampleGroup]:
    """Returns the samples to process; an input directory takes precedence over
    files specified on the command-line. If 'sample' is set, only the sample of that
    name is returned."""
    if not input_dir:
        return from_arguments(forward=forward, reverse=reverse, single=single)
    elif not os.path.isdir(input_dir):
        raise MissingInputError(f"Input directory {input_dir!r} does not exist")

    groups = discover(input_dir)
    if not groups:
        raise MissingInputError(f"No FASTQ files found in {input_dir!r}")
    elif sample is not None:
        groups = [group for group in groups if group.name == sample]
        if not groups:
            raise MissingInputError(f"Sample {sample!r} not found in {input_dir!r}")

    return groups


def sample_names(groups: Iterable[SampleGroup]) -> list[str]:
    """Returns the unique names of samples, in order."""
    return list(dict.fromkeys(group.name for group in groups))
