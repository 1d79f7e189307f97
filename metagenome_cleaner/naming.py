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
Deterministic names for the files written by each cleaning stage.

Output files are named after the input file they were derived from, with FASTQ and
compression extensions and the mate marker (e.g. '_R1') removed, followed by the
tag of the stage and the mate number:

    sample_R1.fastq.gz -> sample_filtered_1.fastq
    sample.fq          -> sample_filtered.fastq
"""
from __future__ import annotations

import os
from typing import Iterable

from metagenome_cleaner.common.command import CmdError

COMPRESSION_EXTENSIONS = (".gz", ".bz2", ".xz", ".zst")
FASTQ_EXTENSIONS = (".fastq", ".fq")

# Mate markers in order of precedence
MATE_1_MARKERS = ("_R1", "_1")
MATE_2_MARKERS = ("_R2", "_2")


def strip_extensions(filename: str) -> str:
    """Removes a trailing compression extension and then a FASTQ extension."""
    filename = os.path.basename(filename)
    for extensions in (COMPRESSION_EXTENSIONS, FASTQ_EXTENSIONS):
        for extension in extensions:
            if filename.endswith(extension) and len(filename) > len(extension):
                filename = filename[: -len(extension)]
                break

    return filename


def find_mate_marker(stem: str) -> tuple[int, str] | None:
    """Returns the mate number (1 or 2) and the marker found in a filename stem, or
    None if the name carries no mate marker."""
    for mate, markers in ((1, MATE_1_MARKERS), (2, MATE_2_MARKERS)):
        for marker in markers:
            if marker in stem:
                return mate, marker

    return None


def strip_mate_marker(stem: str) -> str:
    """Removes the last occurrence of the mate marker from a filename stem."""
    result = find_mate_marker(stem)
    if result is None:
        return stem

    _, marker = result
    index = stem.rfind(marker)

    return stem[:index] + stem[index + len(marker) :]


def is_fastq(filename: str) -> bool:
    """Returns true if a filename ends with a FASTQ extension, optionally followed by a
    compression extension (e.g. 'reads.fq.gz', but not 'reads.fq.md5')."""
    filename = os.path.basename(filename)
    for extension in COMPRESSION_EXTENSIONS:
        if filename.endswith(extension):
            filename = filename[: -len(extension)]
            break

    return any(
        filename.endswith(extension) and len(filename) > len(extension)
        for extension in FASTQ_EXTENSIONS
    )


def sample_name(filename: str) -> str:
    """Returns the canonical sample name of a file. A name consisting only of a mate
    marker (e.g. '_R1.fq') keeps the marker."""
    stem = strip_extensions(filename)

    return strip_mate_marker(stem) or stem


def output_name(
    input_path: str,
    stage_tag: str,
    mate: str,
    directory: str,
    *,
    base: str | None = None,
) -> str:
    """Returns the name of a file written by a stage; 'base' replaces the sample name
    derived from 'input_path' if set."""
    if not stage_tag:
        raise ValueError("stage tag must not be empty")

    components = [base or sample_name(input_path), stage_tag]
    if mate:
        components.append(mate)

    return os.path.join(directory, "_".join(components) + ".fastq")


def report_name(input_path: str, report_type: str, directory: str) -> str:
    basename = strip_extensions(input_path)

    return os.path.join(directory, f"{basename}_{report_type}.txt")


def mate_template(
    path_1: str,
    path_2: str,
    placeholder: str,
    labels: Iterable[str] = ("_1", "_2"),
) -> str:
    """Returns a filename template for tools that write both mates given a single
    path, where 'placeholder' is replaced by the label of each mate (e.g. 'out#.fq'
    becoming 'out_1.fq' and 'out_2.fq'). The template must expand to exactly
    'path_1' and 'path_2'.
    """
    label_1, label_2 = labels
    if placeholder in path_1:
        raise CmdError(f"{placeholder!r} not allowed in path {path_1!r}")

    index = path_1.rfind(label_1)
    while index >= 0:
        prefix = path_1[:index]
        postfix = path_1[index + len(label_1) :]

        if prefix + label_2 + postfix == path_2:
            return prefix + placeholder + postfix

        index = path_1.rfind(label_1, 0, index)

    raise CmdError(f"no common template for {path_1!r} and {path_2!r}")
