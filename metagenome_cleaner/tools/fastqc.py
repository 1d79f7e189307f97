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
FastQC - A quality control analysis tool for high throughput sequencing data

https://github.com/s-andrews/FastQC
"""
from __future__ import annotations

import os
import re

from metagenome_cleaner.common.command import InputFile, OutputFile, ToolInvocation
from metagenome_cleaner.common.versions import Requirement

# File extensions striped by FastQC for output filenames
_FASTQC_EXCLUDED_EXTENSIONS = re.compile(
    r"(\.gz|\.bz2|\.txt|\.fastq|\.fq|\.csfastq|\.sam|\.bam)+$"
)

FASTQC_VERSION = Requirement(
    name="FastQC",
    call=("fastqc", "--version"),
    regexp=r"FastQC v(\d+\.\d+\.\d+)",
    install="conda install -c bioconda fastqc",
)


def fastqc_prefix(in_file: str) -> str:
    return _FASTQC_EXCLUDED_EXTENSIONS.sub("", os.path.basename(in_file))


def build_fastqc(in_file: str, out_folder: str) -> ToolInvocation:
    out_prefix = os.path.join(out_folder, fastqc_prefix(in_file))

    return ToolInvocation(
        ["fastqc", "--outdir", out_folder, InputFile(in_file)],
        extra_files=[
            OutputFile(out_prefix + "_fastqc.html"),
            OutputFile(out_prefix + "_fastqc.zip"),
        ],
        requirements=[FASTQC_VERSION],
    )
