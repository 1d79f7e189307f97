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
MultiQC - Aggregate results from bioinformatics analyses across many samples into a
single report

https://multiqc.info/
"""
from __future__ import annotations

import os

from metagenome_cleaner.common.command import OutputFile, ToolInvocation
from metagenome_cleaner.common.versions import Requirement

MULTIQC_VERSION = Requirement(
    name="MultiQC",
    call=("multiqc", "--version"),
    regexp=r"version (\d+\.\d+(?:\.\d+)?)",
    install="pip install multiqc",
)


def build_multiqc(directory: str) -> ToolInvocation:
    """Summarizes the reports found in 'directory', overwriting any existing
    report."""
    return ToolInvocation(
        ["multiqc", "--force", "--outdir", directory, directory],
        extra_files=[OutputFile(os.path.join(directory, "multiqc_report.html"))],
        requirements=[MULTIQC_VERSION],
    )
