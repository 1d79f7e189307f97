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
Read-quality reports (FastQC) and per-stage summary reports (MultiQC).

Reports are produced on a best-effort basis: a missing tool or a failing report never
affects the outputs of a stage.
"""
from __future__ import annotations

import logging
import os
from typing import Iterable

from metagenome_cleaner.common.versions import Requirement
from metagenome_cleaner.runner import ExecutionRecord
from metagenome_cleaner.tools.fastqc import FASTQC_VERSION, build_fastqc
from metagenome_cleaner.tools.multiqc import MULTIQC_VERSION, build_multiqc


def _is_available(requirement: Requirement, record: ExecutionRecord) -> bool:
    if requirement.available():
        return True

    log = logging.getLogger(__name__)
    log.warning(
        "%s is not installed; skipping reports. To install it, run '%s'",
        requirement.name,
        requirement.install,
        extra={"stage": record.stage},
    )

    return False


def quality_reports(
    files: Iterable[str],
    module_dir: str,
    record: ExecutionRecord,
) -> int:
    """Runs FastQC on each existing file; returns the number of successful runs."""
    files = [filename for filename in files if os.path.isfile(filename)]
    if not (files and _is_available(FASTQC_VERSION, record)):
        return 0

    return sum(record.run(build_fastqc(filename, module_dir)) for filename in files)


def aggregate(module_dir: str, record: ExecutionRecord) -> bool:
    """Summarizes the reports in 'module_dir' using MultiQC."""
    if not _is_available(MULTIQC_VERSION, record):
        return False

    return record.run(build_multiqc(module_dir))
