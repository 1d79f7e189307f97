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
Per-sample fan-out of stages using GNU parallel.

One orchestrator process is started per sample found in the input directory; each
process runs the selected stage for a single sample (selected using '--sample'),
writing to its own project directory.
"""
from __future__ import annotations

import logging
import shlex
import sys
from typing import Iterable, Sequence

from metagenome_cleaner import databases, samples
from metagenome_cleaner.common.argparse import Namespace
from metagenome_cleaner.common.command import InvocationFailure, ToolInvocation
from metagenome_cleaner.tools.parallel import (
    PARALLEL_VERSION,
    PLACEHOLDER,
    build_parallel,
)

MODULES = ("quality", "contaminant_removal")
CONTAMINANT_TYPES = ("phix", "human", "host")


def build_fanout(
    module: str,
    *,
    input_dir: str,
    output: str,
    sample_names: Iterable[str],
    contaminant_type: str | None = None,
    host: str | None = None,
    db_path_bowtie2: str | None = None,
    db_path_kraken2: str | None = None,
    save_intermediates: bool = False,
    databases_file: str | None = None,
    jobs: int | None = None,
    params: Sequence[str] = (),
) -> ToolInvocation:
    template = [sys.executable, "-m", "metagenome_cleaner", module]
    if module == "contaminant_removal":
        if contaminant_type not in CONTAMINANT_TYPES:
            raise ValueError(f"invalid contaminant type {contaminant_type!r}")

        template.append(contaminant_type)
        if contaminant_type == "host":
            if not host:
                raise ValueError("no host specified for host removal")

            template.extend(("--host", host))
            if db_path_bowtie2:
                template.extend(("--db-path-bowtie2", db_path_bowtie2))
            if db_path_kraken2:
                template.extend(("--db-path-kraken2", db_path_kraken2))
    elif module != "quality":
        raise ValueError(f"unsupported module {module!r}")

    template.extend(
        ("--input-dir", input_dir, "--sample", PLACEHOLDER, "--output", output)
    )

    if save_intermediates:
        template.append("--save-intermediates")
    if databases_file and module == "contaminant_removal":
        template.extend(("--databases", databases_file))

    return build_parallel(template, sample_names, jobs=jobs, params=params)


def execute_parallel(args: Namespace) -> int:
    log = logging.getLogger(__name__)

    if args.module == "contaminant_removal":
        if args.contaminant_type is None:
            log.error("--contaminant_type is required for contaminant_removal")
            return 1
        elif args.contaminant_type == "host":
            databases.check_host(args.host, args.db_path_kraken2, args.db_path_bowtie2)

    groups = samples.collect(input_dir=args.input_dir)
    names = samples.sample_names(groups)

    command = build_fanout(
        args.module,
        input_dir=args.input_dir,
        output=args.output,
        sample_names=names,
        contaminant_type=args.contaminant_type,
        host=args.host,
        db_path_bowtie2=args.db_path_bowtie2,
        db_path_kraken2=args.db_path_kraken2,
        save_intermediates=args.save_intermediates,
        databases_file=args.databases,
        jobs=args.jobs,
        params=shlex.split(args.params or ""),
    )

    if not PARALLEL_VERSION.available():
        log.warning(
            "GNU parallel is not installed; skipping. To install it, run '%s'",
            PARALLEL_VERSION.install,
        )
        return 0

    log.info("Running %r on %i sample(s) in parallel", args.module, len(names))
    log.info("Executing command: %s", command)

    try:
        command.run()
    except InvocationFailure as error:
        log.error("%s", error)
        if error.returncode is None:
            return 1

        return error.returncode if error.returncode > 0 else 128 - error.returncode

    return 0
