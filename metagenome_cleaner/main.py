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
from __future__ import annotations

import logging
import sys

import setproctitle

import metagenome_cleaner
import metagenome_cleaner.common.logging
from metagenome_cleaner import databases, parallel, resources, samples
from metagenome_cleaner.common.argparse import Namespace
from metagenome_cleaner.common.command import CmdError
from metagenome_cleaner.common.options import OptionError
from metagenome_cleaner.common.versions import RequirementError
from metagenome_cleaner.config import build_parser
from metagenome_cleaner.stages import (
    TOOL_SCHEMAS,
    StageDescriptor,
    StageExecutor,
    contaminant_stage,
    phix_stage,
    quality_stage,
)
from metagenome_cleaner.tools import bowtie2, fastp, fastqc, kraken2, multiqc
from metagenome_cleaner.tools import parallel as gnu_parallel

# External tools used by one or more commands
REQUIREMENTS = (
    fastp.FASTP_VERSION,
    bowtie2.BOWTIE2_VERSION,
    kraken2.KRAKEN2_VERSION,
    fastqc.FASTQC_VERSION,
    multiqc.MULTIQC_VERSION,
    gnu_parallel.PARALLEL_VERSION,
)

# Errors caused by invalid input or configuration
_USAGE_ERRORS = (
    samples.InputError,
    databases.DatabaseError,
    OptionError,
    CmdError,
)


def _main_about() -> int:
    print(f"metagenome_cleaner v{metagenome_cleaner.__version__}")
    print()
    print("External tools:")

    width = max(len(requirement.name) for requirement in REQUIREMENTS)
    for requirement in REQUIREMENTS:
        if not requirement.available():
            status = f"not installed; run '{requirement.install}'"
        else:
            try:
                status = requirement.version_str()
            except RequirementError:
                status = "installed; version could not be determined"

        print(f"  {requirement.name:<{width}}  {status}")

    return 0


def _main_databases() -> int:
    print(resources.read_template("databases.yaml"), end="")

    return 0


def _build_stage(args: Namespace) -> StageExecutor:
    """Validates command-line options and builds the executor for a stage; no files
    are written before this has completed."""
    descriptor: StageDescriptor
    references = None
    if args.command == "quality":
        descriptor = quality_stage()
    elif args.contaminant_type == "phix":
        descriptor = phix_stage()
        references = databases.load(args.databases).resolve("phix", kraken2=False)
    elif args.contaminant_type == "human":
        descriptor = contaminant_stage("human")
        references = databases.load(args.databases).resolve("human")
    elif args.contaminant_type == "host":
        databases.check_host(args.host, args.db_path_kraken2, args.db_path_bowtie2)
        if args.host == databases.CUSTOM_HOST:
            references = databases.resolve_host(
                args.host, args.db_path_kraken2, args.db_path_bowtie2
            )
        else:
            config = databases.load(args.databases)
            references = config.resolve_host(args.host)

        descriptor = contaminant_stage(references.organism)
    else:
        raise ValueError(f"unknown stage {args.contaminant_type!r}")

    configs = {}
    for tool in descriptor.tools:
        configs[tool] = TOOL_SCHEMAS[tool].from_namespace(args)

    return StageExecutor(
        descriptor,
        output=args.output,
        retain=args.save_intermediates,
        configs=configs,
        references=references,
    )


def _main_stage(args: Namespace) -> int:
    log = logging.getLogger(__name__)

    try:
        groups = samples.collect(
            input_dir=args.input_dir,
            forward=args.forward,
            reverse=args.reverse,
            single=args.single,
            sample=args.sample,
        )

        executor = _build_stage(args)
        executor.run(groups)
    except _USAGE_ERRORS as error:
        log.error("%s", error)
        return 1

    return 0


def _main_parallel(args: Namespace) -> int:
    log = logging.getLogger(__name__)

    try:
        return parallel.execute_parallel(args)
    except (*_USAGE_ERRORS, ValueError) as error:
        log.error("%s", error)
        return 1


def main(argv: list[str]) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command in (None, "help"):
        parser.print_help()
        return 0
    elif args.command == "about":
        return _main_about()
    elif args.command == "databases":
        return _main_databases()

    # Change process name from 'python' to 'metagenome_cleaner'
    title = ["metagenome_cleaner", args.command]
    if getattr(args, "sample", None):
        title.append(args.sample)
    setproctitle.setproctitle(" ".join(title))

    metagenome_cleaner.common.logging.initialize(
        log_level=args.log_level,
        log_file=args.log_file,
    )

    if args.command == "parallel":
        return _main_parallel(args)

    return _main_stage(args)


def entry_point() -> int:
    return main(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(entry_point())
