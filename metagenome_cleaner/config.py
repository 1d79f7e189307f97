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

from typing import Iterable

import metagenome_cleaner.common.logging
from metagenome_cleaner.common.argparse import ArgumentParser, SubParsersAction
from metagenome_cleaner.common.options import ToolSchema
from metagenome_cleaner.databases import CUSTOM_HOST, HOST_ORGANISMS
from metagenome_cleaner.parallel import CONTAMINANT_TYPES, MODULES
from metagenome_cleaner.tools import bowtie2, fastp, kraken2

_DEFAULT_CONFIG_FILES = [
    "/etc/metagenome_cleaner/metagenome_cleaner.ini",
    "~/.metagenome_cleaner/metagenome_cleaner.ini",
]

_DESCRIPTION = (
    "Cleaning of metagenomic FASTQ reads: quality filtering, and removal of PhiX, "
    "human, and host contaminants"
)


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="metagenome_cleaner", description=_DESCRIPTION)
    parser.set_defaults(command=None)

    subparsers = parser.add_subparsers(metavar="command")

    _build_info_parsers(subparsers)
    _build_quality_parser(subparsers)
    _build_contaminant_removal_parser(subparsers)
    _build_parallel_parser(subparsers)

    return parser


def _build_info_parsers(subparsers: SubParsersAction[ArgumentParser]) -> None:
    parser = subparsers.add_parser(
        "about",
        help="Print information about metagenome_cleaner and the tools it uses",
    )
    parser.set_defaults(command="about")

    parser = subparsers.add_parser("help", help="Print this help message")
    parser.set_defaults(command="help")

    parser = subparsers.add_parser(
        "databases",
        help="Print a template database configuration file",
    )
    parser.set_defaults(command="databases")


def _build_quality_parser(subparsers: SubParsersAction[ArgumentParser]) -> None:
    parser = _add_stage_parser(
        subparsers,
        "quality",
        help="Filter reads by quality using fastp",
    )
    parser.set_defaults(command="quality")

    _add_tool_options(parser, [fastp.SCHEMA])


def _build_contaminant_removal_parser(
    subparsers: SubParsersAction[ArgumentParser],
) -> None:
    parser = subparsers.add_parser(
        "contaminant_removal",
        help="Remove PhiX, human, or host contaminants",
    )
    parser.set_defaults(command="contaminant_removal")

    types = parser.add_subparsers(metavar="type", required=True)

    phix = _add_stage_parser(types, "phix", help="Remove PhiX reads using bowtie2")
    phix.set_defaults(contaminant_type="phix")
    _add_tool_options(phix, [bowtie2.SCHEMA])

    human = _add_stage_parser(
        types,
        "human",
        help="Remove human reads using kraken2 and bowtie2",
    )
    human.set_defaults(contaminant_type="human")
    _add_tool_options(human, [kraken2.SCHEMA, bowtie2.SCHEMA])

    host = _add_stage_parser(
        types,
        "host",
        help="Remove reads from a host organism using kraken2 and bowtie2",
    )
    host.set_defaults(contaminant_type="host")
    _add_host_options(host, required=True)
    _add_tool_options(host, [kraken2.SCHEMA, bowtie2.SCHEMA])


def _build_parallel_parser(subparsers: SubParsersAction[ArgumentParser]) -> None:
    parser = subparsers.add_parser(
        "parallel",
        help="Run a module on every sample in a folder using GNU parallel",
    )
    parser.set_defaults(command="parallel")

    commands = parser.add_subparsers(metavar="command", required=True)
    parser = commands.add_parser(
        "exec",
        help="Execute a module in parallel",
        default_config_files=_DEFAULT_CONFIG_FILES,
        ignore_unknown_config_file_keys=True,
    )

    group = parser.add_argument_group("Fan-out")
    group.add_argument(
        "--module",
        required=True,
        choices=MODULES,
        help="Module to run for each sample",
    )
    group.add_argument(
        "--contaminant_type",
        choices=CONTAMINANT_TYPES,
        help="Type of contaminant to remove when running 'contaminant_removal'",
    )
    group.add_argument(
        "--input-dir",
        required=True,
        metavar="DIR",
        help="Folder containing FASTQ files; one job is run per sample",
    )
    group.add_argument(
        "--output",
        required=True,
        metavar="DIR",
        help="Output folder in which a project folder is created per sample",
    )
    group.add_argument(
        "--jobs",
        type=int,
        metavar="N",
        help="Number of jobs to run simultaneously; defaults to the GNU parallel "
        "default of one job per CPU core",
    )
    group.add_argument(
        "--params",
        default="",
        help="Additional parameters passed to GNU parallel, e.g. '--halt soon,fail=1'",
    )
    group.add_argument(
        "--save-intermediates",
        action="store_true",
        help="Keep intermediate files produced by each job",
    )
    group.add_argument(
        "--databases",
        metavar="FILE",
        help="Database configuration passed to each job",
    )

    _add_host_options(parser, required=False)
    metagenome_cleaner.common.logging.add_argument_group(parser)


def _add_stage_parser(
    subparsers: SubParsersAction[ArgumentParser],
    name: str,
    help: str,  # noqa: A002
) -> ArgumentParser:
    parser = subparsers.add_parser(
        name,
        help=help,
        default_config_files=_DEFAULT_CONFIG_FILES,
        ignore_unknown_config_file_keys=True,
    )

    group = parser.add_argument_group("Input")
    group.add_argument(
        "-1",
        "--forward",
        metavar="FILE",
        help="Forward FASTQ file for paired-end or single-end input",
    )
    group.add_argument(
        "-2",
        "--reverse",
        metavar="FILE",
        help="Reverse FASTQ file for paired-end input",
    )
    group.add_argument(
        "-U",
        "--single",
        metavar="FILE",
        help="FASTQ file for single-end input",
    )
    group.add_argument(
        "--input-dir",
        metavar="DIR",
        help="Folder containing FASTQ files; takes precedence over --forward, "
        "--reverse, and --single",
    )
    group.add_argument(
        "--sample",
        help="Only process the sample with this name found in --input-dir",
    )

    group = parser.add_argument_group("Output")
    group.add_argument(
        "--output",
        required=True,
        metavar="DIR",
        help="Output folder in which a new project folder is created",
    )
    group.add_argument(
        "--save-intermediates",
        action="store_true",
        help="Keep intermediate files; by default only the cleaned reads and the "
        "reports are kept",
    )
    group.add_argument(
        "--databases",
        metavar="FILE",
        help="YAML file specifying the locations of databases; if not set, the "
        "first of /etc/metagenome_cleaner/databases.yaml, "
        "~/.metagenome_cleaner/databases.yaml, and ./databases.yaml is used",
    )

    metagenome_cleaner.common.logging.add_argument_group(parser)

    return parser


def _add_host_options(parser: ArgumentParser, required: bool) -> None:
    group = parser.add_argument_group("Host")
    group.add_argument(
        "--host",
        required=required,
        help="Host organism; one of {}. Custom hosts require --db-path-kraken2 and "
        "--db-path-bowtie2".format(", ".join(HOST_ORGANISMS + (CUSTOM_HOST,))),
    )
    group.add_argument(
        "--db-path-bowtie2",
        metavar="PREFIX",
        help="Bowtie2 index for a custom host",
    )
    group.add_argument(
        "--db-path-kraken2",
        metavar="DIR",
        help="Kraken2 database for a custom host",
    )


def _add_tool_options(parser: ArgumentParser, schemas: Iterable[ToolSchema]) -> None:
    """Adds the options of each tool; options shared between tools (e.g. --threads)
    are added once and apply to every tool."""
    added: set[str] = set()
    for schema in schemas:
        group = parser.add_argument_group(f"{schema.executable} options")
        for option in schema:
            if option.cli not in added:
                option.add_argument(group)
                added.add(option.cli)
