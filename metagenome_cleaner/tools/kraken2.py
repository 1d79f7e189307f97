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
Kraken2 - Taxonomic sequence classification

https://github.com/DerrickWood/kraken2

Reads are classified against a contaminant database; the unclassified reads are kept
for further cleaning, while per-read classifications are discarded.
"""
from __future__ import annotations

from metagenome_cleaner.common.command import (
    CmdError,
    InputFile,
    OptionsType,
    OutputFile,
    ToolInvocation,
)
from metagenome_cleaner.common.options import (
    Option,
    StageConfig,
    ToolSchema,
    to_options,
)
from metagenome_cleaner.common.versions import Requirement
from metagenome_cleaner.naming import mate_template

KRAKEN2_VERSION = Requirement(
    call=("kraken2", "--version"),
    regexp=r"Kraken version (\d+\.\d+(?:\.\d+)?)",
    install="conda install -c bioconda kraken2",
)

SCHEMA = ToolSchema(
    "kraken2",
    [
        Option("threads", "--threads", int, "Number of threads", default=1),
        Option(
            "confidence",
            "--confidence",
            float,
            "Confidence score threshold; must be in [0, 1]",
        ),
        Option(
            "minimum_hit_groups",
            "--minimum-hit-groups",
            int,
            "Minimum number of hit groups needed to make a call",
        ),
        Option("use_names", "--use-names", bool, "Print scientific names"),
        Option(
            "minimum_base_quality",
            "--minimum-base-quality",
            int,
            "Minimum base quality used in classification",
        ),
        Option(
            "report_minimizer_data",
            "--report-minimizer-data",
            bool,
            "Include minimizer and distinct minimizer count in report",
        ),
    ],
)


def build_kraken2(
    *,
    database: str,
    input_1: str,
    input_2: str | None,
    output_1: str,
    output_2: str | None,
    report: str,
    config: StageConfig,
) -> ToolInvocation:
    """Classifies reads against 'database', writing unclassified reads to 'output_1'
    (and 'output_2' for paired reads) and the classification report to 'report'."""
    command = ToolInvocation(["kraken2"], requirements=[KRAKEN2_VERSION])

    fixed_options: OptionsType = {
        "--db": database,
        "--output": "/dev/null",
        "--report": OutputFile(report),
    }

    if input_2 and output_2:
        fixed_options["--paired"] = None
        # kraken2 replaces '#' with '_1' and '_2' for paired reads
        fixed_options["--unclassified-out"] = mate_template(
            output_1, output_2, "#", ("_1", "_2")
        )
        command.add_extra_files([OutputFile(output_1), OutputFile(output_2)])
    elif input_2 or output_2:
        raise CmdError("both input and output paths required for mate 2 reads")
    else:
        fixed_options["--unclassified-out"] = OutputFile(output_1)

    command.merge_options(
        user_options=to_options(SCHEMA, config),
        fixed_options=fixed_options,
        blacklisted_options=["--classified-out", "--unclassified-out", "--output"],
    )

    command.append(InputFile(input_1))
    if input_2:
        command.append(InputFile(input_2))

    return command
