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
Bowtie2 - Fast and sensitive read alignment

https://github.com/BenLangmead/bowtie2

Reads are aligned against a contaminant index and the reads that fail to align are
kept as the cleaned output; the alignments themselves are discarded.
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

BOWTIE2_VERSION = Requirement(
    call=("bowtie2", "--version"),
    regexp=r"version (\d+\.\d+\.\d+)",
    specifiers=">=2.3.0",
    install="conda install -c bioconda bowtie2",
)

SCHEMA = ToolSchema(
    "bowtie2",
    [
        Option("threads", "--threads", int, "Number of alignment threads to launch"),
        Option("N", "-N", int, "Max mismatches in seed alignment; 0 or 1", cli="--N"),
        Option("L", "-L", int, "Length of seed substrings", cli="--L"),
        Option("i", "-i", str, "Interval between seed substrings", cli="--i"),
        Option("rdg", "--rdg", str, "Read gap open, extend penalties"),
        Option("rfg", "--rfg", str, "Reference gap open, extend penalties"),
        Option("score_min", "--score-min", str, "Min acceptable alignment score"),
        Option("very_fast", "--very-fast", bool, "Use the --very-fast preset"),
        Option("fast", "--fast", bool, "Use the --fast preset"),
        Option("sensitive", "--sensitive", bool, "Use the --sensitive preset"),
        Option(
            "very_sensitive",
            "--very-sensitive",
            bool,
            "Use the --very-sensitive preset",
        ),
        Option("al", "--al", str, "Write unpaired reads that aligned to this path"),
        Option(
            "al_conc",
            "--al-conc",
            str,
            "Write pairs that aligned concordantly to this path",
        ),
        Option("k", "-k", int, "Report up to this many alignments per read", cli="--k"),
        Option("a", "-a", bool, "Report all alignments", cli="--a"),
        Option("maxins", "--maxins", int, "Maximum fragment length"),
    ],
    baseline=("--very-sensitive-local",),
)


def build_bowtie2(
    *,
    index: str,
    input_1: str,
    input_2: str | None,
    output_1: str,
    output_2: str | None,
    report: str,
    config: StageConfig,
) -> ToolInvocation:
    """Aligns reads against 'index', writing reads that did not align to 'output_1'
    (and 'output_2' for paired reads); the alignment summary printed by bowtie2 is
    written to 'report'."""
    command = ToolInvocation(
        ["bowtie2"],
        stdout=ToolInvocation.DEVNULL,
        stderr=report,
        requirements=[BOWTIE2_VERSION],
    )

    fixed_options: OptionsType = {"-x": index}
    if input_2 and output_2:
        fixed_options["-1"] = InputFile(input_1)
        fixed_options["-2"] = InputFile(input_2)
        # bowtie2 replaces '%' with the mate number
        fixed_options["--un-conc"] = mate_template(
            output_1, output_2, "%", ("1", "2")
        )
        command.add_extra_files([OutputFile(output_1), OutputFile(output_2)])
    elif input_2 or output_2:
        raise CmdError("both input and output paths required for mate 2 reads")
    else:
        fixed_options["-U"] = InputFile(input_1)
        fixed_options["--un"] = OutputFile(output_1)

    command.merge_options(
        user_options=to_options(SCHEMA, config),
        fixed_options=fixed_options,
        baseline=SCHEMA.baseline,
        blacklisted_options=["--un", "--un-conc", "-S", "-x", "-1", "-2", "-U"],
    )

    return command
