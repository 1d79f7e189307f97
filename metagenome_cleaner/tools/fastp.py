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
fastp - An ultra-fast all-in-one FASTQ preprocessor

https://github.com/OpenGene/fastp
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

FASTP_VERSION = Requirement(
    call=("fastp", "--version"),
    regexp=r"fastp (\d+\.\d+\.\d+)",
    install="conda install -c bioconda fastp",
)

SCHEMA = ToolSchema(
    "fastp",
    [
        Option(
            "qualified_quality_phred",
            "--qualified_quality_phred",
            int,
            "Quality value that a base is qualified",
            default=20,
        ),
        Option(
            "unqualified_percent_limit",
            "--unqualified_percent_limit",
            float,
            "How many percents of unqualified bases are allowed in a read",
        ),
        Option(
            "n_base_limit",
            "--n_base_limit",
            int,
            "Maximum number of N bases allowed in a read",
        ),
        Option(
            "length_required",
            "--length_required",
            int,
            "Reads shorter than this length will be discarded",
        ),
        Option(
            "adapter_sequence",
            "--adapter_sequence",
            str,
            "Adapter sequence for read1",
        ),
        Option(
            "adapter_sequence_r2",
            "--adapter_sequence_r2",
            str,
            "Adapter sequence for read2 (paired-end)",
        ),
        Option(
            "trim_poly_g",
            "--trim_poly_g",
            bool,
            "Enable polyG tail trimming (useful for NovaSeq data)",
        ),
        Option("trim_poly_x", "--trim_poly_x", bool, "Enable polyX tail trimming"),
        Option("cut_front", "--cut_front", bool, "Enable front end trimming"),
        Option("cut_tail", "--cut_tail", bool, "Enable tail end trimming"),
        Option(
            "cut_window_size",
            "--cut_window_size",
            int,
            "Window size for sliding window cutting",
        ),
        Option(
            "cut_mean_quality",
            "--cut_mean_quality",
            int,
            "Mean quality requirement for sliding window cutting",
        ),
        Option("thread", "--thread", int, "Number of worker threads to be used"),
    ],
)


def build_fastp(
    *,
    in_fq_1: str,
    in_fq_2: str | None,
    out_fq_1: str,
    out_fq_2: str | None,
    out_html: str,
    out_json: str,
    config: StageConfig,
) -> ToolInvocation:
    command = ToolInvocation(["fastp"], requirements=[FASTP_VERSION])

    fixed_options: OptionsType = {
        "--in1": InputFile(in_fq_1),
        "--out1": OutputFile(out_fq_1),
    }

    if in_fq_2 and out_fq_2:
        fixed_options["--in2"] = InputFile(in_fq_2)
        fixed_options["--out2"] = OutputFile(out_fq_2)
    elif in_fq_2 or out_fq_2:
        raise CmdError("both input and output paths required for mate 2 reads")

    fixed_options["--html"] = OutputFile(out_html)
    fixed_options["--json"] = OutputFile(out_json)

    command.merge_options(
        user_options=to_options(SCHEMA, config),
        fixed_options=fixed_options,
        baseline=SCHEMA.baseline,
        blacklisted_options=[
            "--stdin",
            "--stdout",
            "--interleaved_in",
        ],
    )

    return command
