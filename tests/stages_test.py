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

import os
import shutil
from pathlib import Path

import pytest

from metagenome_cleaner.common.options import StageConfig
from metagenome_cleaner.databases import References
from metagenome_cleaner.runner import EXECUTION_LOG
from metagenome_cleaner.samples import SampleGroup, discover
from metagenome_cleaner.stages import (
    MissingToolError,
    StageExecutor,
    StageStatus,
    contaminant_stage,
    phix_stage,
    quality_stage,
)
from metagenome_cleaner.tools import bowtie2, fastp, kraken2

_FAKE_FASTP = """#!/bin/sh
if [ "$1" = "--version" ]; then
    echo "fastp 0.23.4" >&2
    exit 0
fi

while [ $# -gt 0 ]; do
    case "$1" in
        --out1|--out2|--html|--json) echo "$1" > "$2"; shift;;
    esac
    shift
done
"""

_HUMAN = References("human", "/db/kraken2/human", "/db/bowtie2/human")
_PHIX = References("phix", None, "/db/bowtie2/phix")

_PAIRED = SampleGroup("s", ("/data/s_R1.fastq.gz", "/data/s_R2.fastq.gz"))
_SINGLE = SampleGroup("t", ("/data/t.fq",))


def _install(bin_dir: Path, name: str, script: str) -> None:
    bin_dir.mkdir(exist_ok=True)
    executable = bin_dir / name
    executable.write_text(script)
    executable.chmod(0o755)


@pytest.fixture
def no_tools(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", lambda _name: None)


########################################################################################
# Stage descriptors


def test_quality_stage() -> None:
    stage = quality_stage()

    assert stage.module_dir == "quality"
    assert stage.tag == "filtered"
    assert stage.tools == ("fastp",)


def test_phix_stage() -> None:
    stage = phix_stage()

    assert stage.module_dir == "phix_removal"
    assert stage.tag == "phix_cleaned"
    assert stage.tools == ("bowtie2",)


@pytest.mark.parametrize("organism", ["human", "dog", "custom"])
def test_contaminant_stage(organism: str) -> None:
    stage = contaminant_stage(organism)

    assert stage.module_dir == f"{organism}_removal"
    assert stage.tag == f"{organism}_bowtie2_unaligned"
    assert stage.tools == ("kraken2", "bowtie2")


########################################################################################
# StageExecutor construction


def test_executor__default_configs() -> None:
    executor = StageExecutor(quality_stage(), output="/out")

    assert executor.configs["fastp"].schema is fastp.SCHEMA
    assert executor.requirements == (fastp.FASTP_VERSION,)


def test_executor__references_required_for_alignment() -> None:
    with pytest.raises(ValueError, match="no references specified for stage 'phix'"):
        StageExecutor(phix_stage(), output="/out")


def test_executor__config_for_wrong_tool() -> None:
    configs = {"fastp": StageConfig(kraken2.SCHEMA)}

    with pytest.raises(ValueError, match="invalid options for fastp"):
        StageExecutor(quality_stage(), output="/out", configs=configs)


def test_executor__no_samples(tmp_path: Path) -> None:
    executor = StageExecutor(quality_stage(), output=str(tmp_path))

    with pytest.raises(ValueError, match="no samples"):
        executor.run([])


########################################################################################
# Missing tools


def test_check_tools__missing_tool(no_tools: None) -> None:
    stage = contaminant_stage("human")
    executor = StageExecutor(stage, output="/out", references=_HUMAN)

    with pytest.raises(MissingToolError, match="kraken2 is not installed") as error:
        executor.check_tools()

    assert error.value.requirement is kraken2.KRAKEN2_VERSION
    assert "conda install -c bioconda kraken2" in str(error.value)


def test_run__skipped_if_tools_are_missing(tmp_path: Path, no_tools: None) -> None:
    output = tmp_path / "output"
    executor = StageExecutor(phix_stage(), output=str(output), references=_PHIX)

    result = executor.run([_PAIRED])

    assert result.status == StageStatus.SKIPPED
    assert result.project_dir is None
    assert result.record is None
    assert not output.exists()


########################################################################################
# build_invocations


def test_build_invocations__quality_paired() -> None:
    executor = StageExecutor(quality_stage(), output="/out")

    (command,) = executor.build_invocations(_PAIRED, "/out/quality")

    assert command.to_call() == [
        "fastp",
        "--in1",
        "/data/s_R1.fastq.gz",
        "--out1",
        "/out/quality/s_filtered_1.fastq",
        "--in2",
        "/data/s_R2.fastq.gz",
        "--out2",
        "/out/quality/s_filtered_2.fastq",
        "--html",
        "/out/quality/s_fastp.html",
        "--json",
        "/out/quality/s_fastp.json",
    ]


def test_build_invocations__quality_user_options() -> None:
    configs = {"fastp": StageConfig(fastp.SCHEMA, length_required=50)}
    executor = StageExecutor(quality_stage(), output="/out", configs=configs)

    (command,) = executor.build_invocations(_SINGLE, "/out/quality")

    assert command.to_call() == [
        "fastp",
        "--in1",
        "/data/t.fq",
        "--out1",
        "/out/quality/t_filtered.fastq",
        "--html",
        "/out/quality/t_fastp.html",
        "--json",
        "/out/quality/t_fastp.json",
        "--length_required",
        "50",
    ]


def test_build_invocations__phix_single() -> None:
    executor = StageExecutor(phix_stage(), output="/out", references=_PHIX)

    (command,) = executor.build_invocations(_SINGLE, "/out/phix_removal")

    assert command.to_call() == [
        "bowtie2",
        "-x",
        "/db/bowtie2/phix",
        "-U",
        "/data/t.fq",
        "--un",
        "/out/phix_removal/t_phix_cleaned.fastq",
        "--very-sensitive-local",
    ]
    assert command.stdout == command.DEVNULL
    assert command.output_files == (
        "/out/phix_removal/t_bowtie2_report.txt",
        "/out/phix_removal/t_phix_cleaned.fastq",
    )


def test_build_invocations__human_paired() -> None:
    stage = contaminant_stage("human")
    executor = StageExecutor(stage, output="/out", references=_HUMAN)

    command_1, command_2 = executor.build_invocations(_PAIRED, "/out/human_removal")

    assert command_1.executable == "kraken2"
    assert command_1.to_call() == [
        "kraken2",
        "--db",
        "/db/kraken2/human",
        "--output",
        "/dev/null",
        "--report",
        "/out/human_removal/s_R1_kraken2_report.txt",
        "--paired",
        "--unclassified-out",
        "/out/human_removal/s_kraken2_unclassified#.fastq",
        "/data/s_R1.fastq.gz",
        "/data/s_R2.fastq.gz",
    ]

    assert command_2.executable == "bowtie2"
    assert command_2.to_call() == [
        "bowtie2",
        "-x",
        "/db/bowtie2/human",
        "-1",
        "/out/human_removal/s_kraken2_unclassified_1.fastq",
        "-2",
        "/out/human_removal/s_kraken2_unclassified_2.fastq",
        "--un-conc",
        "/out/human_removal/s_human_bowtie2_unaligned_%.fastq",
        "--very-sensitive-local",
    ]


@pytest.mark.parametrize("group", [_PAIRED, _SINGLE])
def test_build_invocations__kraken2_outputs_are_bowtie2_inputs(
    group: SampleGroup,
) -> None:
    executor = StageExecutor(contaminant_stage("dog"), output="/out", references=_HUMAN)

    kraken2_cmd, bowtie2_cmd = executor.build_invocations(group, "/out/dog_removal")

    unclassified = [
        filename
        for filename in kraken2_cmd.output_files
        if filename.endswith(".fastq")
    ]

    assert unclassified
    assert list(bowtie2_cmd.input_files) == unclassified
    assert not set(group.files) & set(bowtie2_cmd.input_files)


def test_build_invocations__shared_threads() -> None:
    configs = {
        "kraken2": StageConfig(kraken2.SCHEMA, threads=4),
        "bowtie2": StageConfig(bowtie2.SCHEMA, threads=4),
    }
    stage = contaminant_stage("human")
    executor = StageExecutor(stage, output="/out", configs=configs, references=_HUMAN)

    for command in executor.build_invocations(_SINGLE, "/out/human_removal"):
        call = command.to_call()
        assert call[call.index("--threads") + 1] == "4"


def test_final_outputs() -> None:
    executor = StageExecutor(phix_stage(), output="/out", references=_PHIX)

    assert executor.final_outputs(_PAIRED, "/mod") == [
        "/mod/s_phix_cleaned_1.fastq",
        "/mod/s_phix_cleaned_2.fastq",
    ]
    assert executor.final_outputs(_SINGLE, "/mod") == ["/mod/t_phix_cleaned.fastq"]


def test_final_outputs__unique_for_discovered_samples(tmp_path: Path) -> None:
    for name in ("a_R1.fastq", "a.fastq", "b_R1.fq", "b_R2.fq", "c_1.fq", "_R1.fq"):
        (tmp_path / name).touch()

    executor = StageExecutor(quality_stage(), output="/out")
    outputs = [
        filename
        for group in discover(str(tmp_path))
        for filename in executor.final_outputs(group, "/mod")
    ]

    assert sorted(outputs) == [
        "/mod/_R1_filtered.fastq",
        "/mod/a_R1_filtered.fastq",
        "/mod/a_filtered.fastq",
        "/mod/b_filtered_1.fastq",
        "/mod/b_filtered_2.fastq",
        "/mod/c_1_filtered.fastq",
    ]



########################################################################################
# run


def test_run__quality_stage(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    bin_dir = tmp_path / "bin"
    _install(bin_dir, "fastp", _FAKE_FASTP)
    monkeypatch.setenv("PATH", str(bin_dir))

    data = tmp_path / "data"
    data.mkdir()
    (data / "s_R1.fq").write_text("@r\nA\n+\nI\n")
    (data / "s_R2.fq").write_text("@r\nT\n+\nI\n")
    group = SampleGroup("s", (str(data / "s_R1.fq"), str(data / "s_R2.fq")))

    output = tmp_path / "output"
    executor = StageExecutor(quality_stage(), output=str(output))
    result = executor.run([group])

    assert result.status == StageStatus.DONE
    assert result.project_dir is not None
    assert os.path.dirname(result.project_dir) == str(output)
    assert os.path.basename(result.project_dir).startswith("Project_")
    assert result.module_dir == os.path.join(result.project_dir, "quality")

    assert result.record is not None
    assert [entry.success for entry in result.record.entries] == [True]
    assert sorted(os.listdir(result.module_dir)) == [
        EXECUTION_LOG,
        "s_fastp.html",
        "s_fastp.json",
        "s_filtered_1.fastq",
        "s_filtered_2.fastq",
    ]

    module_dir = Path(result.module_dir)
    assert (module_dir / "s_filtered_2.fastq").read_text() == "--out2\n"
    log = (module_dir / EXECUTION_LOG).read_text().splitlines()
    assert log[0].startswith("Executing command: fastp --in1 ")
    assert log[1] == "Command completed successfully"


def test_run__failed_commands_are_recorded(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    bin_dir = tmp_path / "bin"
    _install(bin_dir, "fastp", "#!/bin/sh\nexit 3\n")
    monkeypatch.setenv("PATH", str(bin_dir))

    groups = [SampleGroup("a", ("/data/a.fq",)), SampleGroup("b", ("/data/b.fq",))]
    executor = StageExecutor(quality_stage(), output=str(tmp_path / "output"))
    result = executor.run(groups)

    assert result.status == StageStatus.DONE
    assert result.record is not None
    assert [entry.success for entry in result.record.entries] == [False, False]
    assert result.record.entries[0].detail == "fastp: exited with return-code 3"


def test_run__demoted_mates_are_not_overwritten(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    bin_dir = tmp_path / "bin"
    _install(
        bin_dir,
        "fastp",
        """#!/bin/sh
while [ $# -gt 0 ]; do
    case "$1" in
        --in1) input="$2"; shift;;
        --out1) while read -r line; do echo "${line}"; done < "${input}" > "$2"; shift;;
        --html|--json) : > "$2"; shift;;
    esac
    shift
done
""",
    )
    monkeypatch.setenv("PATH", str(bin_dir))

    data = tmp_path / "data"
    data.mkdir()
    (data / "a.fastq").write_text("@a\nA\n+\nI\n")
    (data / "a_R1.fastq").write_text("@a_R1\nC\n+\nI\n")

    executor = StageExecutor(quality_stage(), output=str(tmp_path / "output"))
    result = executor.run(discover(str(data)))

    assert result.module_dir is not None
    module_dir = Path(result.module_dir)
    assert (module_dir / "a_filtered.fastq").read_text() == "@a\nA\n+\nI\n"
    assert (module_dir / "a_R1_filtered.fastq").read_text() == "@a_R1\nC\n+\nI\n"
    assert (module_dir / "a_R1_fastp.json").exists()
    assert (module_dir / "a_fastp.json").exists()

