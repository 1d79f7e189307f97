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
Execution of cleaning stages.

Every stage follows the same sequence: required tools are checked (the stage is
skipped if any are missing, before anything is written), the project and module
directories are created, invocations are built for every sample and run in order,
intermediate files are pruned, and finally read-quality and summary reports are
generated for the cleaned reads.

Stages differ only in the tools they run, as described by a StageDescriptor:

  quality   fastp
  phix      bowtie2
  human     kraken2, then bowtie2 on the reads not classified by kraken2
  <host>    kraken2, then bowtie2 on the reads not classified by kraken2
"""
from __future__ import annotations

import enum
import logging
import os
from typing import Iterable, NamedTuple, Sequence

from metagenome_cleaner import reports
from metagenome_cleaner.common.command import ToolInvocation
from metagenome_cleaner.common.fileutils import describe_paired_files
from metagenome_cleaner.common.options import StageConfig
from metagenome_cleaner.common.versions import Requirement, RequirementError
from metagenome_cleaner.databases import References
from metagenome_cleaner.naming import output_name, report_name
from metagenome_cleaner.project import create_module_dir, create_project_dir
from metagenome_cleaner.runner import ExecutionRecord, protected_patterns, run_commands
from metagenome_cleaner.samples import SampleGroup
from metagenome_cleaner.tools import bowtie2, fastp, kraken2


class StageStatus(enum.Enum):
    DONE = "done"
    SKIPPED = "skipped"


class StageDescriptor(NamedTuple):
    # Name used in log messages
    name: str
    # Name of the module directory in the project directory
    module_dir: str
    # Tag used to name the final outputs of the stage
    tag: str
    # Tools run for each sample, in order
    tools: tuple[str, ...]


def quality_stage() -> StageDescriptor:
    return StageDescriptor("quality", "quality", "filtered", ("fastp",))


def phix_stage() -> StageDescriptor:
    return StageDescriptor("phix", "phix_removal", "phix_cleaned", ("bowtie2",))


def contaminant_stage(organism: str) -> StageDescriptor:
    """Stage removing reads from 'organism' (human or a host) using kraken2 and
    bowtie2."""
    return StageDescriptor(
        name=organism,
        module_dir=f"{organism}_removal",
        tag=f"{organism}_bowtie2_unaligned",
        tools=("kraken2", "bowtie2"),
    )


class StageResult(NamedTuple):
    status: StageStatus
    project_dir: str | None = None
    module_dir: str | None = None
    record: ExecutionRecord | None = None


class MissingToolError(Exception):
    def __init__(self, requirement: Requirement) -> None:
        super().__init__(
            f"{requirement.name} is not installed. To install it, run "
            f"'{requirement.install}'"
        )
        self.requirement = requirement


_REQUIREMENTS = {
    "fastp": fastp.FASTP_VERSION,
    "kraken2": kraken2.KRAKEN2_VERSION,
    "bowtie2": bowtie2.BOWTIE2_VERSION,
}

TOOL_SCHEMAS = {
    "fastp": fastp.SCHEMA,
    "kraken2": kraken2.SCHEMA,
    "bowtie2": bowtie2.SCHEMA,
}


class StageExecutor:
    def __init__(
        self,
        descriptor: StageDescriptor,
        *,
        output: str,
        retain: bool = False,
        configs: dict[str, StageConfig] | None = None,
        references: References | None = None,
    ) -> None:
        configs = dict(configs or {})
        for tool in descriptor.tools:
            schema = TOOL_SCHEMAS[tool]
            config = configs.setdefault(tool, StageConfig(schema))
            if config.schema is not schema:
                raise ValueError(f"invalid options for {tool}: {config!r}")

        if references is None and set(descriptor.tools) & {"kraken2", "bowtie2"}:
            raise ValueError(f"no references specified for stage {descriptor.name!r}")

        self.descriptor = descriptor
        self.output = output
        self.retain = retain
        self.configs = configs
        self.references = references

    @property
    def requirements(self) -> tuple[Requirement, ...]:
        return tuple(_REQUIREMENTS[tool] for tool in self.descriptor.tools)

    def check_tools(self) -> None:
        """Raises MissingToolError if a tool required by the stage is not found."""
        for requirement in self.requirements:
            if not requirement.available():
                raise MissingToolError(requirement)

    def run(self, groups: Sequence[SampleGroup]) -> StageResult:
        if not groups:
            raise ValueError(f"no samples for stage {self.descriptor.name!r}")

        try:
            self.check_tools()
        except MissingToolError as error:
            self._log.warning("Skipping stage: %s", error, extra=self._extra)
            return StageResult(StageStatus.SKIPPED)

        self._log_versions()

        project_dir = create_project_dir(self.output)
        module_dir = create_module_dir(project_dir, self.descriptor.module_dir)
        record = ExecutionRecord(module_dir, stage=self.descriptor.name)

        if "fastp" in self.descriptor.tools:
            # Reports for the raw reads
            inputs = [filename for group in groups for filename in group.files]
            reports.quality_reports(inputs, module_dir, record)

        outputs: list[str] = []
        invocations: list[ToolInvocation] = []
        for group in groups:
            self._log.info(
                "Processing %s sample %r: %s",
                "paired-end" if group.paired else "single-end",
                group.name,
                describe_paired_files(group.files[:1], group.files[1:]),
                extra=self._extra,
            )

            invocations.extend(self.build_invocations(group, module_dir))
            outputs.extend(self.final_outputs(group, module_dir))

        run_commands(
            invocations,
            module_dir,
            self.retain,
            record=record,
            protected=protected_patterns(self.descriptor.tag),
        )

        reports.quality_reports(outputs, module_dir, record)
        reports.aggregate(module_dir, record)

        failures = len(record.failures)
        if failures:
            self._log.warning(
                "%i of %i commands failed; see %r",
                failures,
                len(record),
                record.filename,
                extra=self._extra,
            )
        self._log.info("Results written to %r", module_dir, extra=self._extra)

        return StageResult(StageStatus.DONE, project_dir, module_dir, record)

    def final_outputs(self, group: SampleGroup, module_dir: str) -> list[str]:
        """Returns the names of the cleaned FASTQ files for a sample."""
        return self._fastq_names(group, self.descriptor.tag, module_dir)

    def build_invocations(
        self, group: SampleGroup, module_dir: str
    ) -> list[ToolInvocation]:
        invocations: list[ToolInvocation] = []

        input_1, input_2 = group.mate_1, group.mate_2
        for tool in self.descriptor.tools:
            if tool == "fastp":
                invocation = self._build_fastp(group, module_dir)
            elif tool == "kraken2":
                invocation = self._build_kraken2(group, module_dir)
            elif tool == "bowtie2":
                invocation = self._build_bowtie2(group, input_1, input_2, module_dir)
            else:
                raise NotImplementedError(tool)

            invocations.append(invocation)

            # Reads produced by one tool are the inputs of the next tool
            input_1, *rest = _fastq_files(invocation.output_files)
            input_2 = rest[0] if rest else None

        return invocations

    def _build_fastp(self, group: SampleGroup, module_dir: str) -> ToolInvocation:
        out_1, *out_2 = self._fastq_names(group, self.descriptor.tag, module_dir)
        prefix = os.path.join(module_dir, f"{group.name}_fastp")

        return fastp.build_fastp(
            in_fq_1=group.mate_1,
            in_fq_2=group.mate_2,
            out_fq_1=out_1,
            out_fq_2=out_2[0] if out_2 else None,
            out_html=prefix + ".html",
            out_json=prefix + ".json",
            config=self.configs["fastp"],
        )

    def _build_kraken2(self, group: SampleGroup, module_dir: str) -> ToolInvocation:
        assert self.references is not None and self.references.kraken2_db
        out_1, *out_2 = self._fastq_names(group, "kraken2_unclassified", module_dir)

        return kraken2.build_kraken2(
            database=self.references.kraken2_db,
            input_1=group.mate_1,
            input_2=group.mate_2,
            output_1=out_1,
            output_2=out_2[0] if out_2 else None,
            report=report_name(group.mate_1, "kraken2_report", module_dir),
            config=self.configs["kraken2"],
        )

    def _build_bowtie2(
        self,
        group: SampleGroup,
        input_1: str,
        input_2: str | None,
        module_dir: str,
    ) -> ToolInvocation:
        assert self.references is not None
        out_1, *out_2 = self._fastq_names(group, self.descriptor.tag, module_dir)

        return bowtie2.build_bowtie2(
            index=self.references.bowtie2_index,
            input_1=input_1,
            input_2=input_2,
            output_1=out_1,
            output_2=out_2[0] if out_2 else None,
            report=report_name(group.mate_1, "bowtie2_report", module_dir),
            config=self.configs["bowtie2"],
        )

    @staticmethod
    def _fastq_names(group: SampleGroup, tag: str, module_dir: str) -> list[str]:
        if group.paired:
            return [
                output_name(group.mate_1, tag, "1", module_dir, base=group.name),
                output_name(group.mate_1, tag, "2", module_dir, base=group.name),
            ]

        return [output_name(group.mate_1, tag, "", module_dir, base=group.name)]

    def _log_versions(self) -> None:
        for requirement in self.requirements:
            try:
                version = requirement.version_str()
            except RequirementError as error:
                self._log.warning(
                    "Could not determine version of %s:\n%s",
                    requirement.name,
                    error,
                    extra=self._extra,
                )
            else:
                self._log.info(
                    "Using %s %s", requirement.name, version, extra=self._extra
                )

    @property
    def _log(self) -> logging.Logger:
        return logging.getLogger(__name__)

    @property
    def _extra(self) -> dict[str, str]:
        return {"stage": self.descriptor.name}


def _fastq_files(filenames: Iterable[str]) -> list[str]:
    return [filename for filename in filenames if filename.endswith(".fastq")]
