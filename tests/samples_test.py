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
from pathlib import Path

import pytest

from metagenome_cleaner.samples import (
    DuplicateSampleError,
    MissingInputError,
    SampleGroup,
    collect,
    discover,
    from_arguments,
    sample_names,
)


def _touch(root: Path, *names: str) -> list[str]:
    filenames = []
    for name in names:
        (root / name).touch()
        filenames.append(str(root / name))

    return filenames


########################################################################################
# SampleGroup


def test_sample_group__paired() -> None:
    group = SampleGroup("s", ("s_R1.fq", "s_R2.fq"))

    assert group.paired
    assert group.mate_1 == "s_R1.fq"
    assert group.mate_2 == "s_R2.fq"


def test_sample_group__single() -> None:
    group = SampleGroup.single("/in/s.fq.gz")

    assert group.name == "s"
    assert not group.paired
    assert group.files == ("/in/s.fq.gz",)
    assert group.mate_2 is None


@pytest.mark.parametrize("files", [(), ("a", "b", "c")])
def test_sample_group__invalid_number_of_files(files: tuple[str, ...]) -> None:
    with pytest.raises(ValueError, match="expected 1 or 2 files"):
        SampleGroup("s", files)


def test_sample_group__empty_name() -> None:
    with pytest.raises(ValueError, match="sample name must not be empty"):
        SampleGroup("", ("a",))


def test_sample_group__equality() -> None:
    assert SampleGroup("s", ("a", "b")) == SampleGroup("s", ["a", "b"])
    assert SampleGroup("s", ("a", "b")) != SampleGroup("s", ("b", "a"))


########################################################################################
# discover


def test_discover__paired(tmp_path: Path) -> None:
    file_1, file_2 = _touch(tmp_path, "s_R1.fastq.gz", "s_R2.fastq.gz")

    assert discover(str(tmp_path)) == [SampleGroup("s", (file_1, file_2))]


def test_discover__paired_numeric_markers(tmp_path: Path) -> None:
    file_1, file_2 = _touch(tmp_path, "s_1.fq", "s_2.fq")

    assert discover(str(tmp_path)) == [SampleGroup("s", (file_1, file_2))]


def test_discover__mate_1_is_always_first(tmp_path: Path) -> None:
    file_2, file_1 = _touch(tmp_path, "s_R2.fq", "s_R1.fq")

    (group,) = discover(str(tmp_path))

    assert group.files == (file_1, file_2)


def test_discover__single_end(tmp_path: Path) -> None:
    (filename,) = _touch(tmp_path, "reads.fastq")

    assert discover(str(tmp_path)) == [SampleGroup("reads", (filename,))]


def test_discover__multiple_samples(tmp_path: Path) -> None:
    files = _touch(tmp_path, "a_R1.fq", "a_R2.fq", "b.fq", "c_R1.fq", "c_R2.fq")

    assert discover(str(tmp_path)) == [
        SampleGroup("a", files[0:2]),
        SampleGroup("b", files[2:3]),
        SampleGroup("c", files[3:5]),
    ]


def test_discover__unmatched_mate_is_single_end(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    (filename,) = _touch(tmp_path, "s_R1.fq")

    with caplog.at_level(logging.WARNING):
        assert discover(str(tmp_path)) == [SampleGroup("s_R1", (filename,))]

    assert "Could not pair files for sample 's'" in caplog.text


def test_discover__unmatched_mate_next_to_single_end(tmp_path: Path) -> None:
    file_1, file_2 = _touch(tmp_path, "a.fastq", "a_R1.fastq")

    assert discover(str(tmp_path)) == [
        SampleGroup("a", (file_1,)),
        SampleGroup("a_R1", (file_2,)),
    ]


def test_discover__ambiguous_mates_are_single_end(tmp_path: Path) -> None:
    files = _touch(tmp_path, "s_1.fq", "s_R1.fq", "s_R2.fq")

    assert discover(str(tmp_path)) == [
        SampleGroup("s_1", files[0:1]),
        SampleGroup("s_R1", files[1:2]),
        SampleGroup("s_R2", files[2:3]),
    ]


def test_discover__duplicate_mates(tmp_path: Path) -> None:
    _touch(tmp_path, "s_R1.fq", "s_R1.fastq", "s_R2.fq")

    with pytest.raises(DuplicateSampleError, match="'s_R1': "):
        discover(str(tmp_path))


@pytest.mark.parametrize(
    "names",
    [
        ("a.fq", "a.fastq"),
        ("a.fq", "a.fq.gz"),
        ("a_R1.fq", "a_R2.fq", "a.fastq"),
    ],
)
def test_discover__duplicate_sample_names(
    tmp_path: Path, names: tuple[str, ...]
) -> None:
    _touch(tmp_path, *names)

    with pytest.raises(DuplicateSampleError, match="Multiple samples with the same"):
        discover(str(tmp_path))


def test_discover__marker_only_name(tmp_path: Path) -> None:
    (filename,) = _touch(tmp_path, "_R1.fastq")

    assert discover(str(tmp_path)) == [SampleGroup("_R1", (filename,))]


def test_discover__ignores_other_files(tmp_path: Path) -> None:
    _touch(tmp_path, "notes.txt", "reads.bam")
    (tmp_path / "dir.fastq").mkdir()

    assert discover(str(tmp_path)) == []


def test_discover__ignores_sidecar_files(tmp_path: Path) -> None:
    files = _touch(tmp_path, "x.fastq", "x.fastq.md5", "x.fq.bak", "y.fq.gz.md5")

    assert discover(str(tmp_path)) == [SampleGroup("x", files[0:1])]


########################################################################################
# from_arguments


def test_from_arguments__paired() -> None:
    (group,) = from_arguments(forward="/in/s_R1.fq", reverse="/in/s_R2.fq")

    assert group == SampleGroup("s", ("/in/s_R1.fq", "/in/s_R2.fq"))


def test_from_arguments__single() -> None:
    (group,) = from_arguments(single="/in/s.fq")

    assert group == SampleGroup("s", ("/in/s.fq",))


def test_from_arguments__forward_only_is_single_end() -> None:
    (group,) = from_arguments(forward="/in/s_R1.fq")

    assert group == SampleGroup("s", ("/in/s_R1.fq",))


def test_from_arguments__paired_takes_precedence() -> None:
    (group,) = from_arguments(
        forward="/in/s_R1.fq",
        reverse="/in/s_R2.fq",
        single="/in/other.fq",
    )

    assert group.paired


@pytest.mark.parametrize("kwargs", [{}, {"reverse": "/in/s_R2.fq"}])
def test_from_arguments__missing_input(kwargs: dict[str, str]) -> None:
    with pytest.raises(MissingInputError, match="--forward/--reverse"):
        from_arguments(**kwargs)


########################################################################################
# collect


def test_collect__input_dir_takes_precedence(tmp_path: Path) -> None:
    (filename,) = _touch(tmp_path, "s.fq")

    groups = collect(input_dir=str(tmp_path), single="/in/other.fq")

    assert groups == [SampleGroup("s", (filename,))]


def test_collect__sample(tmp_path: Path) -> None:
    files = _touch(tmp_path, "a_R1.fq", "a_R2.fq", "b.fq")

    groups = collect(input_dir=str(tmp_path), sample="b")

    assert groups == [SampleGroup("b", files[2:])]


def test_collect__unknown_sample(tmp_path: Path) -> None:
    _touch(tmp_path, "a.fq")

    with pytest.raises(MissingInputError, match="Sample 'b' not found"):
        collect(input_dir=str(tmp_path), sample="b")


def test_collect__empty_input_dir(tmp_path: Path) -> None:
    with pytest.raises(MissingInputError, match="No FASTQ files found"):
        collect(input_dir=str(tmp_path))


def test_collect__missing_input_dir(tmp_path: Path) -> None:
    with pytest.raises(MissingInputError, match="does not exist"):
        collect(input_dir=str(tmp_path / "missing"))


def test_collect__files() -> None:
    (group,) = collect(forward="/in/s_R1.fq", reverse="/in/s_R2.fq")

    assert group.paired


########################################################################################
# sample_names


def test_sample_names__unique_in_order() -> None:
    groups = [
        SampleGroup("b", ("b.fq",)),
        SampleGroup("a", ("a_R1.fq",)),
        SampleGroup("a", ("a_R1.fastq",)),
    ]

    assert sample_names(groups) == ["b", "a"]
