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

import pytest

from metagenome_cleaner.tools.parallel import PARALLEL_VERSION, build_parallel


def test_parallel__basic() -> None:
    cmd = build_parallel(["echo", "{}"], ["a", "b"])

    assert cmd.to_call() == ["parallel", "echo", "{}", ":::", "a", "b"]
    assert cmd.requirements == {PARALLEL_VERSION}


def test_parallel__jobs_and_params() -> None:
    cmd = build_parallel(["echo", "{}"], ["a"], jobs=4, params=["--halt", "now,fail=1"])

    assert cmd.to_call() == [
        "parallel",
        "--jobs",
        "4",
        "--halt",
        "now,fail=1",
        "echo",
        "{}",
        ":::",
        "a",
    ]


def test_parallel__template_is_quoted() -> None:
    cmd = build_parallel(["ls", "/my dir", "{}"], ["a"])

    assert cmd.to_call() == ["parallel", "ls", "'/my dir'", "{}", ":::", "a"]


def test_parallel__no_arguments() -> None:
    with pytest.raises(ValueError, match="no arguments"):
        build_parallel(["echo", "{}"], [])


def test_parallel__no_placeholder() -> None:
    with pytest.raises(ValueError, match="not found in template"):
        build_parallel(["echo"], ["a"])
