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

import re
import sys
from pathlib import Path

import pytest

from metagenome_cleaner.common.versions import Requirement, RequirementError

########################################################################################
# Requirement -- constructor


def test_requirement__init__str() -> None:
    obj = Requirement("true")

    assert obj.name == "true"
    assert obj.call == ("true",)
    assert obj.install is None


def test_requirement__init__list() -> None:
    obj = Requirement(["also", "true"])

    assert obj.name == "also"
    assert obj.call == ("also", "true")


def test_requirement__init__non_defaults() -> None:
    obj = Requirement(
        call=("bash", "foo"),
        regexp=r"(\d+)\.(\d+)",
        name="A name",
        install="apt-get install bash",
    )

    assert obj.call == ("bash", "foo")
    assert obj.regexp == re.compile(r"(\d+)\.(\d+)")
    assert obj.name == "A name"
    assert obj.install == "apt-get install bash"


def test_requirement__checks_require_search() -> None:
    with pytest.raises(RequirementError, match="specifiers require a regexp str"):
        Requirement("true", specifiers=">1.2.3")


def test_requirement__equality() -> None:
    obj_1 = Requirement(("fastp", "--version"), regexp=r"(\d+)")
    obj_2 = Requirement(("fastp", "--version"), regexp=r"(\d+)")
    obj_3 = Requirement(("fastp", "--help"), regexp=r"(\d+)")

    assert obj_1 == obj_2
    assert hash(obj_1) == hash(obj_2)
    assert obj_1 != obj_3


########################################################################################
# Requirement -- version


def _echo_version(version: str, dst: str = "stdout", returncode: int = 0):
    tmpl = "import sys; sys.%s.write(%r); sys.exit(%s);"
    return (sys.executable, "-c", tmpl % (dst, version, returncode))


_PIPES = ("stderr", "stdout")

_VERSION_CALL_RESULTS = (
    (r"v(\d+)", "3"),
    (r"v(\d+\.\d+)", "3.5"),
    (r"v(\d+\.\d+)\.(\d+)", "3.5.2"),
)


@pytest.mark.parametrize("pipe", _PIPES)
@pytest.mark.parametrize("regexp, equals", _VERSION_CALL_RESULTS)
def test_requirement__version__call(pipe: str, regexp: str, equals: str) -> None:
    call = _echo_version("v3.5.2\n", dst=pipe)
    obj = Requirement(call=call, regexp=regexp)

    assert obj.version() == equals


def test_requirement__version__version_str_not_found() -> None:
    call = _echo_version("A typical error\n")
    obj = Requirement(call=call, regexp=r"v(\d+\.\d+)")

    with pytest.raises(RequirementError, match="A typical error"):
        obj.version()


def test_requirement__version__command_not_found() -> None:
    obj = Requirement(call=("xyzabcdefoo",), regexp=r"v(\d+\.\d+)")

    with pytest.raises(RequirementError, match="Exception was raised"):
        obj.version()


def test_requirement__version__return_code_is_ignored() -> None:
    obj = Requirement(_echo_version("v1.2.3", returncode=1), regexp=r"v(\d+\.\d+)")

    assert obj.version() == "1.2"
    assert obj.version_str() == "v1.2"


def test_requirement__version__call_is_cached() -> None:
    obj = Requirement(("echo", "v1.2.3"), regexp=r"v(\d+\.\d+)")
    assert obj.version() == "1.2"

    obj._call = ("echo", "v3.2.1")
    assert obj.version() == "1.2"
    assert obj.version(force=True) == "3.2"


def test_requirement__version__found_optional_fields_are_included() -> None:
    obj = Requirement(("echo", "v1.2.5"), regexp=r"v(\d+\.\d+)(\.\d+)?")

    assert obj.version() == "1.2.5"


def test_requirement__version__missing_optional_fields_are_trimmed() -> None:
    obj = Requirement(("echo", "v1.2"), regexp=r"v(\d+\.\d+)(\.\d+)?")

    assert obj.version() == "1.2"


def test_requirement__version__calls_without_regexp() -> None:
    obj = Requirement(("echo", "v1.2"))

    assert not obj.version()
    assert obj.version_str() == "N/A"


def test_requirement__version__calls_without_regexp_still_invoked(
    tmp_path: Path,
) -> None:
    obj = Requirement((str(tmp_path / "echo"), "v1.2"))

    with pytest.raises(RequirementError, match="Exception was raised"):
        obj.version()


########################################################################################
# Requirement -- executable / available


def test_requirement__executable__with_cli_arguments() -> None:
    obj = Requirement(call=["bowtie2", "--version"], regexp=r"v(\d+\.\d+)")

    assert obj.executable == "bowtie2"


def test_requirement__available() -> None:
    assert Requirement(call=[sys.executable, "--version"]).available()
    assert not Requirement(call=["xyzabcdefoo", "--version"]).available()


########################################################################################
# Requirement -- check


def test_requirement__check_succeeds() -> None:
    obj = Requirement(
        call=_echo_version("v1.0.2"),
        regexp=r"(\d\.\d)",
        specifiers=">=1.0",
    )

    assert obj.check()


def test_requirement__check_fails() -> None:
    obj = Requirement(
        call=_echo_version("v1.0.2"),
        regexp=r"(\d\.\d)",
        specifiers=">=1.1",
    )

    assert not obj.check()


def test_requirement__check_succeeds_if_no_specifiers() -> None:
    obj = Requirement(call=_echo_version("v1.0.2"))

    assert obj.check()
