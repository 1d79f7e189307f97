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
import shutil
import subprocess
from shlex import quote
from typing import Iterable, Optional, Tuple, Union

from packaging.specifiers import SpecifierSet


class RequirementError(Exception):
    """Raised if version requirements are not met, or if a version could not be
    determined for a requirement check.
    """


class Requirement:
    """Version checks for executables called by the cleaning stages.

    A requirement consists of a command that is to be invoked, a regexp that extracts
    an 'X.Y.Z' version string from the output of the command, an optional version
    specification (e.g. '>=X.Y.Z'), and a hint describing how the executable may be
    installed if it is missing.

    For example, to check that fastp v0.20 or later is installed:
        obj = Requirement(call=("fastp", "--version"),
                          regexp=r"fastp (\\d+\\.\\d+\\.\\d+)",
                          specifiers=">=0.20",
                          install="conda install -c bioconda fastp")

        assert obj.check(), "version requirements not met"
    """

    def __init__(
        self,
        call: Union[str, Iterable[str]],
        regexp: Optional[str] = None,
        specifiers: Optional[str] = None,
        name: Optional[str] = None,
        install: Optional[str] = None,
    ):
        self._call = (call,) if isinstance(call, str) else tuple(call)
        self.name = str(name or self._call[0])
        self.regexp = re.compile(regexp) if regexp else None
        self.specifiers = SpecifierSet(specifiers or "")
        self.install = install
        self._has_cached_version = False
        self._cached_version: Union[str, Exception] = ""

        # Checks will always fail without a regexp string
        if specifiers and not regexp:
            raise RequirementError("specifiers require a regexp str")

    @property
    def call(self) -> Tuple[str, ...]:
        return self._call

    @property
    def executable(self) -> str:
        return self._call[0]

    def available(self) -> bool:
        """Returns true if the executable can be found in the PATH."""
        return shutil.which(self.executable) is not None

    def version(self, force: bool = False) -> str:
        """The version determined for the application. If the version could not be
        determined, a RequirementError is raised.
        """
        if force or not self._has_cached_version:
            self._cached_version = self._determine_version()
            self._has_cached_version = True

        if isinstance(self._cached_version, Exception):
            raise self._cached_version

        return self._cached_version

    def version_str(self, force: bool = False) -> str:
        version = self.version(force)
        if not version:
            return "N/A"

        return f"v{version}"

    def check(self, force: bool = False) -> bool:
        version = self.version(force)
        if not self.specifiers:
            return True

        return version in self.specifiers

    def _determine_version(self) -> Union[str, Exception]:
        try:
            output = subprocess.run(
                self.call,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                # Merge STDERR with STDOUT output
                stderr=subprocess.STDOUT,
                encoding="utf-8",
                errors="replace",
                check=False,
            ).stdout
        except OSError as error:
            return self._failure(error)

        if self.regexp:
            match = self.regexp.search(output)
            if not match:
                return self._failure(output)

            return ".".join(field.strip(".") for field in match.groups() if field)

        return ""

    def _failure(self, output: Union[str, Exception]) -> RequirementError:
        lines = [
            "Version could not be determined for:",
            "Command  = {}".format(" ".join(map(quote, self.call))),
            "",
        ]

        if isinstance(output, Exception):
            lines.append("Exception was raised: %r" % (output,))
        else:
            lines.extend(
                [
                    "Program may be broken or a version not supported by the",
                    "pipeline.",
                    "",
                    "Requirements:   %s" % (self.specifiers,),
                    "Search string:  %r" % (self.regexp),
                    "",
                    "%s Command output %s" % ("-" * 22, "-" * 22),
                    output,
                ]
            )

        return RequirementError("\n".join(lines))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Requirement):
            return NotImplemented

        return self._to_tuple() == other._to_tuple()

    def __hash__(self) -> int:
        return hash(self._to_tuple())

    def __repr__(self) -> str:
        return f"Requirement({self.name!r})"

    def _to_tuple(self):
        return (self._call, self.name, self.regexp, self.specifiers)
