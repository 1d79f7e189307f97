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
import shlex
import signal
import subprocess
from pathlib import Path
from typing import IO, Callable, Dict, Iterable, List, Tuple, Union

from metagenome_cleaner.common import fileutils
from metagenome_cleaner.common.utilities import safe_coerce_to_tuple
from metagenome_cleaner.common.versions import Requirement


class CmdError(RuntimeError):
    """Exception raised for ToolInvocation specific errors."""

    def __init__(self, msg: object) -> None:
        RuntimeError.__init__(self, msg)


class InvocationFailure(CmdError):
    """Raised when an external tool could not be started or exited with an error."""

    def __init__(
        self,
        command: ToolInvocation,
        detail: str,
        returncode: int | None = None,
    ) -> None:
        super().__init__(f"{command.executable}: {detail}")
        self.command = command
        self.detail = detail
        self.returncode = returncode


class _IOFile:
    def __init__(self, path: fileutils.PathTypes) -> None:
        self.path = fileutils.fspath(path)

        if isinstance(self.path, bytes):
            raise TypeError(f"invalid path {path!r}")

    def basename(self) -> str:
        return os.path.basename(self.path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _IOFile):
            return NotImplemented

        return type(self) is type(other) and self.path == other.path

    def __hash__(self) -> int:
        return hash((type(self), self.path))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.path!r})"


class InputFile(_IOFile):
    pass


class OutputFile(_IOFile):
    pass


IOFileTypes = Union[InputFile, OutputFile]

OptionValueType = Union[str, int, float, IOFileTypes, None]
OptionsType = Dict[
    str,
    Union[
        OptionValueType,
        List[OptionValueType],
        Tuple[OptionValueType, ...],
    ],
]

# Possible destinations for STDOUT / STDERR; None inherits the handle of the caller
PipeType = Union[None, int, str, Path, OutputFile]


class ToolInvocation:
    """A single call of an external tool, represented as a list of arguments that is
    executed directly (without a shell). Input and output paths are specified using
    the InputFile and OutputFile classes, allowing callers to inspect which files a
    command reads and writes; this is used to link the outputs of one step in a
    stage to the inputs of the next.

    EXAMPLE: Counting the lines in a file
        cmd = ToolInvocation(["wc", "-l", InputFile("/path/to/input")],
                             stdout="/path/to/count.txt")

    Once `run` has been called, the invocation can no longer be modified.
    """

    DEVNULL = subprocess.DEVNULL

    _command: list[str | IOFileTypes]
    _input_files: dict[InputFile, None]
    _output_files: dict[OutputFile, None]
    _requirements: set[Requirement]
    _stdout: int | OutputFile | None
    _stderr: int | OutputFile | None
    _started: bool

    def __init__(
        self,
        command: Iterable[str | int | float | Path | IOFileTypes],
        *,
        stdout: PipeType = None,
        stderr: PipeType = None,
        extra_files: Iterable[IOFileTypes] = (),
        requirements: Iterable[Requirement] = (),
    ) -> None:
        """Takes a command and a set of files.

        The command is expected to be an iterable starting with the name of an
        executable, with each item representing one string on the command line.

        Keyword arguments:
            stdout -- A path, OutputFile, or DEVNULL; inherited if not set.
            stderr -- A path, OutputFile, or DEVNULL; inherited if not set.
            extra_files -- InputFiles and OutputFiles used by the command that are
                           not explicitly part of the command line, for example files
                           whose names are derived from a template argument.
            requirements -- Requirements for the executable(s) invoked.
        """
        self._command = []
        self._input_files = {}
        self._output_files = {}
        self._requirements = set(requirements)
        self._started = False

        self.append(*safe_coerce_to_tuple(command))
        if not self._command or not self._command[0]:
            raise ValueError("Empty command in ToolInvocation constructor")
        elif not isinstance(self._command[0], str):
            raise TypeError(f"executable must be str, not {self._command[0]!r}")

        self._stdout = self._wrap_pipe(stdout)
        self._stderr = self._wrap_pipe(stderr)

        self.add_extra_files(extra_files)
        for pipe in (self._stdout, self._stderr):
            if isinstance(pipe, OutputFile):
                self._record_file(pipe)

        for value in self._requirements:
            if not isinstance(value, Requirement):
                raise TypeError(value)

    def append(self, *args: IOFileTypes | str | int | float | Path) -> None:
        self._check_not_started()

        for value in args:
            if isinstance(value, _IOFile):
                self._record_file(value)
            elif isinstance(value, Path):
                value = os.fspath(value)
            else:
                value = str(value)

            self._command.append(value)

    def add_extra_files(self, files: Iterable[IOFileTypes]) -> None:
        self._check_not_started()

        for value in files:
            if not isinstance(value, _IOFile):
                raise TypeError(value)

            self._record_file(value)

    def append_options(
        self,
        options: OptionsType,
        pred: Callable[[str], bool] = lambda s: s.startswith("-"),
    ) -> None:
        if not isinstance(options, dict):
            raise TypeError(f"options must be dict, not {options!r}")

        for key, values in options.items():
            if not isinstance(key, str):
                raise TypeError(f"keys must be strings, not {key!r}")
            elif not pred(key):
                continue

            if isinstance(values, (list, tuple)):
                for value in values:
                    if not isinstance(value, (int, str, float, _IOFile)):
                        raise TypeError(value)

                    self.append(key, value)
            elif values is None:
                self.append(key)
            elif isinstance(values, (int, str, float, _IOFile)):
                self.append(key, values)
            else:
                raise TypeError(values)

    def merge_options(
        self,
        *,
        user_options: OptionsType | None = None,
        fixed_options: OptionsType | None = None,
        baseline: Iterable[str] = (),
        blacklisted_options: Iterable[str] = (),
    ) -> None:
        """Appends fixed options (required by the pipeline), the baseline tokens of
        the tool, and finally the options selected by the user. User options may not
        override fixed or blacklisted options."""
        if fixed_options is None:
            fixed_options = {}
        if user_options is None:
            user_options = {}

        if not isinstance(fixed_options, dict):
            raise TypeError(f"options must be dict, not {fixed_options!r}")
        elif not isinstance(user_options, dict):
            raise TypeError(f"user_options must be dict, not {user_options!r}")

        errors: list[str] = []
        for key in sorted(user_options.keys() & fixed_options.keys()):
            errors.append(f"{key} cannot be overridden")

        for key in sorted(user_options.keys() & set(blacklisted_options)):
            errors.append(f"{key} is not supported")

        if errors:
            raise CmdError(
                "invalid command-line options for {!r}: {}".format(
                    self.executable, "\n".join(errors)
                )
            )

        self.append_options(fixed_options)
        self.append(*baseline)
        self.append_options(user_options)

    @property
    def executable(self) -> str:
        executable = self._command[0]
        assert isinstance(executable, str)

        return executable

    @property
    def input_files(self) -> tuple[str, ...]:
        return tuple(it.path for it in self._input_files)

    @property
    def output_files(self) -> tuple[str, ...]:
        return tuple(it.path for it in self._output_files)

    @property
    def requirements(self) -> set[Requirement]:
        return set(self._requirements)

    @property
    def stdout(self) -> int | OutputFile | None:
        return self._stdout

    @property
    def stderr(self) -> int | OutputFile | None:
        return self._stderr

    @property
    def started(self) -> bool:
        return self._started

    def to_call(self) -> list[str]:
        return [
            value.path if isinstance(value, _IOFile) else value
            for value in self._command
        ]

    def run(self) -> None:
        """Runs the command to completion. Raises InvocationFailure if the command
        could not be started or if it terminated with a non-zero exit code."""
        if self._started:
            raise CmdError("Calling 'run' on already started command.")
        self._started = True

        stdout = stderr = None
        try:
            stdout = self._open_pipe(self._stdout)
            stderr = self._open_pipe(self._stderr)

            proc = subprocess.run(
                self.to_call(),
                stdin=subprocess.DEVNULL,
                stdout=stdout,
                stderr=stderr,
                check=False,
            )
        except OSError as error:
            raise InvocationFailure(self, f"could not be run: {error}") from error
        finally:
            for handle in (stdout, stderr):
                if not (handle is None or isinstance(handle, int)):
                    handle.close()

        if proc.returncode < 0:
            signame = signal.Signals(-proc.returncode).name
            raise InvocationFailure(
                self, f"terminated with signal {signame}", proc.returncode
            )
        elif proc.returncode:
            detail = f"exited with return-code {proc.returncode}"
            if isinstance(self._stderr, OutputFile):
                detail += f"; see {self._stderr.path!r}"

            raise InvocationFailure(self, detail, proc.returncode)

    def _check_not_started(self) -> None:
        if self._started:
            raise CmdError("cannot modify already started command")

    def _record_file(self, value: _IOFile) -> None:
        if isinstance(value, InputFile):
            self._input_files[value] = None
        elif isinstance(value, OutputFile):
            self._output_files[value] = None
        else:
            raise TypeError(value)

    @classmethod
    def _wrap_pipe(cls, pipe: PipeType) -> int | OutputFile | None:
        if pipe is None or isinstance(pipe, OutputFile):
            return pipe
        elif isinstance(pipe, int):
            if pipe == cls.DEVNULL:
                return pipe
        elif isinstance(pipe, (str, Path)):
            return OutputFile(pipe)

        raise ValueError(pipe)

    @staticmethod
    def _open_pipe(pipe: int | OutputFile | None) -> int | IO[bytes] | None:
        if pipe is None or isinstance(pipe, int):
            return pipe

        return open(pipe.path, "wb")  # noqa: SIM115

    def __str__(self) -> str:
        text = " ".join(shlex.quote(value) for value in self.to_call())
        for redirect, pipe in ((">", self._stdout), ("2>", self._stderr)):
            if pipe == self.DEVNULL:
                text += f" {redirect} /dev/null"
            elif isinstance(pipe, OutputFile):
                text += f" {redirect} {shlex.quote(pipe.path)}"

        return text

    def __repr__(self) -> str:
        return f"<ToolInvocation {self}>"
