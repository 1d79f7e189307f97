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
Typed command-line options for external tools.

Each tool supported by the cleaning stages declares a ToolSchema listing the options
that a user may set. A StageConfig holds the values selected for one tool in one
stage, and is validated against the schema when created. Options are turned into
command-line tokens in schema order; options without a value, or with a false value
(None, False, 0, 0.0, or ""), are omitted entirely.
"""
from __future__ import annotations

from typing import Any, Iterable, Iterator, Mapping, Optional, Union

from metagenome_cleaner.common.command import OptionsType

OptionValue = Optional[Union[bool, int, float, str]]

_KINDS = (bool, int, float, str)


class OptionError(ValueError):
    pass


class Option:
    def __init__(
        self,
        name: str,
        flag: str,
        kind: type,
        help: str,  # noqa: A002
        *,
        cli: str | None = None,
        default: OptionValue = None,
    ) -> None:
        if kind not in _KINDS:
            raise TypeError(f"unsupported option type {kind!r}")
        elif not flag.startswith("-"):
            raise ValueError(f"invalid flag {flag!r} for option {name!r}")

        self.name = name
        self.flag = flag
        self.kind = kind
        self.help = help
        self.cli = cli or flag
        self.default = default

    def validate(self, value: Any) -> OptionValue:
        if value is None:
            return None
        elif self.kind is bool:
            if isinstance(value, bool):
                return value
        elif self.kind is int:
            if isinstance(value, int) and not isinstance(value, bool):
                return value
        elif self.kind is float:
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return float(value)
        elif isinstance(value, str):
            return value

        raise OptionError(
            f"invalid value {value!r} for {self.cli}; expected {self.kind.__name__}"
        )

    def add_argument(self, group: Any) -> None:
        if self.kind is bool:
            group.add_argument(
                self.cli,
                dest=self.name,
                action="store_true",
                default=bool(self.default),
                help=self.help,
            )
        else:
            group.add_argument(
                self.cli,
                dest=self.name,
                type=self.kind,
                default=self.default,
                help=self.help,
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Option):
            return NotImplemented

        return (self.name, self.flag, self.kind, self.cli) == (
            other.name,
            other.flag,
            other.kind,
            other.cli,
        )

    def __hash__(self) -> int:
        return hash((self.name, self.flag, self.kind, self.cli))

    def __repr__(self) -> str:
        return f"Option({self.name!r}, {self.flag!r}, {self.kind.__name__})"


class ToolSchema:
    """The user-configurable options of one tool, plus the baseline tokens that are
    always emitted before the user's options."""

    def __init__(
        self,
        executable: str,
        options: Iterable[Option],
        *,
        baseline: Iterable[str] = (),
    ) -> None:
        self.executable = executable
        self.baseline = tuple(baseline)
        self._options: dict[str, Option] = {}

        for option in options:
            if option.name in self._options:
                raise ValueError(f"option {option.name!r} declared multiple times")
            self._options[option.name] = option

    def __iter__(self) -> Iterator[Option]:
        return iter(self._options.values())

    def __contains__(self, name: object) -> bool:
        return name in self._options

    def __getitem__(self, name: str) -> Option:
        return self._options[name]

    def from_namespace(self, namespace: object) -> StageConfig:
        """Collects the values for this tool from parsed command-line arguments."""
        values = {}
        for option in self:
            values[option.name] = getattr(namespace, option.name, None)

        return StageConfig(self, values)

    def __repr__(self) -> str:
        return f"ToolSchema({self.executable!r})"


class StageConfig(Mapping[str, OptionValue]):
    """Immutable option values for one tool within one stage."""

    def __init__(
        self,
        schema: ToolSchema,
        values: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        self.schema = schema
        self._values: dict[str, OptionValue] = {}

        merged = dict(values or {})
        merged.update(kwargs)
        for name, value in merged.items():
            if name not in schema:
                raise OptionError(
                    f"unknown option {name!r} for {schema.executable}"
                )

            self._values[name] = schema[name].validate(value)

    def __getitem__(self, name: str) -> OptionValue:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"StageConfig({self.schema.executable!r}, {self._values!r})"


def to_options(schema: ToolSchema, config: StageConfig) -> OptionsType:
    """Returns the options set in 'config' as a dict of flags and values, in the
    order in which they are declared in 'schema'; boolean flags have the value None.
    """
    if config.schema is not schema:
        raise OptionError(
            f"options for {config.schema.executable} used with {schema.executable}"
        )

    options: OptionsType = {}
    for option in schema:
        value = config.get(option.name)
        if not value:
            continue
        elif option.kind is bool:
            options[option.flag] = None
        else:
            options[option.flag] = value

    return options


def assemble(schema: ToolSchema, config: StageConfig) -> list[str]:
    """Returns the baseline tokens of 'schema' followed by the tokens for each option
    set in 'config'."""
    tokens = list(schema.baseline)
    for flag, value in to_options(schema, config).items():
        tokens.append(flag)
        if value is not None:
            tokens.append(str(value))

    return tokens
