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

import copy
import logging
import sys
from logging import LogRecord
from typing import TYPE_CHECKING

import coloredlogs
from humanfriendly.terminal import ansi_wrap, terminal_supports_colors

if TYPE_CHECKING:
    from metagenome_cleaner.common.argparse import ArgumentParser


_CONSOLE_MESSAGE_FORMAT: str = "%(asctime)s %(levelname)s %(stage)s%(message)s"
_FILE_MESSAGE_FORMAT: str = "%(asctime)s %(name)s %(levelname)s %(stage)s%(message)s"


class BasicFormatter(coloredlogs.ColoredFormatter):
    """Formatter supporting multi-line messages and an optional 'stage' attribute,
    set using the `extra` argument to logging calls (e.g. extra={"stage": "phix"})."""

    def format(self, record: LogRecord) -> str:  # noqa: A003
        record = copy.copy(record)
        record.stage = self._process_stage(record)

        message = record.msg
        if not isinstance(message, str):
            message = str(message)

        if record.args:
            message = message % record.args

        if "\n" in message:
            lines: list[str] = []
            record.args = ()
            for line in message.split("\n"):
                record.msg = line
                lines.append(super().format(record))

            return "\n".join(lines)

        return super().format(record)

    def _process_stage(self, record: LogRecord) -> str:
        stage = getattr(record, "stage", None)
        if stage:
            return f"[{stage}] "

        return ""


class ColoredStageFormatter(BasicFormatter):
    def _process_stage(self, record: LogRecord) -> str:
        stage = getattr(record, "stage", None)
        if stage:
            return f"[{ansi_wrap(str(stage), color='cyan')}] "

        return ""


def initialize_console_logging(log_level: str = "info") -> None:
    level = coloredlogs.level_to_number(log_level)  # type: ignore

    logger = logging.getLogger()
    logger.setLevel(level)

    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and handler.stream is sys.stderr:
            break
    else:
        handler = logging.StreamHandler()
        logger.addHandler(handler)

    fmt_class = ColoredStageFormatter if terminal_supports_colors() else BasicFormatter
    handler.setFormatter(fmt_class(fmt=_CONSOLE_MESSAGE_FORMAT))


def initialize(log_level: str = "info", log_file: str | None = None) -> None:
    initialize_console_logging(log_level)

    if log_file:
        logger = logging.getLogger(__name__)
        logger.info("Writing %s log to %r", log_level, log_file)

        handler = logging.FileHandler(log_file)
        handler.setFormatter(BasicFormatter(_FILE_MESSAGE_FORMAT))
        handler.setLevel(coloredlogs.level_to_number(log_level))

        logging.getLogger().addHandler(handler)


def add_argument_group(parser: ArgumentParser) -> None:
    """Adds an argument group with options pertaining to logging. Note that
    'initialize' expects the parsed arguments to contain these options."""
    group = parser.add_argument_group("Logging")
    group.add_argument(
        "--log-file",
        default=None,
        help="Write log-messages to this file, in addition to the terminal",
    )
    group.add_argument(
        "--log-level",
        default="info",
        choices=("debug", "info", "warning", "error"),
        type=str.lower,
        help="Log messages at the specified level. This option applies to the "
        "`--log-file` option and to log messages printed to the terminal.",
    )
