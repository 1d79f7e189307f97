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

import datetime
import logging
import os
from typing import Callable, Optional

from metagenome_cleaner.common.fileutils import make_dirs

# Upper bound on the number of projects created with the same timestamp
_MAX_PROJECTS_PER_SECOND = 100


def create_project_dir(
    output: str,
    now: Optional[Callable[[], datetime.datetime]] = None,
) -> str:
    """Creates a new project directory in 'output', named after the current time,
    and returns its path. Concurrent runs never share a project directory: each
    candidate name is claimed by creating the directory, and the counter appended to
    the name is incremented if another run got there first."""
    timestamp = (now or datetime.datetime.now)().strftime("%Y%m%d_%H%M%S")

    for counter in range(1, _MAX_PROJECTS_PER_SECOND):
        path = os.path.join(output, f"Project_{timestamp}_{counter:02}")
        if make_dirs(path):
            logging.getLogger(__name__).info("Created project directory %r", path)
            return path

    raise FileExistsError(f"could not create project directory in {output!r}")


def create_module_dir(project_dir: str, name: str) -> str:
    path = os.path.join(project_dir, name)
    make_dirs(path)

    return path
