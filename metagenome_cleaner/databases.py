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
Locations of the Kraken2 databases and Bowtie2 indexes used to remove contaminants.

Locations are read from a YAML file with a 'databases' section, containing keys of the
form '{organism}_kraken2_db' and '{organism}_bowtie2_index'.
"""
from __future__ import annotations

import logging
import os
import warnings
from typing import Any, Iterable, NamedTuple

import ruamel.yaml
import ruamel.yaml.error
from ruamel.yaml.error import YAMLError

# Host organisms for which references may be specified in the configuration file
HOST_ORGANISMS = (
    "dog",
    "cat",
    "rat",
    "mouse",
    "cow",
    "pig",
    "horse",
    "zebrafish",
    "yeast",
)

# Host for which database paths are specified on the command-line
CUSTOM_HOST = "custom"

DEFAULT_CONFIG_FILES = (
    "/etc/metagenome_cleaner/databases.yaml",
    "~/.metagenome_cleaner/databases.yaml",
    "databases.yaml",
)


class DatabaseError(Exception):
    pass


class MissingDatabasePathError(DatabaseError):
    pass


class UnsupportedHostError(DatabaseError):
    pass


class References(NamedTuple):
    organism: str
    kraken2_db: str | None
    bowtie2_index: str


def _safe_load(handle: Any) -> object:
    yaml = ruamel.yaml.YAML(typ="safe", pure=True)
    yaml.version = (1, 1)  # pyright: ignore[reportGeneralTypeIssues]

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ruamel.yaml.error.MantissaNoDotYAML1_1Warning)

        return yaml.load(handle)


class DatabaseConfig:
    def __init__(self, databases: dict[str, str], filename: str | None = None) -> None:
        self.filename = filename
        self._databases = dict(databases)

    @classmethod
    def load(cls, filename: str) -> DatabaseConfig:
        log = logging.getLogger(__name__)
        log.info("Reading database locations from %r", filename)

        try:
            with open(filename, encoding="utf-8") as handle:
                data = _safe_load(handle)
        except OSError as error:
            raise DatabaseError(
                f"Could not read database configuration {filename!r}: {error}"
            ) from error
        except YAMLError as error:
            raise DatabaseError(
                f"Malformed database configuration {filename!r}:\n{error}"
            ) from error

        if not isinstance(data, dict) or not isinstance(data.get("databases"), dict):
            raise DatabaseError(
                f"Database configuration {filename!r} does not contain a "
                "'databases' section"
            )

        root = os.path.dirname(os.path.abspath(filename))
        databases: dict[str, str] = {}
        for key, value in data["databases"].items():
            if not isinstance(key, str):
                raise DatabaseError(f"Invalid key {key!r} in {filename!r}")
            elif value is None:
                continue
            elif not isinstance(value, str):
                raise DatabaseError(
                    f"Invalid path {value!r} for {key!r} in {filename!r}"
                )

            databases[key] = os.path.join(root, os.path.expanduser(value))

        return cls(databases, filename=filename)

    def get(self, key: str) -> str:
        value = self._databases.get(key)
        if not value:
            source = repr(self.filename) if self.filename else "configuration"
            raise DatabaseError(f"{key!r} is not specified in database {source}")

        return value

    def resolve(self, organism: str, *, kraken2: bool = True) -> References:
        """Returns the references for a (non-custom) organism; the Kraken2 database
        is only required if 'kraken2' is true."""
        return References(
            organism=organism,
            kraken2_db=self.get(f"{organism}_kraken2_db") if kraken2 else None,
            bowtie2_index=self.get(f"{organism}_bowtie2_index"),
        )

    def resolve_host(
        self,
        host: str,
        kraken2_db: str | None = None,
        bowtie2_index: str | None = None,
    ) -> References:
        return resolve_host(host, kraken2_db, bowtie2_index, config=self)


def check_host(host: str, kraken2_db: str | None, bowtie2_index: str | None) -> None:
    """Checks that a host is supported, and that database paths were specified for
    custom hosts."""
    if host == CUSTOM_HOST:
        missing = []
        if not kraken2_db:
            missing.append("--db-path-kraken2")
        if not bowtie2_index:
            missing.append("--db-path-bowtie2")

        if missing:
            raise MissingDatabasePathError(
                "custom host requires {}".format(" and ".join(missing))
            )
    elif host not in HOST_ORGANISMS:
        raise UnsupportedHostError(
            "unsupported host {!r}; choose one of {}".format(
                host, ", ".join(HOST_ORGANISMS + (CUSTOM_HOST,))
            )
        )


def resolve_host(
    host: str,
    kraken2_db: str | None = None,
    bowtie2_index: str | None = None,
    *,
    config: DatabaseConfig | None = None,
) -> References:
    """Returns the references for a host; custom hosts use the paths specified on
    the command-line, while other hosts are looked up in 'config'."""
    check_host(host, kraken2_db, bowtie2_index)
    if host == CUSTOM_HOST:
        assert kraken2_db and bowtie2_index
        return References(host, kraken2_db, bowtie2_index)
    elif config is None:
        raise DatabaseError(f"no database configuration for host {host!r}")

    return config.resolve(host)


def find_config(
    filename: str | None = None,
    candidates: Iterable[str] = DEFAULT_CONFIG_FILES,
) -> str:
    """Returns 'filename' if set, otherwise the first existing configuration file."""
    if filename:
        return filename

    candidates = [os.path.expanduser(candidate) for candidate in candidates]
    for candidate in candidates:
        if os.path.isfile(candidate):
            return candidate

    raise DatabaseError(
        "No database configuration found; use --databases or create one of {}. "
        "Run 'metagenome_cleaner databases' for a template".format(
            ", ".join(map(repr, candidates))
        )
    )


def load(filename: str | None = None) -> DatabaseConfig:
    return DatabaseConfig.load(find_config(filename))
