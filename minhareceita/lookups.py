"""Lookup tables that translate codes in the source files into descriptions."""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from pathlib import Path

from minhareceita.archive import SEPARATOR, ArchivedCSV
from minhareceita.cast import to_int
from minhareceita.source import SourceType, paths_for_source

NATIONAL_TREASURE_FILE_NAME = "TABMUN.CSV"


def new_lookup(path: str | Path) -> dict[int, str]:
    """Build a lookup table from an archived CSV of code and description."""
    with ArchivedCSV(path, SEPARATOR) as archived:
        try:
            return archived.to_lookup()
        except ValueError as exc:
            raise ValueError(f"error creating lookup table from {path}: {exc}") from exc


def cities_lookup(directory: str | Path) -> dict[int, str]:
    """Map the Federal Revenue city codes to IBGE city codes."""
    path = Path(directory) / NATIONAL_TREASURE_FILE_NAME
    lookup: dict[int, str] = {}
    fields: int | None = None
    with path.open(encoding="utf-8", errors="replace", newline="") as handle:
        try:
            for row in csv.reader(handle, delimiter=";", strict=True):
                if not row:
                    continue
                if fields is None:
                    fields = len(row)
                elif len(row) != fields:
                    raise ValueError(f"error reading {path}: expected {fields} fields, got {len(row)}")
                if len(row) < 5:
                    raise ValueError(f"error reading {path}: expected at least 5 fields")
                try:
                    code = to_int(row[0])
                except ValueError as exc:
                    raise ValueError(f"error converting {row[0]} to int") from exc
                if code is None:
                    raise ValueError(f"error converting {row[0]} to int")
                lookup[code] = row[4]
        except csv.Error as exc:
            raise ValueError(f"error reading {path}: {exc}") from exc
    return lookup


_LOOKUP_SOURCES = (
    SourceType.MOTIVES,
    SourceType.CITIES,
    SourceType.COUNTRIES,
    SourceType.CNAES,
    SourceType.QUALIFICATIONS,
    SourceType.NATURES,
)


@dataclass
class Lookups:
    """All the lookup tables used while transforming the data."""

    motives: dict[int, str] = field(default_factory=dict)
    cities: dict[int, str] = field(default_factory=dict)
    countries: dict[int, str] = field(default_factory=dict)
    cnaes: dict[int, str] = field(default_factory=dict)
    qualifications: dict[int, str] = field(default_factory=dict)
    natures: dict[int, str] = field(default_factory=dict)
    ibge: dict[int, str] = field(default_factory=dict)

    @classmethod
    def from_directory(cls, directory: str | Path) -> Lookups:
        """Load every lookup table from the downloaded files in a directory."""
        tables = [
            new_lookup(path)
            for kind in _LOOKUP_SOURCES
            for path in paths_for_source(kind, directory)
        ]
        if len(tables) != len(_LOOKUP_SOURCES):
            raise ValueError(
                "error creating look up tables, "
                f"expected {len(_LOOKUP_SOURCES)} items, got {len(tables)}"
            )
        return cls(*tables, ibge=cities_lookup(directory))