"""Groups of archived CSV files of the same kind from the Federal Revenue."""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path

from minhareceita.archive import SEPARATOR, ArchivedCSV

logger = logging.getLogger(__name__)


class SourceType(str, Enum):
    """Kinds of source files, named after the words in their file names."""

    VENUES = "Estabelecimentos"
    MOTIVES = "Motivos"
    BASE = "Empresas"
    CITIES = "Municipios"
    CNAES = "Cnaes"
    COUNTRIES = "Paises"
    NATURES = "Naturezas"
    PARTNERS = "Socios"
    QUALIFICATIONS = "Qualificacoes"
    TAXES = "Simples"


def paths_for_source(kind: SourceType | str, directory: str | Path) -> list[str]:
    """List, sorted by name, the files in a directory that belong to a source kind."""
    word = SourceType(kind).value.lower()
    entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
    return [
        os.path.join(directory, entry.name)
        for entry in entries
        if not entry.is_dir()
        and not entry.name.endswith(".md5")
        and word in entry.name.lower()
    ]


class Source:
    """All files of a source kind, with open readers and their total line count."""

    def __init__(self, kind: SourceType | str, directory: str | Path) -> None:
        self.kind = SourceType(kind)
        self.directory = str(directory)
        logger.info("Loading %s files…", self.kind.value)
        self.files = paths_for_source(self.kind, self.directory)
        self.readers: list[ArchivedCSV] = []
        self.open_readers()
        try:
            self.total_lines = sum(reader.count_lines() for reader in self.readers)
        except Exception:
            self.close()
            raise

    def open_readers(self) -> None:
        """(Re)open one reader per file, starting each from the first line."""
        self.close()
        readers: list[ArchivedCSV] = []
        try:
            for path in self.files:
                readers.append(ArchivedCSV(path, SEPARATOR))
        except Exception:
            for reader in readers:
                reader.close()
            raise
        self.readers = readers

    def close(self) -> None:
        """Close all readers."""
        for reader in self.readers:
            reader.close()
        self.readers = []