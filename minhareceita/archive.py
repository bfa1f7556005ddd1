"""Reading CSV files stored inside ZIP archives from the Federal Revenue."""

from __future__ import annotations

import csv
import io
import re
import zipfile
from pathlib import Path
from typing import Iterator

from minhareceita.cast import to_int

SEPARATOR = ";"
ENCODING = "iso8859_15"
_CHUNK_SIZE = 32 * 1024
_MULTIPLE_SPACES = re.compile(r"[\t\n\f\r ]{2,}")


def _clean(value: str) -> str:
    return _MULTIPLE_SPACES.sub(" ", value.replace("\x00", ""))


class ArchivedCSV:
    """The first file of a ZIP archive, read as ISO-8859-15 CSV."""

    def __init__(self, path: str | Path, separator: str = SEPARATOR) -> None:
        self.path = str(path)
        self.separator = separator
        try:
            self._archive = zipfile.ZipFile(self.path)
        except zipfile.BadZipFile as exc:
            raise ValueError(f"error opening archive {self.path}: {exc}") from exc
        member = next((i for i in self._archive.infolist() if not i.is_dir()), None)
        if member is None:
            self._archive.close()
            raise ValueError(
                f"could not find file {Path(self.path).stem} in the archive {self.path}"
            )
        self.member = member.filename
        self._text = io.TextIOWrapper(
            self._archive.open(member), encoding=ENCODING, newline=""
        )
        lines = (line.replace("\x00", "") for line in self._text)
        self._reader = csv.reader(lines, delimiter=separator, strict=True)
        self._fields: int | None = None

    def read(self) -> list[str]:
        """Return the next row, cleaned; raise EOFError when there are no more rows."""
        try:
            row: list[str] = []
            while not row:
                row = next(self._reader)
        except StopIteration:
            raise EOFError(f"no more lines in {self.path}") from None
        except csv.Error as exc:
            raise ValueError(
                f"error reading archived csv line from {self.path}: {exc}"
            ) from exc
        if self._fields is None:
            self._fields = len(row)
        elif len(row) != self._fields:
            raise ValueError(
                f"error reading archived csv line from {self.path}: "
                f"expected {self._fields} fields, got {len(row)}"
            )
        return [_clean(value) for value in row]

    def __iter__(self) -> Iterator[list[str]]:
        while True:
            try:
                yield self.read()
            except EOFError:
                return

    def count_lines(self) -> int:
        """Count the line breaks in the archived file without moving the reader."""
        with self._archive.open(self.member) as handle:
            return sum(chunk.count(b"\n") for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""))

    def to_lookup(self) -> dict[int, str]:
        """Build a table from the integer code in the first column to the second column."""
        lookup: dict[int, str] = {}
        for row in self:
            try:
                key = to_int(row[0])
            except ValueError as exc:
                raise ValueError(f"error converting key {row[0]} to int in {self.path}") from exc
            if key is None or len(row) < 2:
                raise ValueError(f"error converting key {row[0]} to int in {self.path}")
            lookup[key] = row[1]
        return lookup

    def close(self) -> None:
        """Release the archive and the file opened in it."""
        self._text.close()
        self._archive.close()

    def __enter__(self) -> ArchivedCSV:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()