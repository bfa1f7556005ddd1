"""Creation of one database record per CNPJ from the ``Estabelecimentos`` files."""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, as_completed, wait
from pathlib import Path
from typing import Any, Iterator, Protocol, Sequence

from tqdm import tqdm

from minhareceita import cnpj
from minhareceita.company import Company
from minhareceita.lookups import Lookups
from minhareceita.source import Source, SourceType

logger = logging.getLogger(__name__)


class _Database(Protocol):
    def pre_load(self) -> None: ...

    def create_companies(self, batch: list[list[str]]) -> None: ...

    def post_load(self) -> None: ...


class _Enricher(Protocol):
    def enrich_company(self, company: Any) -> None: ...


def save_batch(database: _Database, batch: Sequence[Company]) -> int:
    """Save a batch of companies as ``[cnpj, json]`` rows, returning how many were saved."""
    if not batch:
        return 0
    rows: list[list[str]] = []
    for company in batch:
        try:
            rows.append([company.cnpj, company.json()])
        except ValueError as exc:
            raise ValueError(
                f"error getting company {cnpj.mask(company.cnpj)} as json: {exc}"
            ) from exc
    database.create_companies(rows)
    return len(rows)


class VenuesTask:
    """Reads every venue, enriches it and saves it to the database in batches."""

    def __init__(
        self,
        directory: str | Path,
        database: _Database,
        lookups: Lookups,
        kv: _Enricher,
        batch_size: int,
        privacy: bool,
    ) -> None:
        try:
            self.source = Source(SourceType.VENUES, directory)
        except (OSError, ValueError) as exc:
            raise ValueError(
                f"error creating a source for venues from {directory}: {exc}"
            ) from exc
        self.directory = str(directory)
        self.database = database
        self.lookups = lookups
        self.kv = kv
        self.batch_size = max(batch_size, 1)
        self.privacy = privacy

    def _batches(self) -> Iterator[list[list[str]]]:
        batch: list[list[str]] = []
        for reader in self.source.readers:
            for row in reader:
                batch.append(row)
                if len(batch) >= self.batch_size:
                    yield batch
                    batch = []
        if batch:
            yield batch

    def _company(self, row: list[str]) -> Company:
        try:
            return Company.from_row(row, self.lookups, self.kv, self.privacy)
        except (ValueError, IndexError) as exc:
            raise ValueError(f"error parsing company from {row!r}: {exc}") from exc

    def _save(self, rows: list[list[str]]) -> int:
        return save_batch(self.database, [self._company(row) for row in rows])

    def run(self, max_parallel: int) -> None:
        """Process all venues using up to ``max_parallel`` concurrent database writers."""
        workers = max(max_parallel, 1)
        try:
            self.database.pre_load()
            pending: set[Future[int]] = set()
            with tqdm(
                total=self.source.total_lines, desc="Creating the JSON data for each CNPJ"
            ) as bar, ThreadPoolExecutor(max_workers=workers) as pool:
                try:
                    for batch in self._batches():
                        pending.add(pool.submit(self._save, batch))
                        if len(pending) >= workers * 2:
                            done, pending = wait(pending, return_when=FIRST_COMPLETED)
                            for future in done:
                                bar.update(future.result())
                    for future in as_completed(pending):
                        bar.update(future.result())
                except BaseException:
                    for future in pending:
                        future.cancel()
                    raise
        finally:
            self.source.close()
        self.database.post_load()