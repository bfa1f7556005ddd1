"""Key-value storage holding base, partners and taxes data per base CNPJ."""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
from pathlib import Path
from typing import Any

from tqdm import tqdm

from minhareceita import cnpj
from minhareceita.bases import BaseData, load_base_row
from minhareceita.lookups import Lookups
from minhareceita.partners import PartnerData, _dumps, load_partner_row
from minhareceita.source import Source, SourceType
from minhareceita.taxes import TaxesData, load_taxes_row

logger = logging.getLogger(__name__)

_DATABASE_FILE = "kv.sqlite3"
_KV_SOURCES = (SourceType.BASE, SourceType.PARTNERS, SourceType.TAXES)


def key_for_partners(number: str) -> str:
    """Key under which the partners of a base CNPJ are stored."""
    return f"partners{number}"


def key_for_base(number: str) -> str:
    """Key under which the base data of a base CNPJ is stored."""
    return f"base{number}"


def key_for_taxes(number: str) -> str:
    """Key under which the tax data of a base CNPJ is stored."""
    return f"taxes{number}"


_HANDLERS = {
    SourceType.PARTNERS: (key_for_partners, load_partner_row),
    SourceType.BASE: (key_for_base, load_base_row),
    SourceType.TAXES: (key_for_taxes, load_taxes_row),
}


def new_kv_item(kind: SourceType | str, lookups: Lookups, row: list[str]) -> tuple[str, str]:
    """Turn a source row into the key and JSON value to be stored."""
    try:
        handler = _HANDLERS[SourceType(kind)]
    except (ValueError, KeyError):
        raise ValueError(f"unknown source type {getattr(kind, 'value', kind)}") from None
    key_for, load_row = handler
    try:
        value = load_row(lookups, row)
    except ValueError as exc:
        raise ValueError(f"error loading value from source: {exc}") from exc
    return key_for(row[0]), value


class KeyValueStorage:
    """A key-value store kept in a directory, safe to share between threads."""

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        Path(self.path).mkdir(parents=True, exist_ok=True)
        if os.environ.get("DEBUG"):
            logger.info("Creating temporary key-value storage at %s", self.path)
        self._lock = threading.RLock()
        try:
            self._db = sqlite3.connect(
                os.path.join(self.path, _DATABASE_FILE), check_same_thread=False
            )
            self._db.execute(
                "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
            )
            self._db.commit()
        except sqlite3.Error as exc:
            raise OSError(f"error creating key-value storage at {self.path}: {exc}") from exc

    def _get(self, key: str) -> str | None:
        with self._lock:
            row = self._db.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return None if row is None else row[0]

    def _set(self, key: str, value: str) -> None:
        with self._lock:
            self._db.execute(
                "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, value)
            )

    def _read_json(self, key: str, what: str) -> Any:
        value = self._get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            raise ValueError(f"could not parse {what}: {exc}") from exc

    def partners_of(self, number: str) -> list[PartnerData]:
        """Partners stored for a base CNPJ, empty if there are none."""
        try:
            data = self._read_json(key_for_partners(number), "partners") or []
            return [PartnerData.from_dict(item) for item in data]
        except (ValueError, TypeError, AttributeError) as exc:
            raise ValueError(f"error getting partners for {number}: {exc}") from exc

    def base_of(self, number: str) -> BaseData:
        """Base data stored for a base CNPJ, empty if there is none."""
        try:
            data = self._read_json(key_for_base(number), "base")
            return BaseData() if data is None else BaseData.from_dict(data)
        except (ValueError, TypeError, AttributeError) as exc:
            raise ValueError(f"error getting base for {number}: {exc}") from exc

    def taxes_of(self, number: str) -> TaxesData:
        """Tax data stored for a base CNPJ, empty if there is none."""
        try:
            data = self._read_json(key_for_taxes(number), "taxes")
            return TaxesData() if data is None else TaxesData.from_dict(data)
        except (ValueError, TypeError, AttributeError) as exc:
            raise ValueError(f"error getting taxes for {number}: {exc}") from exc

    def merge_partners(self, key: str, value: str) -> str:
        """Append one partner (as JSON) to the list stored under a key, returning the new list."""
        try:
            current = self._read_json(key, "partners") or []
            partners = [PartnerData.from_dict(item) for item in current]
        except (ValueError, TypeError, AttributeError) as exc:
            raise ValueError(f"error getting current partners: {exc}") from exc
        try:
            partner = PartnerData.from_dict(json.loads(value))
        except (ValueError, TypeError, AttributeError) as exc:
            raise ValueError(f"could not parse partner: {exc}") from exc
        partners.append(partner)
        return _dumps([p.to_dict() for p in partners])

    def _save(self, kind: SourceType | str, key: str, value: str) -> None:
        with self._lock:
            if SourceType(kind) == SourceType.PARTNERS:
                try:
                    value = self.merge_partners(key, value)
                except ValueError as exc:
                    raise ValueError(f"error merging partners: {exc}") from exc
            self._set(key, value)

    def save_item(self, kind: SourceType | str, key: str, value: str) -> None:
        """Store a value; partners are appended to those already stored."""
        with self._lock:
            self._save(kind, key, value)
            self._db.commit()

    def load(self, directory: str | Path, lookups: Lookups) -> None:
        """Load base, partners and taxes source files from a directory."""
        sources: list[Source] = []
        try:
            for kind in _KV_SOURCES:
                sources.append(Source(kind, directory))
        except (OSError, ValueError) as exc:
            for source in sources:
                source.close()
            raise ValueError(f"could not load sources: {exc}") from exc
        total = sum(source.total_lines for source in sources)
        try:
            with tqdm(total=total, desc="Processing base CNPJ, partners and taxes") as bar:
                for source in sources:
                    for reader in source.readers:
                        for row in reader:
                            try:
                                key, value = new_kv_item(source.kind, lookups, row)
                            except ValueError as exc:
                                raise ValueError(
                                    f"error creating an {source.kind.value} item: {exc}"
                                ) from exc
                            self._save(source.kind, key, value)
                            bar.update(1)
            with self._lock:
                self._db.commit()
        except ValueError as exc:
            with self._lock:
                self._db.rollback()
            raise ValueError(f"error creating key-value storage: {exc}") from exc
        finally:
            for source in sources:
                source.close()

    def enrich_company(self, company: Any) -> None:
        """Fill a company's partners, base and tax fields from the stored data."""
        number = cnpj.base(company.cnpj)
        try:
            partners = self.partners_of(number)
            base = self.base_of(number)
            taxes = self.taxes_of(number)
        except ValueError as exc:
            raise ValueError(f"error enriching company: {exc}") from exc
        company.quadro_societario = partners
        company.codigo_porte = base.codigo_porte
        company.porte = base.porte
        company.razao_social = base.razao_social
        company.codigo_natureza_juridica = base.codigo_natureza_juridica
        company.natureza_juridica = base.natureza_juridica
        company.qualificacao_do_responsavel = base.qualificacao_do_responsavel
        company.capital_social = base.capital_social
        company.ente_federativo_responsavel = base.ente_federativo_responsavel
        company.opcao_pelo_simples = taxes.opcao_pelo_simples
        company.data_opcao_pelo_simples = taxes.data_opcao_pelo_simples
        company.data_exclusao_do_simples = taxes.data_exclusao_do_simples
        company.opcao_pelo_mei = taxes.opcao_pelo_mei
        company.data_opcao_pelo_mei = taxes.data_opcao_pelo_mei
        company.data_exclusao_do_mei = taxes.data_exclusao_do_mei

    def close(self) -> None:
        """Commit pending writes and close the store."""
        with self._lock:
            self._db.commit()
            self._db.close()

    def __enter__(self) -> KeyValueStorage:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()