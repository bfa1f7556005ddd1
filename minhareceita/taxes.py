"""Tax regime data (Simples and MEI), read from the ``Simples`` source files."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any

from minhareceita.cast import format_date, parse_date, to_bool, to_date
from minhareceita.lookups import Lookups
from minhareceita.partners import _dumps

_DATE_COLUMNS = (
    ("data_opcao_pelo_simples", "DataOpcaoPeloSimples", 2),
    ("data_exclusao_do_simples", "DataExclusaoDoSimples", 3),
    ("data_opcao_pelo_mei", "DataOpcaoPeloMEI", 5),
    ("data_exclusao_do_mei", "DataExclusaoDoMEI", 6),
)


def _date_or_none(value: datetime.date | None) -> str | None:
    return None if value is None else format_date(value)


@dataclass
class TaxesData:
    """Whether and when a company opted in or out of Simples and MEI."""

    opcao_pelo_simples: bool | None = None
    data_opcao_pelo_simples: datetime.date | None = None
    data_exclusao_do_simples: datetime.date | None = None
    opcao_pelo_mei: bool | None = None
    data_opcao_pelo_mei: datetime.date | None = None
    data_exclusao_do_mei: datetime.date | None = None

    @classmethod
    def from_row(cls, row: list[str]) -> TaxesData:
        """Build the tax data from a row of a ``Simples`` CSV file."""
        dates: dict[str, datetime.date | None] = {}
        for attribute, label, index in _DATE_COLUMNS:
            try:
                dates[attribute] = to_date(row[index])
            except ValueError as exc:
                raise ValueError(f"error parsing {label} {row[index]}: {exc}") from exc
        return cls(opcao_pelo_simples=to_bool(row[1]), opcao_pelo_mei=to_bool(row[4]), **dates)

    def to_dict(self) -> dict[str, Any]:
        """Return the tax data as a JSON-ready dictionary."""
        return {
            "opcao_pelo_simples": self.opcao_pelo_simples,
            "data_opcao_pelo_simples": _date_or_none(self.data_opcao_pelo_simples),
            "data_exclusao_do_simples": _date_or_none(self.data_exclusao_do_simples),
            "opcao_pelo_mei": self.opcao_pelo_mei,
            "data_opcao_pelo_mei": _date_or_none(self.data_opcao_pelo_mei),
            "data_exclusao_do_mei": _date_or_none(self.data_exclusao_do_mei),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaxesData:
        """Build the tax data from a dictionary as produced by ``to_dict``."""
        return cls(
            opcao_pelo_simples=data.get("opcao_pelo_simples"),
            data_opcao_pelo_simples=parse_date(data.get("data_opcao_pelo_simples")),
            data_exclusao_do_simples=parse_date(data.get("data_exclusao_do_simples")),
            opcao_pelo_mei=data.get("opcao_pelo_mei"),
            data_opcao_pelo_mei=parse_date(data.get("data_opcao_pelo_mei")),
            data_exclusao_do_mei=parse_date(data.get("data_exclusao_do_mei")),
        )


def load_taxes_row(lookups: Lookups | None, row: list[str]) -> str:
    """Convert a ``Simples`` CSV row to the tax data JSON; lookups are not needed."""
    try:
        data = TaxesData.from_row(row)
    except ValueError as exc:
        raise ValueError(f"error parsing taxes line: {exc}") from exc
    return _dumps(data.to_dict())