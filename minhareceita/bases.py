"""Base company data, read from the ``Empresas`` source files."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from minhareceita.cast import to_float, to_int
from minhareceita.lookups import Lookups
from minhareceita.partners import _dumps

_PORTES = {
    0: "NÃO INFORMADO",
    1: "MICRO EMPRESA",
    3: "EMPRESA DE PEQUENO PORTE",
    5: "DEMAIS",
}


@dataclass
class BaseData:
    """Data shared by every venue of a company, keyed by the base CNPJ."""

    codigo_porte: int | None = None
    porte: str | None = None
    razao_social: str = ""
    codigo_natureza_juridica: int | None = None
    natureza_juridica: str | None = None
    qualificacao_do_responsavel: int | None = None
    capital_social: float | None = None
    ente_federativo_responsavel: str = ""

    @classmethod
    def from_row(cls, lookups: Lookups, row: list[str]) -> BaseData:
        """Build the base data from a row of an ``Empresas`` CSV file."""
        try:
            return cls._parse(lookups, row)
        except ValueError as exc:
            raise ValueError(f"error handling base data for base cnpj {row[0]}: {exc}") from exc

    @classmethod
    def _parse(cls, lookups: Lookups, row: list[str]) -> BaseData:
        try:
            natureza = to_int(row[2])
        except ValueError as exc:
            raise ValueError(f"error trying to parse CodigoNaturezaJuridica {row[2]}: {exc}") from exc
        try:
            qualificacao = to_int(row[3])
        except ValueError as exc:
            raise ValueError(f"error trying to parse QualificacaoDoResponsavel {row[3]}: {exc}") from exc
        try:
            capital = to_float(row[4])
        except ValueError as exc:
            raise ValueError(f"error trying to parse CapitalSocial {row[4]}: {exc}") from exc
        try:
            codigo_porte = to_int(row[5])
        except ValueError as exc:
            raise ValueError(f"error trying to parse Porte {row[5]}: {exc}") from exc
        return cls(
            codigo_porte=codigo_porte,
            porte=None if codigo_porte is None else _PORTES.get(codigo_porte),
            razao_social=row[1],
            codigo_natureza_juridica=natureza,
            natureza_juridica=None if natureza is None else (lookups.natures.get(natureza) or None),
            qualificacao_do_responsavel=qualificacao,
            capital_social=capital,
            ente_federativo_responsavel=row[6],
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the base data as a JSON-ready dictionary."""
        return {
            "codigo_porte": self.codigo_porte,
            "porte": self.porte,
            "razao_social": self.razao_social,
            "codigo_natureza_juridica": self.codigo_natureza_juridica,
            "natureza_juridica": self.natureza_juridica,
            "qualificacao_do_responsavel": self.qualificacao_do_responsavel,
            "capital_social": self.capital_social,
            "ente_federativo_responsavel": self.ente_federativo_responsavel,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BaseData:
        """Build the base data from a dictionary as produced by ``to_dict``."""
        capital = data.get("capital_social")
        return cls(
            codigo_porte=data.get("codigo_porte"),
            porte=data.get("porte"),
            razao_social=data.get("razao_social") or "",
            codigo_natureza_juridica=data.get("codigo_natureza_juridica"),
            natureza_juridica=data.get("natureza_juridica"),
            qualificacao_do_responsavel=data.get("qualificacao_do_responsavel"),
            capital_social=None if capital is None else float(capital),
            ente_federativo_responsavel=data.get("ente_federativo_responsavel") or "",
        )


def load_base_row(lookups: Lookups, row: list[str]) -> str:
    """Convert an ``Empresas`` CSV row to the base data JSON."""
    try:
        data = BaseData.from_row(lookups, row)
    except ValueError as exc:
        raise ValueError(f"error parsing base line: {exc}") from exc
    return _dumps(data.to_dict())