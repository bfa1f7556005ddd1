"""Partners (QSA) of a company, read from the ``Socios`` source files."""

from __future__ import annotations

import datetime
import json
from dataclasses import dataclass
from typing import Any

from minhareceita.cast import format_date, parse_date, to_date, to_int
from minhareceita.lookups import Lookups

_AGE_GROUPS = {
    0: "Não se aplica",
    1: "para os intervalos entre 0 a 12 anos",
    2: "Entre 13 a 20 ano",
    3: "Entre 21 a 30 anos",
    4: "Entre 31 a 40 anos",
    5: "Entre 41 a 50 anos",
    6: "Entre 51 a 60 anos",
    7: "Entre 61 a 70 anos",
    8: "Entre 71 a 80 anos",
    9: "Maiores de 80 anos",
}

_HTML_ESCAPES = {
    ord("<"): "\\u003c",
    ord(">"): "\\u003e",
    ord("&"): "\\u0026",
    0x2028: "\\u2028",
    0x2029: "\\u2029",
}


def _normalise(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return int(value)
    if isinstance(value, dict):
        return {key: _normalise(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalise(item) for item in value]
    return value


def _dumps(data: Any) -> str:
    """Serialise to compact JSON, with integral floats as integers and HTML characters escaped."""
    try:
        text = json.dumps(
            _normalise(data), ensure_ascii=False, separators=(",", ":"), allow_nan=False
        )
    except ValueError as exc:
        raise ValueError(f"error while marshaling JSON: {exc}") from exc
    return text.translate(_HTML_ESCAPES)


def _optional_int(value: str) -> int | None:
    try:
        return to_int(value)
    except ValueError:
        return None


def _described(code: int | None, table: dict[int, str]) -> str | None:
    if code is None:
        return None
    return table.get(code) or None


def _date_or_none(value: datetime.date | None) -> str | None:
    return None if value is None else format_date(value)


@dataclass
class PartnerData:
    """A partner of a company, as served in the ``qsa`` field."""

    identificador_de_socio: int | None = None
    nome_socio: str = ""
    cnpj_cpf_do_socio: str = ""
    codigo_qualificacao_socio: int | None = None
    qualificacao_socio: str | None = None
    data_entrada_sociedade: datetime.date | None = None
    codigo_pais: int | None = None
    pais: str | None = None
    cpf_representante_legal: str = ""
    nome_representante_legal: str = ""
    codigo_qualificacao_representante_legal: int | None = None
    qualificacao_representante_legal: str | None = None
    codigo_faixa_etaria: int | None = None
    faixa_etaria: str | None = None

    @classmethod
    def from_row(cls, lookups: Lookups, row: list[str]) -> PartnerData:
        """Build a partner from a row of a ``Socios`` CSV file."""
        try:
            identificador = to_int(row[1])
        except ValueError as exc:
            raise ValueError(f"error parsing IdentificadorDeSocio {row[1]}: {exc}") from exc
        try:
            entrada = to_date(row[5])
        except ValueError as exc:
            raise ValueError(f"error parsing DataEntradaSociedade {row[5]}: {exc}") from exc

        codigo_pais = _optional_int(row[6])
        codigo_faixa = _optional_int(row[10])
        codigo_socio = _optional_int(row[4])
        codigo_representante = _optional_int(row[9])
        return cls(
            identificador_de_socio=identificador,
            nome_socio=row[2],
            cnpj_cpf_do_socio=row[3],
            codigo_qualificacao_socio=codigo_socio,
            qualificacao_socio=_described(codigo_socio, lookups.qualifications),
            data_entrada_sociedade=entrada,
            codigo_pais=codigo_pais,
            pais=_described(codigo_pais, lookups.countries),
            cpf_representante_legal=row[7],
            nome_representante_legal=row[8],
            codigo_qualificacao_representante_legal=codigo_representante,
            qualificacao_representante_legal=_described(
                codigo_representante, lookups.qualifications
            ),
            codigo_faixa_etaria=codigo_faixa,
            faixa_etaria=_described(codigo_faixa, _AGE_GROUPS),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the partner as a JSON-ready dictionary."""
        return {
            "identificador_de_socio": self.identificador_de_socio,
            "nome_socio": self.nome_socio,
            "cnpj_cpf_do_socio": self.cnpj_cpf_do_socio,
            "codigo_qualificacao_socio": self.codigo_qualificacao_socio,
            "qualificacao_socio": self.qualificacao_socio,
            "data_entrada_sociedade": _date_or_none(self.data_entrada_sociedade),
            "codigo_pais": self.codigo_pais,
            "pais": self.pais,
            "cpf_representante_legal": self.cpf_representante_legal,
            "nome_representante_legal": self.nome_representante_legal,
            "codigo_qualificacao_representante_legal": self.codigo_qualificacao_representante_legal,
            "qualificacao_representante_legal": self.qualificacao_representante_legal,
            "codigo_faixa_etaria": self.codigo_faixa_etaria,
            "faixa_etaria": self.faixa_etaria,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PartnerData:
        """Build a partner from a dictionary as produced by ``to_dict``."""
        return cls(
            identificador_de_socio=data.get("identificador_de_socio"),
            nome_socio=data.get("nome_socio") or "",
            cnpj_cpf_do_socio=data.get("cnpj_cpf_do_socio") or "",
            codigo_qualificacao_socio=data.get("codigo_qualificacao_socio"),
            qualificacao_socio=data.get("qualificacao_socio"),
            data_entrada_sociedade=parse_date(data.get("data_entrada_sociedade")),
            codigo_pais=data.get("codigo_pais"),
            pais=data.get("pais"),
            cpf_representante_legal=data.get("cpf_representante_legal") or "",
            nome_representante_legal=data.get("nome_representante_legal") or "",
            codigo_qualificacao_representante_legal=data.get(
                "codigo_qualificacao_representante_legal"
            ),
            qualificacao_representante_legal=data.get("qualificacao_representante_legal"),
            codigo_faixa_etaria=data.get("codigo_faixa_etaria"),
            faixa_etaria=data.get("faixa_etaria"),
        )


def load_partner_row(lookups: Lookups, row: list[str]) -> str:
    """Convert a ``Socios`` CSV row to the partner JSON."""
    try:
        partner = PartnerData.from_row(lookups, row)
    except ValueError as exc:
        raise ValueError(f"error parsing partners line: {exc}") from exc
    return _dumps(partner.to_dict())