"""Companies (one per CNPJ), built from the ``Estabelecimentos`` source files."""

from __future__ import annotations

import datetime
import json
import logging
import re
from dataclasses import dataclass, field, fields
from typing import Any, Protocol

from minhareceita import cnpj
from minhareceita.cast import format_date, parse_date, to_date, to_int
from minhareceita.lookups import Lookups
from minhareceita.partners import PartnerData, _dumps

logger = logging.getLogger(__name__)

# Masks the CPF that individual entrepreneurs (MEI) carry at the end of their names.
_CPF_IN_NAME = re.compile(r"([^0-9])([0-9]{3})([0-9]{5})([0-9]{3})\Z")

_SITUACOES = {1: "NULA", 2: "ATIVA", 3: "SUSPENSA", 4: "INAPTA", 8: "BAIXADA"}
_MATRIZ_FILIAL = {1: "MATRIZ", 2: "FILIAL"}

_DATE_FIELDS = frozenset(
    {
        "data_situacao_cadastral",
        "data_inicio_atividade",
        "data_situacao_especial",
        "data_opcao_pelo_simples",
        "data_exclusao_do_simples",
        "data_opcao_pelo_mei",
        "data_exclusao_do_mei",
    }
)


def company_name_cleanup(name: str) -> str:
    """Hide the middle of a CPF found at the end of a company name."""
    return _CPF_IN_NAME.sub(r"\1***\3***", name).strip()


class _Enricher(Protocol):
    def enrich_company(self, company: Any) -> None: ...


def _code(value: str, label: str) -> int | None:
    try:
        return to_int(value)
    except ValueError as exc:
        raise ValueError(f"error trying to parse {label} {value}: {exc}") from exc


def _required_code(value: str, label: str) -> int:
    code = _code(value, label)
    if code is None:
        raise ValueError(f"error trying to parse {label} {value}: missing value")
    return code


def _date(value: str, label: str) -> datetime.date | None:
    try:
        return to_date(value)
    except ValueError as exc:
        raise ValueError(f"error trying to parse {label} {value}: {exc}") from exc


@dataclass
class Cnae:
    """An economic activity code and its description."""

    codigo: int = 0
    descricao: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the activity as a JSON-ready dictionary."""
        return {"codigo": self.codigo, "descricao": self.descricao}

    @classmethod
    def from_code(cls, lookups: Lookups, value: str) -> Cnae:
        """Build an activity from its code as found in the CSV; empty means code 0."""
        code = _code(value, "cnae")
        if code is None:
            return cls()
        return cls(codigo=code, descricao=lookups.cnaes.get(code, ""))


@dataclass
class Company:
    """A company venue with all the data served for its CNPJ."""

    cnpj: str = ""
    identificador_matriz_filial: int | None = None
    descricao_identificador_matriz_filial: str | None = None
    nome_fantasia: str = ""
    situacao_cadastral: int | None = None
    descricao_situacao_cadastral: str | None = None
    data_situacao_cadastral: datetime.date | None = None
    motivo_situacao_cadastral: int | None = None
    descricao_motivo_situacao_cadastral: str | None = None
    nome_cidade_no_exterior: str = ""
    codigo_pais: int | None = None
    pais: str | None = None
    data_inicio_atividade: datetime.date | None = None
    cnae_fiscal: int | None = None
    cnae_fiscal_descricao: str | None = None
    descricao_tipo_de_logradouro: str = ""
    logradouro: str = ""
    numero: str = ""
    complemento: str = ""
    bairro: str = ""
    cep: str = ""
    uf: str = ""
    codigo_municipio: int | None = None
    codigo_municipio_ibge: int | None = None
    municipio: str | None = None
    ddd_telefone_1: str = ""
    ddd_telefone_2: str = ""
    ddd_fax: str = ""
    email: str | None = None
    situacao_especial: str = ""
    data_situacao_especial: datetime.date | None = None
    opcao_pelo_simples: bool | None = None
    data_opcao_pelo_simples: datetime.date | None = None
    data_exclusao_do_simples: datetime.date | None = None
    opcao_pelo_mei: bool | None = None
    data_opcao_pelo_mei: datetime.date | None = None
    data_exclusao_do_mei: datetime.date | None = None
    razao_social: str = ""
    codigo_natureza_juridica: int | None = None
    natureza_juridica: str | None = None
    qualificacao_do_responsavel: int | None = None
    capital_social: float | None = None
    codigo_porte: int | None = None
    porte: str | None = None
    ente_federativo_responsavel: str = ""
    descricao_porte: str = ""
    quadro_societario: list[PartnerData] | None = field(
        default=None, metadata={"json": "qsa"}
    )
    cnaes_secundarios: list[Cnae] | None = None

    @classmethod
    def from_row(
        cls, row: list[str], lookups: Lookups, kv: _Enricher, privacy: bool
    ) -> Company:
        """Build a company from an ``Estabelecimentos`` CSV row, enriched from the key-value store."""
        company = cls(
            cnpj=row[0] + row[1] + row[2],
            nome_fantasia=row[4],
            nome_cidade_no_exterior=row[8],
            descricao_tipo_de_logradouro=row[13],
            logradouro=row[14],
            numero=row[15],
            complemento=row[16],
            bairro=row[17],
            cep=row[18],
            uf=row[19],
            ddd_telefone_1=row[21] + row[22],
            ddd_telefone_2=row[23] + row[24],
            ddd_fax=row[25] + row[26],
            email=row[27],
            situacao_especial=row[28],
        )
        if privacy:
            company.nome_fantasia = company_name_cleanup(row[4])
            company.email = None

        company._set_matriz_filial(row[3])
        company._set_situacao_cadastral(row[5])
        company.data_situacao_cadastral = _date(row[6], "DataSituacaoCadastral")
        company._set_motivo(lookups, row[7])
        company._set_pais(lookups, row[9])
        company.data_inicio_atividade = _date(row[10], "DataInicioAtividade")
        company._set_cnaes(lookups, row[11], row[12])
        company._set_municipio(lookups, row[20])
        company.data_situacao_especial = _date(row[29], "DataSituacaoEspecial")

        try:
            kv.enrich_company(company)
        except ValueError as exc:
            raise ValueError(f"error enriching company {cnpj.mask(company.cnpj)}: {exc}") from exc
        return company

    def _set_matriz_filial(self, value: str) -> None:
        code = _required_code(value, "IdentificadorMatrizFilial")
        self.identificador_matriz_filial = code
        self.descricao_identificador_matriz_filial = _MATRIZ_FILIAL.get(code)

    def _set_situacao_cadastral(self, value: str) -> None:
        code = _required_code(value, "SituacaoCadastral")
        self.situacao_cadastral = code
        self.descricao_situacao_cadastral = _SITUACOES.get(code)

    def _set_motivo(self, lookups: Lookups, value: str) -> None:
        code = _code(value, "MotivoSituacaoCadastral")
        if code is None:
            return
        self.motivo_situacao_cadastral = code
        self.descricao_motivo_situacao_cadastral = lookups.motives.get(code) or None

    def _set_pais(self, lookups: Lookups, value: str) -> None:
        code = _code(value, "CodigoPais")
        if code is None:
            return
        self.codigo_pais = code
        self.pais = lookups.countries.get(code) or None

    def _set_cnaes(self, lookups: Lookups, primary: str, secondary: str) -> None:
        try:
            main = Cnae.from_code(lookups, primary)
        except ValueError as exc:
            raise ValueError(f"error trying to parse CNAEFiscal {primary}: {exc}") from exc
        self.cnae_fiscal = main.codigo
        self.cnae_fiscal_descricao = main.descricao or None
        activities: list[Cnae] = []
        for code in secondary.split(","):
            try:
                activities.append(Cnae.from_code(lookups, code))
            except ValueError as exc:
                raise ValueError(f"error trying to parse CNAESecundarios {code}: {exc}") from exc
        self.cnaes_secundarios = activities

    def _set_municipio(self, lookups: Lookups, value: str) -> None:
        if self.uf == "EX":
            return
        code = _code(value, "CodigoMunicipio")
        if code is None:
            return
        self.codigo_municipio = code
        name = lookups.cities.get(code)
        if name is None:
            return
        self.municipio = name
        ibge = lookups.ibge.get(code)
        if ibge is None:
            logger.warning("Could not find IBGE city code for %s-%s (%d)", name, self.uf, code)
            return
        try:
            self.codigo_municipio_ibge = to_int(ibge)
        except ValueError as exc:
            raise ValueError(f"error trying to parse ibge code {ibge}: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        """Return the company as a JSON-ready dictionary, in the served field order."""
        data: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, datetime.date):
                value = format_date(value)
            elif isinstance(value, list):
                value = [entry.to_dict() for entry in value]
            data[item.metadata.get("json", item.name)] = value
        return data

    def json(self) -> str:
        """Serialise the company to the JSON served by the API."""
        try:
            return _dumps(self.to_dict())
        except ValueError as exc:
            raise ValueError(f"error while marshaling company JSON: {exc}") from exc

    @classmethod
    def from_json(cls, text: str) -> Company:
        """Build a company from the JSON produced by ``json``."""
        data = json.loads(text)
        values: dict[str, Any] = {}
        for item in fields(cls):
            key = item.metadata.get("json", item.name)
            if key not in data:
                continue
            value = data[key]
            if item.name in _DATE_FIELDS:
                value = parse_date(value)
            elif item.name == "quadro_societario":
                value = None if value is None else [PartnerData.from_dict(p) for p in value]
            elif item.name == "cnaes_secundarios":
                value = None if value is None else [
                    Cnae(codigo=c.get("codigo", 0), descricao=c.get("descricao") or "")
                    for c in value
                ]
            elif item.name == "capital_social" and value is not None:
                value = float(value)
            elif value is None and item.default == "":
                value = ""
            values[item.name] = value
        return cls(**values)