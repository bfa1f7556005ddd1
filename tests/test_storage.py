import datetime
import json
import zipfile
from types import SimpleNamespace

import pytest

from minhareceita.bases import BaseData
from minhareceita.lookups import Lookups
from minhareceita.partners import PartnerData
from minhareceita.source import SourceType
from minhareceita.storage import (
    KeyValueStorage,
    key_for_base,
    key_for_partners,
    key_for_taxes,
    new_kv_item,
)
from minhareceita.taxes import TaxesData

BASE_CNPJ = "12345678"

PARTNER_1 = PartnerData(
    1, "Nome da pessoa 1", "123", 2, "Dois", None, 3, "Três",
    "456", "Representante legal 1", 4, "Quatro", 5, "Cinco",
)
PARTNER_2 = PartnerData(
    6, "Nome da pessoa 2", "789", 7, "Sete", None, 8, "Oito",
    "012", "Representante legal 2", 9, "Nove", 10, "Dez",
)


def new_partner():
    return PartnerData(
        1, "Hannah", "123", 16, "Presidente", datetime.date(2007, 8, 12), 105, "BRASIL",
        "789", "Arendt", 10, "Diretor", 4, "Entre 31 a 40 anos",
    )


def new_base():
    return BaseData(5, "DEMAIS", "Razão Social", 2011, "Empresa Pública", 13, 4.2, "Responsável")


def new_taxes():
    return TaxesData(
        True, datetime.date(2022, 12, 17), None, False,
        datetime.date(2022, 11, 18), datetime.date(2022, 12, 1),
    )


def to_json(value):
    if isinstance(value, list):
        return json.dumps([v.to_dict() for v in value])
    return json.dumps(value.to_dict())


@pytest.fixture
def storage(tmp_path):
    with KeyValueStorage(tmp_path / "kv") as kv:
        yield kv


@pytest.fixture
def lookups():
    return Lookups(
        natures={2011: "Empresa Pública"},
        qualifications={16: "Presidente", 10: "Diretor"},
        countries={105: "BRASIL"},
    )


def write_zip(path, rows):
    content = "".join(";".join(f'"{v}"' for v in row) + "\n" for row in rows)
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr(path.stem + ".CSV", content.encode("iso8859_15"))


@pytest.fixture
def data_dir(tmp_path):
    directory = tmp_path / "data"
    directory.mkdir()
    write_zip(directory / "Empresas0.zip", [[BASE_CNPJ, "Razão Social", "2011", "13", "4,20", "5", "Responsável"]])
    write_zip(
        directory / "Socios0.zip",
        [
            [BASE_CNPJ, "1", "Hannah", "123", "16", "20070812", "105", "789", "Arendt", "10", "4"],
            [BASE_CNPJ, "2", "Simone", "456", "16", "", "", "", "", "10", "5"],
        ],
    )
    write_zip(directory / "Simples.zip", [[BASE_CNPJ, "S", "20221217", "", "N", "20221118", "20221201"]])
    return directory


def test_keys():
    assert key_for_partners(BASE_CNPJ) == "partners12345678"
    assert key_for_base(BASE_CNPJ) == "base12345678"
    assert key_for_taxes(BASE_CNPJ) == "taxes12345678"


@pytest.mark.parametrize(
    "existing,expected",
    [
        (None, [new_partner()]),
        ([PARTNER_1], [PARTNER_1, new_partner()]),
        ([PARTNER_1, PARTNER_2], [PARTNER_1, PARTNER_2, new_partner()]),
    ],
)
def test_merge_partners(storage, existing, expected):
    key = BASE_CNPJ
    if existing is not None:
        storage.save_item(SourceType.BASE, key, to_json(existing))
    merged = storage.merge_partners(key, to_json(new_partner()))
    assert [PartnerData.from_dict(p) for p in json.loads(merged)] == expected


def test_save_and_read_partners(storage):
    storage.save_item(SourceType.PARTNERS, key_for_partners(BASE_CNPJ), to_json(new_partner()))
    assert storage.partners_of(BASE_CNPJ) == [new_partner()]


def test_save_and_read_base(storage):
    storage.save_item(SourceType.BASE, key_for_base(BASE_CNPJ), to_json(new_base()))
    assert storage.base_of(BASE_CNPJ) == new_base()


def test_save_and_read_taxes(storage):
    storage.save_item(SourceType.TAXES, key_for_taxes(BASE_CNPJ), to_json(new_taxes()))
    assert storage.taxes_of(BASE_CNPJ) == new_taxes()


def test_missing_keys_give_empty_values(storage):
    assert storage.partners_of("00000000") == []
    assert storage.base_of("00000000") == BaseData()
    assert storage.taxes_of("00000000") == TaxesData()


def test_corrupt_value_raises(storage):
    storage.save_item(SourceType.BASE, key_for_base(BASE_CNPJ), "not json")
    with pytest.raises(ValueError, match="error getting base"):
        storage.base_of(BASE_CNPJ)


def test_new_kv_item(lookups):
    row = [BASE_CNPJ, "S", "20221217", "", "N", "20221118", "20221201"]
    key, value = new_kv_item(SourceType.TAXES, lookups, row)
    assert key == "taxes12345678"
    assert TaxesData.from_dict(json.loads(value)) == new_taxes()


def test_new_kv_item_unknown_kind(lookups):
    with pytest.raises(ValueError, match="unknown source type Motivos"):
        new_kv_item(SourceType.MOTIVES, lookups, ["1", "x"])


def test_load_and_enrich_company(storage, data_dir, lookups):
    storage.load(data_dir, lookups)
    partners = storage.partners_of(BASE_CNPJ)
    assert [p.nome_socio for p in partners] == ["Hannah", "Simone"]
    assert partners[0] == new_partner()
    assert storage.base_of(BASE_CNPJ) == new_base()
    assert storage.taxes_of(BASE_CNPJ) == new_taxes()

    company = SimpleNamespace(cnpj="12345678000195")
    storage.enrich_company(company)
    assert company.razao_social == "Razão Social"
    assert company.porte == "DEMAIS"
    assert company.capital_social == 4.2
    assert company.opcao_pelo_simples is True
    assert company.data_exclusao_do_mei == datetime.date(2022, 12, 1)
    assert len(company.quadro_societario) == 2


def test_data_persists_after_reopening(tmp_path, data_dir, lookups):
    path = tmp_path / "kv"
    with KeyValueStorage(path) as kv:
        kv.load(data_dir, lookups)
    with KeyValueStorage(path) as kv:
        assert kv.base_of(BASE_CNPJ).razao_social == "Razão Social"


def test_load_with_bad_row_raises(storage, data_dir, lookups):
    write_zip(data_dir / "Empresas0.zip", [[BASE_CNPJ, "Razão", "x", "13", "1", "5", ""]])
    with pytest.raises(ValueError, match="error creating key-value storage"):
        storage.load(data_dir, lookups)
    assert storage.base_of(BASE_CNPJ) == BaseData()