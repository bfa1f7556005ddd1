import time

import pytest
from werkzeug.test import Client
from werkzeug.wrappers import Request

from minhareceita import api
from minhareceita.api import Api, get_company
from minhareceita.cnpj import unmask

RESPONSE = '{"cnpj":"19131243000197","razao_social":"OPEN KNOWLEDGE BRASIL"}'
ONLY_GET = '{"message":"Essa URL aceita apenas o método GET."}'


class FakeDatabase:
    def __init__(self, updated="42"):
        self.updated = updated

    def get_company(self, number):
        if unmask(number) != "19131243000197":
            raise LookupError("Company not found")
        return RESPONSE

    def meta_read(self, key):
        if isinstance(self.updated, Exception):
            raise self.updated
        return self.updated


def request(method, path):
    return Request.from_values(path=path, method=method)


@pytest.mark.parametrize(
    "method,path,status,content",
    [
        ("HEAD", "/", 405, ONLY_GET),
        ("OPTIONS", "/", 200, ""),
        ("POST", "/", 405, ONLY_GET),
        ("GET", "/", 302, ""),
        ("GET", "/foobar", 400, '{"message":"CNPJ foobar inválido."}'),
        ("GET", "/00.000.000/0001-91", 404, '{"message":"CNPJ 00.000.000/0001-91 não encontrado."}'),
        ("GET", "/00000000000191", 404, '{"message":"CNPJ 00.000.000/0001-91 não encontrado."}'),
        ("GET", "/19.131.243/0001-97", 200, RESPONSE),
        ("GET", "/19131243000197", 200, RESPONSE),
    ],
)
def test_company_handler(method, path, status, content):
    app = Api(FakeDatabase())
    response = app.company_handler(request(method, path))
    assert response.status_code == status
    if content:
        assert response.get_data(as_text=True).strip() == content
        assert response.headers["Content-Type"] == "application/json"


def test_company_handler_headers_and_redirect():
    response = Api(FakeDatabase()).company_handler(request("GET", "/"))
    assert response.headers["Location"] == "https://docs.minhareceita.org"
    assert response.headers["Cache-Control"] == "max-age=86400"
    assert response.headers["Access-Control-Allow-Origin"] == "*"


@pytest.mark.parametrize(
    "method,status,content",
    [("GET", 200, ""), ("POST", 405, ONLY_GET), ("HEAD", 200, "")],
)
def test_health_handler(method, status, content):
    response = Api(FakeDatabase()).health_handler(request(method, "/healthz"))
    assert response.status_code == status
    assert response.get_data(as_text=True).strip() == content


@pytest.mark.parametrize(
    "method,status,content",
    [
        ("GET", 200, '{"message":"42 é a data de extração dos dados pela Receita Federal."}'),
        ("POST", 405, ONLY_GET),
        ("HEAD", 405, ONLY_GET),
        ("OPTIONS", 405, ONLY_GET),
    ],
)
def test_updated_handler(method, status, content):
    response = Api(FakeDatabase()).updated_handler(request(method, "/updated"))
    assert response.status_code == status
    assert response.get_data(as_text=True).strip() == content


def test_updated_handler_database_error():
    app = Api(FakeDatabase(updated=RuntimeError("boom")))
    response = app.updated_handler(request("GET", "/updated"))
    assert response.status_code == 500
    assert "Erro buscando data de atualização." in response.get_data(as_text=True)


def test_updated_handler_empty_value():
    response = Api(FakeDatabase(updated="")).updated_handler(request("GET", "/updated"))
    assert response.status_code == 500
    assert response.get_data(as_text=True) == ""


@pytest.mark.parametrize(
    "allowed,status",
    [("", 200), ("127.0.0.1", 200), ("forty-two", 418)],
)
def test_allowed_host(allowed, status):
    client = Client(Api(FakeDatabase(), allowed))
    response = client.get("/19131243000197", base_url="http://127.0.0.1/")
    assert response.status_code == status


def test_routes_through_wsgi():
    client = Client(Api(FakeDatabase()))
    assert client.get("/healthz").status_code == 200
    updated = client.get("/updated")
    assert "42 é a data" in updated.get_data(as_text=True)
    company = client.get("/19131243000197")
    assert company.get_data(as_text=True) == RESPONSE


def test_get_company_found_and_missing():
    assert get_company(FakeDatabase(), "/19.131.243/0001-97") == RESPONSE
    with pytest.raises(LookupError, match="error retrieving"):
        get_company(FakeDatabase(), "/00000000000191")


class SlowDatabase:
    def __init__(self, slow_calls):
        self.slow_calls = slow_calls
        self.calls = 0

    def get_company(self, number):
        self.calls += 1
        if self.calls <= self.slow_calls:
            time.sleep(0.3)
        return RESPONSE

    def meta_read(self, key):
        return "42"


def test_get_company_retries_after_timeout(monkeypatch):
    monkeypatch.setattr(api, "TIMEOUT_PER_ATTEMPT", 0.05)
    monkeypatch.setattr(api, "RETRIES", 3)
    database = SlowDatabase(slow_calls=1)
    assert get_company(database, "19131243000197") == RESPONSE
    assert database.calls == 2


def test_get_company_gives_up_after_retries(monkeypatch):
    monkeypatch.setattr(api, "TIMEOUT_PER_ATTEMPT", 0.05)
    monkeypatch.setattr(api, "RETRIES", 2)
    database = SlowDatabase(slow_calls=100)
    with pytest.raises(LookupError, match="timed out"):
        get_company(database, "19131243000197")
    assert database.calls == 2