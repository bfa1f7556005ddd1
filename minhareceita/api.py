"""HTTP API serving the JSON of each CNPJ and the date the data was extracted."""

from __future__ import annotations

import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Callable, Iterable, Protocol

from werkzeug.serving import run_simple
from werkzeug.utils import redirect
from werkzeug.wrappers import Request, Response

from minhareceita import cnpj

logger = logging.getLogger(__name__)

CACHE_MAX_AGE = 24 * 60 * 60
CACHE_CONTROL = f"max-age={CACHE_MAX_AGE}"
DOCS_URL = "https://docs.minhareceita.org"
RETRIES = 13
TIMEOUT_PER_ATTEMPT = 1.0

_ONLY_GET = "Essa URL aceita apenas o método GET."
_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Accept, Content-Type, Content-Length, Accept-Encoding",
}


class Database(Protocol):
    def get_company(self, number: str) -> str: ...

    def meta_read(self, key: str) -> str: ...


class CompanyTimeout(TimeoutError):
    """Raised when a single attempt to read a company takes too long."""


def get_company(database: Database, number: str) -> str:
    """Read a company's JSON, restarting attempts that time out."""
    error: Exception | None = None
    for _ in range(max(RETRIES, 1)):
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(database.get_company, cnpj.unmask(number))
        executor.shutdown(wait=False)
        try:
            return future.result(timeout=TIMEOUT_PER_ATTEMPT)
        except FutureTimeout:
            error = CompanyTimeout("get_company timed out")
        except Exception as exc:
            raise LookupError(f"error retrieving {number}: {exc}") from exc
    raise LookupError(f"error retrieving {number}: {error}") from error


class Api:
    """WSGI application with the company, updated-at and health endpoints."""

    def __init__(self, database: Database, host: str = "") -> None:
        self.database = database
        self.host = host or ""
        self._routes: dict[str, Callable[[Request], Response]] = {
            "/updated": self.updated_handler,
            "/healthz": self.health_handler,
        }

    def _message(self, status: int, message: str = "") -> Response:
        if not message:
            if status == 500:
                logger.error("Internal server error without error message")
            return Response(status=status)
        body = json.dumps({"message": message}, ensure_ascii=False, separators=(",", ":"))
        if status == 500:
            logger.error(body)
        return Response(body, status=status, content_type="application/json")

    def _company(self, request: Request) -> Response:
        if request.method == "OPTIONS":
            return Response(status=200)
        if request.method != "GET":
            return self._message(405, _ONLY_GET)
        path = request.path
        if path == "/":
            return redirect(DOCS_URL, 302)
        if not cnpj.is_valid(path):
            return self._message(400, f"CNPJ {cnpj.mask(path[1:])} inválido.")
        try:
            body = get_company(self.database, path)
        except LookupError:
            return self._message(404, f"CNPJ {cnpj.mask(path)} não encontrado.")
        return Response(body, status=200, content_type="application/json")

    def company_handler(self, request: Request) -> Response:
        """Serve the JSON of the CNPJ in the path."""
        response = self._company(request)
        response.headers["Cache-Control"] = CACHE_CONTROL
        for key, value in _CORS_HEADERS.items():
            response.headers[key] = value
        return response

    def updated_handler(self, request: Request) -> Response:
        """Serve the date the data was extracted by the Federal Revenue."""
        if request.method != "GET":
            return self._message(405, _ONLY_GET)
        try:
            value = self.database.meta_read("updated-at")
        except Exception:
            return self._message(500, "Erro buscando data de atualização.")
        if not value:
            return Response(status=500)
        response = self._message(
            200, f"{value} é a data de extração dos dados pela Receita Federal."
        )
        response.headers["Cache-Control"] = CACHE_CONTROL
        return response

    def health_handler(self, request: Request) -> Response:
        """Answer health checks."""
        if request.method not in ("GET", "HEAD"):
            return self._message(405, _ONLY_GET)
        return Response(status=200)

    def _dispatch(self, request: Request) -> Response:
        if self.host:
            given = request.headers.get("Host", "")
            if given != self.host:
                logger.warning("Host %s not allowed", given)
                return Response(status=418)
        handler = self._routes.get(request.path, self.company_handler)
        return handler(request)

    def __call__(
        self, environ: dict[str, Any], start_response: Callable[..., Any]
    ) -> Iterable[bytes]:
        return self._dispatch(Request(environ))(environ, start_response)


def serve(database: Database, port: str | int) -> None:
    """Run the HTTP server on all interfaces at ``port``."""
    number = str(port).lstrip(":")
    app = Api(database, os.environ.get("ALLOWED_HOST", ""))
    logger.info("Serving at http://0.0.0.0:%s", number)
    run_simple("0.0.0.0", int(number), app, threaded=True)