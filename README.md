# minhareceita

A library for the CNPJ open data published by the Brazilian Federal Revenue
(Receita Federal). It checks the integrity of the downloaded ZIP files, reads
the ISO-8859-15 CSV files inside them, joins venues with company, partner and
tax regime data into one JSON document per CNPJ, and serves those documents
through a small WSGI application.

## Installation

```console
pip install minhareceita
```

Python 3.10 or newer is required.

## Checking the files

`minhareceita.check` reads every file inside each ZIP archive and works with
MD5 checksum files. Every failure raises `CheckError`.

```python
from minhareceita.check import check, check_checksum, checksum_for, create_checksum

check("data")                  # raises CheckError if any ZIP file is broken
check("data", delete=True)     # deletes the broken ZIP files instead

print(checksum_for("data/Simples.zip"))   # hexadecimal MD5 digest

create_checksum("data")                   # writes <name>.md5 next to each visible file
check_checksum("other-copy", "data")      # compares the .md5 files of both directories
```

`check_zip_files(directory)` returns a dictionary of failures by path, and
`check_zip_file(path)` checks a single archive.

## Reading the source files

```python
from minhareceita.archive import ArchivedCSV

with ArchivedCSV("data/Motivos.zip", ";") as archived:
    for row in archived:
        print(row)
```

Values have NUL characters removed and runs of whitespace collapsed to a
single space. `read()` returns the next row and raises `EOFError` at the end;
`count_lines()` counts line breaks and `to_lookup()` builds a table from the
integer code in the first column to the second column.

`minhareceita.source` groups files by kind (`SourceType`, such as
`SourceType.VENUES` for `Estabelecimentos*.zip`); `paths_for_source(kind,
directory)` lists them and `Source(kind, directory)` opens a reader for each
and counts their lines in `total_lines`.

`Lookups.from_directory(directory)` in `minhareceita.lookups` loads the code
tables (motives, cities, countries, CNAEs, qualifications, legal natures) and
the IBGE city codes from `TABMUN.CSV`.

## Conversions and CNPJ helpers

```python
from minhareceita.cast import to_int, to_float, to_bool, to_date, format_date, parse_date
from minhareceita import cnpj

to_int("")                        # None
to_float("4,20")                  # 4.2
to_bool("s")                      # True
format_date(to_date("19670630"))  # '1967-06-30'
parse_date("1967-06-30")          # datetime.date(1967, 6, 30)

cnpj.mask("19131243000197")       # '19.131.243/0001-97'
cnpj.unmask("19.131.243/0001-97") # '19131243000197'
cnpj.is_valid("19131243000197")   # True
cnpj.base("19131243000197")       # '19131243'
```

Empty values become `None`, so they are serialised as `null` rather than `0`
or `false`. Malformed values raise `ValueError`.

## Transforming into one JSON per CNPJ

The transformation happens in two steps:

1. `KeyValueStorage(path).load(directory, lookups)` reads the `Empresas`,
   `Socios` and `Simples` files into a key-value store (an SQLite file in the
   given directory), keyed by base CNPJ. Partners of the same company are
   appended to one list.
2. `VenuesTask(directory, database, lookups, kv, batch_size, privacy).run(max_parallel)`
   reads every `Estabelecimentos` row, builds a `Company`, fills it from the
   key-value store and hands batches of `[cnpj, json]` rows to the database.

```python
from minhareceita.lookups import Lookups
from minhareceita.storage import KeyValueStorage
from minhareceita.venues import VenuesTask

lookups = Lookups.from_directory("data")
with KeyValueStorage("/tmp/kv") as kv:
    kv.load("data", lookups)
    VenuesTask("data", database, lookups, kv, 8192, True).run(8)
```

`database` is any object with `pre_load()`, `create_companies(batch)` and
`post_load()`. With privacy on, e-mail addresses are left out and a CPF at the
end of a trade name is partly masked (`company_name_cleanup`).

Individual records can also be built directly: `PartnerData`, `BaseData` and
`TaxesData` each have `from_row`, `to_dict` and `from_dict`, and
`Company.from_row(row, lookups, kv, privacy)` with `json()` and `from_json()`.

## Web API

`minhareceita.api.Api(database, host)` is a WSGI application:

- `GET /<cnpj>` (masked or not) answers with the company's JSON, `400` for an
  invalid CNPJ and `404` when it is not found; `GET /` redirects to the
  documentation; `OPTIONS` answers `200` with CORS headers.
- `GET /updated` answers with the extraction date read with
  `database.meta_read("updated-at")`.
- `GET` or `HEAD /healthz` answers `200`.

When `host` is set, requests with any other `Host` header get `418`.
`serve(database, port)` runs it on all interfaces, taking `host` from the
`ALLOWED_HOST` environment variable. `database` is any object with
`get_company(number)` and `meta_read(key)`; each lookup is retried when an
attempt takes longer than a second.

## What the package does not do

- It has no command-line program; everything is used from Python.
- It does not download the files from the Federal Revenue or from a mirror,
  nor find out whether a newer release exists.
- It does not create sample versions of the source files.
- It ships no database backend: the venues task and the API work with any
  object providing the methods listed above, and saving the extraction date is
  left to that object.

## Development

```console
pip install -e ".[test]"
pytest
```