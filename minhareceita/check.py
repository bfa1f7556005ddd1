"""Integrity checks of the downloaded ZIP files and MD5 checksum files."""

from __future__ import annotations

import glob
import hashlib
import logging
import os
import zipfile
import zlib
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from tqdm import tqdm

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 32 * 1024
_ZIP_ERRORS = (
    OSError,
    EOFError,
    zipfile.BadZipFile,
    zlib.error,
    RuntimeError,
    NotImplementedError,
    ValueError,
)


class CheckError(Exception):
    """Raised when files fail a check or cannot be checked."""


def check_zip_file(path: str | Path) -> None:
    """Read every file in a ZIP archive, raising CheckError if anything is broken."""
    try:
        archive = zipfile.ZipFile(path)
    except _ZIP_ERRORS as exc:
        raise CheckError(f"error opening {path}: {exc}") from exc
    with archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            try:
                handle = archive.open(info)
            except _ZIP_ERRORS as exc:
                raise CheckError(f"error opening {info.filename} in {path}: {exc}") from exc
            with handle:
                try:
                    for _ in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                        pass
                except _ZIP_ERRORS as exc:
                    raise CheckError(f"error reading {info.filename} in {path}: {exc}") from exc


def _check(path: str) -> CheckError | None:
    try:
        check_zip_file(path)
    except CheckError as exc:
        logger.error("%s\tFAILED with\t%s", path, exc)
        return exc
    return None


def check_zip_files(directory: str | Path) -> dict[str, CheckError]:
    """Check every ZIP file in a directory, returning the failures by path."""
    paths = sorted(glob.glob(os.path.join(glob.escape(str(directory)), "*.zip")))
    if not paths:
        raise CheckError("no zip files found")
    logger.info("Checking %d files…", len(paths))
    with ThreadPoolExecutor() as pool:
        results = zip(paths, pool.map(_check, paths))
        return {path: error for path, error in results if error is not None}


def check(directory: str | Path, delete: bool = False) -> None:
    """Check the ZIP files in a directory, deleting the broken ones if asked to."""
    try:
        fails = check_zip_files(directory)
    except CheckError as exc:
        raise CheckError(f"error checking zip files in {directory}: {exc}") from exc
    if not fails:
        return
    if not delete:
        raise CheckError("error checking the zip files above")
    for path in fails:
        logger.info("Deleting %s", path)
        try:
            os.remove(path)
        except OSError:
            pass


def checksum_for(path: str | Path) -> str:
    """Return the hexadecimal MD5 digest of a file's contents."""
    digest = hashlib.md5()
    try:
        with open(path, "rb") as handle:
            for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError as exc:
        raise CheckError(f"error reading {path}: {exc}") from exc
    return digest.hexdigest()


def _same_checksum(src: str, target: str) -> bool:
    other = os.path.join(target, os.path.basename(src))
    return checksum_for(src) == checksum_for(other)


def check_checksum(src: str | Path, target: str | Path) -> None:
    """Compare each ``.md5`` file in ``src`` with the one of the same name in ``target``."""
    paths = sorted(glob.glob(os.path.join(glob.escape(str(src)), "*.md5")))
    if not paths:
        raise CheckError(f"target directory {target} has no checksum files to compare with")
    different: list[str] = []
    with tqdm(total=len(paths), desc="Checking files checksum") as bar, ThreadPoolExecutor() as pool:
        futures = {pool.submit(_same_checksum, path, str(target)): path for path in paths}
        for future in as_completed(futures):
            if not future.result():
                different.append(futures[future])
            bar.update(1)
    if different:
        raise CheckError(
            f"got different checksum for file(s): {', '.join(sorted(different))}"
        )
    logger.info("OK!")


def _write_checksum(path: str) -> None:
    target = f"{path}.md5"
    digest = checksum_for(path)
    try:
        Path(target).write_text(digest)
    except OSError as exc:
        raise CheckError(f"error writing {target} checksum file: {exc}") from exc


def create_checksum(src: str | Path) -> None:
    """Write a ``<name>.md5`` file next to every regular, visible file in a directory."""
    try:
        entries = sorted(os.scandir(src), key=lambda entry: entry.name)
    except OSError as exc:
        raise CheckError(f"error reading {src} directory: {exc}") from exc
    paths = [
        os.path.join(src, entry.name)
        for entry in entries
        if not entry.is_dir()
        and not entry.name.startswith(".")
        and not entry.name.endswith(".md5")
    ]
    with tqdm(total=len(paths), desc="Creating checksum files") as bar, ThreadPoolExecutor() as pool:
        for future in as_completed([pool.submit(_write_checksum, p) for p in paths]):
            future.result()
            bar.update(1)