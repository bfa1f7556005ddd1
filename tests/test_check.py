import hashlib
import zipfile
from pathlib import Path

import pytest

from minhareceita.check import (
    CheckError,
    check,
    check_checksum,
    check_zip_file,
    check_zip_files,
    checksum_for,
    create_checksum,
)

CONTENTS = ["This is the contents of file 0", "This is the contents of file 1"]
HASHES = ["2e68b218b62624b52ee519a42e09f87d", "aa45a469cfb5b5b2ca3094568f0f2039"]
BAD_ZIP = "BAD_FILE.zip"


def make_good_zip(directory: Path, name: str = "Simples.zip") -> Path:
    path = directory / name
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("data.csv", "a;b\nc;d\n")
    return path


def make_bad_zip(directory: Path) -> Path:
    path = directory / BAD_ZIP
    path.write_bytes(b"")
    return path


def checksum_files(directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    for n, (content, digest) in enumerate(zip(CONTENTS, HASHES)):
        (directory / f"file{n}").write_text(content)
        (directory / f"file{n}.md5").write_text(digest)
    return directory


def test_check_zip_files_failure(tmp_path):
    make_good_zip(tmp_path)
    bad = make_bad_zip(tmp_path)
    got = check_zip_files(tmp_path)
    assert set(got) == {str(bad)}


def test_check_zip_files_empty_directory(tmp_path):
    with pytest.raises(CheckError, match="no zip files found"):
        check_zip_files(tmp_path)


def test_check_zip_file_good(tmp_path):
    assert check_zip_file(make_good_zip(tmp_path)) is None


def test_check_zip_file_bad(tmp_path):
    bad = make_bad_zip(tmp_path)
    with pytest.raises(CheckError) as info:
        check_zip_file(bad)
    assert str(info.value).startswith(f"error opening {bad}")


def test_check_zip_file_corrupted_content(tmp_path):
    path = tmp_path / "corrupt.zip"
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_STORED) as archive:
        archive.writestr("data.csv", "hello world\n")
    path.write_bytes(path.read_bytes().replace(b"hello world", b"hello WORLD"))
    with pytest.raises(CheckError, match="error reading data.csv"):
        check_zip_file(path)


def test_check_raises_without_delete(tmp_path):
    make_good_zip(tmp_path)
    bad = make_bad_zip(tmp_path)
    with pytest.raises(CheckError, match="zip files above"):
        check(tmp_path, False)
    assert bad.exists()


def test_check_deletes_broken_files(tmp_path):
    good = make_good_zip(tmp_path)
    bad = make_bad_zip(tmp_path)
    check(tmp_path, True)
    assert not bad.exists()
    assert good.exists()


def test_check_wraps_missing_files_error(tmp_path):
    with pytest.raises(CheckError, match="error checking zip files in"):
        check(tmp_path, False)


def test_create_checksum_missing_directory(tmp_path):
    with pytest.raises(CheckError):
        create_checksum(tmp_path / "directory-does-not-exist")


def test_create_checksum_files(tmp_path):
    src = checksum_files(tmp_path / "src")
    create_checksum(src)
    created = sorted(p.name for p in src.glob("*.md5"))
    assert created == ["file0.md5", "file1.md5"]
    assert [(src / f"file{n}.md5").read_text() for n in range(2)] == HASHES


def test_create_checksum_skips_hidden_files(tmp_path):
    (tmp_path / ".hidden").write_text("x")
    (tmp_path / "visible").write_text("x")
    create_checksum(tmp_path)
    assert sorted(p.name for p in tmp_path.glob("*.md5")) == ["visible.md5"]


def test_check_checksum_empty_directory(tmp_path):
    with pytest.raises(CheckError, match="no checksum files"):
        check_checksum(tmp_path, tmp_path)


def test_check_checksum_missing_source_files(tmp_path):
    src = checksum_files(tmp_path / "src")
    out = checksum_files(tmp_path / "out")
    for n in range(2):
        (src / f"file{n}.md5").unlink()
    with pytest.raises(CheckError):
        check_checksum(src, out)


def test_check_checksum_match(tmp_path):
    src = checksum_files(tmp_path / "src")
    out = checksum_files(tmp_path / "out")
    assert check_checksum(src, out) is None


def test_check_checksum_no_match(tmp_path):
    src = checksum_files(tmp_path / "src")
    out = checksum_files(tmp_path / "out")
    (src / "file0.md5").write_bytes(hashlib.md5(b"different data").digest())
    with pytest.raises(CheckError, match="different checksum"):
        check_checksum(src, out)


def test_check_checksum_missing_target_file(tmp_path):
    src = checksum_files(tmp_path / "src")
    out = checksum_files(tmp_path / "out")
    (out / "file1.md5").unlink()
    with pytest.raises(CheckError, match="error reading"):
        check_checksum(src, out)


def test_checksum_for(tmp_path):
    src = checksum_files(tmp_path)
    assert checksum_for(src / "file0") == HASHES[0]
    assert checksum_for(src / "file1") == HASHES[1]


def test_checksum_for_missing_file(tmp_path):
    with pytest.raises(CheckError):
        checksum_for(tmp_path / "nope")