from __future__ import annotations

from datetime import datetime

import pytest

from fileupload.core.file_utils import (
    MAX_FILENAME_BYTES,
    SanitizedName,
    sanitize_filename,
    sanitize_name,
    stored_filename,
    upload_timestamp,
)


HOSTILE_NAMES = [
    "",
    ".",
    "..",
    "...",
    "/",
    "\\",
    "../../../etc/passwd",
    "..\\..\\windows\\system32\\config",
    "C:\\Users\\me\\report.pdf",
    "a b/c.txt",
    "dir/",
    " ",
    "a" * 300 + ".txt",
    "." + "x" * 300,
    "x" * 300,
    "ü" * 200 + ".txt",
    "file.multiple.dots.txt",
]


@pytest.mark.parametrize("raw", HOSTILE_NAMES)
@pytest.mark.parametrize("max_length", [1, 5, 10, 64, 239])
def test_sanitized_name_is_bounded_and_single_component(raw, max_length):
    name = sanitize_filename(raw, max_length)
    assert name
    assert len(name.encode("utf-8")) <= max_length
    assert "/" not in name and "\\" not in name
    assert name not in (".", "..")


@pytest.mark.parametrize("raw", ["", "."])
def test_empty_names_fall_back_to_placeholder(raw):
    assert sanitize_filename(raw, 64) == "unnamed"


def test_traversal_is_reduced_to_last_segment():
    assert sanitize_filename("../../../etc/passwd", 64) == "passwd"
    assert sanitize_filename("..\\..\\boot.ini", 64) == "boot.ini"
    assert sanitize_filename("/var/tmp/../x.bin", 64) == "x.bin"
    assert sanitize_filename("C:\\Users\\me\\report.pdf", 64) == "report.pdf"


def test_relative_path_is_flattened():
    assert sanitize_filename("a b/c.txt", 64) == "a_b-c.txt"
    assert sanitize_filename("dir\\sub\\f.txt", 64) == "dir-sub-f.txt"
    assert sanitize_filename("dir/sub/f.txt", 64) == "dir-sub-f.txt"


def test_double_dots_collapse():
    assert sanitize_filename("a..b", 64) == "a.b"
    assert sanitize_filename("archive..tar..gz", 64) == "archive.tar.gz"


def test_bare_traversal_becomes_placeholder():
    assert sanitize_filename("..", 64) == "unnamed"
    assert sanitize_filename("../..", 64) == "unnamed"


def test_long_name_keeps_extension():
    name = sanitize_filename("a" * 300 + ".txt", 239)
    assert len(name) == 239
    assert name.endswith(".txt")
    assert name == "a" * 235 + ".txt"


def test_long_name_without_extension_is_cut():
    assert sanitize_filename("x" * 300, 10) == "x" * 10


def test_oversized_extension_is_sacrificed():
    raw = "." + "e" * 50
    assert sanitize_filename(raw, 10) == raw[:10]


def test_extension_equal_to_limit_is_sacrificed():
    assert sanitize_filename("base.abcd", 5) == "base."


def test_only_last_dot_starts_extension():
    name = sanitize_name("part.one.two." + "z" * 3, 8)
    assert name == SanitizedName(base="part", extension=".zzz")


def test_truncation_does_not_split_multibyte_characters():
    assert sanitize_filename("é" * 10, 5) == "éé"


def test_sanitize_name_splits_extension():
    assert sanitize_name("report.pdf") == SanitizedName(base="report", extension=".pdf")
    assert sanitize_name("README") == SanitizedName(base="README", extension="")
    assert str(sanitize_name("my file.tar.gz")) == "my_file.tar.gz"


def test_non_positive_limit_is_rejected():
    with pytest.raises(ValueError):
        sanitize_filename("a.txt", 0)


def test_upload_timestamp_format():
    assert upload_timestamp(datetime(2024, 1, 1, 12, 0, 0)) == "20240101_120000"
    assert len(upload_timestamp()) == 15


def test_stored_filename_prefixes_timestamp():
    assert stored_filename("report.pdf", "20240101_120000") == "20240101_120000_report.pdf"


def test_stored_filename_fits_filesystem_limit():
    name = stored_filename("b" * 1000 + ".jpeg", "20240101_120000")
    assert len(name.encode("utf-8")) == MAX_FILENAME_BYTES
    assert name.startswith("20240101_120000_")
    assert name.endswith(".jpeg")


def test_nul_bytes_are_dropped():
    assert sanitize_filename("evil\x00.txt", 64) == "evil.txt"
    assert sanitize_filename("\x00", 64) == "unnamed"
