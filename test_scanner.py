#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Test directory scanning
"""

import os

import pytest

import FileSimilarity.scanner
from FileSimilarity.errors import InputError
from FileSimilarity.main import main
from FileSimilarity.scanner import make_entry, scan_dir, scan_paths


@pytest.fixture
def tree(tmp_path):
    (tmp_path / "sub").mkdir()
    (tmp_path / "report_final.txt").write_text("quarterly numbers", encoding="utf-8")
    (tmp_path / "unrelated.csv").write_text("a,b\n1,2\n", encoding="utf-8")
    (tmp_path / "sub" / "report_final_v2.txt").write_text("quarterly numbers revised", encoding="utf-8")
    return tmp_path


def test_scan_dir_walks_recursively(tree):
    entries = scan_dir(str(tree))

    assert [os.path.basename(e.name) for e in entries] == [
        "report_final.txt", "unrelated.csv", "report_final_v2.txt"
    ]
    assert entries[0].name == str(tree / "report_final.txt")
    assert entries[0].text == "report_final.txt"
    assert entries[0].size == len("quarterly numbers")


def test_scan_dir_pattern(tree):
    entries = scan_dir(str(tree), pattern=r"\.txt$")

    assert sorted(os.path.basename(e.name) for e in entries) == ["report_final.txt", "report_final_v2.txt"]


def test_scan_contents(tree):
    entries = scan_dir(str(tree), pattern="report", contents=True)

    assert [e.text for e in entries] == ["quarterly numbers", "quarterly numbers revised"]


def test_scan_paths_mixes_files_and_directories(tree):
    entries = scan_paths([str(tree / "sub"), str(tree / "unrelated.csv")])

    assert [os.path.basename(e.name) for e in entries] == ["report_final_v2.txt", "unrelated.csv"]


def test_missing_path(tree):
    with pytest.raises(InputError, match="No such file or directory"):
        scan_paths([str(tree / "missing")])


def test_invalid_pattern(tree):
    with pytest.raises(InputError, match="Invalid file name pattern"):
        scan_paths([str(tree)], pattern="[")


@pytest.fixture
def unreadable_subdir(tree, monkeypatch):
    real_scandir = os.scandir
    blocked = str(tree / "sub")

    def fake_scandir(path="."):
        if os.fspath(path) == blocked:
            raise PermissionError(13, "Permission denied", blocked)
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", fake_scandir)
    return blocked


def test_unreadable_directory(tree, unreadable_subdir):
    with pytest.raises(InputError, match="Could not read directory .*sub: Permission denied"):
        scan_dir(str(tree))


def test_unreadable_directory_exits_1(tree, unreadable_subdir, capsys, monkeypatch):
    for name in ("OTEL_EXPORTER_OTLP_ENDPOINT", "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT"):
        monkeypatch.delenv(name, raising=False)

    assert main([str(tree)]) == 1
    assert "Could not read directory" in capsys.readouterr().err


def test_stat_failure(tree, monkeypatch):
    def fail(path):
        raise FileNotFoundError(2, "No such file or directory", path)

    monkeypatch.setattr(os.path, "getsize", fail)

    with pytest.raises(InputError, match="Could not stat"):
        make_entry(str(tree / "unrelated.csv"))


def test_read_failure(tree, monkeypatch):
    def fail(path, *args, **kwargs):
        raise PermissionError(13, "Permission denied", path)

    monkeypatch.setattr(FileSimilarity.scanner, "open", fail, raising=False)

    with pytest.raises(InputError, match="Could not read .*unrelated.csv"):
        make_entry(str(tree / "unrelated.csv"), contents=True)

    assert make_entry(str(tree / "unrelated.csv")).text == "unrelated.csv"
