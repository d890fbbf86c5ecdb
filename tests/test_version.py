from buildwine.version import (UNKNOWN_VERSION, detect_source_version, major_minor, parse_version,
                               version_sort_key)

from conftest import write


def test_version_file_with_label(tmp_path):
    write(str(tmp_path / "VERSION"), "Wine version 10.4\n")
    assert detect_source_version(str(tmp_path)) == "10.4"


def test_version_file_with_prefix(tmp_path):
    write(str(tmp_path / "VERSION"), "wine-9.22\nsecond line 1.0\n")
    assert detect_source_version(str(tmp_path)) == "9.22"


def test_unrecognized_version_file_is_unknown(tmp_path):
    write(str(tmp_path / "VERSION"), "development snapshot\n")
    write(str(tmp_path / "configure.ac"), "WINE_VERSION=10.1\n")
    assert detect_source_version(str(tmp_path)) == UNKNOWN_VERSION


def test_configure_ac_version_assignment(tmp_path):
    write(str(tmp_path / "configure.ac"), "dnl comment\nWINE_VERSION=10.1\nAC_INIT([Wine],[9.0])\n")
    assert detect_source_version(str(tmp_path)) == "10.1"


def test_configure_ac_init_macro(tmp_path):
    write(str(tmp_path / "configure.ac"),
          "dnl Process this file with autoconf\n"
          "AC_INIT([Wine],[10.3],[wine-devel@winehq.org],[wine],[https://www.winehq.org])\n")
    assert detect_source_version(str(tmp_path)) == "10.3"


def test_configure_ac_without_version(tmp_path):
    write(str(tmp_path / "configure.ac"), "AC_PREREQ([2.69])\n")
    assert detect_source_version(str(tmp_path)) == UNKNOWN_VERSION


def test_empty_tree_is_unknown(tmp_path):
    assert detect_source_version(str(tmp_path)) == UNKNOWN_VERSION


def test_missing_tree_is_unknown(tmp_path):
    assert detect_source_version(str(tmp_path / "nowhere")) == UNKNOWN_VERSION


def test_major_minor():
    assert major_minor("10.1.3") == "10.1"
    assert major_minor("10.1") == "10.1"
    assert major_minor("11") == "11"


def test_parse_version():
    assert parse_version("1.6-rc2") < parse_version("1.6")
    assert parse_version("not a version") is None


def test_version_sort_key_orders_numerically():
    versions = ["10.1", "9.22", "custom", "10.12", "9.3"]
    assert sorted(versions, key=version_sort_key) == ["9.3", "9.22", "10.1", "10.12", "custom"]
