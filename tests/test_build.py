import os
import subprocess

import pytest

from buildwine import build
from buildwine.build import (BUILD_LOG, CONFIGURE_NOISE, cleanup_on_failure, configure_options,
                             filter_build_log, filter_configure_output, human_size, package_install,
                             package_name, prepare_directories)
from buildwine.config import BuildConfig

from conftest import write


@pytest.fixture
def config(tmp_path):
    return BuildConfig(version="10.1", cwd=str(tmp_path), install_prefix=str(tmp_path / "wine-10.1-install"),
                       jobs=2)


def test_configure_options(config):
    assert configure_options(config) == ["--prefix={0}".format(config.install_prefix),
                                         "--enable-opencl",
                                         "--enable-archs=i386,x86_64",
                                         "--disable-tests"]
    config.wayland = False
    assert configure_options(config)[-1] == "--without-wayland"


def test_output_filters():
    lines = ["checking for gcc... gcc", CONFIGURE_NOISE, "configure: creating ./config.status"]
    assert filter_configure_output(lines) == [lines[0], lines[2]]
    log = ["gcc -c foo.c", "tools/widl/parser.y: warning: 2 shift/reduce conflicts",
           "dlls/wbemprox/sql.y: note: counterexample", "ld -o foo.dll"]
    assert filter_build_log(log) == ["gcc -c foo.c", "ld -o foo.dll"]


def test_prepare_directories_clears_old_logs(config):
    write(os.path.join(config.build_path, BUILD_LOG), "old")
    prepare_directories(config)
    assert os.path.isdir(config.install_prefix)
    assert os.listdir(config.build_path) == []


def test_package_name():
    assert package_name("/opt/ElementalWarrior-wine", "10.1") == "ElementalWarrior-wine-10.1.tar.xz"
    assert package_name("/opt/wine-10.1/", "10.1") == "wine-10.1.tar.xz"


def test_human_size():
    assert human_size(512) == "512B"
    assert human_size(1536) == "1.5K"
    assert human_size(230 * 1024 * 1024) == "230.0M"


def test_package_install(tmp_path, monkeypatch):
    prefix = tmp_path / "ElementalWarrior-wine"
    write(str(prefix / "bin" / "wine"))
    commands = []

    def fake_run_command(command, cwd=None, env=None):
        commands.append((command, cwd))
        write(os.path.join(cwd, "ElementalWarrior-wine-10.1.tar.xz"), "x" * 10)

    monkeypatch.setattr(build, "run_command", fake_run_command)
    path = package_install(str(prefix), "10.1")
    assert path == str(tmp_path / "ElementalWarrior-wine-10.1.tar.xz")
    assert commands == [("tar -cJf 'ElementalWarrior-wine-10.1.tar.xz' 'ElementalWarrior-wine'", str(tmp_path))]


def test_package_install_failure(tmp_path, monkeypatch):
    write(str(tmp_path / "prefix" / "bin" / "wine"))

    def failing(command, cwd=None, env=None):
        raise subprocess.CalledProcessError(2, command)

    monkeypatch.setattr(build, "run_command", failing)
    assert package_install(str(tmp_path / "prefix"), "10.1") is None
    assert package_install(str(tmp_path / "missing"), "10.1") is None


def test_run_configure_failure_prints_log(config, tmp_path, monkeypatch, capsys):
    def failing(command, cwd=None, env=None):
        write(os.path.join(cwd, "configure.log"), "checking...\nconfigure: error: no mingw\n")
        raise subprocess.CalledProcessError(1, command)

    os.makedirs(config.build_path)
    monkeypatch.setattr(build, "run_command", failing)
    assert not build.run_configure(config, str(tmp_path / "wine-src"), {})
    assert "configure: error: no mingw" in capsys.readouterr().out


def test_cleanup_on_failure(tmp_path):
    build_dir = write(str(tmp_path / "build" / "Makefile"))
    source_dir = write(str(tmp_path / "wine-src" / "configure"))
    cleanup_on_failure(os.path.dirname(build_dir))
    assert not os.path.exists(str(tmp_path / "build"))
    assert os.path.exists(source_dir)
    cleanup_on_failure(str(tmp_path / "build"), os.path.dirname(source_dir))
    assert not os.path.exists(str(tmp_path / "wine-src"))


def test_install_game_falls_back_to_next_candidate(monkeypatch):
    attempts = []
    monkeypatch.setattr(build, "install_packages", lambda pm, packages: attempts.extend(packages) or True)
    monkeypatch.setattr(build, "command_exists", lambda name: name == "bastet")
    assert build.install_game("dnf") == "bastet"
    assert attempts == ["vitetris", "bastet"]


def test_install_game_gives_up(monkeypatch):
    monkeypatch.setattr(build, "install_packages", lambda pm, packages: False)
    assert build.install_game("apt") is None
    assert build.install_game("unknown") is None
