import os

import pytest

from buildwine.cli import parse_args
from buildwine.config import (DEFAULT_CFLAGS, DEFAULT_CROSSCFLAGS, DEFAULT_CROSSLDFLAGS, CompilerFlags,
                              default_install_prefix, prompt_yes_no, resolve_config, resolve_version,
                              select_version)
from buildwine.patches import PatchFailurePolicy


def replies(*answers):
    answers = iter(answers)
    return lambda prompt: next(answers)


def test_default_flags():
    flags = CompilerFlags()
    assert flags.as_env() == {
        "CFLAGS": DEFAULT_CFLAGS,
        "CXXFLAGS": DEFAULT_CFLAGS,
        "CROSSCFLAGS": DEFAULT_CROSSCFLAGS,
        "CROSSCXXFLAGS": DEFAULT_CROSSCFLAGS,
        "CROSSLDFLAGS": DEFAULT_CROSSLDFLAGS,
    }


def test_debug_flags():
    env = CompilerFlags(debug=True).as_env()
    assert env["CFLAGS"].endswith(" -g")
    assert env["CROSSCXXFLAGS"].endswith(" -g")
    assert env["CROSSLDFLAGS"] == DEFAULT_CROSSLDFLAGS


def test_flags_from_environ():
    flags = CompilerFlags.from_environ({"CFLAGS": "-O3", "CROSSLDFLAGS": "-Wl,-O2"})
    assert flags.cflags == "-O3"
    assert flags.cxxflags == "-O3"
    assert flags.crosscflags == DEFAULT_CROSSCFLAGS
    assert flags.crossldflags == "-Wl,-O2"


def test_build_env_does_not_touch_base():
    base = {"PATH": "/usr/bin"}
    env = CompilerFlags().build_env(base)
    assert env["PATH"] == "/usr/bin"
    assert "CFLAGS" in env
    assert base == {"PATH": "/usr/bin"}


def test_default_install_prefix(tmp_path):
    assert default_install_prefix(home="/home/u", container_root=str(tmp_path / "missing")) == \
        "/home/u/Documents/ElementalWarrior-wine"
    assert default_install_prefix(container_root=str(tmp_path)) == \
        os.path.join(str(tmp_path), "wine-src", "wine-install")


def test_resolve_config_from_environment(tmp_path):
    args = parse_args([])
    environ = {"WINE_VERSION": "10.1", "BUILD_THREADS": "6", "BUILD_DEBUG": "1", "BUILD_WAYLAND": "0",
               "INSTALL_PREFIX": "/opt/wine"}
    config = resolve_config(args, environ=environ, script_dir=str(tmp_path), cwd=str(tmp_path))
    assert config.version == "10.1"
    assert config.jobs == 6
    assert config.debug
    assert not config.wayland
    assert config.install_prefix == "/opt/wine"
    assert config.build_path == os.path.join(str(tmp_path), "wine64-build")
    assert config.patch_failure is PatchFailurePolicy.ABORT
    assert config.check_existing_files
    assert config.flags.cflags.endswith("-g")


def test_resolve_config_arguments_win(tmp_path):
    args = parse_args(["--version", "9.22", "--jobs", "2", "--patch-failure", "warn",
                       "--no-files-exist-check", "--patches-path", str(tmp_path / "p"), "--skip-deps"])
    config = resolve_config(args, environ={"WINE_VERSION": "10.1", "BUILD_THREADS": "6"},
                            script_dir=str(tmp_path), cwd=str(tmp_path))
    assert config.version == "9.22"
    assert config.jobs == 2
    assert config.patch_failure is PatchFailurePolicy.WARN
    assert not config.check_existing_files
    assert config.search_roots == [str(tmp_path / "p")]
    assert not config.install_deps


def test_invalid_thread_count(tmp_path):
    with pytest.raises(SystemExit):
        resolve_config(parse_args([]), environ={"BUILD_THREADS": "many"}, cwd=str(tmp_path))


def test_prompt_yes_no_default_and_retry(capsys):
    assert prompt_yes_no("Continue?", True, replies(""))
    assert not prompt_yes_no("Continue?", True, replies("maybe", "n"))
    assert "Please answer yes or no." in capsys.readouterr().out


def test_select_version():
    assert select_version(["9.22", "10.1"], replies("x", "2")) == "10.1"
    assert select_version(["9.22", "10.1"], replies("3")) is None
    assert select_version(["9.22", "10.1"], replies("")) is None


def test_resolve_version(patches_root):
    os.makedirs(os.path.join(patches_root, "wine-10.1"))
    os.makedirs(os.path.join(patches_root, "wine-9.22"))
    roots = [patches_root]
    assert resolve_version("10.1", roots, interactive=False) == "10.1"
    # not in the patches, non-interactive runs keep the requested version
    assert resolve_version("8.0", roots, interactive=False) == "8.0"
    assert resolve_version("8.0", roots, interactive=True, input_func=replies("1")) == "9.22"
    assert resolve_version("", roots, interactive=False) is None


def test_resolve_version_without_patches(tmp_path):
    assert resolve_version("10.1", [str(tmp_path / "none")], interactive=False) == "10.1"
    assert resolve_version("", [str(tmp_path / "none")], interactive=True) is None
