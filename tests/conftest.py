import os

import pytest

from buildwine.patches import PatchSet


def write(path, content=""):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w") as f:
        f.write(content)
    return path


class FakePatchTool:
    """Stands in for GnuPatchTool, answers by patch file name"""

    def __init__(self, strict=(), fuzzy=(), already=()):
        self.strict = set(strict)
        self.fuzzy = set(fuzzy)
        self.already = set(already)
        self.calls = []

    def apply(self, patch_file, source_root, fuzz=None):
        name = os.path.basename(patch_file)
        self.calls.append(("apply", name, fuzz))
        return name in (self.fuzzy if fuzz else self.strict)

    def already_applied(self, patch_file, source_root):
        name = os.path.basename(patch_file)
        self.calls.append(("already_applied", name, None))
        return name in self.already


@pytest.fixture
def source_tree(tmp_path):
    root = tmp_path / "wine-src"
    write(str(root / "configure"), "#!/bin/sh\n")
    write(str(root / "VERSION"), "Wine version 10.4\n")
    return str(root)


@pytest.fixture
def patches_root(tmp_path):
    root = tmp_path / "patches"
    root.mkdir()
    return str(root)


@pytest.fixture
def make_patch_set(tmp_path):
    def _make(*names):
        directory = tmp_path / "patch-set"
        for name in names:
            write(str(directory / name), "--- a/x\n+++ b/x\n")
        return PatchSet.from_directory(str(directory))
    return _make
