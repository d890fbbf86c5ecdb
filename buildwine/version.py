# Wine version handling: parsing, ordering and detection from a source tree.

import os
import re

from packaging.version import InvalidVersion, Version

UNKNOWN_VERSION = "unknown"

# VERSION file format: "Wine version 10.4" or "wine-10.4"
VERSION_FILE_PATTERN = re.compile(r"^(?:Wine version |wine-)([0-9.]+)")
# configure.ac: "WINE_VERSION=10.4"
VERSION_ASSIGN_PATTERN = re.compile(r"WINE_VERSION=([0-9.]+)")
# configure.ac: "AC_INIT([Wine],[10.4],[wine-devel@winehq.org],[wine],[https://www.winehq.org])"
AC_INIT_VERSION_PATTERN = re.compile(r"[\[(]([0-9][0-9.]*)[\])]")


def parse_version(version):
    """Parse a Wine version string with packaging.version

    Parameters:
        version (str): Version string, e.g. '10.1' or '1.6-rc2'.

    Returns:
        packaging.version.Version or None if the string is not a valid version.

    """
    try:
        return Version(version)
    except (InvalidVersion, TypeError):
        return None


def major_minor(version):
    """Truncate a dotted version to its first two components: '10.1.3' -> '10.1'"""
    return ".".join(version.split(".")[:2])


def version_sort_key(version):
    """Sort key ordering versions like 'sort -V': parseable versions first, in version
    order, then anything else lexicographically."""
    parsed = parse_version(version)
    if parsed is None:
        return (1, Version("0"), version)
    return (0, parsed, version)


def _first_line(path):
    with open(path, encoding="utf8", errors="replace") as f:
        return f.readline().strip()


def _version_from_configure_ac(path):
    with open(path, encoding="utf8", errors="replace") as f:
        lines = f.read().splitlines()

    for line in lines:
        if line.startswith("WINE_VERSION="):
            match = VERSION_ASSIGN_PATTERN.search(line)
            if match:
                return match.group(1)
            break

    for line in lines:
        if line.startswith("AC_INIT") and "wine" in line.lower():
            match = AC_INIT_VERSION_PATTERN.search(line)
            if match:
                return match.group(1)

    return None


def detect_source_version(source_root):
    """Detect the Wine version of a source tree

    The 'VERSION' marker file wins if present, 'configure.ac' is only consulted
    when there is no marker file.

    Parameters:
        source_root (str): Path to the Wine source tree.

    Returns:
        Version string, or 'unknown' if it could not be detected.

    """
    version_file = os.path.join(source_root, "VERSION")
    configure_ac = os.path.join(source_root, "configure.ac")

    version = None
    try:
        if os.path.isfile(version_file):
            match = VERSION_FILE_PATTERN.match(_first_line(version_file))
            if match:
                version = match.group(1)
        elif os.path.isfile(configure_ac):
            version = _version_from_configure_ac(configure_ac)
    except OSError as e:
        print("[!] Unable to read version information from '{0}': {1}".format(source_root, e))

    # a trailing dot from e.g. "wine-10.4." is not part of the version
    if version:
        version = version.strip(".")
    return version or UNKNOWN_VERSION
