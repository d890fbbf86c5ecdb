# Wine source acquisition: reuse an existing tree or download a release tarball.

import os
import shutil
import subprocess
import sys
import tempfile

from buildwine.commands import command_exists, run_command

WINE_SOURCE_URI = "https://dl.winehq.org/wine/source"


def is_source_tree(path):
    return os.path.isdir(path) and os.path.isfile(os.path.join(path, "configure"))


def find_existing_source(cwd, version=""):
    """Look for an already present Wine source tree

    Parameters:
        cwd (str): Directory the build runs in.
        version (str): Wine version, also checks './wine-<version>'.

    Returns:
        absolute path of the source tree or None.

    """
    candidates = [os.path.join(cwd, os.pardir, "wine-src"),
                  os.path.join(cwd, "wine-src"),
                  cwd]
    if version:
        candidates.append(os.path.join(cwd, "wine-{0}".format(version)))

    for candidate in candidates:
        if is_source_tree(candidate):
            return os.path.normpath(os.path.abspath(candidate))
    return None


def source_url(version):
    """Release tarball URL: x.0 releases live in 'x.0/', the rest in 'x.x/'"""
    major, _, minor = version.partition(".")
    minor = minor.split(".")[0]
    if not minor or minor == "0":
        subdir = "{0}.0".format(major)
    else:
        subdir = "{0}.x".format(major)
    return "{0}/{1}/wine-{2}.tar.xz".format(WINE_SOURCE_URI, subdir, version)


def download_command(url, output):
    """wget or curl command line to fetch 'url', None if neither is installed"""
    if command_exists("wget"):
        return "wget --progress=bar:force:noscroll '{0}' -O '{1}'".format(url, output)
    if command_exists("curl"):
        return "curl -L --progress-bar --fail -o '{0}' '{1}'".format(output, url)
    return None


def fix_nested_source(download_dir):
    """Flatten 'wine-src/wine-X.Y/' into 'wine-src/' if configure ended up one level down

    Returns:
        True if 'download_dir' holds a source tree afterwards.

    """
    if is_source_tree(download_dir):
        return True

    nested_dir = None
    for entry in sorted(os.listdir(download_dir)):
        candidate = os.path.join(download_dir, entry)
        if entry.startswith("wine-") and is_source_tree(candidate):
            nested_dir = candidate
            break
    if not nested_dir:
        return False

    print("[*] Found nested directory structure, moving '{0}' to '{1}'".format(nested_dir, download_dir))
    temp_dir = tempfile.mkdtemp(dir=os.path.dirname(os.path.abspath(download_dir)))
    moved = os.path.join(temp_dir, os.path.basename(nested_dir))
    shutil.move(nested_dir, moved)
    shutil.rmtree(download_dir)
    shutil.move(moved, download_dir)
    os.rmdir(temp_dir)
    return is_source_tree(download_dir)


def download_wine_source(version, download_dir, reuse_existing=True):
    """Download and extract a Wine release into 'download_dir'

    An existing 'download_dir' is only replaced when it is empty or a Wine
    source tree, anything else aborts the run.

    Parameters:
        version (str): Wine version, e.g. '10.1'.
        download_dir (str): Target directory for the source tree.
        reuse_existing (bool): Keep an existing complete tree instead of downloading again.

    Returns:
        True on success, False if download or extraction failed.

    """
    download_dir = os.path.abspath(download_dir)

    if reuse_existing and os.path.isdir(download_dir) and fix_nested_source(download_dir):
        print("[*] Wine source already exists at: {0}".format(download_dir))
        return True

    url = source_url(version)
    wine_file = "wine-{0}.tar.xz".format(version)
    wine_dir = "wine-{0}".format(version)

    command = download_command(url, wine_file)
    if not command:
        print("[!] Neither wget nor curl found. Please install one to download Wine source.")
        return False

    if os.path.isdir(download_dir):
        # only a Wine tree or an empty directory may be replaced
        if is_source_tree(download_dir):
            print("[*] Removing existing {0}".format(download_dir))
            shutil.rmtree(download_dir)
        elif not os.listdir(download_dir):
            os.rmdir(download_dir)
        else:
            sys.exit("{0} is not a Wine source tree, aborting!".format(download_dir))
    elif os.path.exists(download_dir):
        sys.exit("{0} is not a Wine source tree, aborting!".format(download_dir))
    os.makedirs(os.path.dirname(download_dir), exist_ok=True)

    temp_dir = tempfile.mkdtemp()
    try:
        print("[*] Downloading Wine {0} from {1}".format(version, url))
        try:
            run_command(command, temp_dir)
        except subprocess.CalledProcessError:
            print("[!] Failed to download Wine source.")
            return False

        print("[*] Extracting Wine source...")
        try:
            run_command("tar -xf '{0}'".format(wine_file), temp_dir)
        except subprocess.CalledProcessError:
            print("[!] Failed to extract Wine source.")
            return False

        extracted = os.path.join(temp_dir, wine_dir)
        if not os.path.isdir(extracted):
            print("[!] Extracted directory '{0}' not found, contents: {1}".format(
                wine_dir, ", ".join(sorted(os.listdir(temp_dir)))))
            return False
        shutil.move(extracted, download_dir)
        print("[*] Wine source extracted to: {0}".format(download_dir))
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    if not fix_nested_source(download_dir):
        print("[!] configure script not found after extraction, expected at: {0}".format(
            os.path.join(download_dir, "configure")))
        return False

    print("[+] Configure script verified at: {0}".format(os.path.join(download_dir, "configure")))
    return True
