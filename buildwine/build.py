# configure / make / make install of a patched Wine source tree and packaging of
# the result.

import os
import re
import shutil
import subprocess

from buildwine.commands import command_exists, run_command
from buildwine.deps import INSTALL_COMMANDS, install_packages

CONFIGURE_LOG = "configure.log"
BUILD_LOG = "wine-build.log"
INSTALL_LOG = "wine-install.log"

# Sound support is via ALSA, the OSS check result is noise
CONFIGURE_NOISE = "configure: OSS sound system found but too old (OSSv4 needed)"
BUILD_NOISE = re.compile(r"(parser|sql)\.y: (warning|note):")

# terminal games to pass the time while 'make' runs
GAMES = ("vitetris", "bastet", "tetris", "tint", "ntris")
# tried in order when none of GAMES is installed
INSTALLABLE_GAMES = ("vitetris", "bastet")


def configure_options(config):
    """Options passed to Wine's 'configure'

    NOTE: --disable-tests is required due to truncf linking issues with GCC 15/MinGW.
    Test executables try to use truncf from ucrtbase but link against msvcrt instead.
    """
    options = ["--prefix={0}".format(config.install_prefix),
               "--enable-opencl",
               "--enable-archs=i386,x86_64",
               "--disable-tests"]
    if not config.wayland:
        options.append("--without-wayland")
    return options


def filter_configure_output(lines):
    return [line for line in lines if CONFIGURE_NOISE not in line]


def filter_build_log(lines):
    return [line for line in lines if not BUILD_NOISE.search(line)]


def read_log(path):
    if not os.path.isfile(path):
        return []
    with open(path, encoding="utf8", errors="replace") as f:
        return f.read().splitlines()


def print_tail(lines, count, title):
    print("[*] {0}:".format(title))
    for line in lines[-count:]:
        print(line)


def prepare_directories(config):
    os.makedirs(config.build_path, exist_ok=True)
    os.makedirs(config.install_prefix, exist_ok=True)
    # fresh logs for every run
    for log in (CONFIGURE_LOG, BUILD_LOG, INSTALL_LOG):
        path = os.path.join(config.build_path, log)
        if os.path.exists(path):
            os.remove(path)
    print("[+] Build directories created")


def run_configure(config, source_root, env):
    """Run 'configure' in the build directory, output goes to configure.log

    Returns:
        True if configure succeeded.

    """
    logfile = os.path.join(config.build_path, CONFIGURE_LOG)
    try:
        run_command("'{0}/configure' {1} > '{2}' 2>&1".format(
            source_root, " ".join(configure_options(config)), logfile), config.build_path, env)
    except subprocess.CalledProcessError:
        print("[!] Wine configure failed!")
        print_tail(read_log(logfile), 100, "Last 100 lines of configure log")
        print("[*] Full configure log saved to: {0}".format(logfile))
        return False

    print_tail(filter_configure_output(read_log(logfile)), 30, "Configure summary")
    print("[+] Wine configured successfully")
    return True


def find_game(candidates=GAMES):
    for game in candidates:
        if shutil.which(game):
            return game
    return None


def install_game(package_manager, candidates=INSTALLABLE_GAMES):
    """Install the first terminal game the package manager can provide

    Returns:
        name of the installed game, or None.

    """
    if package_manager not in INSTALL_COMMANDS:
        return None
    for game in candidates:
        if install_packages(package_manager, [game]) and command_exists(game):
            print("[+] Installed {0}".format(game))
            return game
    return None


def run_make_with_game(config, env, game):
    """Run 'make' in the background while a game runs in the foreground

    Returns:
        exit code of 'make'.

    """
    logfile = os.path.join(config.build_path, BUILD_LOG)
    print("[*] Starting build in background, launching {0} - enjoy!".format(game))
    with open(logfile, "w") as log:
        make = subprocess.Popen(["make", "-j{0}".format(config.jobs)], cwd=config.build_path,
                                env=env, stdout=log, stderr=subprocess.STDOUT)
        try:
            # the game's exit status has no bearing on the build
            subprocess.run([game], stderr=subprocess.DEVNULL)
        finally:
            print("[*] Waiting for build to complete...")
            returncode = make.wait()
    return returncode


def run_make(config, env, game=None):
    """Build Wine, output goes to wine-build.log

    Returns:
        True if the build succeeded.

    """
    logfile = os.path.join(config.build_path, BUILD_LOG)
    if game:
        succeeded = run_make_with_game(config, env, game) == 0
    else:
        print("[*] Building Wine with {0} threads (this may take 10-30 minutes)".format(config.jobs))
        try:
            run_command("make -j{0} > '{1}' 2>&1".format(config.jobs, logfile), config.build_path, env)
            succeeded = True
        except subprocess.CalledProcessError:
            succeeded = False

    if not succeeded:
        print("[!] Wine build failed! Build log saved to: {0}".format(logfile))
        print_tail(read_log(logfile), 20, "Last 20 lines of build log")
        return False

    for line in filter_build_log(read_log(logfile)):
        print(line)
    print("[+] Wine build completed successfully")
    return True


def run_install(config, env):
    logfile = os.path.join(config.build_path, INSTALL_LOG)
    print("[*] Installing Wine (using {0} threads)...".format(config.jobs))
    try:
        run_command("make install -j{0} > '{1}' 2>&1".format(config.jobs, logfile), config.build_path, env)
    except subprocess.CalledProcessError:
        print("[!] Failed to install Wine")
        print_tail(read_log(logfile), 50, "Last 50 lines of install log")
        return False
    print("[+] Wine installed successfully")
    return True


def package_name(install_prefix, version):
    """Tarball name for an install prefix: '<dir>-<version>.tar.xz'"""
    base = os.path.basename(os.path.normpath(install_prefix))
    if base.endswith("-{0}".format(version)):
        return "{0}.tar.xz".format(base)
    return "{0}-{1}.tar.xz".format(base, version)


def human_size(size):
    """Size like 'du -h': 512B, 1.5K, 230.0M"""
    if size < 1024:
        return "{0}B".format(size)
    for unit in ("K", "M", "G"):
        size /= 1024.0
        if size < 1024 or unit == "G":
            return "{0:.1f}{1}".format(size, unit)


def package_install(install_prefix, version):
    """Pack the install prefix into a .tar.xz next to it

    The archive contains the prefix directory itself, so extracting it
    creates '<dir>/' with bin, include, lib and share inside.

    Returns:
        path to the package, or None if packaging failed.

    """
    install_prefix = os.path.normpath(os.path.abspath(install_prefix))
    if not os.path.isdir(install_prefix):
        print("[!] Installation directory not found: {0}".format(install_prefix))
        return None

    parent = os.path.dirname(install_prefix)
    name = package_name(install_prefix, version)
    print("[*] Packaging Wine as {0}".format(name))
    try:
        run_command("tar -cJf '{0}' '{1}'".format(name, os.path.basename(install_prefix)), parent)
    except subprocess.CalledProcessError:
        print("[!] Warning: Failed to create package, but Wine is installed at: {0}".format(install_prefix))
        return None

    path = os.path.join(parent, name)
    print("[+] Wine packaged successfully: {0} ({1})".format(path, human_size(os.path.getsize(path))))
    return path


def cleanup_on_failure(build_path, source_root=None):
    """Remove the build directory, and the source tree if this run downloaded it"""
    print("[*] Cleaning up build directories...")
    for path in (build_path, source_root):
        if path and os.path.isdir(path):
            print("[*] Removing {0}".format(path))
            shutil.rmtree(path, ignore_errors=True)
