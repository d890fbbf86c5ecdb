# Build Wine from source with version-matched patches: fetch the source, apply the
# patches, install build dependencies, configure, build, install and package.
# Run with '--help' for usage.

import argparse
import os
import sys

from buildwine.build import (cleanup_on_failure, find_game, install_game, package_install,
                             prepare_directories, run_configure, run_install, run_make)
from buildwine.config import prompt_yes_no, resolve_config, resolve_version
from buildwine.deps import (detect_distribution, detect_package_manager, ensure_prerequisites,
                            install_build_dependencies)
from buildwine.patches import GnuPatchTool, PatchFailurePolicy, default_search_roots, orchestrate_patches
from buildwine.source import download_wine_source, find_existing_source, is_source_tree
from buildwine.version import UNKNOWN_VERSION, detect_source_version


def parse_args(argv=None):

    my_parser = argparse.ArgumentParser(description="Build Wine from source with version-matched patches",
                                        allow_abbrev=False)
    my_parser.add_argument("--version",
                           type=str,
                           default="",
                           help="specify the Wine version to build: <major>.<minor> (env: WINE_VERSION)")
    my_parser.add_argument("--source-path",
                           type=str,
                           default=None,
                           help="specify the Wine source path, downloaded there if it doesn't exist")
    my_parser.add_argument("--build-path",
                           type=str,
                           default=None,
                           help="specify the build directory (default: ./wine64-build)")
    my_parser.add_argument("--install-prefix",
                           type=str,
                           default=None,
                           help="specify the Wine install path (env: INSTALL_PREFIX)")
    my_parser.add_argument("--patches-path",
                           type=str,
                           default=None,
                           help="specify the directory holding the wine-<version> patch directories "
                                "(default: ./patches, ../patches or the patches of a source checkout)")
    my_parser.add_argument("--jobs",
                           type=int,
                           default=None,
                           help="specify the number of CPU cores used for building Wine (env: BUILD_THREADS)")
    my_parser.add_argument("--debug",
                           action="store_true",
                           help="build with debug symbols (env: BUILD_DEBUG=1)")
    my_parser.add_argument("--disable-wayland",
                           action="store_true",
                           help="build without Wayland support (env: BUILD_WAYLAND=0)")
    my_parser.add_argument("--patch-failure",
                           type=str,
                           default=PatchFailurePolicy.ABORT.value,
                           choices=[policy.value for policy in PatchFailurePolicy],
                           help="abort before configure if a patch fails to apply, or only warn")
    my_parser.add_argument("--no-files-exist-check",
                           action="store_true",
                           help="do not treat 'file already exists' from patch as an already applied patch")
    my_parser.add_argument("--skip-deps",
                           action="store_true",
                           help="do not check and install build dependencies")
    my_parser.add_argument("--no-package",
                           action="store_true",
                           help="do not create a .tar.xz package of the install prefix")
    my_parser.add_argument("--game",
                           action="store_true",
                           help="play a terminal game while Wine builds in the background")
    my_parser.add_argument("--yes",
                           action="store_true",
                           help="do not ask any questions, assume the default answers")

    return my_parser.parse_args(argv)


def print_system_info(config, package_manager):
    print("System Information:")
    print("  Distribution:    {0}".format(detect_distribution()))
    print("  Package Manager: {0}".format(package_manager))
    print("  CPU Threads:     {0} (using {1} for build)".format(os.cpu_count(), config.jobs))


def acquire_source(config, interactive):
    """Find or download the Wine source tree

    Returns:
        (absolute source path, True if it was downloaded by this run)

    """
    if config.source_path and is_source_tree(config.source_path):
        return config.source_path, False

    if not config.source_path:
        source_root = find_existing_source(config.cwd, config.version)
        if source_root:
            return source_root, False

    print("[!] Wine source directory not found.")
    version = resolve_version(config.version, config.search_roots, interactive)
    if not version:
        sys.exit("No Wine version selected, aborting!")
    config.version = version

    source_root = config.source_path or os.path.join(config.cwd, "wine-src")
    if not download_wine_source(version, source_root):
        sys.exit("Failed to download Wine {0} source, aborting!".format(version))
    return os.path.abspath(source_root), True


def checkout_dir(package_dir=None):
    """Top directory of the source checkout this package runs from

    A checkout keeps its bundled 'patches' directory next to 'pyproject.toml'.
    An installed package has neither, patches are then taken from
    --patches-path or the 'patches' directories around the working directory.

    Returns:
        absolute path, or None for an installed package.

    """
    package_dir = package_dir or os.path.dirname(os.path.realpath(__file__))
    top_dir = os.path.dirname(package_dir)
    if os.path.isfile(os.path.join(top_dir, "pyproject.toml")):
        return top_dir
    return None


def main(argv=None):

    script_dir = checkout_dir()

    args = parse_args(argv)
    config = resolve_config(args, script_dir=script_dir)
    interactive = not config.assume_yes and sys.stdin.isatty()

    def confirm(question, default=True):
        if not interactive:
            return default
        return prompt_yes_no(question, default)

    package_manager = detect_package_manager()
    print_system_info(config, package_manager)

    if not confirm("Do you wish to continue?"):
        print("Build cancelled by user.")
        return 0

    ##################################################################
    # Wine source
    source_root, downloaded = acquire_source(config, interactive)
    print("[+] Using Wine source directory: {0}".format(source_root))
    if not args.patches_path:
        config.search_roots = default_search_roots(script_dir, config.cwd, source_root)

    def fail(reason):
        cleanup_on_failure(config.build_path, source_root if downloaded else None)
        sys.exit("{0}, aborting!".format(reason))

    prepare_directories(config)

    ##################################################################
    # version-matched patches
    tool = GnuPatchTool(check_existing_files=config.check_existing_files)
    result = orchestrate_patches(source_root, config.search_roots, tool)
    if result is not None and not result.success:
        if config.patch_failure is PatchFailurePolicy.ABORT:
            sys.exit("Failed to apply {0} patch(es), aborting!".format(len(result.failed_patches)))
        print("[!] Continuing the build with {0} failed patch(es)".format(len(result.failed_patches)))

    if not config.version:
        detected = detect_source_version(source_root)
        config.version = detected if detected != UNKNOWN_VERSION else ""

    ##################################################################
    # build dependencies and toolchain
    if config.install_deps:
        if not install_build_dependencies(package_manager, confirm):
            return 1

    print("Build Configuration Options:")
    for line in config.summary_lines():
        print(line)
    if not confirm("Proceed with build using these settings?"):
        print("Build cancelled by user.")
        return 0

    missing = ensure_prerequisites(package_manager)
    if missing:
        fail("Missing build prerequisites: {0}".format(", ".join(missing)))

    ##################################################################
    # configure, build, install
    env = config.flags.build_env(os.environ)

    if not run_configure(config, source_root, env):
        fail("Wine configure failed")

    game = None
    if config.play_game:
        game = find_game()
        if not game:
            print("[*] No terminal game found, installing one...")
            game = install_game(package_manager)
        if not game:
            print("[!] Could not install a terminal game, building without one")
        elif not confirm("Play {0} while building?".format(game)):
            game = None

    if not run_make(config, env, game):
        fail("Wine build failed")

    if not run_install(config, env):
        fail("Wine install failed")

    package = None
    if config.package:
        package = package_install(config.install_prefix, config.version or UNKNOWN_VERSION)

    print("BUILD COMPLETE!")
    print("  Wine Version:   {0}".format(config.version or UNKNOWN_VERSION))
    print("  Install Prefix: {0}".format(config.install_prefix))
    if package:
        print("  Package:        {0}".format(package))

    print(
    """
    Run the following command to register this Wine build in environment
    ----------------------------------------------------------------------
    export PATH={0}/bin/:$PATH
    ----------------------------------------------------------------------
    """.format(config.install_prefix))
    return 0


if __name__ == "__main__":
    sys.exit(main())
