# Build configuration, resolved once from command line, environment and prompts
# before anything touches the source tree.

import os
import sys

from buildwine.patches import PatchFailurePolicy, default_search_roots, list_available_versions

# Generic flags for x86-64-v2 compatibility (for native Wine binaries)
# These run on the host Linux system, so they need v2 support for v2+ CPUs
DEFAULT_CFLAGS = "-march=x86-64-v2 -mtune=generic -O2 -pipe"
# Flags for cross-compilation (for Windows PE binaries)
# Using v2 flags here causes build failures with i386 cross-compilation
DEFAULT_CROSSCFLAGS = "-O2 -pipe"
# '-lmingwex' links the MinGW extended math library (truncf etc. with GCC 15/MinGW)
DEFAULT_CROSSLDFLAGS = "-Wl,-O1 -lmingwex"

INSTALL_DIR_NAME = "ElementalWarrior-wine"
# install location inside the builder container
CONTAINER_ROOT = "/wine-builder"


class CompilerFlags:
    """Compiler and linker flags handed to 'configure' and 'make' through their environment"""

    def __init__(self, cflags=DEFAULT_CFLAGS, cxxflags=None, crosscflags=DEFAULT_CROSSCFLAGS,
                 crosscxxflags=None, crossldflags=DEFAULT_CROSSLDFLAGS, debug=False):
        self.cflags = cflags
        self.cxxflags = cxxflags if cxxflags is not None else cflags
        self.crosscflags = crosscflags
        self.crosscxxflags = crosscxxflags if crosscxxflags is not None else crosscflags
        self.crossldflags = crossldflags
        if debug:
            self.cflags += " -g"
            self.cxxflags += " -g"
            self.crosscflags += " -g"
            self.crosscxxflags += " -g"

    @classmethod
    def from_environ(cls, environ, debug=False):
        """Environment variables override the defaults, like 'CFLAGS="${CFLAGS:-...}"'"""
        cflags = environ.get("CFLAGS") or DEFAULT_CFLAGS
        crosscflags = environ.get("CROSSCFLAGS") or DEFAULT_CROSSCFLAGS
        return cls(cflags=cflags,
                   cxxflags=environ.get("CXXFLAGS") or cflags,
                   crosscflags=crosscflags,
                   crosscxxflags=environ.get("CROSSCXXFLAGS") or crosscflags,
                   crossldflags=environ.get("CROSSLDFLAGS") or DEFAULT_CROSSLDFLAGS,
                   debug=debug)

    def as_env(self):
        return {
            "CFLAGS": self.cflags,
            "CXXFLAGS": self.cxxflags,
            "CROSSCFLAGS": self.crosscflags,
            "CROSSCXXFLAGS": self.crosscxxflags,
            "CROSSLDFLAGS": self.crossldflags,
        }

    def build_env(self, base_env):
        """Copy of 'base_env' with the flags exported into it"""
        env = dict(base_env)
        env.update(self.as_env())
        return env


class BuildConfig:
    """Every setting of a build run; the build steps take their values from here only"""

    def __init__(self, version="", source_path=None, build_path=None, install_prefix=None,
                 jobs=None, debug=False, wayland=True, patch_failure=PatchFailurePolicy.ABORT,
                 check_existing_files=True, search_roots=(), install_deps=True, package=True,
                 play_game=False, assume_yes=False, flags=None, cwd=None):
        self.version = version
        self.source_path = source_path
        self.cwd = cwd or os.getcwd()
        self.build_path = build_path or os.path.join(self.cwd, "wine64-build")
        self.install_prefix = install_prefix or default_install_prefix()
        self.jobs = jobs or os.cpu_count() or 4
        self.debug = debug
        self.wayland = wayland
        self.patch_failure = patch_failure
        self.check_existing_files = check_existing_files
        self.search_roots = list(search_roots)
        self.install_deps = install_deps
        self.package = package
        self.play_game = play_game
        self.assume_yes = assume_yes
        self.flags = flags or CompilerFlags(debug=debug)

    def summary_lines(self):
        return [
            "  Wine Version:     {0}".format(self.version or "Not selected"),
            "  Build Threads:    {0}".format(self.jobs),
            "  Debug Symbols:    {0}".format("Yes" if self.debug else "No"),
            "  Wayland Support:  {0}".format("Enabled" if self.wayland else "Disabled"),
            "  Install Prefix:   {0}".format(self.install_prefix),
            "  Patch Failures:   {0}".format(self.patch_failure.value),
        ]


def default_install_prefix(home=None, container_root=CONTAINER_ROOT):
    if os.path.isdir(container_root):
        return os.path.join(container_root, "wine-src", "wine-install")
    home = home or os.path.expanduser("~")
    return os.path.join(home, "Documents", INSTALL_DIR_NAME)


def env_flag(environ, name, default):
    """Interpret a '0'/'1' environment variable"""
    value = environ.get(name)
    if value is None or value == "":
        return default
    return value not in ("0", "no", "false")


def env_int(environ, name):
    value = environ.get(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        sys.exit("Invalid value '{0}' for {1}, aborting!".format(value, name))


def prompt_yes_no(question, default=True, input_func=input):
    """Ask a yes/no question until a valid answer is given

    Parameters:
        question (str): Question text.
        default (bool): Answer used for an empty reply.
        input_func (callable): Source of replies.

    Returns:
        bool

    """
    hint = "[Y/n]" if default else "[y/N]"
    while True:
        reply = input_func("{0} {1}: ".format(question, hint)).strip().lower()
        if not reply:
            return default
        if reply in ("y", "yes"):
            return True
        if reply in ("n", "no"):
            return False
        print("Please answer yes or no.")


def select_version(versions, input_func=input):
    """Numbered menu of the versions that have patches

    Returns:
        the chosen version, or None if the user picked 'Exit' or gave no answer.

    """
    print("")
    print("Available Wine versions (with patches):")
    print("")
    for index, version in enumerate(versions, start=1):
        print("  {0:2d}) Wine version {1}".format(index, version))
    exit_choice = len(versions) + 1
    print("  {0:2d}) Exit".format(exit_choice))
    print("")

    while True:
        choice = input_func("Select Wine version to build [1-{0}]: ".format(exit_choice)).strip()
        if not choice or choice == str(exit_choice):
            return None
        if choice.isdigit() and 1 <= int(choice) < exit_choice:
            version = versions[int(choice) - 1]
            print("[+] Selected: Wine version {0}".format(version))
            return version
        print("Invalid choice. Please enter a number between 1 and {0}.".format(exit_choice))


def resolve_version(requested, search_roots, interactive, input_func=input):
    """Pick the Wine version to download when there is no source tree yet

    A requested version is taken as is when it has patches; otherwise the
    user chooses from the versions that have patches.

    Returns:
        version string, or None if none was chosen.

    """
    versions = list_available_versions(search_roots)
    if requested:
        if requested in versions or not versions:
            return requested
        print("[!] Warning: version {0} not found in patches. Available versions: {1}".format(
            requested, " ".join(versions)))
        if not interactive:
            return requested
    if not versions:
        print("[!] No patch directories found. Cannot determine available Wine versions.")
        return None
    if not interactive:
        return None
    return select_version(versions, input_func)


def resolve_config(args, environ=None, script_dir=None, cwd=None):
    """Turn parsed arguments plus environment variables into a BuildConfig

    Parameters:
        args (argparse.Namespace): Parsed command line.
        environ (dict): Environment, defaults to os.environ.
        script_dir (str): Source checkout holding bundled patches, or None.
        cwd (str): Directory the build runs in.

    Returns:
        BuildConfig

    """
    environ = os.environ if environ is None else environ
    cwd = cwd or os.getcwd()

    debug = args.debug or env_flag(environ, "BUILD_DEBUG", False)
    wayland = not args.disable_wayland and env_flag(environ, "BUILD_WAYLAND", True)

    if args.patches_path:
        search_roots = [os.path.abspath(args.patches_path)]
    else:
        search_roots = default_search_roots(script_dir, cwd, args.source_path)

    return BuildConfig(
        version=args.version or environ.get("WINE_VERSION", ""),
        source_path=os.path.abspath(args.source_path) if args.source_path else None,
        build_path=os.path.abspath(args.build_path) if args.build_path else None,
        install_prefix=args.install_prefix or environ.get("INSTALL_PREFIX") or None,
        jobs=args.jobs or env_int(environ, "BUILD_THREADS"),
        debug=debug,
        wayland=wayland,
        patch_failure=PatchFailurePolicy(args.patch_failure),
        check_existing_files=not args.no_files_exist_check,
        search_roots=search_roots,
        install_deps=not args.skip_deps,
        package=not args.no_package,
        play_game=args.game,
        assume_yes=args.yes,
        flags=CompilerFlags.from_environ(environ, debug=debug),
        cwd=cwd,
    )
