# Version-matched patch sets: locate the patch directory for a Wine source tree,
# apply its patches in order and tally the outcome.

import enum
import os

from buildwine.commands import run_tool
from buildwine.version import UNKNOWN_VERSION, detect_source_version, major_minor, version_sort_key

PATCH_DIR_PREFIX = "wine"
PATCH_EXTENSIONS = (".patch",)
# fixed tolerance for the second application attempt
RELAXED_FUZZ = 3

# 'patch' diagnostics for a patch that is already present in the tree
REVERSED_SIGNAL = "Reversed (or previously applied)"
FILES_EXIST_SIGNAL = "already exists"


class PatchOutcome(enum.Enum):
    APPLIED = "applied"
    APPLIED_WITH_FUZZ = "applied with fuzz"
    ALREADY_APPLIED = "already applied"
    FAILED = "failed"


class PatchFailurePolicy(enum.Enum):
    # stop before configure
    ABORT = "abort"
    # report and carry on building
    WARN = "warn"


class PatchSet:
    """Ordered, immutable list of patch files from one version directory"""

    def __init__(self, path, patch_files):
        self.path = path
        self.patch_files = tuple(patch_files)

    @property
    def name(self):
        return os.path.basename(self.path)

    def __len__(self):
        return len(self.patch_files)

    def __iter__(self):
        return iter(self.patch_files)

    def __repr__(self):
        return "PatchSet({0!r}, {1} patch(es))".format(self.path, len(self.patch_files))

    @classmethod
    def from_directory(cls, path):
        """Collect the patch files of a directory, sorted by file name.

        Anything without an accepted extension (e.g. 'SHA256SUMS.txt') is ignored.
        """
        patch_files = []
        for entry in sorted(os.listdir(path)):
            full_path = os.path.join(path, entry)
            if os.path.isfile(full_path) and entry.endswith(PATCH_EXTENSIONS):
                patch_files.append(full_path)
        return cls(path, patch_files)


class PatchResult:

    def __init__(self, patch_file, outcome):
        self.patch_file = patch_file
        self.outcome = outcome

    @property
    def name(self):
        return os.path.basename(self.patch_file)

    def __repr__(self):
        return "PatchResult({0!r}, {1})".format(self.name, self.outcome)


class OrchestrationResult:
    """Aggregate of all patch outcomes for one patch set"""

    def __init__(self, results, patch_dir=None):
        self.results = tuple(results)
        self.patch_dir = patch_dir
        self.counts = {outcome: 0 for outcome in PatchOutcome}
        for result in self.results:
            self.counts[result.outcome] += 1

    @property
    def total(self):
        return len(self.results)

    @property
    def failed_patches(self):
        return tuple(r.name for r in self.results if r.outcome is PatchOutcome.FAILED)

    @property
    def reconciled(self):
        """Number of patches present in the tree afterwards, applied now or before"""
        return self.total - self.counts[PatchOutcome.FAILED]

    @property
    def empty(self):
        return self.total == 0

    @property
    def success(self):
        # an empty patch set is a warning, not a failure
        return self.counts[PatchOutcome.FAILED] == 0


def default_search_roots(script_dir, cwd, source_root=None):
    """Candidate 'patches' directories in order of preference

    Parameters:
        script_dir (str): Source checkout holding bundled patches, or None.
        cwd (str): Directory the build was started from.
        source_root (str): Wine source tree, its parent may hold the patches.

    Returns:
        list of absolute paths, without duplicates.

    """
    candidates = [os.path.join(script_dir, "patches")] if script_dir else []
    candidates.append(os.path.join(cwd, "patches"))
    if source_root:
        candidates.append(os.path.join(os.path.dirname(os.path.abspath(source_root)), "patches"))
    candidates.append(os.path.join(cwd, os.pardir, "patches"))

    roots = []
    for candidate in candidates:
        candidate = os.path.normpath(os.path.abspath(candidate))
        if candidate not in roots:
            roots.append(candidate)
    return roots


def find_patches_base(search_roots):
    """Return the first search root that exists as a directory, or None"""
    for root in search_roots:
        if os.path.isdir(root):
            return root
    return None


def _version_dirs(patches_base, prefix):
    """Map of '<prefix>-*' subdirectory suffixes to their paths"""
    dirs = {}
    marker = "{0}-".format(prefix)
    for entry in os.listdir(patches_base):
        full_path = os.path.join(patches_base, entry)
        if entry.startswith(marker) and os.path.isdir(full_path):
            dirs[entry[len(marker):]] = full_path
    return dirs


def list_available_versions(search_roots, prefix=PATCH_DIR_PREFIX):
    """Versions that have a patch directory, version-sorted ascending"""
    patches_base = find_patches_base(search_roots)
    if not patches_base:
        return []
    return sorted(_version_dirs(patches_base, prefix), key=version_sort_key)


def locate_patch_set(version, search_roots, prefix=PATCH_DIR_PREFIX):
    """Find the patch set matching a Wine version

    Only the first existing search root is considered. Within it the
    directory is chosen by: exact '<prefix>-<version>', then
    '<prefix>-<major>.<minor>', then the version-sorted first '<prefix>-*'.

    Parameters:
        version (str): Wine version, e.g. '10.1'.
        search_roots (list): Candidate 'patches' directories, in order of preference.
        prefix (str): Patch directory name prefix.

    Returns:
        PatchSet or None if no patch directory was found.

    """
    patches_base = find_patches_base(search_roots)
    if not patches_base:
        print("[!] Patches directory not found. Skipping patch application.")
        return None

    patch_dir = os.path.join(patches_base, "{0}-{1}".format(prefix, version))
    if not os.path.isdir(patch_dir):
        patch_dir = os.path.join(patches_base, "{0}-{1}".format(prefix, major_minor(version)))
        if not os.path.isdir(patch_dir):
            available = _version_dirs(patches_base, prefix)
            if not available:
                print("[!] No matching patch directory found for version {0}. "
                      "Skipping patch application.".format(version))
                return None
            patch_dir = available[sorted(available, key=version_sort_key)[0]]
            print("[!] Using patch directory: {0} (version may not match exactly)".format(patch_dir))

    return PatchSet.from_directory(patch_dir)


class GnuPatchTool:
    """Adapter around GNU 'patch'

    This is the only place that knows the command line of 'patch' and the
    wording of its diagnostics. Every real application is preceded by a dry
    run of the same form so a patch that does not fit completely leaves the
    tree untouched.

    Parameters:
        executable (str): 'patch' binary.
        strip (int): Leading path components to strip (-p).
        check_existing_files (bool): Treat "file already exists" in the dry run
            output as an already applied patch.

    """

    def __init__(self, executable="patch", strip=1, check_existing_files=True):
        self.executable = executable
        self.strip = strip
        self.check_existing_files = check_existing_files

    def _args(self, patch_file, fuzz, dry_run):
        args = [self.executable, "-p{0}".format(self.strip), "--forward",
                "--no-backup-if-mismatch", "--fuzz={0}".format(fuzz), "-i", patch_file]
        if dry_run:
            args.append("--dry-run")
        else:
            # a rejected hunk must not leave '.rej' files behind
            args.append("--reject-file=-")
        return args

    def _run(self, patch_file, source_root, fuzz, dry_run):
        return run_tool(self._args(os.path.abspath(patch_file), fuzz, dry_run), cwd=source_root)

    def apply(self, patch_file, source_root, fuzz=None):
        """Apply a patch, exact context unless 'fuzz' is given. Returns True if applied."""
        fuzz = fuzz or 0
        returncode, _ = self._run(patch_file, source_root, fuzz, dry_run=True)
        if returncode != 0:
            return False
        returncode, _ = self._run(patch_file, source_root, fuzz, dry_run=False)
        return returncode == 0

    def already_applied(self, patch_file, source_root):
        """Check via dry run whether the tree already contains the patch"""
        # a patch that went in with fuzz only reverses with the same tolerance
        _, output = self._run(patch_file, source_root, RELAXED_FUZZ, dry_run=True)
        if REVERSED_SIGNAL in output:
            return True
        if self.check_existing_files and FILES_EXIST_SIGNAL in output:
            return True
        return False


def apply_patch_file(tool, patch_file, source_root):
    """Apply a single patch with the tiered fallbacks and classify the outcome

    Parameters:
        tool (GnuPatchTool): Patch tool adapter.
        patch_file (str): Path to the unified diff.
        source_root (str): Wine source tree.

    Returns:
        PatchOutcome

    """
    if tool.apply(patch_file, source_root):
        return PatchOutcome.APPLIED
    if tool.apply(patch_file, source_root, fuzz=RELAXED_FUZZ):
        return PatchOutcome.APPLIED_WITH_FUZZ
    if tool.already_applied(patch_file, source_root):
        return PatchOutcome.ALREADY_APPLIED
    return PatchOutcome.FAILED


STATUS_LINES = {
    PatchOutcome.APPLIED: "    ✓ Successfully applied",
    PatchOutcome.APPLIED_WITH_FUZZ: "    ✓ Successfully applied (with fuzz)",
    PatchOutcome.ALREADY_APPLIED: "    ✓ Already applied (skipped)",
    PatchOutcome.FAILED: "    ✗ Failed to apply",
}


def apply_patch_set(tool, patch_set, source_root):
    """Apply every patch of a set in order

    A failing patch does not stop the loop, each patch gets its own outcome.

    Returns:
        list of PatchResult, one per patch file.

    """
    results = []
    for patch_file in patch_set:
        print("[*] Applying: {0}".format(os.path.basename(patch_file)))
        outcome = apply_patch_file(tool, patch_file, source_root)
        print(STATUS_LINES[outcome])
        results.append(PatchResult(patch_file, outcome))
    return results


def aggregate_outcomes(results, patch_dir=None):
    return OrchestrationResult(results, patch_dir)


def report_result(result):
    """Print the patch summary block"""
    if result.empty:
        print("[!] Warning: No patch files found in {0}, continuing without patches.".format(
            result.patch_dir))
    elif not result.success:
        print("[!] Failed to apply {0} patch(es):".format(len(result.failed_patches)))
        for name in result.failed_patches:
            print("      - {0}".format(name))
    else:
        print("[+] Successfully applied {0} of {1} patch(es)".format(result.reconciled, result.total))


def orchestrate_patches(source_root, search_roots, tool, version=None, prefix=PATCH_DIR_PREFIX):
    """Detect the source version, locate its patch set and apply it

    Parameters:
        source_root (str): Wine source tree.
        search_roots (list): Candidate 'patches' directories, in order of preference.
        tool (GnuPatchTool): Patch tool adapter.
        version (str): Skip detection and use this version.
        prefix (str): Patch directory name prefix.

    Returns:
        OrchestrationResult, or None if patching was skipped (unknown version,
        no patch directory, missing source tree).

    """
    if not os.path.isdir(source_root):
        print("[!] Wine source directory '{0}' not found. Skipping patch application.".format(source_root))
        return None

    if not version:
        version = detect_source_version(source_root)
    if version == UNKNOWN_VERSION:
        print("[!] Could not detect Wine version. Skipping patch application.")
        return None
    print("[*] Detected Wine version: {0}".format(version))

    patch_set = locate_patch_set(version, search_roots, prefix)
    if patch_set is None:
        return None

    print("[*] Found {0} patch file(s) in: {1}".format(len(patch_set), patch_set.path))
    results = apply_patch_set(tool, patch_set, source_root)
    result = aggregate_outcomes(results, patch_set.path)
    report_result(result)
    return result
