# Helpers to run the external tools (patch, make, configure, tar, package managers)
# that do the actual work of a Wine build.

import os
import shutil
import subprocess
import sys

# 'pipefail' needs bash, /bin/sh might be dash
SHELL = shutil.which("bash") or "/bin/bash"


def run_command(command, cwd=None, env=None):
    """Run the specified command in a subprocess shell and show stdout

    Parameters:
        command (str): Linux shell command.
        cwd (str): Working directory for the command.
        env (dict): Custom shell environment for the intermediate shell.
    Returns:
        if executed process exit code is non-zero, raises a CalledProcessError.

    """
    print("[*] Running following command:")
    print("'{0}' (cwd='{1}')".format(command, cwd))

    # Some commands involve 'tee' (pipelines) hence prefix with 'pipefail' to capture failure as well
    subprocess.run("set -o pipefail && {0}".format(command), cwd=cwd, env=env, check=True, shell=True,
                   executable=SHELL, stderr=sys.stderr, stdout=sys.stdout, encoding="utf8")


def run_command_stdout(command, cwd=None, env=None):
    """Run the specified command in a subprocess shell and return stdout

    Parameters:
        command (str): Linux shell command.
        cwd (str): Working directory for the command.
        env (dict): Custom shell environment for the intermediate shell.
    Returns:
        stdout as string, regardless of the exit code.

    """
    print("[*] Running following command:")
    print("'{0}' (cwd='{1}')".format(command, cwd))

    return subprocess.run("set -o pipefail && {0}".format(command), stdout=subprocess.PIPE,
                          cwd=cwd, env=env, shell=True, executable=SHELL,
                          encoding="utf8").stdout.rstrip(os.linesep)


def run_command_status(command, cwd=None, env=None, quiet=False):
    """Run the specified command in a subprocess shell and return its exit code

    Output is discarded. Used for checks such as "is this package installed"
    where a non-zero exit code is an answer, not an error.

    Parameters:
        command (str): Linux shell command.
        cwd (str): Working directory for the command.
        env (dict): Custom shell environment for the intermediate shell.
        quiet (bool): Do not echo the command.
    Returns:
        exit code as int.

    """
    if not quiet:
        print("[*] Running following command:")
        print("'{0}' (cwd='{1}')".format(command, cwd))

    return subprocess.run("set -o pipefail && {0}".format(command), cwd=cwd, env=env, shell=True,
                          executable=SHELL, stdout=subprocess.DEVNULL,
                          stderr=subprocess.DEVNULL).returncode


def run_tool(args, cwd=None, env=None):
    """Run a tool without a shell and capture its combined output

    Parameters:
        args (list): Program and arguments.
        cwd (str): Working directory for the tool.
        env (dict): Custom environment.
    Returns:
        (exit code, stdout and stderr as one string)

    """
    proc = subprocess.run(args, cwd=cwd, env=env, stdin=subprocess.DEVNULL,
                          stdout=subprocess.PIPE, stderr=subprocess.STDOUT, encoding="utf8",
                          errors="replace")
    return proc.returncode, proc.stdout


def command_exists(name):
    """Return True if 'name' is an executable found in PATH"""
    return shutil.which(name) is not None
