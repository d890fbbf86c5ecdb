# Build dependencies per distribution: package manager detection, package lists,
# installation of missing packages and toolchain prerequisite checks.

import os

from buildwine.commands import command_exists, run_command_status, run_command_stdout

OS_RELEASE = "/etc/os-release"

DISTRO_NAMES = {
    "ubuntu": "Ubuntu",
    "linuxmint": "Linux Mint",
    "mint": "Linux Mint",
    "zorin": "Zorin OS",
    "debian": "Debian",
    "fedora": "Fedora",
    "arch": "Arch Linux",
    "archlinux": "Arch Linux",
    "pikaos": "PikaOS",
}

# in order of preference
PACKAGE_MANAGERS = ("apt", "dnf", "pacman")

# commands answering "is this package installed" with their exit code
INSTALLED_CHECKS = {
    "apt": "dpkg -l '{0}' 2>/dev/null | grep -q '^ii'",
    "dnf": "rpm -q '{0}'",
    "pacman": "pacman -Q '{0}'",
}

INSTALL_COMMANDS = {
    "apt": "sudo apt install -y {0}",
    "dnf": "sudo dnf install -y --allowerasing {0}",
    "pacman": "sudo pacman -S --noconfirm {0}",
}

# distribution tooling that installs Wine's build dependencies in one go
BUILDDEP_COMMANDS = {
    "apt": "sudo apt build-dep -y wine",
    "dnf": "sudo dnf builddep -y wine",
}

APT_PACKAGES = [
    # build tools
    "build-essential", "gcc", "g++", "make", "bison", "flex", "gettext", "perl", "pkg-config",
    # MinGW cross-compilers (for PE binaries)
    "gcc-mingw-w64", "mingw-w64",
    # core Wine dependencies
    "samba-dev", "libsamba-dev", "libcups2-dev", "ocl-icd-opencl-dev", "opencl-headers",
    # audio
    "libasound2-dev", "libpulse-dev",
    # fonts
    "libfontconfig1-dev", "libfreetype6-dev",
    # X11
    "libx11-dev", "libxext-dev", "libxrender-dev", "libxrandr-dev", "libxinerama-dev",
    "libxi-dev", "libxcursor-dev", "libxfixes-dev", "libxcomposite-dev", "libxdamage-dev",
    "libxxf86vm-dev", "x11proto-dev", "x11proto-xinerama-dev", "x11proto-xf86vidmode-dev",
    "libxkbcommon-dev", "libxkbcommon-x11-dev",
    # graphics
    "libgl1-mesa-dev", "libglu1-mesa-dev", "mesa-common-dev", "libosmesa6-dev",
    "libvulkan-dev", "vulkan-tools", "vulkan-validationlayers-dev",
    # wayland
    "libwayland-dev", "wayland-protocols", "libwayland-egl1-mesa-dev",
    # multimedia
    "libgstreamer1.0-dev", "libgstreamer-plugins-base1.0-dev", "gstreamer1.0-plugins-base",
    "libsdl2-dev",
    # system
    "libdbus-1-dev", "libudev-dev", "libunwind-dev", "libsystemd-dev", "libgnutls28-dev",
    # optional but recommended
    "libxml2-dev", "libxslt1-dev", "libjpeg-turbo8-dev", "libjpeg-dev", "libpng-dev",
    "libtiff-dev", "liblcms2-dev", "libusb-1.0-0-dev", "libpcap-dev", "libncurses-dev",
    "libkrb5-dev", "unixodbc-dev", "libv4l-dev", "libgphoto2-dev", "libsane-dev",
    "libpcsclite-dev", "libgsm1-dev", "libmpg123-dev", "libopenal-dev",
    "libavcodec-dev", "libavformat-dev", "libavutil-dev", "libswscale-dev",
    "libswresample-dev", "libavfilter-dev", "libcapi20-dev",
]

# required for --enable-archs=i386,x86_64
APT_PACKAGES_I386 = [
    "libasound2-dev:i386", "libpulse-dev:i386", "libdbus-1-dev:i386", "libfontconfig1-dev:i386",
    "libfreetype6-dev:i386", "libgnutls28-dev:i386", "libgl1-mesa-dev:i386",
    "libglu1-mesa-dev:i386", "libunwind-dev:i386", "libx11-dev:i386", "libxcomposite-dev:i386",
    "libxcursor-dev:i386", "libxfixes-dev:i386", "libxi-dev:i386", "libxrandr-dev:i386",
    "libxrender-dev:i386", "libxext-dev:i386", "libxinerama-dev:i386",
    "libgstreamer1.0-dev:i386", "libgstreamer-plugins-base1.0-dev:i386", "libosmesa6-dev:i386",
    "libsdl2-dev:i386", "libudev-dev:i386", "libvulkan-dev:i386", "libcapi20-dev:i386",
    "libcups2-dev:i386", "libgphoto2-dev:i386", "libsane-dev:i386", "libkrb5-dev:i386",
    "libpcap-dev:i386", "libusb-1.0-0-dev:i386", "ocl-icd-opencl-dev:i386",
]

# sometimes missed by 'apt build-dep wine'
APT_CRITICAL_PACKAGES = ["gcc-mingw-w64", "libfreetype6-dev", "libfontconfig1-dev", "pkg-config"]

DNF_PACKAGES = [
    "gcc", "gcc-c++", "make", "bison", "flex", "gettext", "perl",
    "mingw32-gcc", "mingw64-gcc",
    "samba-devel", "cups-devel", "ocl-icd-devel", "opencl-headers",
    "alsa-lib-devel", "pulseaudio-libs-devel",
    "fontconfig-devel", "freetype-devel",
    "libX11-devel", "libXext-devel", "libXrender-devel", "libXrandr-devel",
    "libXinerama-devel", "libXi-devel", "libXcursor-devel", "libXfixes-devel",
    "libXcomposite-devel", "libxkbcommon-devel", "xorg-x11-proto-devel",
    "mesa-libGL-devel", "mesa-libGLU-devel", "vulkan-headers", "vulkan-loader-devel",
    "mesa-libOSMesa-devel",
    "wayland-devel", "wayland-protocols-devel",
    "gstreamer1-devel", "gstreamer1-plugins-base-devel", "SDL2-devel",
    "dbus-devel", "systemd-devel", "libunwind-devel",
    "libxml2-devel", "libxslt-devel", "libjpeg-turbo-devel", "libpng-devel",
    "libtiff-devel", "lcms2-devel", "libusb-devel", "libpcap-devel",
    "ncurses-devel", "krb5-devel", "unixODBC-devel", "libv4l-devel",
    "gphoto2-devel", "sane-backends-devel", "pcsc-lite-devel",
    "ffmpeg-devel", "capi20-devel",
]

# Arch packages ship their development files, 32-bit libraries need multilib
PACMAN_PACKAGES = [
    "base-devel", "bison", "flex", "gettext", "perl",
    "mingw-w64-gcc",
    "samba", "libcups", "opencl-headers", "ocl-icd",
    "alsa-lib", "pulseaudio",
    "fontconfig", "freetype2",
    "libx11", "libxext", "libxrender", "libxrandr", "libxinerama", "libxi", "libxcursor",
    "libxfixes", "libxcomposite", "libxkbcommon", "xorgproto",
    "mesa", "libgl", "vulkan-headers", "vulkan-icd-loader", "lib32-mesa", "lib32-libgl",
    "wayland", "wayland-protocols",
    "gstreamer", "gst-plugins-base", "sdl2",
    "dbus", "systemd", "libunwind",
    "libxml2", "libxslt", "libjpeg-turbo", "libpng", "libtiff", "lcms2", "libusb", "libpcap",
    "ncurses", "krb5", "unixodbc", "v4l-utils", "libgphoto2", "sane", "pcsc-tools",
    "ffmpeg", "libcapi",
]

REQUIRED_PACKAGES = {
    "apt": APT_PACKAGES + APT_PACKAGES_I386,
    "dnf": DNF_PACKAGES,
    "pacman": PACMAN_PACKAGES,
}

OPENCL_HEADERS = ["/usr/include/CL/cl.h", "/usr/local/include/CL/cl.h"]
FREETYPE_HEADERS = ["/usr/include/freetype2/freetype/freetype.h",
                    "/usr/include/freetype/freetype.h",
                    "/usr/local/include/freetype2/freetype/freetype.h"]


class Prerequisite:
    """A toolchain requirement: how to detect it and which package provides it per manager"""

    def __init__(self, name, check, packages, mandatory=True):
        self.name = name
        self.check = check
        self.packages = packages
        self.mandatory = mandatory

    def is_met(self):
        return self.check()

    def packages_for(self, package_manager):
        return self.packages.get(package_manager, [])


def headers_present(paths):
    return any(os.path.isfile(path) for path in paths)


def freetype_present():
    if headers_present(FREETYPE_HEADERS):
        return True
    return command_exists("pkg-config") and run_command_status(
        "pkg-config --exists freetype2", quiet=True) == 0


PREREQUISITES = [
    Prerequisite("OpenCL headers", lambda: headers_present(OPENCL_HEADERS),
                 {"apt": ["ocl-icd-opencl-dev"], "dnf": ["opencl-headers", "ocl-icd-devel"],
                  "pacman": ["opencl-headers"]}),
    Prerequisite("i386 PE cross-compiler (i686-w64-mingw32-gcc)",
                 lambda: command_exists("i686-w64-mingw32-gcc"),
                 {"apt": ["gcc-mingw-w64"], "dnf": ["mingw32-gcc"], "pacman": ["mingw-w64-gcc"]}),
    Prerequisite("x86_64 PE cross-compiler (x86_64-w64-mingw32-gcc)",
                 lambda: command_exists("x86_64-w64-mingw32-gcc"),
                 {"apt": ["gcc-mingw-w64"], "dnf": ["mingw64-gcc"], "pacman": ["mingw-w64-gcc"]}),
    Prerequisite("FreeType development files", freetype_present,
                 {"apt": ["libfreetype6-dev", "pkg-config"], "dnf": ["freetype-devel"],
                  "pacman": ["freetype2"]}),
]


def read_os_release(path=OS_RELEASE):
    """Parse an os-release file into a dict, empty if it does not exist"""
    info = {}
    if not os.path.isfile(path):
        return info
    with open(path, encoding="utf8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            info[key] = value.strip().strip('"').strip("'")
    return info


class Distribution:

    def __init__(self, distro_id="", name="", version="", pretty_name=""):
        self.id = distro_id
        self.name = name
        self.version = version
        self.pretty_name = pretty_name

    def __str__(self):
        return self.pretty_name or "{0} {1}".format(self.name or "unknown", self.version).strip()


def detect_distribution(path=OS_RELEASE):
    info = read_os_release(path)
    distro_id = info.get("ID", "").lower()
    return Distribution(distro_id=distro_id,
                        name=DISTRO_NAMES.get(distro_id, info.get("NAME", "")),
                        version=info.get("VERSION_ID", ""),
                        pretty_name=info.get("PRETTY_NAME", ""))


def detect_package_manager(exists=command_exists):
    """First available of apt, dnf, pacman; 'unknown' if none is installed"""
    for manager in PACKAGE_MANAGERS:
        if exists(manager):
            return manager
    return "unknown"


def is_installed(package_manager, package):
    check = INSTALLED_CHECKS.get(package_manager)
    if not check:
        return False
    return run_command_status(check.format(package), quiet=True) == 0


def missing_packages(package_manager, packages, installed=None):
    """Print the state of every package and return the missing ones"""
    installed = installed or is_installed
    missing = []
    for package in packages:
        if installed(package_manager, package):
            print("  ✓ {0} (installed)".format(package))
        else:
            print("  ✗ {0} (missing)".format(package))
            missing.append(package)
    return missing


def install_packages(package_manager, packages):
    """Install packages, returns True if the package manager reported success"""
    if not packages:
        return True
    command = INSTALL_COMMANDS[package_manager].format(" ".join("'{0}'".format(p) for p in packages))
    return run_command_status(command) == 0


def enable_multiarch_i386():
    # 32-bit Wine needs the i386 architecture on Debian based systems
    if "i386" not in run_command_stdout("dpkg --print-foreign-architectures"):
        print("[*] Enabling i386 architecture for 32-bit Wine support...")
        run_command_status("sudo dpkg --add-architecture i386")
        run_command_status("sudo apt update")


def install_build_dependencies(package_manager, confirm=lambda question: True):
    """Install Wine's build dependencies for the given package manager

    Tries the distribution's build-dep tooling first and falls back to
    checking an explicit package list. Package installation problems are
    reported, not fatal; the prerequisite checks catch what really matters.

    Parameters:
        package_manager (str): 'apt', 'dnf' or 'pacman'.
        confirm (callable): Asked before installing a list of missing packages.

    Returns:
        False if the user declined the installation, True otherwise.

    """
    if package_manager not in REQUIRED_PACKAGES:
        print("[!] Warning: Unknown package manager. Skipping package installation.")
        return True

    print("[*] Checking build dependencies ({0})".format(package_manager))

    if package_manager == "apt":
        enable_multiarch_i386()

    builddep = BUILDDEP_COMMANDS.get(package_manager)
    if builddep:
        print("[*] Attempting to install Wine build dependencies using '{0}'".format(builddep))
        if run_command_status(builddep) == 0:
            print("[+] Wine build dependencies installed via build-dep")
            if package_manager == "apt":
                install_packages(package_manager, missing_packages(package_manager, APT_CRITICAL_PACKAGES))
            return True
        print("[*] build-dep failed or wine package not available, installing packages manually...")
    elif package_manager == "pacman":
        print("[*] Note: Ensure multilib repository is enabled for 32-bit libraries")

    missing = missing_packages(package_manager, REQUIRED_PACKAGES[package_manager])
    if not missing:
        print("[+] All required packages are already installed")
        return True

    print("[*] The following {0} package(s) will be installed:".format(len(missing)))
    for index, package in enumerate(missing, start=1):
        print("  {0:3d}. {1}".format(index, package))
    if not confirm("Do you want to install these dependencies now? (sudo required)"):
        print("[!] Dependency installation cancelled. Cannot proceed without dependencies.")
        return False

    if install_packages(package_manager, missing):
        print("[+] Package installation completed successfully")
    else:
        print("[!] Some packages may have failed to install, but continuing...")
    return True


def ensure_prerequisites(package_manager, prerequisites=PREREQUISITES):
    """Check each prerequisite, try to install it if missing and check again

    Returns:
        list of prerequisite names still missing afterwards.

    """
    still_missing = []
    for prerequisite in prerequisites:
        if prerequisite.is_met():
            print("[+] {0} found".format(prerequisite.name))
            continue

        print("[!] {0} not found!".format(prerequisite.name))
        packages = prerequisite.packages_for(package_manager)
        if packages:
            print("[*] Installing {0} (this may require your sudo password)".format(" ".join(packages)))
            install_packages(package_manager, [p for p in packages if not is_installed(package_manager, p)])

        if prerequisite.is_met():
            print("[+] {0} found".format(prerequisite.name))
        else:
            if packages:
                print("[!] Please install manually: {0}".format(
                    INSTALL_COMMANDS[package_manager].format(" ".join(packages))))
            if prerequisite.mandatory:
                still_missing.append(prerequisite.name)
    return still_missing
