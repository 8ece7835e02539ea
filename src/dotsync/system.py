import logging
import os
import platform
from enum import Enum
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class OS(Enum):
    LINUX = "linux"
    MACOS = "macos"
    UNKNOWN = "unknown"


class Environment:
    """Detects and provides info about the current system environment."""

    OS_RELEASE = Path("/etc/os-release")
    ARCH_RELEASE = Path("/etc/arch-release")

    def __init__(self, home: Optional[Path] = None):
        self.os = self._detect_os()
        self.home = Path(home) if home else Path.home()
        self.user = (
            os.environ.get("USER")
            or os.environ.get("LOGNAME")
            or self.home.name
        )
        self.os_info = self._get_os_info()

    def _detect_os(self) -> OS:
        system = platform.system().lower()
        if system == "linux":
            return OS.LINUX
        elif system == "darwin":
            return OS.MACOS
        return OS.UNKNOWN

    def _get_os_info(self) -> dict:
        info = {
            "system": platform.system(),
            "release": platform.release(),
            "machine": platform.machine(),
            "pretty_name": platform.system(),
            "distro": "",
        }

        if self.is_linux() and self.OS_RELEASE.exists():
            data = {}
            with open(self.OS_RELEASE) as f:
                for line in f:
                    if "=" in line:
                        k, v = line.rstrip().split("=", 1)
                        data[k] = v.strip('"')
            info["pretty_name"] = data.get("PRETTY_NAME", "Linux")
            info["distro"] = data.get("ID", "linux")
        elif self.is_macos():
            info["pretty_name"] = f"macOS {platform.mac_ver()[0]}"
            info["distro"] = "macos"

        return info

    def is_linux(self) -> bool:
        return self.os == OS.LINUX

    def is_macos(self) -> bool:
        return self.os == OS.MACOS

    def is_arch(self) -> bool:
        """True on Arch Linux (the platform the default manifest targets)."""
        if not self.is_linux():
            return False
        return (
            self.ARCH_RELEASE.exists()
            or self.os_info.get("distro", "").lower() == "arch"
        )

    def __repr__(self) -> str:
        return (
            f"Environment(os={self.os.value}, "
            f"home={self.home}, user={self.user})"
        )
