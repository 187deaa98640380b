# bitgraph/common/path/locator.py
from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from bitgraph.common.logging import get_logger
from bitgraph.domain.errors import DiscoveryFailure

logger = get_logger(__name__)

POSIX_SYSTEM_DIRS = (Path("/usr/local/bin"), Path("/usr/bin"))


def is_windows(platform: Optional[str] = None) -> bool:
    return (platform or sys.platform).startswith(("win", "cygwin", "msys"))


def executable_dir() -> Path:
    """Directory of the running executable (the app binary when frozen)."""
    return Path(sys.executable).resolve().parent


class ProgramLocator:
    """
    Finds an external program, preferring copies shipped with the application
    over whatever happens to be on PATH.

    Search order (first existing file wins):
      1. executable dir, 2. executable dir / lib,
      3. working dir, 4. working dir / lib,
      5. system dirs (/usr/local/bin, /usr/bin on POSIX),
      then the platform's PATH search utility (`where` / `which`).
    """

    def __init__(
        self,
        exe_dir: Optional[Path | str] = None,
        work_dir: Optional[Path | str] = None,
        system_dirs: Optional[Iterable[Path | str]] = None,
        platform: Optional[str] = None,
    ) -> None:
        self.platform = platform or sys.platform
        self.exe_dir = Path(exe_dir) if exe_dir is not None else executable_dir()
        # Path.cwd() raises if the working dir vanished; that is fatal here
        self.work_dir = Path(work_dir) if work_dir is not None else Path.cwd()
        if system_dirs is None:
            system_dirs = () if is_windows(self.platform) else POSIX_SYSTEM_DIRS
        self.system_dirs: List[Path] = [Path(d) for d in system_dirs]

    @property
    def where_program(self) -> str:
        return "where" if is_windows(self.platform) else "which"

    def search_dirs(self) -> List[Path]:
        return [
            self.exe_dir,
            self.exe_dir / "lib",
            self.work_dir,
            self.work_dir / "lib",
            *self.system_dirs,
        ]

    def file_name(self, name: str) -> str:
        if is_windows(self.platform) and not name.lower().endswith(".exe"):
            return f"{name}.exe"
        return name

    # ---- lookup ---------------------------------------------------------------
    def find(self, name: str) -> Optional[Path]:
        fname = self.file_name(name)
        for d in self.search_dirs():
            candidate = d / fname
            if candidate.is_file():
                logger.debug("found %s at %s", name, candidate)
                return candidate
        logger.debug("%s not in search dirs; asking %s", name, self.where_program)
        return self.search_path(name)

    def search_path(self, name: str) -> Optional[Path]:
        """Ask `where`/`which` for `name`; accept the answer only if it exists."""
        try:
            proc = subprocess.run(
                [self.where_program, name],
                stdout=subprocess.PIPE,
                stderr=None,  # pass through for diagnostics
                text=True,
                check=False,
            )
        except OSError as e:
            logger.debug("%s unavailable: %s", self.where_program, e)
            return None

        out = (proc.stdout or "").rstrip()
        if proc.returncode != 0 or not out:
            return None
        # `where` lists every match, one per line
        first = out.splitlines()[0].rstrip()
        candidate = Path(first)
        if not candidate.exists():
            logger.debug("%s answered %r, which does not exist", self.where_program, first)
            return None
        return candidate

    def require(self, name: str) -> Path:
        path = self.find(name)
        if path is None:
            raise DiscoveryFailure(f"Failed to find {name}", program=name)
        return path

