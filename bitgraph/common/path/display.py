# bitgraph/common/path/display.py
from __future__ import annotations

from pathlib import Path
from typing import Optional


def display_label(path: Path | str, home: Optional[Path | str] = None) -> str:
    """Render `path` for menus, abbreviating the user's home directory to `~`."""
    p = Path(path)
    h = Path(home) if home is not None else Path.home()
    try:
        rel = p.relative_to(h)
    except ValueError:
        return str(p)
    return "~" if rel == Path(".") else str(Path("~") / rel)
