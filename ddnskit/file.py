"""Reading small configuration files."""

from __future__ import annotations

import json
from pathlib import Path, PurePath

from ddnskit.pp import PP, Emoji


def read_string(ppfmt: PP, path: str, root: str | Path = "/") -> str | None:
    """Read the file at ``path`` under ``root`` with surrounding space trimmed.

    Absolute paths are taken relative to ``root``. On failure the error is
    reported through ``ppfmt`` and ``None`` is returned.
    """
    relative = PurePath(path)
    if relative.is_absolute():
        relative = relative.relative_to(relative.anchor)

    try:
        body = (Path(root) / relative).read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as err:
        quoted = json.dumps(str(relative), ensure_ascii=False)
        ppfmt.error(Emoji.USER_ERROR, f"Failed to read {quoted}: {err}")
        return None

    return body.strip()