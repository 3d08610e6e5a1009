# -*- coding: utf-8 -*-
"""Atomic file replacement."""
from __future__ import annotations

from pathlib import Path
from typing import Union
import os
import tempfile


def atomic_write_text(path: Union[str, Path], text: str) -> None:
    """Write *text* to a temp file beside *path*, then ``os.replace`` it.

    The previous content of *path* is left untouched if anything fails
    before the rename.
    """
    path = Path(path)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise
