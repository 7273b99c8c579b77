from __future__ import annotations

import os
from pathlib import Path
from typing import Union


def present(path: Union[str, Path, None]) -> bool:
    """Return True if the artifact at ``path`` already exists.

    A dangling symlink counts as present: it was put there by a previous run.
    """

    if path is None:
        return False
    return os.path.lexists(path)
