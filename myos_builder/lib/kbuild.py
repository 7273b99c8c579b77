from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Mapping, Optional, Sequence

from ..errors import BuildFailure, CommandError
from .command import run_cmd

logger = logging.getLogger(__name__)


def make(
    src_dir: Path,
    targets: Sequence[str] = (),
    *,
    jobs: Optional[int] = None,
    variables: Mapping[str, str] | None = None,
    dry_run: bool = False,
) -> None:
    """Run ``make`` in a Kbuild-style source tree (kernel, busybox)."""

    argv = ["make"]
    if jobs:
        argv.append(f"-j{jobs}")
    argv += [f"{k}={v}" for k, v in (variables or {}).items()]
    argv += list(targets)
    try:
        run_cmd(argv, cwd=str(src_dir), dry_run=dry_run)
    except CommandError as e:
        raise BuildFailure(f"make {' '.join(targets) or 'all'} failed in {src_dir}") from e


def set_kconfig(config_path: Path, options: Mapping[str, Optional[str]], *, dry_run: bool = False) -> None:
    """Set Kconfig symbols in a ``.config`` file.

    A value of None disables the symbol (``# CONFIG_X is not set``).
    """

    if dry_run:
        logger.info("Would set %s in %s", dict(options), str(config_path))
        return

    text = config_path.read_text(encoding="utf-8")
    for name, value in options.items():
        line = f"# {name} is not set" if value is None else f"{name}={value}"
        pattern = re.compile(rf"^(# {re.escape(name)} is not set|{re.escape(name)}=.*)$", re.MULTILINE)
        if pattern.search(text):
            text = pattern.sub(line, text)
        else:
            text = text.rstrip("\n") + "\n" + line + "\n"
    config_path.write_text(text, encoding="utf-8")
