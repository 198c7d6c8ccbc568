from __future__ import annotations

import logging
import sys
from pathlib import Path


def _ensure_repo_root_on_path() -> None:
    """Ensure the repository root (parent of this package) is on ``sys.path``.

    Running ``python grid_trainer/__main__.py`` directly leaves the package
    undiscoverable; inserting the parent directory lets imports resolve.
    """
    pkg_dir = Path(__file__).resolve().parent
    repo_root_str = str(pkg_dir.parent)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


try:
    # Works when executed as a module: python -m grid_trainer
    from .app import run  # type: ignore[attr-defined]
    from .config import log_level_from_env  # type: ignore[attr-defined]
except ImportError:
    _ensure_repo_root_on_path()
    from grid_trainer.app import run  # type: ignore[attr-defined]
    from grid_trainer.config import log_level_from_env  # type: ignore[attr-defined]


def main() -> int:
    """Entry point for running the trainer from the command line."""
    logging.basicConfig(
        level=log_level_from_env(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
