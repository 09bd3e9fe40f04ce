from __future__ import annotations

import sys
from pathlib import Path


def _ensure_paths_on_syspath() -> None:
    # `yolo_crop` is imported from the repo root and the CLI helpers from
    # Scripts/, neither of which pytest adds under every import mode.
    repo_root = Path(__file__).resolve().parents[1]
    for path in (repo_root, repo_root / "Scripts"):
        path_str = str(path)
        if path_str not in sys.path:
            sys.path.insert(0, path_str)


_ensure_paths_on_syspath()
