from __future__ import annotations

import logging
import os
from pathlib import Path

from taskboard.domain.board import codec
from taskboard.domain.board.models import Board

logger = logging.getLogger(__name__)


def save_board(board: Board, path: str | Path) -> Path:
    """Write the board snapshot as UTF-8 JSON, replacing the file atomically."""
    target = Path(path)
    os.makedirs(target.parent, exist_ok=True)
    tmp = target.with_name(target.name + ".tmp")
    tmp.write_text(codec.encode_json(board), encoding="utf-8")
    os.replace(tmp, target)
    logger.info("Board snapshot written to %s (%d tasks)", target, len(board.tasks))
    return target


def load_board(path: str | Path) -> Board:
    """Read a snapshot file. A missing or unreadable file gives an empty board."""
    source = Path(path)
    try:
        raw = source.read_bytes()
    except FileNotFoundError:
        logger.warning("Board snapshot %s does not exist", source)
        return Board()
    return codec.decode(raw)
