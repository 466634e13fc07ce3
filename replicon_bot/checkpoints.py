"""
Checkpoint storage for crash recovery.

Checkpoints are kept in memory and, when a storage directory is given,
mirrored to one JSON file per run id. Files found at construction are
loaded so that a restarted process can offer to resume.
"""

import json
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional

from .logging_utils import get_logger
from .models import PENDING_STATUSES, AutomationCheckpoint


class CheckpointNotFoundError(KeyError):
    """Raised when a checkpoint id is unknown."""
    pass


class InvalidCheckpointIdError(ValueError):
    """Raised when a checkpoint id cannot be used as a file name."""
    pass


# Ids double as file names, so only this alphabet is accepted
CHECKPOINT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def check_checkpoint_id(checkpoint_id: str) -> str:
    """
    Make sure an id maps to exactly one checkpoint file.

    Raises:
        InvalidCheckpointIdError: If the id has characters outside [A-Za-z0-9_-]
    """
    if not isinstance(checkpoint_id, str) or not CHECKPOINT_ID_PATTERN.match(checkpoint_id):
        raise InvalidCheckpointIdError(f"Invalid checkpoint id: {checkpoint_id!r}")
    return checkpoint_id


class CheckpointStore:
    """
    Last-write-wins store of AutomationCheckpoint records keyed by id.

    Writes are serialized by a lock. Each run id is written by a single
    runner, so concurrent saves for the same id do not happen. The store
    keeps its own copies: callers never share a record with it.
    """

    SUFFIX = '.json'

    def __init__(self, storage_dir: Optional[str] = None):
        """
        Initialize the store.

        Args:
            storage_dir: Directory for checkpoint files (memory only if None)
        """
        self.logger = get_logger('checkpoints')
        self.storage_dir = Path(storage_dir) if storage_dir else None
        self._checkpoints: Dict[str, AutomationCheckpoint] = {}
        self._lock = threading.Lock()

        if self.storage_dir is not None:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            self._load_existing()

    def _path_for(self, checkpoint_id: str) -> Path:
        return self.storage_dir / f"{check_checkpoint_id(checkpoint_id)}{self.SUFFIX}"

    def _load_existing(self):
        for path in sorted(self.storage_dir.glob(f"*{self.SUFFIX}")):
            try:
                with path.open('r', encoding='utf-8') as f:
                    checkpoint = AutomationCheckpoint.from_dict(json.load(f))
            except (OSError, ValueError, KeyError) as e:
                self.logger.warning(f"Ignoring unreadable checkpoint {path.name}: {e}")
                continue
            if checkpoint.id != path.stem:
                self.logger.warning(
                    f"Ignoring checkpoint {path.name}: id {checkpoint.id!r} does not match file name"
                )
                continue
            self._checkpoints[checkpoint.id] = checkpoint

        if self._checkpoints:
            self.logger.info(f"Loaded {len(self._checkpoints)} checkpoint(s) from {self.storage_dir}")

    def _write_file(self, checkpoint: AutomationCheckpoint):
        path = self._path_for(checkpoint.id)
        # Write next to the target so the rename stays on one filesystem
        fd, tmp_name = tempfile.mkstemp(dir=str(self.storage_dir), suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(checkpoint.to_dict(), f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def save(self, checkpoint: AutomationCheckpoint):
        """
        Save (overwrite) a checkpoint.

        Args:
            checkpoint: Checkpoint to store; later changes to it are not seen

        Raises:
            InvalidCheckpointIdError: If the id is not usable as a file name
        """
        check_checkpoint_id(checkpoint.id)
        stored = checkpoint.copy()
        with self._lock:
            self._checkpoints[stored.id] = stored
            if self.storage_dir is not None:
                self._write_file(stored)
        self.logger.debug(
            f"Checkpoint saved: {checkpoint.id} day {checkpoint.current_day}/"
            f"{checkpoint.total_days} ({checkpoint.status.value})"
        )

    def load(self, checkpoint_id: str) -> Optional[AutomationCheckpoint]:
        """
        Load a checkpoint.

        Returns:
            A copy of the checkpoint, or None if unknown
        """
        with self._lock:
            checkpoint = self._checkpoints.get(checkpoint_id)
            return checkpoint.copy() if checkpoint is not None else None

    def get(self, checkpoint_id: str) -> AutomationCheckpoint:
        """
        Load a checkpoint that must exist.

        Raises:
            CheckpointNotFoundError: If the id is unknown
        """
        checkpoint = self.load(checkpoint_id)
        if checkpoint is None:
            raise CheckpointNotFoundError(checkpoint_id)
        return checkpoint

    def clear(self, checkpoint_id: str):
        """Delete a checkpoint; unknown ids are ignored."""
        with self._lock:
            self._checkpoints.pop(checkpoint_id, None)
            if self.storage_dir is not None and CHECKPOINT_ID_PATTERN.match(checkpoint_id):
                path = self._path_for(checkpoint_id)
                if path.exists():
                    path.unlink()
        self.logger.debug(f"Checkpoint cleared: {checkpoint_id}")

    def list_pending(self) -> List[AutomationCheckpoint]:
        """
        Checkpoints that still need attention (in-progress, paused or error).

        Returns:
            Checkpoints ordered oldest first
        """
        with self._lock:
            pending = [
                cp.copy() for cp in self._checkpoints.values()
                if cp.status in PENDING_STATUSES
            ]
        return sorted(pending, key=lambda cp: cp.timestamp)

    def has_pending_recovery(self) -> bool:
        return len(self.list_pending()) > 0

    def close(self):
        """Drop the in-memory view; files stay on disk."""
        with self._lock:
            self._checkpoints.clear()
