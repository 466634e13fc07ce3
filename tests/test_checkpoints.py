"""Tests for the checkpoint store."""

import json

import pytest

from replicon_bot.checkpoints import CheckpointNotFoundError, CheckpointStore, InvalidCheckpointIdError
from replicon_bot.models import AutomationCheckpoint, CheckpointStatus, CSVRow, serialize_rows


def make_checkpoint(checkpoint_id="run-1", timestamp=1000, status=CheckpointStatus.IN_PROGRESS, **kwargs):
    return AutomationCheckpoint(
        id=checkpoint_id,
        timestamp=timestamp,
        current_day=kwargs.pop('current_day', 3),
        total_days=kwargs.pop('total_days', 10),
        status=status,
        **kwargs
    )


class TestInMemoryStore:
    """Tests for CheckpointStore without a directory."""

    def test_save_and_load(self):
        store = CheckpointStore()
        checkpoint = make_checkpoint()

        store.save(checkpoint)

        assert store.load("run-1") == checkpoint

    def test_save_stores_a_copy(self):
        store = CheckpointStore()
        checkpoint = make_checkpoint(current_day=1)
        store.save(checkpoint)

        checkpoint.status = CheckpointStatus.ERROR
        checkpoint.current_day = 3
        checkpoint.completed_entries.append(1)

        loaded = store.load("run-1")
        assert loaded is not checkpoint
        assert loaded.status is CheckpointStatus.IN_PROGRESS
        assert loaded.current_day == 1
        assert loaded.completed_entries == []

    def test_load_returns_a_copy(self):
        store = CheckpointStore()
        store.save(make_checkpoint(current_day=1))

        store.load("run-1").current_day = 7
        store.list_pending()[0].status = CheckpointStatus.PAUSED

        loaded = store.load("run-1")
        assert loaded.current_day == 1
        assert loaded.status is CheckpointStatus.IN_PROGRESS

    def test_load_unknown_returns_none(self):
        assert CheckpointStore().load("missing") is None

    def test_get_unknown_raises(self):
        with pytest.raises(CheckpointNotFoundError):
            CheckpointStore().get("missing")

    def test_last_write_wins(self):
        store = CheckpointStore()
        store.save(make_checkpoint(current_day=1))
        store.save(make_checkpoint(current_day=5))

        assert store.load("run-1").current_day == 5

    def test_clear(self):
        store = CheckpointStore()
        store.save(make_checkpoint())

        store.clear("run-1")
        store.clear("unknown")

        assert store.load("run-1") is None

    def test_list_pending_oldest_first(self):
        store = CheckpointStore()
        store.save(make_checkpoint("b", timestamp=2000, status=CheckpointStatus.PAUSED))
        store.save(make_checkpoint("a", timestamp=1000, status=CheckpointStatus.ERROR))
        store.save(make_checkpoint("c", timestamp=3000))

        assert [cp.id for cp in store.list_pending()] == ["a", "b", "c"]
        assert store.has_pending_recovery() is True

    def test_no_pending_recovery_when_empty(self):
        assert CheckpointStore().has_pending_recovery() is False

    def test_close_drops_memory(self):
        store = CheckpointStore()
        store.save(make_checkpoint())

        store.close()

        assert store.list_pending() == []


class TestFileStore:
    """Tests for CheckpointStore mirrored to disk."""

    def test_save_writes_json(self, tmp_path):
        store = CheckpointStore(str(tmp_path))
        store.save(make_checkpoint(last_successful_day=2, completed_entries=[1, 2]))

        data = json.loads((tmp_path / "run-1.json").read_text(encoding='utf-8'))

        assert data['id'] == "run-1"
        assert data['currentDay'] == 3
        assert data['status'] == "in-progress"
        assert data['lastSuccessfulDay'] == 2
        assert data['completedEntries'] == [1, 2]

    def test_no_temp_files_left(self, tmp_path):
        store = CheckpointStore(str(tmp_path))
        store.save(make_checkpoint())
        store.save(make_checkpoint(current_day=4))

        assert [p.name for p in tmp_path.iterdir()] == ["run-1.json"]

    def test_restart_loads_existing(self, tmp_path):
        rows = [CSVRow("PROD", "PI"), CSVRow("H")]
        CheckpointStore(str(tmp_path)).save(make_checkpoint(
            status=CheckpointStatus.ERROR,
            error_message="Timeout 30000ms exceeded",
            csv_data=serialize_rows(rows),
        ))

        store = CheckpointStore(str(tmp_path))
        checkpoint = store.get("run-1")

        assert checkpoint.status is CheckpointStatus.ERROR
        assert checkpoint.error_message == "Timeout 30000ms exceeded"
        assert checkpoint.rows() == rows
        assert store.has_pending_recovery() is True

    def test_clear_removes_file(self, tmp_path):
        store = CheckpointStore(str(tmp_path))
        store.save(make_checkpoint())

        store.clear("run-1")

        assert not (tmp_path / "run-1.json").exists()

    def test_unreadable_file_ignored(self, tmp_path):
        (tmp_path / "broken.json").write_text("{not json", encoding='utf-8')
        CheckpointStore(str(tmp_path)).save(make_checkpoint())

        store = CheckpointStore(str(tmp_path))

        assert [cp.id for cp in store.list_pending()] == ["run-1"]

    @pytest.mark.parametrize("checkpoint_id", ["../evil", "run/1", "run 1", "run.1", ""])
    def test_unsafe_id_rejected(self, tmp_path, checkpoint_id):
        store = CheckpointStore(str(tmp_path))

        with pytest.raises(InvalidCheckpointIdError):
            store.save(make_checkpoint(checkpoint_id))

        assert list(tmp_path.iterdir()) == []
        assert store.load(checkpoint_id) is None

    def test_similar_ids_keep_separate_files(self, tmp_path):
        store = CheckpointStore(str(tmp_path))
        store.save(make_checkpoint("run_1", current_day=1))
        store.save(make_checkpoint("run-1", current_day=2))

        reopened = CheckpointStore(str(tmp_path))

        assert reopened.load("run_1").current_day == 1
        assert reopened.load("run-1").current_day == 2

    def test_clear_unsafe_id_is_ignored(self, tmp_path):
        store = CheckpointStore(str(tmp_path))
        store.save(make_checkpoint())

        store.clear("../run-1")

        assert (tmp_path / "run-1.json").exists()

    def test_file_with_mismatched_id_ignored(self, tmp_path):
        (tmp_path / "other.json").write_text(
            json.dumps(make_checkpoint("run-1").to_dict()), encoding='utf-8'
        )

        store = CheckpointStore(str(tmp_path))

        assert store.load("run-1") is None

    def test_creates_directory(self, tmp_path):
        target = tmp_path / "nested" / "checkpoints"

        CheckpointStore(str(target))

        assert target.is_dir()
