"""Tests for data models and configuration."""

import pytest

from replicon_bot.config import Config, SPECIAL_ACCOUNTS
from replicon_bot.models import (
    AccountMapping,
    AutomationCheckpoint,
    AutomationProgress,
    CheckpointStatus,
    Credentials,
    CSVRow,
    deserialize_rows,
    mappings_from_dict,
    serialize_rows,
)


class TestCSVRow:
    """Tests for CSVRow."""

    def test_fields_are_stripped(self):
        row = CSVRow(" PROD ", " PI ", " EXT/PROD:PI:1600:1800 ")

        assert row.account == "PROD"
        assert row.project == "PI"
        assert row.extras == "EXT/PROD:PI:1600:1800"

    def test_none_becomes_empty(self):
        row = CSVRow(None, None, None)

        assert row.is_empty() is True

    def test_rows_survive_serialization(self):
        rows = [CSVRow("PROD", "PI"), CSVRow(""), CSVRow("H", "", "EXT/AV:MS:1600:1700")]

        assert deserialize_rows(serialize_rows(rows)) == rows


class TestMappings:
    """Tests for account mappings."""

    def test_codes_upper_cased(self):
        mappings = mappings_from_dict({
            'prod': {'name': 'Production', 'projects': {'pi': 'Project Alpha'}},
        })

        assert mappings['PROD'].name == 'Production'
        assert mappings['PROD'].projects == {'PI': 'Project Alpha'}

    def test_missing_projects(self):
        mapping = AccountMapping.from_dict({'name': 'Production'})

        assert mapping.projects == {}
        assert mapping.project_name('PI') == 'PI'


class TestCheckpoint:
    """Tests for AutomationCheckpoint serialization."""

    def test_optional_fields_omitted(self):
        checkpoint = AutomationCheckpoint(id="run-1", timestamp=1, current_day=0, total_days=3)

        data = checkpoint.to_dict()

        assert 'errorMessage' not in data
        assert 'lastSuccessfulDay' not in data

    def test_from_dict(self):
        checkpoint = AutomationCheckpoint.from_dict({
            'id': 'run-1',
            'timestamp': 5,
            'currentDay': 4,
            'totalDays': 30,
            'completedEntries': [1, 2, 3],
            'csvData': '[]',
            'status': 'paused',
            'lastSuccessfulDay': 3,
        })

        assert checkpoint.status is CheckpointStatus.PAUSED
        assert checkpoint.last_successful_day == 3
        assert checkpoint.completed_entries == [1, 2, 3]
        assert checkpoint.error_message is None

    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            AutomationCheckpoint.from_dict({'id': 'x', 'status': 'done'})

    def test_touch_updates_timestamp(self):
        checkpoint = AutomationCheckpoint(id="run-1", timestamp=0, current_day=0, total_days=1)

        checkpoint.touch()

        assert checkpoint.timestamp > 0


class TestMisc:
    """Tests for small model helpers."""

    def test_password_not_in_repr(self):
        credentials = Credentials(email="me@example.com", password="hunter2")

        assert "hunter2" not in repr(credentials)
        assert "me@example.com" in repr(credentials)

    def test_progress_wire_names(self):
        progress = AutomationProgress(status='running', current_day=2, total_days=5)

        assert progress.to_dict()['currentDay'] == 2
        assert progress.to_dict()['totalDays'] == 5


class TestConfig:
    """Tests for Config validation."""

    def test_defaults_are_valid(self):
        Config().validate()

    def test_default_values(self):
        config = Config()

        assert config.mfa_timeout == 5000
        assert config.auth_timeout == 60000
        assert config.slow_mo == 50
        assert config.locale == 'es-CO'
        assert config.viewport == {'width': 1920, 'height': 1080}

    def test_rejects_non_http_url(self):
        with pytest.raises(ValueError):
            Config(login_url="ftp://example.com").validate()

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError):
            Config(auth_timeout=0).validate()

    def test_rejects_retry_count_out_of_range(self):
        with pytest.raises(ValueError):
            Config(max_retries=0).validate()

    def test_special_accounts(self):
        assert SPECIAL_ACCOUNTS.vacation == {'H', 'F'}
        assert SPECIAL_ACCOUNTS.weekend == {'FDS', 'ND'}
        assert SPECIAL_ACCOUNTS.no_work == {'BH', 'ND'}
