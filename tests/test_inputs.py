"""Tests for input file loading."""

import json

import pytest

from replicon_bot.inputs import (
    InputLoadError,
    load_mappings,
    load_rows,
    load_time_slots,
    normalize_header,
)
from replicon_bot.models import CSVRow


class TestLoadRows:
    """Tests for load_rows function."""

    def test_load_valid_csv(self, tmp_path):
        csv_file = tmp_path / "march.csv"
        csv_file.write_text(
            "account,project,extras\n"
            "PROD,PI,\n"
            "H,,\n"
            "AV,MS,EXT/PROD:PI:1600:1800\n",
            encoding='utf-8',
        )

        rows = load_rows(str(csv_file))

        assert rows == [
            CSVRow("PROD", "PI"),
            CSVRow("H"),
            CSVRow("AV", "MS", "EXT/PROD:PI:1600:1800"),
        ]

    def test_blank_lines_keep_day_positions(self, tmp_path):
        csv_file = tmp_path / "march.csv"
        csv_file.write_text("account,project,extras\nPROD,PI,\n\nAV,MS,\n", encoding='utf-8')

        rows = load_rows(str(csv_file))

        assert len(rows) == 3
        assert rows[1].is_empty()
        assert rows[2].account == "AV"

    def test_legacy_headers(self, tmp_path):
        csv_file = tmp_path / "march.csv"
        csv_file.write_text("Cuenta,Proyecto\nPROD,PI\n", encoding='utf-8')

        rows = load_rows(str(csv_file))

        assert rows == [CSVRow("PROD", "PI")]

    def test_byte_order_mark(self, tmp_path):
        csv_file = tmp_path / "march.csv"
        csv_file.write_bytes("﻿account,project\nPROD,PI\n".encode('utf-8'))

        assert load_rows(str(csv_file))[0].account == "PROD"

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputLoadError, match="not found"):
            load_rows(str(tmp_path / "missing.csv"))

    def test_empty_file(self, tmp_path):
        csv_file = tmp_path / "empty.csv"
        csv_file.write_text("", encoding='utf-8')

        with pytest.raises(InputLoadError, match="empty"):
            load_rows(str(csv_file))

    def test_missing_account_column(self, tmp_path):
        csv_file = tmp_path / "bad.csv"
        csv_file.write_text("project,extras\nPI,\n", encoding='utf-8')

        with pytest.raises(InputLoadError, match="account"):
            load_rows(str(csv_file))

    def test_normalize_header(self):
        assert normalize_header("  Cuenta ") == "account"
        assert normalize_header("PROYECTO") == "project"
        assert normalize_header("Extras") == "extras"


class TestLoadMappings:
    """Tests for load_mappings function."""

    def test_load(self, tmp_path):
        path = tmp_path / "mappings.json"
        path.write_text(json.dumps({
            "prod": {"name": "Production", "projects": {"pi": "Project Alpha"}},
            "AV": {"name": "Availability"},
        }), encoding='utf-8')

        mappings = load_mappings(str(path))

        assert mappings["PROD"].name == "Production"
        assert mappings["PROD"].projects == {"PI": "Project Alpha"}
        assert mappings["AV"].projects == {}

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "mappings.json"
        path.write_text("{broken", encoding='utf-8')

        with pytest.raises(InputLoadError):
            load_mappings(str(path))

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "mappings.json"
        path.write_text("[]", encoding='utf-8')

        with pytest.raises(InputLoadError):
            load_mappings(str(path))

    def test_mapping_without_name(self, tmp_path):
        path = tmp_path / "mappings.json"
        path.write_text(json.dumps({"PROD": {"projects": {}}}), encoding='utf-8')

        with pytest.raises(InputLoadError, match="PROD"):
            load_mappings(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputLoadError):
            load_mappings(str(tmp_path / "missing.json"))


class TestLoadTimeSlots:
    """Tests for load_time_slots function."""

    def test_defaults(self):
        slots = load_time_slots()

        assert [(s.start_time, s.end_time) for s in slots] == [
            ("7:00am", "1:00pm"),
            ("2:00pm", "4:00pm"),
        ]

    def test_load_both_key_styles(self, tmp_path):
        path = tmp_path / "slots.json"
        path.write_text(json.dumps([
            {"id": "a", "start_time": "07:00", "end_time": "13:00"},
            {"startTime": "14:00", "endTime": "16:00"},
        ]), encoding='utf-8')

        slots = load_time_slots(str(path))

        assert slots[0].id == "a"
        assert slots[1].id == "2"
        assert slots[1].start_time == "14:00"

    def test_not_a_list(self, tmp_path):
        path = tmp_path / "slots.json"
        path.write_text("{}", encoding='utf-8')

        with pytest.raises(InputLoadError):
            load_time_slots(str(path))
