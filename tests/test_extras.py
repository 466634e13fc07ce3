"""Tests for the extras grammar parser."""

from replicon_bot.extras import (
    ExtraGroup,
    format_extras,
    has_extras,
    parse_extras,
)


class TestParseExtras:
    """Tests for parse_extras function."""

    def test_single_group(self):
        result = parse_extras("EXT/PROD:PI:1600:1800")

        assert result.groups == [ExtraGroup('PROD', 'PI', '1600', '1800')]
        assert result.malformed == []

    def test_groups_keep_declared_order(self):
        result = parse_extras("EXT/PROD:PI:1600:1800;AV:MS:1900:2000;PROD:PX:0600:0700")

        assert [g.account for g in result.groups] == ['PROD', 'AV', 'PROD']
        assert [g.start for g in result.groups] == ['1600', '1900', '0600']

    def test_codes_are_upper_cased(self):
        result = parse_extras("EXT/prod: pi :1600:1800")

        assert result.groups[0].account == 'PROD'
        assert result.groups[0].project == 'PI'

    def test_lowercase_prefix_accepted(self):
        assert len(parse_extras("ext/PROD:PI:1600:1800").groups) == 1

    def test_missing_prefix_means_no_extras(self):
        """A value without the prefix is treated as absent extras."""
        result = parse_extras("PROD:PI:1600:1800")

        assert result.groups == []
        assert result.malformed == []

    def test_empty_string(self):
        result = parse_extras("")

        assert result.groups == []
        assert result.malformed == []

    def test_empty_groups_are_ignored(self):
        result = parse_extras("EXT/PROD:PI:1600:1800;;")

        assert len(result.groups) == 1
        assert result.malformed == []

    def test_too_few_fields_is_malformed(self):
        result = parse_extras("EXT/PROD:PI:1600")

        assert result.groups == []
        assert len(result.malformed) == 1
        assert result.malformed[0].position == 1
        assert result.malformed[0].text == "PROD:PI:1600"
        assert "got 3" in result.malformed[0].reason

    def test_too_many_fields_is_malformed(self):
        result = parse_extras("EXT/PROD:PI:1600:1800:2000")

        assert len(result.malformed) == 1
        assert "got 5" in result.malformed[0].reason

    def test_invalid_time_is_malformed(self):
        result = parse_extras("EXT/PROD:PI:1600:2500")

        assert result.groups == []
        assert "2500" in result.malformed[0].reason

    def test_missing_account_is_malformed(self):
        result = parse_extras("EXT/:PI:1600:1800")

        assert result.groups == []
        assert len(result.malformed) == 1

    def test_malformed_group_does_not_drop_valid_ones(self):
        result = parse_extras("EXT/PROD:PI:1600:1800;BROKEN;AV:MS:1900:2000")

        assert [g.account for g in result.groups] == ['PROD', 'AV']
        assert [m.position for m in result.malformed] == [2]

    def test_group_converts_times(self):
        group = parse_extras("EXT/PROD:PI:1600:1800").groups[0]

        assert group.start_standard == "4:00pm"
        assert group.end_standard == "6:00pm"


class TestFormatExtras:
    """Tests for format_extras and has_extras."""

    def test_format_multiple_groups(self):
        groups = [
            ExtraGroup('PROD', 'PI', '1600', '1800'),
            ExtraGroup('AV', 'MS', '1900', '2000'),
        ]
        assert format_extras(groups) == "EXT/PROD:PI:1600:1800;AV:MS:1900:2000"

    def test_format_empty(self):
        assert format_extras([]) == ""

    def test_parsed_structure_survives_formatting(self):
        """Formatting and re-parsing gives the same groups, modulo case and spaces."""
        original = parse_extras("EXT/ prod:pi:1600:1800 ;av:ms:1900:2000")

        reparsed = parse_extras(format_extras(original.groups))

        assert reparsed.groups == original.groups

    def test_has_extras(self):
        assert has_extras("EXT/PROD:PI:1600:1800") is True
        assert has_extras("  ext/x") is True
        assert has_extras("") is False
        assert has_extras("overtime") is False
