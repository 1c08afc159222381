"""Tests for ${VAR} substitution and KEY=VALUE parsing."""

import pytest

from codedeployctl.core.macros import expand_macros, parse_env_assignments


class TestExpandMacros:
    """Tests for expand_macros."""

    def test_braced_and_bare(self):
        environ = {"JOB_NAME": "web", "BUILD_NUMBER": "42"}
        assert expand_macros("${JOB_NAME}-$BUILD_NUMBER", environ) == "web-42"

    def test_unknown_left_untouched(self):
        assert expand_macros("releases/${NOPE}/$ALSO_NOPE", {}) == "releases/${NOPE}/$ALSO_NOPE"

    def test_none_passes_through(self):
        assert expand_macros(None, {"A": "b"}) is None

    def test_no_placeholders(self):
        assert expand_macros("plain-bucket", {"A": "b"}) == "plain-bucket"

    def test_empty_value(self):
        assert expand_macros("${EMPTY}", {"EMPTY": ""}) == ""

    def test_value_is_not_expanded_twice(self):
        assert expand_macros("$A", {"A": "$B", "B": "x"}) == "$B"


class TestParseEnvAssignments:
    """Tests for parse_env_assignments."""

    def test_parses_pairs(self):
        result = parse_env_assignments(["A=1", "B=two=2", "C="])
        assert result == {"A": "1", "B": "two=2", "C": ""}

    @pytest.mark.parametrize("bad", ["NOEQUALS", "=value", "  =x"])
    def test_rejects_invalid(self, bad):
        with pytest.raises(ValueError, match="KEY=VALUE"):
            parse_env_assignments([bad])
