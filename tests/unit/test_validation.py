"""Unit tests for shared task validation."""

import pytest

from src.core.errors import TitleErrorKind, ValidationError
from src.core.validation import (
    INVALID_ID_MESSAGE,
    TITLE_ERROR_MESSAGES,
    check_duplicate_title,
    normalize_title,
    sanitize_input,
    validate_status,
    validate_task_id,
    validate_title,
)
from src.domain.task import TaskStatus
from tests.conftest import make_task


@pytest.mark.unit
class TestValidateTitle:
    """Tests for validate_title()."""

    @pytest.mark.parametrize(
        ("raw", "kind"),
        [
            (None, TitleErrorKind.REQUIRED),
            ("", TitleErrorKind.EMPTY),
            ("   \t ", TitleErrorKind.EMPTY),
            ("ab", TitleErrorKind.TOO_SHORT),
            ("  ab  ", TitleErrorKind.TOO_SHORT),
            ("x" * 201, TitleErrorKind.TOO_LONG),
            ("!!!", TitleErrorKind.NO_ALPHANUMERIC),
            ("- - -", TitleErrorKind.NO_ALPHANUMERIC),
        ],
    )
    def test_rejections(self, raw, kind):
        result = validate_title(raw)

        assert result.valid is False
        assert result.error_kind == kind
        assert result.errors == [TITLE_ERROR_MESSAGES[kind]]
        assert result.trimmed_title is None

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("abc", "abc"),
            ("  Buy milk  ", "Buy milk"),
            ("x" * 200, "x" * 200),
            ("!a!", "!a!"),
            ("Café", "Café"),
        ],
    )
    def test_accepts_and_trims(self, raw, expected):
        result = validate_title(raw)

        assert result.valid is True
        assert result.trimmed_title == expected
        assert result.errors == []

    def test_length_counts_code_points(self):
        assert validate_title("日本語").valid is True

    def test_first_failing_rule_wins(self):
        # Too short and no alphanumeric: length is checked first
        assert validate_title("!!").error_kind == TitleErrorKind.TOO_SHORT

    def test_raise_for_error(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_title("ab").raise_for_error()

        assert exc_info.value.title_error == TitleErrorKind.TOO_SHORT
        assert validate_title(" ok! ").raise_for_error() == "ok!"


@pytest.mark.unit
class TestDuplicateTitle:
    """Tests for check_duplicate_title()."""

    def test_case_and_whitespace_insensitive(self):
        existing = make_task("Buy milk")

        result = check_duplicate_title("  BUY MILK ", [existing])

        assert result.is_duplicate is True
        assert result.conflicting_id == existing.id
        assert result.message == "A task with this title already exists"

    def test_exclude_id_skips_task_being_edited(self):
        existing = make_task("Buy milk")

        assert check_duplicate_title("buy milk", [existing], exclude_id=existing.id).is_duplicate is False

    def test_distinct_title(self):
        assert check_duplicate_title("Buy bread", [make_task("Buy milk")]).is_duplicate is False

    def test_casefold_matches_german_sharp_s(self):
        assert normalize_title(" Straße ") == normalize_title("STRASSE")


@pytest.mark.unit
class TestStatusAndIds:
    """Tests for validate_status(), validate_task_id() and sanitize_input()."""

    def test_status_values(self):
        assert validate_status("pending") is TaskStatus.PENDING
        assert validate_status("completed") is TaskStatus.COMPLETED

    @pytest.mark.parametrize("raw", ["done", "Completed", "", None])
    def test_invalid_status(self, raw):
        with pytest.raises(ValidationError):
            validate_status(raw)

    def test_task_id_accepts_24_hex_and_lowercases(self):
        assert validate_task_id("ABCDEF0123456789abcdef01") == "abcdef0123456789abcdef01"

    @pytest.mark.parametrize("raw", ["123", "g" * 24, "a" * 25, "a" * 24 + "\n"])
    def test_task_id_rejects_malformed(self, raw):
        with pytest.raises(ValidationError, match=INVALID_ID_MESSAGE):
            validate_task_id(raw)

    def test_sanitize_input_escapes_markup(self):
        assert sanitize_input('<b>"x" & \'y\'</b>') == "&lt;b&gt;&quot;x&quot; &amp; &#x27;y&#x27;&lt;&#x2F;b&gt;"
