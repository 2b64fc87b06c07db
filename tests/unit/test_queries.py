"""Unit tests for Drive query and A1 range helpers."""

import pytest

from workspace_server.utils import (
    A1Range,
    column_to_index,
    escape_query_value,
    index_to_column,
    normalize_drive_query,
    parse_a1_range,
    title_query,
)


@pytest.mark.unit
class TestNormalizeDriveQuery:
    """Tests for normalize_drive_query()."""

    def test_should_list_untrashed_files_for_empty_query(self) -> None:
        assert normalize_drive_query("   ") == "trashed = false"

    def test_should_wrap_plain_text_in_full_text_search(self) -> None:
        """Verify free text becomes a fullText contains clause."""
        assert normalize_drive_query("budget report") == "fullText contains 'budget report'"

    def test_should_pass_through_queries_with_operators(self) -> None:
        """Verify queries already in Drive syntax are left alone."""
        query = "name contains 'Budget' and mimeType = 'application/pdf'"
        assert normalize_drive_query(query) == query

    def test_should_escape_quotes_in_plain_text(self) -> None:
        """Verify apostrophes cannot break out of the query literal."""
        assert normalize_drive_query("O'Brien") == "fullText contains 'O\\'Brien'"


@pytest.mark.unit
class TestTitleQuery:
    """Tests for title_query() and escape_query_value()."""

    def test_should_exclude_trashed_by_default(self) -> None:
        assert title_query("Q3 plan") == "name contains 'Q3 plan' and trashed = false"

    def test_should_filter_by_mime_type(self) -> None:
        """Verify the MIME type clause is added and trash included on request."""
        query = title_query(
            "Notes",
            mime_type="application/vnd.google-apps.document",
            include_trashed=True,
        )
        assert query == (
            "name contains 'Notes' and mimeType = 'application/vnd.google-apps.document'"
        )

    def test_should_escape_backslash_before_quote(self) -> None:
        assert escape_query_value("a\\'b") == "a\\\\\\'b"


@pytest.mark.unit
class TestColumnConversion:
    """Tests for column label/index conversion."""

    @pytest.mark.parametrize(
        "label, index",
        [("A", 1), ("Z", 26), ("AA", 27), ("AB", 28), ("ZZ", 702), ("AAA", 703)],
    )
    def test_should_convert_both_ways(self, label: str, index: int) -> None:
        assert column_to_index(label) == index
        assert index_to_column(index) == label

    def test_should_accept_lowercase_labels(self) -> None:
        assert column_to_index("ab") == 28

    @pytest.mark.parametrize("label", ["", "A1", "$"])
    def test_should_reject_invalid_labels(self, label: str) -> None:
        with pytest.raises(ValueError):
            column_to_index(label)

    def test_should_reject_non_positive_index(self) -> None:
        with pytest.raises(ValueError):
            index_to_column(0)


@pytest.mark.unit
class TestParseA1Range:
    """Tests for parse_a1_range() and A1Range.to_a1()."""

    def test_should_parse_sheet_and_cell_range(self) -> None:
        """Verify a full Sheet!A1:B10 range is parsed."""
        parsed = parse_a1_range("Sheet1!A1:B10")

        assert parsed == A1Range(
            sheet="Sheet1", start_column=1, start_row=1, end_column=2, end_row=10
        )
        assert parsed.to_a1() == "'Sheet1'!A1:B10"

    def test_should_parse_quoted_sheet_with_column_range(self) -> None:
        """Verify quoted sheet names and open-ended column ranges."""
        parsed = parse_a1_range("'My Sheet'!A:C")

        assert parsed.sheet == "My Sheet"
        assert (parsed.start_column, parsed.start_row) == (1, None)
        assert (parsed.end_column, parsed.end_row) == (3, None)
        assert parsed.to_a1() == "'My Sheet'!A:C"

    def test_should_parse_escaped_quote_in_sheet_name(self) -> None:
        parsed = parse_a1_range("'It''s'!A1")

        assert parsed.sheet == "It's"
        assert parsed.to_a1() == "'It''s'!A1"

    def test_should_parse_row_range(self) -> None:
        parsed = parse_a1_range("2:5")

        assert parsed == A1Range(start_row=2, end_row=5)
        assert parsed.to_a1() == "2:5"

    def test_should_parse_single_cell(self) -> None:
        parsed = parse_a1_range("c7")

        assert parsed == A1Range(start_column=3, start_row=7)
        assert parsed.to_a1() == "C7"

    @pytest.mark.parametrize("text", ["Summary", "Sheet1!", "'Q3 Plan'"])
    def test_should_read_sheet_name_as_whole_sheet(self, text: str) -> None:
        """Verify a bare sheet name selects the whole sheet."""
        parsed = parse_a1_range(text)

        assert parsed.is_whole_sheet
        assert parsed.sheet is not None
        assert parsed.to_a1().startswith("'")

    @pytest.mark.parametrize(
        "text",
        ["", "A1:", "A1:B2:C3", "A0", "'Unterminated!A1", "Sheet1!Summary", ":B2"],
    )
    def test_should_reject_invalid_ranges(self, text: str) -> None:
        with pytest.raises(ValueError):
            parse_a1_range(text)
