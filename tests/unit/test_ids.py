"""Unit tests for Workspace URL ID extraction."""

import pytest

from workspace_server.utils import extract_doc_id


@pytest.mark.unit
class TestExtractDocId:
    """Tests for extract_doc_id()."""

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://docs.google.com/document/d/1aBc_D-eF/edit", "1aBc_D-eF"),
            ("https://docs.google.com/spreadsheets/d/sheet123/edit#gid=0", "sheet123"),
            ("https://docs.google.com/presentation/d/deck_42/view", "deck_42"),
            ("https://drive.google.com/file/d/fileXYZ/view?usp=sharing", "fileXYZ"),
            ("https://drive.google.com/open?id=openId_9", "openId_9"),
        ],
    )
    def test_should_extract_id(self, url: str, expected: str) -> None:
        """Verify the file ID is pulled from common Workspace URLs."""
        assert extract_doc_id(url) == expected

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "https://docs.google.com/document/",
            "https://example.com/page",
            "not a url",
        ],
    )
    def test_should_return_none_without_id(self, url: str) -> None:
        """Verify URLs without an ID yield None."""
        assert extract_doc_id(url) is None

    def test_should_prefer_path_id_over_query(self) -> None:
        """Verify the /d/<id> form wins when both are present."""
        url = "https://docs.google.com/document/d/pathId/edit?id=queryId"
        assert extract_doc_id(url) == "pathId"
