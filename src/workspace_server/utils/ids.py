"""Extract Workspace file IDs from URLs."""

import re
from urllib.parse import parse_qs, urlparse

# Docs, Sheets, Slides and Drive file URLs all carry the ID as /d/<id>
_PATH_ID = re.compile(r"/d/([a-zA-Z0-9_-]+)")
_ID_CHARS = re.compile(r"^[a-zA-Z0-9_-]+$")


def extract_doc_id(url: str) -> str | None:
    """Extract the file ID from a Google Workspace URL.

    Handles ``https://docs.google.com/document/d/<id>/edit`` style URLs as
    well as Drive links that pass the ID as ``?id=<id>``.

    Args:
        url: URL of a Doc, Sheet, Slides deck or Drive file.

    Returns:
        The file ID, or None if the URL does not contain one.
    """
    if not url:
        return None

    match = _PATH_ID.search(url)
    if match:
        return match.group(1)

    ids = parse_qs(urlparse(url).query).get("id")
    if ids and _ID_CHARS.match(ids[0]):
        return ids[0]
    return None
