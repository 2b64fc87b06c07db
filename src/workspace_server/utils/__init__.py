"""Pure helpers shared by Workspace tools.

The Drive query and A1 range helpers are the building blocks for
Workspace tool handlers that search Drive or read Sheets ranges; the
credential tools only need ``extract_doc_id``.
"""

from workspace_server.utils.ids import extract_doc_id
from workspace_server.utils.queries import (
    A1Range,
    column_to_index,
    escape_query_value,
    index_to_column,
    normalize_drive_query,
    parse_a1_range,
    title_query,
)

__all__ = [
    "A1Range",
    "column_to_index",
    "escape_query_value",
    "extract_doc_id",
    "index_to_column",
    "normalize_drive_query",
    "parse_a1_range",
    "title_query",
]
