"""Query translation helpers for Drive search and Sheets ranges."""

import re
from dataclasses import dataclass

# Drive API query operators; a query using any of these is passed through
DRIVE_QUERY_OPERATORS = ["contains", "=", "!=", "<", ">", " in ", " has ", " not "]

# Columns run from A to ZZZ
_CELL = re.compile(r"^([A-Za-z]{0,3})(\d*)$")


def escape_query_value(value: str) -> str:
    """Escape a value for use inside a single-quoted Drive query literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def normalize_drive_query(query: str) -> str:
    """Normalize a search query for the Google Drive API.

    If the query doesn't contain Drive API operators, wrap it in fullText contains.

    Args:
        query: Raw search query from the agent.

    Returns:
        Properly formatted Drive API query.
    """
    query = query.strip()
    if not query:
        return "trashed = false"

    query_lower = query.lower()
    if any(op in query_lower for op in DRIVE_QUERY_OPERATORS):
        return query

    return f"fullText contains '{escape_query_value(query)}'"


def title_query(text: str, mime_type: str | None = None, include_trashed: bool = False) -> str:
    """Build a Drive query matching files whose name contains ``text``.

    Args:
        text: Text to look for in file names.
        mime_type: Restrict to one MIME type (e.g. Google Docs).
        include_trashed: Also match files in the trash.

    Returns:
        Drive API query string.
    """
    clauses = [f"name contains '{escape_query_value(text)}'"]
    if mime_type:
        clauses.append(f"mimeType = '{escape_query_value(mime_type)}'")
    if not include_trashed:
        clauses.append("trashed = false")
    return " and ".join(clauses)


def column_to_index(column: str) -> int:
    """Convert a column label to a 1-based index ("A" -> 1, "AB" -> 28)."""
    if not column or not column.isalpha():
        raise ValueError(f"Invalid column label: {column!r}")
    index = 0
    for char in column.upper():
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index


def index_to_column(index: int) -> str:
    """Convert a 1-based column index to its label (28 -> "AB")."""
    if index < 1:
        raise ValueError(f"Column index must be >= 1, got {index}")
    label = ""
    while index:
        index, remainder = divmod(index - 1, 26)
        label = chr(ord("A") + remainder) + label
    return label


@dataclass
class A1Range:
    """A parsed A1-notation range.

    Columns and rows are 1-based; None means the range is open in that
    direction (``A:C`` has no rows, ``2:5`` has no columns).
    """

    sheet: str | None = None
    start_column: int | None = None
    start_row: int | None = None
    end_column: int | None = None
    end_row: int | None = None

    @property
    def is_whole_sheet(self) -> bool:
        return all(
            value is None
            for value in (self.start_column, self.start_row, self.end_column, self.end_row)
        )

    def to_a1(self) -> str:
        """Render back to A1 notation, quoting the sheet name."""
        prefix = ""
        if self.sheet is not None:
            prefix = "'" + self.sheet.replace("'", "''") + "'"
            if self.is_whole_sheet:
                return prefix
            prefix += "!"

        start = _format_cell(self.start_column, self.start_row)
        if self.end_column is None and self.end_row is None:
            return prefix + start
        return f"{prefix}{start}:{_format_cell(self.end_column, self.end_row)}"


def _format_cell(column: int | None, row: int | None) -> str:
    return (index_to_column(column) if column else "") + (str(row) if row else "")


def _parse_cell(text: str, original: str) -> tuple[int | None, int | None]:
    match = _CELL.match(text)
    if not match or not text:
        raise ValueError(f"Invalid A1 range: {original!r}")
    letters, digits = match.groups()
    column = column_to_index(letters) if letters else None
    row = int(digits) if digits else None
    if row == 0:
        raise ValueError(f"Row numbers start at 1: {original!r}")
    return column, row


def _split_sheet(text: str) -> tuple[str | None, str]:
    """Split ``'Sheet'!A1:B2`` into the sheet name and the cell part."""
    if text.startswith("'"):
        # Quoted sheet names escape quotes by doubling them
        i = 1
        name = []
        while i < len(text):
            if text[i] == "'":
                if text[i + 1 : i + 2] == "'":
                    name.append("'")
                    i += 2
                    continue
                break
            name.append(text[i])
            i += 1
        else:
            raise ValueError(f"Unterminated sheet name: {text!r}")
        rest = text[i + 1 :]
        if rest and not rest.startswith("!"):
            raise ValueError(f"Invalid A1 range: {text!r}")
        return "".join(name), rest[1:]

    if "!" in text:
        sheet, cells = text.split("!", 1)
        return sheet, cells

    return None, text


def parse_a1_range(text: str) -> A1Range:
    """Parse A1 notation such as ``Sheet1!A1:B10`` or ``'My Sheet'!A:C``.

    A bare name that is not a cell reference (``Summary``) is read as a
    whole-sheet range.

    Args:
        text: Range in A1 notation.

    Returns:
        Parsed A1Range.

    Raises:
        ValueError: If the text is not a valid A1 range.
    """
    text = text.strip()
    if not text:
        raise ValueError("Empty A1 range")

    sheet, cells = _split_sheet(text)
    if sheet is not None and not cells:
        return A1Range(sheet=sheet)

    if sheet is None and ":" not in cells and not _CELL.match(cells):
        return A1Range(sheet=cells)

    start_text, _, end_text = cells.partition(":")
    start_column, start_row = _parse_cell(start_text, text)

    if not end_text:
        if ":" in cells:
            raise ValueError(f"Invalid A1 range: {text!r}")
        return A1Range(sheet=sheet, start_column=start_column, start_row=start_row)

    end_column, end_row = _parse_cell(end_text, text)
    return A1Range(
        sheet=sheet,
        start_column=start_column,
        start_row=start_row,
        end_column=end_column,
        end_row=end_row,
    )
