"""Statement file format detection and parsing."""

import csv
import logging
from pathlib import Path
from typing import Optional

from stmtrecon.domain.errors import UnrecognisedFormatError, ValidationError
from stmtrecon.domain.formats import FORMATS, StatementFormat

logger = logging.getLogger(__name__)

ENCODING = "utf-8-sig"


def normalize_header(header_line: str) -> str:
    """Normalize a header line for marker matching.

    Strips a byte order mark, removes double quotes and lowercases.
    """
    return header_line.lstrip("\ufeff").replace('"', "").strip().lower()


def detect_format(header_line: Optional[str]) -> StatementFormat:
    """Detect the statement format from the file's header line.

    Args:
        header_line: First non-empty line of the file

    Returns:
        The matching statement format

    Raises:
        UnrecognisedFormatError: If no known format matches the header
    """
    if not header_line or not header_line.strip():
        raise UnrecognisedFormatError(header_line)

    normalized = normalize_header(header_line)
    for fmt in FORMATS:
        if all(marker in normalized for marker in fmt.header_markers):
            return fmt

    raise UnrecognisedFormatError(header_line.strip())


class StatementParser:
    """Reads statement CSV files into rows with a stable per-format column order."""

    def read_header(self, file_path: str) -> Optional[str]:
        """Return the first non-empty line of the file, or None for an empty file."""
        path = self._resolve(file_path)
        with open(path, "r", encoding=ENCODING) as f:
            for line in f:
                if line.strip():
                    return line.rstrip("\r\n")
        return None

    def detect(self, file_path: str) -> StatementFormat:
        """Detect the format of a statement file."""
        fmt = detect_format(self.read_header(file_path))
        logger.debug("Detected format %s for %s", fmt.name, file_path)
        return fmt

    def parse(self, file_path: str, fmt: StatementFormat) -> list[list[str]]:
        """Parse a statement file into data rows.

        The header line and blank lines are skipped. Values are stripped of
        surrounding whitespace; a format's dropped column is removed so that
        every returned row follows the account type's column order.

        Args:
            file_path: Path to the statement file
            fmt: Format to parse the file as

        Returns:
            List of rows, each a list of strings

        Raises:
            ValidationError: If the file is missing or a row has too few columns
        """
        path = self._resolve(file_path)
        rows = []
        with open(path, "r", encoding=ENCODING, newline="") as f:
            reader = csv.reader(f, delimiter=fmt.delimiter)
            header_seen = False
            for record in reader:
                if not any(value.strip() for value in record):
                    continue
                if not header_seen:
                    header_seen = True
                    continue
                values = [value.strip() for value in record]
                if fmt.dropped_index is not None and len(values) > fmt.dropped_index:
                    del values[fmt.dropped_index]
                if len(values) < fmt.column_count:
                    raise ValidationError(
                        f"Line {reader.line_num}: expected {fmt.column_count} columns "
                        f"for {fmt.name}, found {len(values)}"
                    )
                rows.append(values[: fmt.column_count])

        logger.info("Parsed %d rows from %s as %s", len(rows), file_path, fmt.name)
        return rows

    def _resolve(self, file_path: str) -> Path:
        if not file_path:
            raise ValidationError("Statement has no file to import")
        path = Path(file_path)
        if not path.exists():
            raise ValidationError(f"Statement file not found: {file_path}")
        return path
