# =============================================================================
# utils/csv_utils.py - CSV utilities
# =============================================================================

from pathlib import Path
from typing import List, Dict, Any, Mapping, Sequence, Union
import logging

BOM = '\ufeff'


class ParseError(Exception):
    """Raised when a source file cannot be read or decoded as text"""


class ExportError(Exception):
    """Raised when a report cannot be exported"""


def normalize_keys(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of row with trimmed, BOM-free, lowercased keys"""
    normalized = {}
    for key, value in row.items():
        clean_key = key.replace(BOM, '').strip().lower()
        normalized[clean_key] = value
    return normalized


class CSVHandler:
    """Utilities for reading and writing plain comma separated files.

    Fields are split on every comma: quoted fields and embedded newlines
    are not supported.
    """

    @staticmethod
    def parse_csv(content: str, delimiter: str = ',') -> List[Dict[str, str]]:
        """Parse delimited text into row dictionaries keyed by header"""
        logger = logging.getLogger(__name__)

        lines = [line for line in content.strip().split('\n') if line]
        if not lines:
            return []

        headers = [token.strip() for token in lines[0].split(delimiter)]

        rows = []
        skipped = 0
        for line in lines[1:]:
            values = [value.strip() for value in line.split(delimiter)]
            # Rows that don't line up with the header are dropped
            if len(values) != len(headers):
                skipped += 1
                continue
            rows.append(dict(zip(headers, values)))

        if skipped:
            logger.debug(f"Skipped {skipped} malformed row(s)")
        return rows

    @staticmethod
    def read_csv(file_path: Union[str, Path], encoding: str = 'utf-8',
                 delimiter: str = ',') -> List[Dict[str, str]]:
        """Read CSV file and return list of dictionaries"""
        logger = logging.getLogger(__name__)

        try:
            content = Path(file_path).read_text(encoding=encoding)
        except FileNotFoundError as e:
            logger.error(f"Input file {file_path} not found")
            raise ParseError(f"Input file {file_path} not found") from e
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error reading CSV {file_path}: {e}")
            raise ParseError(f"Cannot read {file_path}: {e}") from e

        data = CSVHandler.parse_csv(content, delimiter=delimiter)
        logger.info(f"Successfully read {len(data)} records from {file_path}")
        return data

    @staticmethod
    def render_csv(data: Sequence[Mapping[str, Any]], delimiter: str = ',') -> str:
        """Render rows as CSV text, columns ordered by the first row's keys"""
        if not data:
            raise ExportError("No data to export")

        headers = list(data[0].keys())
        lines = [delimiter.join(headers)]
        for row in data:
            lines.append(delimiter.join(str(row.get(header, '')) for header in headers))
        return '\n'.join(lines)

    @staticmethod
    def write_csv(data: Sequence[Mapping[str, Any]], output_path: Union[str, Path]) -> None:
        """Write data to CSV file"""
        logger = logging.getLogger(__name__)

        content = CSVHandler.render_csv(data)

        try:
            Path(output_path).write_text(content, encoding='utf-8')
        except OSError as e:
            logger.error(f"Error writing CSV: {e}")
            raise ExportError(f"Cannot write {output_path}: {e}") from e

        logger.info(f"Successfully wrote {len(data)} records to {output_path}")
