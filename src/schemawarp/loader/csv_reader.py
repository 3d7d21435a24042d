"""CSV export reading"""
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from ..schema.models import RawTable

logger = logging.getLogger(__name__)

FALLBACK_ENCODING = 'latin-1'


def _dedupe_headers(headers: List[str]) -> List[str]:
    """Suffix exact duplicates the way pandas does ('Title', 'Title.1')."""
    seen = {}
    result = []
    for header in headers:
        if header in seen:
            seen[header] += 1
            header = f"{header}.{seen[header]}"
        else:
            seen[header] = 0
        result.append(header)
    return result


def _read_frame(path: Path, encoding: str, **kwargs) -> pd.DataFrame:
    # header=None: the header line is row 0, so pandas never treats a
    # longer data line as carrying an implicit index column
    return pd.read_csv(
        path,
        header=None,
        dtype=str,
        keep_default_na=False,
        encoding=encoding,
        engine='python',
        skip_blank_lines=True,
        **kwargs,
    )


def _read_lines(path: Path, encoding: str) -> Tuple[pd.DataFrame, int]:
    """Read every line, header first. Returns the frame and the malformed line count."""
    width = _read_frame(path, encoding, nrows=1).shape[1]
    malformed = []

    def _fit(bad_line: List[str]) -> Optional[List[str]]:
        # Extra fields that are all empty come from a trailing comma
        if not any(field.strip() for field in bad_line[width:]):
            return bad_line[:width]
        malformed.append(bad_line)
        return None

    df = _read_frame(path, encoding, on_bad_lines=_fit)
    return df, len(malformed)


def read_csv_table(path: str, name: Optional[str] = None) -> RawTable:
    """
    Read one exported CSV into a RawTable.

    Everything is read as text: no NA conversion, so empty cells stay ''.
    A leading BOM is dropped. Lines with more fields than the header are
    skipped and counted, except when the extra fields are all empty
    (trailing commas), which are trimmed and kept.

    A file that is not valid UTF-8 is re-read as Latin-1. A file that
    cannot be parsed comes back with read_error set and no headers, so
    the table is skipped and the rest of the export still migrates.

    Args:
        path: CSV file path
        name: Table display name (defaults to the file stem)
    """
    path = Path(path)
    name = name or path.stem

    try:
        try:
            df, malformed = _read_lines(path, 'utf-8-sig')
        except UnicodeDecodeError as e:
            logger.warning(f"{path.name} is not valid UTF-8 ({e.reason}), reading as {FALLBACK_ENCODING}")
            df, malformed = _read_lines(path, FALLBACK_ENCODING)
    except pd.errors.EmptyDataError:
        logger.warning(f"Empty CSV: {path}")
        return RawTable(name=name, headers=[], rows=[], source_path=str(path))
    except pd.errors.ParserError as e:
        logger.error(f"Could not parse {path}: {e}")
        return RawTable(name=name, headers=[], rows=[], source_path=str(path),
                        read_error=f"unreadable CSV: {e}")

    if malformed:
        logger.warning(f"{path.name}: skipped {malformed} malformed line(s)")

    # Short lines come back as NaN
    df = df.fillna('')
    headers = _dedupe_headers([str(v) for v in df.iloc[0]])
    rows = df.iloc[1:].set_axis(headers, axis=1).to_dict(orient='records')
    logger.debug(f"Read {len(rows)} rows x {len(headers)} columns from {path.name}")

    return RawTable(
        name=name,
        headers=headers,
        rows=rows,
        source_path=str(path),
        malformed_lines=malformed,
    )
