"""CSV concatenation and case tagging.

Concatenation is all-or-nothing: every input is checked and read into a
temporary file next to the output before the output is replaced, and
inputs are only deleted after the output is complete.
"""

from __future__ import annotations

import csv
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Iterable, Sequence

from glycopaint.core.exceptions import ConcatenationError
from glycopaint.core.schema import CASE_COLUMN

logger = logging.getLogger(__name__)


def _write_atomically(path: Path, header: list[str], rows: Iterable[list[str]]) -> int:
    """Write header and rows to ``path`` via a temp file; return row count."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    count = 0
    try:
        with os.fdopen(fd, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(header)
            for row in rows:
                writer.writerow(row)
                count += 1
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
    return count


def _read_rows(path: Path) -> tuple[list[str], list[list[str]]]:
    try:
        with path.open(newline="") as f:
            reader = csv.reader(f)
            header = next(reader, None)
            if header is None:
                raise ConcatenationError(str(path), "file is empty")
            return header, [row for row in reader if row]
    except (OSError, csv.Error, UnicodeDecodeError) as exc:
        raise ConcatenationError(str(path), str(exc)) from exc


def concatenate_csv_files(
    files: Sequence[Path],
    output: Path,
    delete_inputs: bool = False,
) -> int:
    """Concatenate CSV files sharing a header into ``output``.

    The header of the first input is written once, followed by the data
    rows of every input in order.

    Args:
        files: Inputs, in output order.
        output: Destination file (replaced if it exists).
        delete_inputs: Remove the inputs after the output is complete.

    Returns:
        Number of data rows written.

    Raises:
        ConcatenationError: If ``files`` is empty or an input is missing or
            unreadable. No input is deleted and ``output`` is left untouched.
    """
    files = [Path(f) for f in files]
    output = Path(output)
    if not files:
        raise ConcatenationError(str(output), "no input files")
    for path in files:
        if not path.is_file():
            raise ConcatenationError(str(path), "input file does not exist")

    header: list[str] | None = None
    rows: list[list[str]] = []
    for path in files:
        file_header, file_rows = _read_rows(path)
        if header is None:
            header = file_header
        elif file_header != header:
            logger.warning("Header of %s differs from %s", path, files[0])
        rows.extend(file_rows)

    assert header is not None
    count = _write_atomically(output, header, rows)
    logger.debug("Concatenated %d files (%d rows) into %s", len(files), count, output)

    if delete_inputs:
        resolved_output = output.resolve()
        for path in files:
            if path.resolve() == resolved_output:
                continue
            path.unlink()
    return count


def concatenate_csv_files_in_directory(
    directory: Path,
    output: Path,
    pattern: str = r".*\.csv$",
    delete_inputs: bool = False,
) -> int:
    """Concatenate every file in ``directory`` whose name matches ``pattern``.

    Files are taken in sorted name order; ``output`` itself is never an input.
    """
    directory = Path(directory)
    output = Path(output)
    regex = re.compile(pattern)
    files = sorted(
        p for p in directory.iterdir()
        if p.is_file() and regex.match(p.name) and p.name != output.name
    )
    return concatenate_csv_files(files, output, delete_inputs=delete_inputs)


def concatenate_named_csv_files(
    root: Path,
    file_name: str,
    subdirs: Sequence[str],
) -> int:
    """Concatenate ``root/<sub>/<file_name>`` for every sub into ``root/<file_name>``.

    Inputs are kept.
    """
    root = Path(root)
    files = [root / sub / file_name for sub in subdirs]
    return concatenate_csv_files(files, root / file_name, delete_inputs=False)


def add_case(
    root: Path,
    file_name: str,
    subdirs: Sequence[str],
    case_name: str,
) -> int:
    """Add (or overwrite) a ``Case`` column in ``root/<sub>/<file_name>``.

    Missing files are skipped with a warning.

    Returns:
        Number of files tagged.
    """
    root = Path(root)
    tagged = 0
    for sub in subdirs:
        path = root / sub / file_name
        if not path.is_file():
            logger.warning("Cannot add case to %s: file not found", path)
            continue
        header, rows = _read_rows(path)
        if CASE_COLUMN in header:
            index = header.index(CASE_COLUMN)
            for row in rows:
                row.extend([""] * (len(header) - len(row)))
                row[index] = case_name
        else:
            header = header + [CASE_COLUMN]
            width = len(header) - 1
            rows = [row + [""] * (width - len(row)) + [case_name] for row in rows]
        _write_atomically(path, header, rows)
        tagged += 1
    return tagged
