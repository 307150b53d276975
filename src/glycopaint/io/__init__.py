"""glycopaint io: flat table reading/writing and CSV concatenation."""

from glycopaint.io.concatenate import (
    add_case,
    concatenate_csv_files,
    concatenate_csv_files_in_directory,
    concatenate_named_csv_files,
)
from glycopaint.io.tables import (
    read_experiment_info,
    read_recordings,
    read_table,
    read_tracks,
    write_recordings,
    write_squares,
    write_table,
    write_tracks,
)

__all__ = [
    "add_case",
    "concatenate_csv_files",
    "concatenate_csv_files_in_directory",
    "concatenate_named_csv_files",
    "read_experiment_info",
    "read_recordings",
    "read_table",
    "read_tracks",
    "write_recordings",
    "write_squares",
    "write_table",
    "write_tracks",
]
