"""Shared utility helpers."""

from archive_repack.utils.paths import atomic_temp_path, file_fingerprint, write_json_atomically
from archive_repack.utils.time_utils import now_utc

__all__ = [
    "atomic_temp_path",
    "file_fingerprint",
    "write_json_atomically",
    "now_utc",
]
