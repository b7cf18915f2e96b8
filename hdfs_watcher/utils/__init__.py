"""
Utilities package for HDFS Watcher.

Pure helpers for URL building plus host specific configuration lookup.
"""

from .url_utils import (
    build_file_url,
    encode_filename,
    encode_path,
    encode_path_segment,
)

__all__ = [
    "build_file_url",
    "encode_filename",
    "encode_path",
    "encode_path_segment",
]
