"""
URL encoding helpers shared by the local and WebHDFS URL builders.
"""

from urllib.parse import quote


def encode_path_segment(segment: str) -> str:
    """Percent-encode a single path segment (UTF-8, spaces as %20)."""
    if segment is None:
        raise ValueError("Path segment cannot be None")
    if not segment:
        return segment
    # Only alphanumerics and "*-._" stay literal, matching form encoding with %20 for spaces
    return quote(segment, safe="*-._")


def encode_filename(filename: str) -> str:
    """Encode a filename for use in a URL."""
    if not filename or not filename.strip():
        raise ValueError("Filename cannot be null or empty")
    return encode_path_segment(filename)


def encode_path(path: str) -> str:
    """Encode every segment of a slash separated path, dropping empty segments."""
    segments = [encode_path_segment(s) for s in path.split("/") if s]
    return "".join(f"/{s}" for s in segments)


def build_file_url(base_uri: str, path: str, filename: str) -> str:
    """
    Build ``{base_uri}{path}/{filename}`` with the filename encoded.

    Raises:
        ValueError: If base_uri or filename is empty, or path is None.
    """
    if not base_uri or not base_uri.strip():
        raise ValueError("Base URI cannot be null or empty")
    if path is None:
        raise ValueError("Path cannot be None")

    return f"{base_uri.rstrip('/')}{path}/{encode_filename(filename)}"
