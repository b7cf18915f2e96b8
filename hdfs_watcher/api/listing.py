import logging
from typing import List, Optional, Tuple

from ..core.domain_objects import DirectoryEntry
from ..core.fingerprint import fingerprint_entry
from ..storage.base import DirectoryLister


async def list_fingerprinted(lister: DirectoryLister) -> Tuple[List[Tuple[DirectoryEntry, str]], bool]:
    """
    List the watched location(s) for display.

    Returns (entries with fingerprints, disconnected). A failing lister gives an
    empty list and disconnected=True instead of an error response.
    """
    try:
        entries = await lister.list_entries()
    except Exception as e:
        logging.warning(f"Listing for API request failed: {e}")
        return [], True

    result = []
    for entry in entries:
        try:
            result.append((entry, fingerprint_entry(entry)))
        except ValueError:
            continue
    return result, False


def safe_url(url_builder, entry: DirectoryEntry) -> Optional[str]:
    try:
        return url_builder.build(entry)
    except ValueError as e:
        logging.warning(f"Could not build URL for {entry.name}: {e}")
        return None
