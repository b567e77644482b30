"""ZIP packaging of processed items."""

import zipfile
from collections.abc import Iterable
from io import BytesIO
from pathlib import PurePosixPath

from .common.schemas import ProcessedItem

ARCHIVE_MIME = "application/zip"


def archive_filename(width: int, height: int | None) -> str:
    return f"images_{width}x{height if height is not None else 'auto'}.zip"


def unique_names(filenames: Iterable[str]) -> list[str]:
    """Suffix repeated names with _2, _3, ... before the extension."""
    seen: set[str] = set()
    unique: list[str] = []
    for name in filenames:
        candidate = name
        counter = 1
        while candidate in seen:
            counter += 1
            path = PurePosixPath(name)
            candidate = f"{path.stem}_{counter}{path.suffix}"
        seen.add(candidate)
        unique.append(candidate)
    return unique


def build_archive(items: Iterable[ProcessedItem]) -> bytes:
    items = list(items)
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, item in zip(unique_names(item.filename for item in items), items):
            archive.writestr(name, item.data)
    return buffer.getvalue()
