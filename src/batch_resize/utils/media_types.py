from io import BytesIO

import magic

GENERIC_MIME = "application/octet-stream"


def is_generic(file_type: str | None) -> bool:
    return not file_type or file_type == GENERIC_MIME


def determine_mime(data: bytes | BytesIO, file_type: str | None = None) -> str:
    """Return ``file_type`` unless it is missing or generic, else sniff the bytes."""
    if not is_generic(file_type):
        return file_type.lower()  # type: ignore[union-attr]

    payload = data.getvalue() if isinstance(data, BytesIO) else data
    # Create a Magic object
    mime = magic.Magic(mime=True)

    # Determine the file type
    detected = mime.from_buffer(payload[:8192])
    return detected or GENERIC_MIME


def human_file_size(size: int) -> str:
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{value:.0f} {units[index]}" if index == 0 else f"{value:.1f} {units[index]}"
