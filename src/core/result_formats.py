import os
from typing import Optional

from ..data.schemas import FileFormat

CONTENT_TYPES = {
    FileFormat.OBJ: "text/plain",
    FileFormat.STL: "application/sla",
    FileFormat.DRC: "application/octet-stream",
}


def parse_format(value) -> Optional[FileFormat]:
    """Map a raw selector to a FileFormat, or None if it is not one of them."""
    try:
        return FileFormat(value)
    except ValueError:
        return None


def result_filename(fmt: FileFormat) -> str:
    return f"sample.{fmt.value}"


def content_type(fmt: FileFormat) -> str:
    return CONTENT_TYPES[fmt]


def result_path(results_dir: str, fmt: FileFormat) -> str:
    return os.path.join(results_dir, result_filename(fmt))
