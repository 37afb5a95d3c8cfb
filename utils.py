import re
from pathlib import Path
from typing import Optional


def sanitize_label(label: str) -> str:
    """
    Label for storage object names: whitespace runs and path separators
    become underscores, leading dots are dropped.
    """
    raw = "" if label is None else str(label).strip()
    label = re.sub(r"[\s/\\]+", "_", raw)
    return label.lstrip(".")


def safe_png_filename(name: str) -> str:
    """
    Convert a full name into the card download filename.
    - Keeps word characters (any script), spaces and -
    - Collapses whitespace to underscores
    - Falls back to 'condolence-card.png'
    """
    return _safe_filename(name, "png")


def safe_pdf_filename(name: str) -> str:
    return _safe_filename(name, "pdf")


def _safe_filename(name: str, ext: str) -> str:
    raw = "" if name is None else str(name)
    safe = re.sub(r"[^\w -]+", "", raw).strip()
    safe = re.sub(r"\s+", "_", safe)
    if not safe:
        return f"condolence-card.{ext}"
    return f"condolence-{safe}.{ext}"


def file_extension(filename: Optional[str], default: str = "jpg") -> str:
    """Lowercase extension of an uploaded filename, without the dot."""
    suffix = Path(filename or "").suffix.lstrip(".").lower()
    return suffix or default


def storage_object_name(folder: str, label: str, ext: str, timestamp_ms: int) -> str:
    """Build '{folder}/{timestamp}_{label}.{ext}'."""
    return f"{folder}/{int(timestamp_ms)}_{sanitize_label(label)}.{ext}"
