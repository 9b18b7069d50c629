from __future__ import annotations

from typing import Dict
from urllib.parse import quote


def safe_filename(name: str) -> str:
    cleaned = "".join(c for c in name if c.isalnum() or c in (".", "_", "-", " ", "(", ")"))
    cleaned = cleaned.strip()
    return cleaned[:255] or "upload.pdf"


def attachment_header(filename: str) -> Dict[str, str]:
    name = safe_filename(filename)
    ascii_name = name.encode("ascii", "ignore").decode("ascii").strip() or "download"
    return {
        "Content-Disposition": f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(name)}"
    }
