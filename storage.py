"""
Media storage

Moves staged uploads into the public uploads directory and probes video
duration. Files are served by the /static mount in main.py.
"""

import json
import logging
import os
import shutil
import subprocess
from typing import Optional

from bson import ObjectId

logger = logging.getLogger(__name__)

UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(os.getcwd(), "uploads"))
PUBLIC_PREFIX = "/static"
PROBE_TIMEOUT = float(os.getenv("PROBE_TIMEOUT", "30"))

KINDS = {
    "video": "videos",
    "image": "thumbnails",
}

for _sub in KINDS.values():
    os.makedirs(os.path.join(UPLOAD_DIR, _sub), exist_ok=True)


class UploadError(Exception):
    """Raised when a staged file cannot be persisted."""


def probe_duration(path: str) -> float:
    """Return the media duration in seconds, 0.0 when ffprobe can't tell."""
    try:
        result = subprocess.run(
            [
                "ffprobe", "-v", "error", "-show_entries", "format=duration",
                "-print_format", "json", path,
            ],
            capture_output=True, text=True, timeout=PROBE_TIMEOUT,
        )
    except FileNotFoundError:
        logger.warning("ffprobe not available, duration unknown for %s", path)
        return 0.0
    except subprocess.TimeoutExpired:
        logger.warning("ffprobe timed out after %ss on %s", PROBE_TIMEOUT, path)
        return 0.0

    if result.returncode != 0:
        logger.warning("ffprobe failed on %s: %s", path, result.stderr.strip()[:200])
        return 0.0
    try:
        data = json.loads(result.stdout or "{}")
        return float(data.get("format", {}).get("duration", 0) or 0)
    except (ValueError, TypeError):
        return 0.0


def upload_file(local_path: str, resource_type: str) -> dict:
    """
    Persist a staged file and return its public URL plus derived metadata.
    - resource_type is "video" or "image"
    - raises UploadError when the file cannot be stored
    """
    if resource_type not in KINDS:
        raise ValueError(f"Unknown resource type: {resource_type}")

    duration = probe_duration(local_path) if resource_type == "video" else 0.0

    sub = KINDS[resource_type]
    ext = os.path.splitext(local_path)[1]
    name = f"{ObjectId()}{ext}"
    target_dir = os.path.join(UPLOAD_DIR, sub)
    try:
        os.makedirs(target_dir, exist_ok=True)
        shutil.copyfile(local_path, os.path.join(target_dir, name))
    except OSError as e:
        raise UploadError(f"Could not store {os.path.basename(local_path)}: {e}") from e

    logger.info("Stored %s as %s/%s", resource_type, sub, name)
    return {"url": f"{PUBLIC_PREFIX}/{sub}/{name}", "duration": duration}


def delete_file(url: Optional[str]) -> None:
    """Remove a previously stored file; unknown or missing files are ignored."""
    if not url or not url.startswith(PUBLIC_PREFIX + "/"):
        return
    relative = url[len(PUBLIC_PREFIX) + 1:]
    path = os.path.join(UPLOAD_DIR, *relative.split("/"))
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
