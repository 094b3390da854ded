"""Temp file scope for a single export."""

import logging
import shutil
import tempfile
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)


class ExportWorkspace:
    """Owns every temp file one export creates.

    Files get UUID-based names inside a private directory, so concurrent
    exports never share paths. ``cleanup`` removes all of them and is safe
    to call more than once.
    """

    def __init__(self, base_dir: str | Path | None = None, prefix: str = "angle_export_"):
        if base_dir is not None:
            Path(base_dir).mkdir(parents=True, exist_ok=True)
        self.root = Path(tempfile.mkdtemp(prefix=prefix, dir=base_dir))
        self.files: list[Path] = []

    def __enter__(self) -> "ExportWorkspace":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def new_file(self, stem: str, suffix: str = "", subdir: str | None = None) -> Path:
        """Reserve a unique path and register it for cleanup."""
        directory = self.root / subdir if subdir else self.root
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{stem}-{uuid.uuid4()}{suffix}"
        self.files.append(path)
        return path

    def write_bytes(self, stem: str, data: bytes, suffix: str = "", subdir: str | None = None) -> Path:
        path = self.new_file(stem, suffix, subdir)
        path.write_bytes(data)
        return path

    def cleanup(self) -> None:
        for path in self.files:
            try:
                if path.exists():
                    path.unlink()
                    logger.debug("Cleaned up temp file: %s", path)
            except OSError as e:
                logger.error("Error cleaning up file %s: %s", path, e)
        self.files.clear()
        shutil.rmtree(self.root, ignore_errors=True)
