"""Local filesystem storage for uploaded and premade card artwork."""
import logging
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO

from app.errors import ArtworkDeleteFailure

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg"}

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
}


def content_type_for(path: str) -> str:
    """Guess an image content type from the file extension."""
    return CONTENT_TYPES.get(Path(path).suffix.lower(), "application/octet-stream")


class LocalArtworkStore:
    """Stores custom art uploads and serves premade art from disk."""

    def __init__(self, custom_dir: Path, premade_dir: Path):
        self.custom_dir = Path(custom_dir)
        self.premade_dir = Path(premade_dir)
        self.custom_dir.mkdir(parents=True, exist_ok=True)
        self.premade_dir.mkdir(parents=True, exist_ok=True)

    def save(self, stream: BinaryIO, filename: str) -> str:
        """Save an uploaded file under a unique name and return its path."""
        safe_name = Path(filename).name or "artwork"
        file_path = self.custom_dir / f"{uuid.uuid4()}_{safe_name}"

        with open(file_path, "wb") as output:
            shutil.copyfileobj(stream, output)

        logger.info(f"Saved custom art to {file_path}")
        return str(file_path)

    def resolve(self, path: str) -> Path:
        """Locate stored art, falling back to the premade directory."""
        candidate = Path(path)
        if candidate.is_file():
            return candidate

        premade = self.premade_dir / path
        if premade.is_file():
            return premade

        raise FileNotFoundError(f"Art file not found: {path}")

    def delete(self, path: str) -> None:
        """Delete an art file. Deleting a missing file is not an error.

        Raises:
            ArtworkDeleteFailure: if the file exists but cannot be removed
        """
        file_path = Path(path)
        try:
            file_path.unlink(missing_ok=True)
        except OSError as e:
            raise ArtworkDeleteFailure(f"Could not delete art file {file_path}: {e}") from e
        logger.info(f"Deleted art file {file_path}")

    def premade_art_ids(self) -> list[str]:
        """File names available in the premade art directory."""
        if not self.premade_dir.is_dir():
            return []
        return sorted(p.name for p in self.premade_dir.iterdir() if p.is_file())
