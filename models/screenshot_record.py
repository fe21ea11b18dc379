from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ScreenshotRecord:
    """In-memory representation of a row in the history table.

    Attributes:
        id: Primary key (None until the record has been persisted).
        timestamp: Unix timestamp (seconds) when the screenshot was processed.
        text: Transcript recognized from the image.
        answer: Generated answer, or the fallback text when generation failed.
        title: Optional short title returned alongside the answer.
        image_path: Path of the stored original image; empty when not stored on disk.
        thumbnail: Inline `data:image/png;base64,...` thumbnail; empty when unavailable.
    """

    id: Optional[int]
    timestamp: float
    text: str
    answer: str
    title: str = ""
    image_path: str = ""
    thumbnail: str = ""

    @property
    def iso_timestamp(self) -> str:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc).isoformat()

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON-friendly shape viewers expect."""
        return {
            "id": self.id,
            "timestamp": self.iso_timestamp,
            "image_path": self.image_path,
            "thumbnail": self.thumbnail,
            "text": self.text,
            "answer": self.answer,
            "title": self.title,
        }
