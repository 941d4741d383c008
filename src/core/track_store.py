"""
Track Store
JSON persistence of the operator's track list
"""

import json
import os
from pathlib import Path
from typing import Union

from config.constants import DEFAULT_TRACKS_PATH
from core.models import EventKind, TrackedCollection, TrackedCollections
from utils.logger import get_logger
from utils.exceptions import PersistenceError


logger = get_logger(__name__)


class JsonTrackStore:
    """
    File format:
        {"collections": {"<symbol>": {"max_price": 2, "min_rarity": "Epic"}},
         "sales_collections": {...}}

    A missing file is an empty track list. Writes replace the whole file.
    """

    def __init__(self, path: Union[str, Path] = DEFAULT_TRACKS_PATH):
        self.path = Path(path)

    def load(self) -> TrackedCollections:
        """
        Raises:
            PersistenceError: file unreadable or not a valid track list
        """
        if not self.path.exists():
            return TrackedCollections()

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return TrackedCollections.from_json(data)
        except (OSError, ValueError, AttributeError) as e:
            raise PersistenceError(
                f"Track list unreadable: {e}",
                path=str(self.path),
                error_code='TRACKS_UNREADABLE',
                original_error=e
            )

    def save(self, tracks: TrackedCollections) -> None:
        """
        Raises:
            PersistenceError: file could not be written
        """
        temp_file = Path(f"{self.path}.tmp")
        try:
            if self.path.parent and not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(tracks.to_json(), f, indent=2)
            os.replace(temp_file, self.path)
        except OSError as e:
            raise PersistenceError(
                f"Track list not saved: {e}",
                path=str(self.path),
                error_code='TRACKS_UNWRITABLE',
                original_error=e
            )
        logger.debug(f"Saved {len(tracks.tasks())} tracks to {self.path}")

    def add(self, track: TrackedCollection) -> TrackedCollections:
        tracks = self.load()
        tracks.upsert(track)
        self.save(tracks)
        return tracks

    def remove(self, symbol: str, kind: EventKind) -> bool:
        """Returns False when the track did not exist (nothing written)"""
        tracks = self.load()
        if not tracks.remove(symbol, kind):
            return False
        self.save(tracks)
        return True
