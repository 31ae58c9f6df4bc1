"""Per-playlist download ledger stored as `.downloaded` in the playlist folder"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from spotivy.core.models import LedgerCorruptError, LedgerWriteError

logger = logging.getLogger(__name__)

LEDGER_FILE = ".downloaded"


@dataclass
class Ledger:
    """Tracks that were downloaded for one playlist.

    `ids` is the source of truth; `names` only makes the file readable.
    """
    ids: list[str] = field(default_factory=list)
    names: dict[str, str] = field(default_factory=dict)

    def __contains__(self, track_id: str) -> bool:
        return track_id in self.names

    def __len__(self) -> int:
        return len(self.ids)

    def add(self, track_id: str, label: str) -> None:
        if track_id in self:
            return
        self.ids.append(track_id)
        self.names[track_id] = label

    def to_dict(self) -> dict:
        return {"ids": list(self.ids), "names": dict(self.names)}

    @classmethod
    def from_dict(cls, data: object) -> "Ledger":
        if not isinstance(data, dict):
            raise LedgerCorruptError("Ledger root is not an object")
        ids = data.get("ids")
        names = data.get("names")
        if not isinstance(ids, list) or not isinstance(names, dict):
            raise LedgerCorruptError("Ledger needs an 'ids' list and a 'names' object")

        ledger = cls()
        for track_id in ids:
            if not isinstance(track_id, str):
                raise LedgerCorruptError(f"Invalid track id in ledger: {track_id!r}")
            ledger.add(track_id, str(names.get(track_id, track_id)))
        if set(names) - set(ledger.ids):
            logger.warning(f"Ignoring {len(set(names) - set(ledger.ids))} ledger names without ids")
        return ledger


class LedgerStore:
    def __init__(self, output_root: Path):
        self._root = Path(output_root)

    def path_for(self, playlist_dir: str) -> Path:
        return self._root / playlist_dir / LEDGER_FILE

    def load(self, playlist_dir: str) -> Ledger:
        path = self.path_for(playlist_dir)
        if not path.exists():
            logger.debug(f"Creating ledger at {path}")
            self.save(Ledger(), playlist_dir)

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise LedgerCorruptError(f"Ledger {path} is not valid JSON: {e}") from e
        except OSError as e:
            raise LedgerCorruptError(f"Ledger {path} is unreadable: {e}") from e

        try:
            ledger = Ledger.from_dict(data)
        except LedgerCorruptError as e:
            raise LedgerCorruptError(f"Ledger {path}: {e}") from e
        logger.debug(f"Loaded {len(ledger)} completed tracks from {path}")
        return ledger

    def save(self, ledger: Ledger, playlist_dir: str) -> None:
        path = self.path_for(playlist_dir)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".downloaded_", suffix=".tmp")
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(ledger.to_dict(), f, indent=2, ensure_ascii=False)
                os.replace(temp_path, path)
            except Exception:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                raise
        except OSError as e:
            raise LedgerWriteError(f"Ledger save failed for {path}: {e}") from e
