"""Metadata sidecar (``<stem>.metadata.json``) written next to each verified CHD."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from discnorm.catalog.dat import Game
from discnorm.errors import ParsingError

logger = logging.getLogger(__name__)

METADATA_SUFFIX = '.metadata.json'
VALID_STATUSES = ('match', 'partial', 'none')


class MetadataError(ParsingError):
    """Invalid metadata sidecar."""
    pass


@dataclass
class FileMetadata:
    name: str
    size: int
    sha1hex: str
    crc: Optional[str] = None
    md5: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {'name': self.name, 'size': self.size, 'sha1hex': self.sha1hex}
        if self.crc is not None:
            data['crc'] = self.crc
        if self.md5 is not None:
            data['md5'] = self.md5
        return data


@dataclass
class GameMetadata:
    name: str
    files: List[FileMetadata] = field(default_factory=list)
    description: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def from_game(cls, game: Game) -> 'GameMetadata':
        return cls(
            name=game.name,
            files=[
                FileMetadata(rom.name, rom.size, rom.sha1hex, rom.crc, rom.md5)
                for rom in game.roms
            ],
            description=game.description,
            category=game.category
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {'name': self.name, 'files': [f.to_dict() for f in self.files]}
        if self.description is not None:
            data['description'] = self.description
        if self.category is not None:
            data['category'] = self.category
        return data


@dataclass
class MetadataFile:
    """Verification outcome for one CHD."""
    status: str = 'none'
    message: str = ''
    game: Optional[GameMetadata] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.game is not None:
            data['game'] = self.game.to_dict()
        data['message'] = self.message
        data['status'] = self.status
        data['timestamp'] = self.timestamp
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MetadataFile':
        """
        Build from parsed JSON, validating required fields.

        Raises:
            MetadataError: On a bad status or malformed game entry
        """
        if not isinstance(data, dict):
            raise MetadataError("Metadata must be a JSON object")

        status = data.get('status', 'none')
        if status not in VALID_STATUSES:
            raise MetadataError(f"Invalid metadata status: {status}")

        game = None
        game_data = data.get('game')
        if game_data is not None:
            try:
                game = GameMetadata(
                    name=game_data['name'],
                    files=[
                        FileMetadata(
                            name=f['name'],
                            size=int(f['size']),
                            sha1hex=f['sha1hex'],
                            crc=f.get('crc'),
                            md5=f.get('md5')
                        )
                        for f in game_data.get('files', [])
                    ],
                    description=game_data.get('description'),
                    category=game_data.get('category')
                )
            except (KeyError, TypeError, ValueError) as e:
                raise MetadataError(f"Malformed game entry in metadata: {e}")

        kwargs = {}
        if 'timestamp' in data:
            kwargs['timestamp'] = str(data['timestamp'])
        return cls(status=status, message=str(data.get('message', '')), game=game, **kwargs)


def metadata_path_for(chd_path: Path) -> Path:
    return chd_path.with_name(f"{chd_path.stem}{METADATA_SUFFIX}")


def read_metadata(path: Path) -> MetadataFile:
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except json.JSONDecodeError as e:
        raise MetadataError(f"Invalid JSON in {path.name}: {e}")
    return MetadataFile.from_dict(data)


def write_metadata(metadata: MetadataFile, path: Path) -> Path:
    if metadata.status not in VALID_STATUSES:
        raise MetadataError(f"Invalid metadata status: {metadata.status}")
    path.write_text(json.dumps(metadata.to_dict(), indent=2), encoding='utf-8')
    logger.debug(f"Wrote metadata {path.name} ({metadata.status})")
    return path
