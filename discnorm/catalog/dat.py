"""
Redump/No-Intro style DAT catalog.

Loads the XML catalog into Dat/Game/Rom objects and indexes every rom by its
SHA1. The index keeps all roms that share a hash.
"""

import logging
import tempfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from lxml import etree

from discnorm.errors import ParsingError

logger = logging.getLogger(__name__)


class DatParsingError(ParsingError):
    """DAT catalog parsing errors."""
    pass


@dataclass(frozen=True)
class Rom:
    """A single file of a catalog game."""
    name: str
    size: int
    sha1hex: str
    game: 'Game' = field(repr=False, compare=False, hash=False)
    crc: Optional[str] = None
    md5: Optional[str] = None


@dataclass(eq=False)
class Game:
    """A catalog entry: one disc and its files."""
    name: str
    dat: 'Dat' = field(repr=False)
    roms: List[Rom] = field(default_factory=list, repr=False)
    description: Optional[str] = None
    category: Optional[str] = None

    def bin_roms(self) -> List[Rom]:
        return [rom for rom in self.roms if rom.name.lower().endswith('.bin')]

    def combined_bin_size(self) -> int:
        """Summed size of the .bin roms, or of all roms when there are none."""
        roms = self.bin_roms() or self.roms
        return sum(rom.size for rom in roms)


@dataclass(eq=False)
class Dat:
    """Loaded catalog with a SHA1 index over all roms."""
    system: str
    games: List[Game] = field(default_factory=list)
    roms_by_sha1hex: Dict[str, List[Rom]] = field(default_factory=dict, repr=False)

    def add_game(self, game: Game) -> None:
        self.games.append(game)
        for rom in game.roms:
            self.roms_by_sha1hex.setdefault(rom.sha1hex, []).append(rom)

    def find_roms_by_sha1(self, sha1hex: str) -> List[Rom]:
        return self.roms_by_sha1hex.get(sha1hex.lower(), [])


def _required_attribute(element, name: str) -> str:
    value = element.get(name)
    if not value:
        raise DatParsingError(f"Found a <{element.tag}> without a {name} attribute")
    return value


def _child_text(element, tag: str) -> Optional[str]:
    child = element.find(tag)
    if child is None or child.text is None:
        return None
    return child.text.strip() or None


def load_dat(dat_path: Path) -> Dat:
    """
    Load a DAT XML file.

    Args:
        dat_path: Path to .dat/.xml file

    Returns:
        Dat with games in document order

    Raises:
        DatParsingError: On missing file, malformed XML, missing header name,
            missing required attributes, or a non-integer rom size
    """
    if not dat_path.is_file():
        raise DatParsingError(f"DAT file not found: {dat_path}")

    logger.info(f"Loading DAT file: {dat_path.name}")

    try:
        tree = etree.parse(str(dat_path))
    except etree.XMLSyntaxError as e:
        raise DatParsingError(f"Malformed DAT XML in {dat_path.name}: {e}")

    root = tree.getroot()
    if root.tag != 'datafile':
        raise DatParsingError(f"Expected <datafile> root element, found <{root.tag}>")

    header = root.find('header')
    system = _child_text(header, 'name') if header is not None else None
    if not system:
        raise DatParsingError("DAT header has no <name>")

    dat = Dat(system=system)

    for game_elem in root.findall('game'):
        game = Game(
            name=_required_attribute(game_elem, 'name'),
            dat=dat,
            description=_child_text(game_elem, 'description'),
            category=_child_text(game_elem, 'category')
        )

        for rom_elem in game_elem.findall('rom'):
            size_attr = _required_attribute(rom_elem, 'size')
            try:
                size = int(size_attr, 10)
            except ValueError:
                raise DatParsingError(f"<rom> has size attribute that is not an integer: {size_attr}")

            crc = rom_elem.get('crc')
            md5 = rom_elem.get('md5')
            game.roms.append(Rom(
                name=_required_attribute(rom_elem, 'name'),
                size=size,
                sha1hex=_required_attribute(rom_elem, 'sha1').lower(),
                game=game,
                crc=crc.lower() if crc else None,
                md5=md5.lower() if md5 else None
            ))

        dat.add_game(game)

    logger.info(f"Loaded {len(dat.games)} games for {dat.system}")
    return dat


def load_dat_from_path(dat_path: Path) -> Dat:
    """
    Load a DAT given either the XML file or a .zip containing it.

    Raises:
        DatParsingError: For unsupported extensions or a zip without a .dat
    """
    extension = dat_path.suffix.lower()

    if extension in ('.dat', '.xml'):
        return load_dat(dat_path)

    if extension != '.zip':
        raise DatParsingError(
            f"Unsupported file type: {extension}. Only .dat, .xml and .zip files are supported."
        )

    if not dat_path.is_file():
        raise DatParsingError(f"Zip file does not exist: {dat_path}")

    logger.info(f"Loading DAT from zip file: {dat_path.name}")

    try:
        with zipfile.ZipFile(dat_path) as archive:
            dat_members = sorted(
                name for name in archive.namelist()
                if name.lower().endswith('.dat')
            )
            if not dat_members:
                raise DatParsingError(f"No .dat files found in zip: {dat_path}")
            if len(dat_members) > 1:
                logger.warning(f"Multiple .dat files found in zip: {', '.join(dat_members)}")
                logger.warning(f"Using the first one: {dat_members[0]}")

            with tempfile.TemporaryDirectory(prefix='discnorm-dat-') as temp_dir:
                extracted = Path(archive.extract(dat_members[0], temp_dir))
                return load_dat(extracted)
    except zipfile.BadZipFile as e:
        raise DatParsingError(f"Invalid zip file {dat_path}: {e}")
