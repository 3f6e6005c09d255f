"""Reference data about known hardware platforms."""

import re
from collections.abc import Iterable, Mapping
from datetime import date
from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field


class PlatformCategory(str, Enum):
    """Broad hardware family of a platform."""

    CONSOLE = "console"
    LEGACY_HANDHELD = "legacy-handheld"
    MODERN_HANDHELD = "modern-handheld"


class PlatformInfo(BaseModel):
    """One known platform with its aliases."""

    model_config = ConfigDict(frozen=True)

    names: tuple[str, ...] = Field(..., min_length=1, description="Name and aliases")
    release_date: date = Field(..., description="Historical release date")
    category: PlatformCategory = Field(default=PlatformCategory.CONSOLE)
    rank_order: int = Field(default=-1, description="Position in the preference list")

    @property
    def name(self) -> str:
        """Canonical name of the platform."""
        return self.names[0]


def _platform(names: tuple[str, ...], released: str, category=PlatformCategory.CONSOLE):
    return PlatformInfo(names=names, release_date=date.fromisoformat(released), category=category)


# Preference order: later entries rank higher when choosing which copy to keep.
KNOWN_PLATFORMS = (
    _platform(("Nintendo Game Boy", "Game Boy", "GB"), "1989-01-01", PlatformCategory.LEGACY_HANDHELD),
    _platform(("Sega Game Gear", "Game Gear"), "1991-01-01", PlatformCategory.LEGACY_HANDHELD),
    _platform(("Virtual Boy",), "1995-07-21", PlatformCategory.LEGACY_HANDHELD),
    _platform(("Nintendo Game Boy Color", "Game Boy Color", "GBC"), "1998-01-01", PlatformCategory.LEGACY_HANDHELD),
    _platform(("Atari 2600",), "1977-09-11"),
    _platform(("Atari 5200",), "1982-11-01"),
    _platform(("Sega SG-1000", "SG1000"), "1983-07-15"),
    _platform(("Nintendo Entertainment System", "NES", "Famicom", "Family Computer"), "1983-07-15"),
    _platform(("Master System", "Sega Mark III", "Sega Mark 3"), "1985-10-20"),
    _platform(
        ("Nintendo Family Computer Disk System", "Family Computer Disk System", "FDS", "Famicom Disk System"),
        "1986-02-21",
    ),
    _platform(("Atari 7800",), "1986-05-01"),
    _platform(("Sega Genesis", "Sega Mega Drive", "Sega Genesis/Megadrive"), "1988-10-29"),
    _platform(("Nintendo Game Boy Advance", "Game Boy Advance", "GBA"), "2001-01-01", PlatformCategory.LEGACY_HANDHELD),
    _platform(("Super Nintendo Entertainment System", "Super Famicom", "Nintendo SNES"), "1990-11-21"),
    _platform(("Sega CD", "Mega CD"), "1991-12-12"),
    _platform(("Sega Pico",), "1993-06-26"),
    _platform(("Satellaview", "Satella"), "1995-04-23"),
    _platform(("Atari Jaguar",), "1993-11-23"),
    _platform(("Sega 32X",), "1994-11-21"),
    _platform(("Sega Saturn",), "1994-11-22"),
    _platform(("Atari Jaguar CD",), "1995-09-21"),
    _platform(("Nintendo 64", "N64"), "1996-06-23"),
    _platform(("Sony PlayStation", "PSX"), "1994-12-03"),
    _platform(("Nintendo 64DD", "N64DD"), "1999-12-01"),
    _platform(("Nintendo DS", "DS", "NDS"), "2004-01-01", PlatformCategory.MODERN_HANDHELD),
    _platform(
        ("Sony Playstation Portable", "PlayStation Portable", "Sony PSP", "PSP", "Sony PSP Mini", "Sony PSP Minis"),
        "2005-01-01",
        PlatformCategory.MODERN_HANDHELD,
    ),
    _platform(("Sega Dreamcast",), "1998-11-27"),
    _platform(("Nintendo 3DS", "3DS"), "2011-02-26", PlatformCategory.MODERN_HANDHELD),
    _platform(("Sony Playstation 2", "PlayStation 2", "PS2"), "2000-03-04"),
    _platform(("Nintendo Gamecube", "Gamecube", "GC"), "2001-09-14"),
    _platform(("Microsoft Xbox",), "2001-11-15"),
    _platform(
        ("Sony PlayStation Vita", "PlayStation Vita", "PSV", "PS Vita"),
        "2012-01-01",
        PlatformCategory.MODERN_HANDHELD,
    ),
    _platform(("Nintendo Wii",), "2006-11-19"),
    _platform(("Microsoft Xbox 360", "Xbox 360", "X360"), "2005-11-22"),
    _platform(("Sony Playstation 3", "PlayStation 3", "PS3"), "2006-11-11"),
    _platform(("Nintendo Wii U", "Wii U"), "2012-11-18"),
    _platform(("Sony Playstation 4", "PlayStation 4", "PS4"), "2013-11-15"),
    _platform(("Microsoft Xbox One", "Xbox One", "Xbone", "Xbox One X"), "2013-11-22"),
    _platform(("Nintendo Switch",), "2017-03-03"),
    _platform(
        ("Microsoft Xbox Series X", "Microsoft Xbox Series S", "Xbox Series X", "Xbox Series S", "Xbox Series"),
        "2020-11-10",
    ),
    _platform(("Sony Playstation 5", "PlayStation 5", "PS5"), "2020-11-12"),
)


class PlatformDatabase:
    """
    Case-insensitive lookup of platform information by name.

    Every platform is reachable by each of its aliases, the alias with spaces
    removed, and each word of the alias. When two platforms share a key the
    later one in preference order wins.
    """

    WORD = re.compile(r"\b\S+\b")

    def __init__(self, platforms: Iterable[PlatformInfo] = KNOWN_PLATFORMS):
        ordered = tuple(
            platform.model_copy(update={"rank_order": index})
            for index, platform in enumerate(platforms)
        )
        index: dict[str, PlatformInfo] = {}
        for platform in ordered:
            for alias in platform.names:
                keys = {alias, alias.replace(" ", "")}
                keys.update(self.WORD.findall(alias))
                for key in keys:
                    index[key.casefold()] = platform

        self._platforms = ordered
        self._index: Mapping[str, PlatformInfo] = MappingProxyType(index)

    @property
    def platforms(self) -> tuple[PlatformInfo, ...]:
        """All platforms in preference order."""
        return self._platforms

    def lookup(self, name: str | None) -> PlatformInfo | None:
        """Platform information for a name or alias, if known."""
        if not name:
            return None
        return self._index.get(name.casefold())

    def rank_order(self, name: str | None) -> int:
        """Preference rank of a platform, -1 when unknown."""
        info = self.lookup(name)
        return info.rank_order if info else -1

    def category(self, name: str | None) -> PlatformCategory:
        """Category of a platform, consoles when unknown."""
        info = self.lookup(name)
        return info.category if info else PlatformCategory.CONSOLE

    def release_date(self, name: str | None) -> date:
        """Release date of a platform, date.min when unknown."""
        info = self.lookup(name)
        return info.release_date if info else date.min

    def best_rank(self, names: Iterable[str]) -> int:
        """Highest preference rank among several platforms, -1 if none are known."""
        return max((self.rank_order(name) for name in names), default=-1)

    def categories(self, names: Iterable[str]) -> set[PlatformCategory]:
        """Categories of several platforms."""
        return {self.category(name) for name in names}
