"""Catalog of playable tables and their platform compatibility.

Populated by external importers via ``upsert_table``; the core only reads
names and flags.
"""

from __future__ import annotations

import random
from typing import Iterable, Optional

from sqlalchemy import func, or_, select

from pingrind.db.database import DEFAULT_DATABASE_URL, get_session
from pingrind.db.models import CatalogTable
from pingrind.tracks import Platform

_PLATFORM_COLUMNS = {
    Platform.ATGAMES: CatalogTable.is_atgames,
    Platform.VR: CatalogTable.is_wg_vr,
    Platform.VPXS: CatalogTable.is_wg_vpxs,
}


def is_compatible(table: CatalogTable, platform: Platform) -> bool:
    return bool({
        Platform.ATGAMES: table.is_atgames,
        Platform.VR: table.is_wg_vr,
        Platform.VPXS: table.is_wg_vpxs,
    }[Platform(platform)])


async def upsert_table(
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    name: str,
    aliases: Optional[str] = None,
    is_atgames: bool = False,
    is_wg_vr: bool = False,
    is_wg_vpxs: bool = False,
    manufacturer: Optional[str] = None,
    year: Optional[int] = None,
    image_url: Optional[str] = None,
) -> CatalogTable:
    """Insert or update a table. Existing aliases/metadata survive a NULL update."""
    async with get_session(db_url) as s:
        row = await s.get(CatalogTable, name)
        if row is None:
            row = CatalogTable(name=name)
            s.add(row)
        row.is_atgames = is_atgames
        row.is_wg_vr = is_wg_vr
        row.is_wg_vpxs = is_wg_vpxs
        row.aliases = aliases if aliases is not None else row.aliases
        row.manufacturer = manufacturer if manufacturer is not None else row.manufacturer
        row.year = year if year is not None else row.year
        row.image_url = image_url if image_url is not None else row.image_url
        return row


async def get_table(*, db_url: str = DEFAULT_DATABASE_URL, name: str) -> Optional[CatalogTable]:
    """Find a table by name or alias, case-insensitively."""
    key = name.strip().lower()
    if not key:
        return None
    async with get_session(db_url) as s:
        result = await s.execute(
            select(CatalogTable).where(func.lower(CatalogTable.name) == key)
        )
        row = result.scalars().first()
        if row is not None:
            return row
        result = await s.execute(
            select(CatalogTable).where(CatalogTable.aliases.is_not(None))
        )
        for candidate in result.scalars().all():
            if key in (a.lower() for a in candidate.alias_list()):
                return candidate
        return None


async def search_tables(
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    query: str,
    platform: Optional[Platform] = None,
    limit: int = 25,
) -> list[CatalogTable]:
    """Substring search on name and aliases, for autocomplete."""
    pattern = f"%{query.strip()}%"
    async with get_session(db_url) as s:
        q = select(CatalogTable).where(
            or_(CatalogTable.name.ilike(pattern), CatalogTable.aliases.ilike(pattern))
        )
        if platform is not None:
            q = q.where(_PLATFORM_COLUMNS[Platform(platform)].is_(True))
        result = await s.execute(q.order_by(CatalogTable.name).limit(limit))
        return list(result.scalars().all())


async def compatible_tables(
    *, db_url: str = DEFAULT_DATABASE_URL, platform: Platform,
) -> list[CatalogTable]:
    async with get_session(db_url) as s:
        result = await s.execute(
            select(CatalogTable)
            .where(_PLATFORM_COLUMNS[Platform(platform)].is_(True))
            .order_by(CatalogTable.name)
        )
        return list(result.scalars().all())


async def random_compatible_table(
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    platform: Platform,
    exclude: Iterable[str] = (),
    rng: Optional[random.Random] = None,
) -> Optional[CatalogTable]:
    """Uniform choice among compatible tables not in ``exclude`` (case-insensitive)."""
    excluded = {n.strip().lower() for n in exclude}
    candidates = [
        t for t in await compatible_tables(db_url=db_url, platform=platform)
        if t.name.lower() not in excluded
    ]
    if not candidates:
        return None
    return (rng or random).choice(candidates)
