"""
Release registry: version -> artifact metadata plus the advertised ``latest``.

Versions are mutable-by-republish slots: publishing an existing version
replaces its record in place, and every publish becomes ``latest``
immediately (there is no draft state).
"""

import logging
from typing import List, Optional, Tuple

from update_panel.errors import NotFound
from update_panel.release_models import ReleaseModel, RegistryModel, TrashEntry, utcnow
from update_panel.store import Store
from update_panel.versioning import normalize_version, version_key

logger = logging.getLogger(__name__)


class ReleaseRegistry:
    def __init__(self, store: Store):
        self.store = store

    async def load(self) -> RegistryModel:
        return await self.store.load_registry()

    async def publish(self, version: str, filename: str, notes: str = "") -> Tuple[ReleaseModel, bool]:
        """Upsert a release and make it ``latest``.

        Returns the release and whether an existing record was replaced.
        """
        version = normalize_version(version)
        registry = await self.store.load_registry()

        release = registry.find(version)
        replaced = release is not None
        if release is None:
            release = ReleaseModel(version=version, filename=filename, notes=notes or "")
            registry.items.append(release)
        else:
            release.filename = filename
            release.notes = notes or ""
            release.created_at = utcnow()

        registry.latest = version
        await self.store.save_registry(registry)

        logger.info(f"Published release {version} ({'replaced' if replaced else 'created'})")
        return release, replaced

    async def revert(self, version: str) -> ReleaseModel:
        """Point ``latest`` back at an already published version."""
        version = normalize_version(version)
        registry = await self.store.load_registry()

        release = registry.find(version)
        if release is None:
            raise NotFound(f"Release {version} not found")

        registry.latest = version
        await self.store.save_registry(registry)
        logger.info(f"Reverted latest to {version}")
        return release

    async def delete(self, version: str) -> ReleaseModel:
        """Remove a release and archive it to trash.

        When the removed release was ``latest``, the remaining release with
        the newest ``createdAt`` takes over (ties go to the highest version),
        or ``latest`` becomes None when nothing is left.
        """
        version = normalize_version(version)
        registry = await self.store.load_registry()

        release = registry.find(version)
        if release is None:
            raise NotFound(f"Release {version} not found")

        registry.items = [item for item in registry.items if item.version != version]
        if registry.latest == version or registry.find(registry.latest or "") is None:
            registry.latest = _most_recent(registry.items)

        await self.store.save_registry(registry)
        await self.store.add_trash(
            TrashEntry(version=release.version, filename=release.filename, notes=release.notes)
        )
        logger.info(f"Deleted release {version}, latest is now {registry.latest}")
        return release

    async def get(self, version: str) -> ReleaseModel:
        version = normalize_version(version)
        release = (await self.store.load_registry()).find(version)
        if release is None:
            raise NotFound(f"Release {version} not found")
        return release

    async def latest_release(self) -> Optional[ReleaseModel]:
        registry = await self.store.load_registry()
        if registry.latest is None:
            return None
        return registry.find(registry.latest)

    async def list_releases(self, order: str = "version") -> List[ReleaseModel]:
        """``version``: numeric-aware ascending. ``created``: newest first."""
        items = (await self.store.load_registry()).items
        if order == "created":
            return sorted(items, key=lambda r: r.created_at, reverse=True)
        return sorted(items, key=lambda r: version_key(r.version))


def _most_recent(items: List[ReleaseModel]) -> Optional[str]:
    if not items:
        return None
    newest = max(items, key=lambda r: (r.created_at, version_key(r.version)))
    return newest.version
