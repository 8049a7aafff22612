#!/usr/bin/env python3
"""
Register an existing ZIP as a release through the configured store.
Safe to re-run (publishing the same version replaces its record).

Usage:
    python scripts/seed_release.py v1.0 path/to/bot.zip "Initial release"
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Allow imports of the update_panel package from backend/
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "backend"))

from update_panel.artifacts import ArtifactStorage
from update_panel.config import load_settings
from update_panel.registry import ReleaseRegistry
from update_panel.store import create_store
from update_panel.versioning import normalize_version


async def main(version: str, zip_path: Path, notes: str):
    settings = load_settings()
    store = create_store(settings)
    artifacts = ArtifactStorage(settings.upload_dir)
    registry = ReleaseRegistry(store)

    version = normalize_version(version)
    with zip_path.open("rb") as fh:
        filename = artifacts.save(version, fh)

    release, replaced = await registry.publish(version, filename, notes)
    print(f"{'Updated' if replaced else 'Inserted'} release {release.version} -> {filename}")

    latest = await registry.latest_release()
    if latest:
        print(f"Latest release: {latest.version}")
    else:
        print("WARNING: No latest release found!")

    await store.close()
    print("Done.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("version")
    parser.add_argument("zip_path", type=Path)
    parser.add_argument("notes", nargs="?", default="")
    args = parser.parse_args()
    asyncio.run(main(args.version, args.zip_path, args.notes))
