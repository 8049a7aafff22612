"""
Upload handling: validate, store the artifact, publish, notify.
"""

import asyncio
import logging
from typing import BinaryIO, Optional, Tuple

from update_panel.artifacts import ArtifactStorage
from update_panel.errors import InvalidInput
from update_panel.notifier import WebhookNotifier
from update_panel.registry import ReleaseRegistry
from update_panel.release_models import ReleaseModel
from update_panel.versioning import normalize_version

logger = logging.getLogger(__name__)


class UploadService:
    def __init__(self, registry: ReleaseRegistry, artifacts: ArtifactStorage, notifier: WebhookNotifier):
        self.registry = registry
        self.artifacts = artifacts
        self.notifier = notifier

    async def handle_upload(
        self,
        version: Optional[str],
        notes: Optional[str],
        upload_name: Optional[str],
        stream: Optional[BinaryIO],
    ) -> Tuple[ReleaseModel, bool]:
        """Store an uploaded ZIP and publish it as the latest release.

        The registry is only updated once the artifact is fully in place.
        """
        if not version or not version.strip():
            raise InvalidInput("Version is required")
        if stream is None or not upload_name:
            raise InvalidInput("A ZIP file is required")
        if not upload_name.lower().endswith(".zip"):
            raise InvalidInput("Only .zip archives are accepted")

        version = normalize_version(version)
        filename = await asyncio.to_thread(self.artifacts.save, version, stream)
        release, replaced = await self.registry.publish(version, filename, notes or "")

        self.notifier.dispatch(self.notifier.notify_release(release))
        return release, replaced
