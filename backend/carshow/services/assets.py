"""Lifecycle of stored images referenced by an ``image_url`` column.

Replacing an asset always runs in this order: the new file is written, the
owner row is committed pointing at it, and only then is the previous file
removed. A crash at any point leaves the row referencing a file that exists;
the worst case is one orphaned old file.
"""
from __future__ import annotations

import logging
from typing import Protocol

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carshow.services.images import AssetClass, ImagePipeline

logger = logging.getLogger(__name__)


class AssetOwner(Protocol):
    image_url: str | None


class AssetManager:
    """Replace and delete owner-referenced images."""

    def __init__(self, pipeline: ImagePipeline) -> None:
        self.pipeline = pipeline

    async def stage(self, upload: UploadFile | None, asset_class: AssetClass) -> str:
        """Run the pipeline and return the URL of the new, not yet referenced file."""

        return await self.pipeline.store(upload, asset_class)

    def discard(self, url: str | None) -> None:
        """Best-effort removal of the file behind ``url``; errors are ignored."""

        path = self.pipeline.path_for_url(url)
        if path is None:
            if url:
                logger.debug("Not removing %s: outside the upload root", url)
            return
        try:
            path.unlink()
            logger.info("Removed stored image %s", url)
        except FileNotFoundError:
            logger.debug("Stored image %s already gone", url)
        except OSError as exc:
            logger.warning("Could not remove stored image %s: %s", url, exc)

    async def commit_replacement(self, session: AsyncSession, owner: AssetOwner, new_url: str) -> None:
        """Point ``owner`` at ``new_url``, commit, then drop the previous file.

        Any other pending changes on ``session`` are committed together with
        the new reference. On failure the session is rolled back, the new
        file removed, and the original error re-raised.
        """

        old_url = owner.image_url
        owner.image_url = new_url
        try:
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            self.discard(new_url)
            raise
        if old_url and old_url != new_url:
            self.discard(old_url)

    async def replace(
        self,
        session: AsyncSession,
        owner: AssetOwner,
        upload: UploadFile | None,
        asset_class: AssetClass,
    ) -> str:
        new_url = await self.stage(upload, asset_class)
        await self.commit_replacement(session, owner, new_url)
        return new_url

    async def delete(self, session: AsyncSession, owner: AssetOwner) -> None:
        """Clear the reference (authoritative), then remove the file (advisory)."""

        old_url = owner.image_url
        if old_url is None:
            return
        owner.image_url = None
        await session.commit()
        self.discard(old_url)
