"""AttachmentStore — hero images linked to content rows."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete

from cookshare.models.content import HERO_DISPLAY_TYPE, Attachment, ContentAttachment

from .dialect import insert_rows, upsert_rows
from .types import HeroImage

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def hero_from_row(row: Mapping[str, Any]) -> HeroImage | None:
    """Hero columns added by ``with_hero_attachment``, as a ``HeroImage``."""
    if row["hero_attachment_id"] is None:
        return None
    return HeroImage(attachment_id=row["hero_attachment_id"], uri=row["hero_attachment_uri"])


def coerce_hero(value: HeroImage | Mapping[str, Any] | None) -> HeroImage | None:
    if value is None or isinstance(value, HeroImage):
        return value
    return HeroImage(attachment_id=value["attachment_id"], uri=value["uri"])


class AttachmentStore:
    """Keeps at most one hero attachment per content row."""

    def __init__(self, dialect: str) -> None:
        self._dialect = dialect

    async def clear_heroes(self, session: AsyncSession, content_ids: Sequence[str]) -> None:
        if not content_ids:
            return
        await session.execute(
            delete(ContentAttachment).where(
                ContentAttachment.content_id.in_(list(content_ids)),  # type: ignore[attr-defined]
                ContentAttachment.display_type == HERO_DISPLAY_TYPE,  # type: ignore[arg-type]
            )
        )

    async def set_heroes(
        self,
        session: AsyncSession,
        user_id: str | None,
        heroes: Mapping[str, HeroImage | Mapping[str, Any] | None],
    ) -> None:
        """Replace the hero of each content id; ``None`` removes it."""
        if not heroes:
            return
        await self.clear_heroes(session, list(heroes))

        linked = {cid: coerce_hero(hero) for cid, hero in heroes.items()}
        linked = {cid: hero for cid, hero in linked.items() if hero is not None}
        if not linked:
            return

        attachments = [
            Attachment(
                attachment_id=hero.attachment_id, uri=hero.uri, created_by=user_id
            ).model_dump()
            for hero in linked.values()
        ]
        await upsert_rows(
            session,
            self._dialect,
            Attachment,
            attachments,
            ["attachment_id"],
            update_keys=["uri"],
        )
        await insert_rows(
            session,
            ContentAttachment,
            [
                ContentAttachment(
                    content_id=cid,
                    attachment_id=hero.attachment_id,
                    display_type=HERO_DISPLAY_TYPE,
                ).model_dump()
                for cid, hero in linked.items()
            ],
        )
        logger.debug("Set %d hero attachments", len(linked))
