"""Internal content ingestion service layer."""

from datetime import UTC, datetime
import logging
from uuid import UUID

from app.repositories.base import ResourceStore
from app.repositories.records import ContentRecord
from app.schemas.content import Content, UpsertContentRequest

logger = logging.getLogger(__name__)


class ContentIngestionService:
    def __init__(self, contents: ResourceStore) -> None:
        self._contents = contents

    def upsert(self, *, content_id: UUID, payload: UpsertContentRequest) -> tuple[Content, bool]:
        """Insert or refresh a content record; returns ``(content, created)``."""
        now = datetime.now(UTC)
        existing = self._contents.get_content(content_id)
        if existing is None:
            record = ContentRecord(
                id=content_id,
                title=payload.title,
                created_at=now,
                updated_at=now,
                channel_id=payload.channel_id,
                channel_name=payload.channel_name,
                video_url=payload.video_url,
                published_at=payload.published_at,
            )
            created = True
        else:
            record = existing
            if record.channel_id != payload.channel_id:
                # The cached hash was computed for the old channel.
                record.validation_hash = None
            record.title = payload.title
            record.channel_id = payload.channel_id
            record.channel_name = payload.channel_name
            record.video_url = payload.video_url
            record.published_at = payload.published_at
            record.updated_at = now
            created = False

        self._contents.save_content(record)
        logger.info("content.upserted content_id=%s created=%s", content_id, created)
        return to_content(record), created


def to_content(record: ContentRecord) -> Content:
    return Content(
        id=record.id,
        title=record.title,
        channel_id=record.channel_id,
        channel_name=record.channel_name,
        video_url=record.video_url,
        validation_hash=record.validation_hash,
        published_at=record.published_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )
