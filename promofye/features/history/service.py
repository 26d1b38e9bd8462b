"""
promofye/features/history/service.py

Generated image history, scoped to the owning user.

Titles are numbered per image type ("Thumbnail #3") from the user's
existing count of that type.
"""

from typing import List, Optional, Sequence
from uuid import uuid4

from sqlalchemy import select, insert, delete, func

from promofye.core.clock import ensure_utc, utcnow
from promofye.core.database import get_db_session, generated_images
from promofye.core.errors import NotFoundError, ValidationError
from promofye.core.logging import log_event
from promofye.models.generated_image import GeneratedImage
from promofye.models.image import ImagePart

TITLE_PREFIXES = {
    "thumbnail": "Thumbnail",
    "product": "Photoshoot",
    "reimagine": "Reimagined",
}


def _row_to_item(row) -> GeneratedImage:
    return GeneratedImage(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        prompt=row.prompt,
        image_url=row.image_url,
        image_type=row.image_type,
        metadata=row.metadata or {},
        created_at=ensure_utc(row.created_at),
    )


def _build_metadata(image_type: str, assets: Sequence[ImagePart]) -> dict:
    dumped = [asset.model_dump() for asset in assets]
    if image_type == "thumbnail":
        return {"assets": dumped}
    return {"asset": dumped[0]} if dumped else {}


def add_history_item(
    user_id: str,
    image_type: str,
    image_data_url: str,
    prompt: Optional[str] = None,
    assets: Optional[Sequence[ImagePart]] = None,
) -> GeneratedImage:
    """
    Save a generated image to the user's history.

    Args:
        user_id: Owner
        image_type: thumbnail | product | reimagine
        image_data_url: The image as a data: URL
        prompt: Prompt the user typed
        assets: Input images (all of them for thumbnails, the first otherwise)
    """
    if image_type not in TITLE_PREFIXES:
        raise ValidationError(f"Unknown image type: {image_type}")

    item_id = str(uuid4())
    with get_db_session() as session:
        existing = session.execute(
            select(func.count())
            .select_from(generated_images)
            .where(generated_images.c.user_id == user_id)
            .where(generated_images.c.image_type == image_type)
        ).scalar() or 0

        session.execute(
            insert(generated_images).values(
                id=item_id,
                user_id=user_id,
                title=f"{TITLE_PREFIXES[image_type]} #{existing + 1}",
                prompt=prompt,
                image_url=image_data_url,
                image_type=image_type,
                metadata=_build_metadata(image_type, assets or []),
                created_at=utcnow(),
            )
        )

    log_event(
        "info",
        "history.saved",
        user_id=user_id,
        event_type="history",
        extra={"image_type": image_type, "item_id": item_id},
    )
    return get_history_item(user_id, item_id)


def list_history(user_id: str, image_type: Optional[str] = None) -> List[GeneratedImage]:
    """Newest first, optionally filtered by type."""
    if image_type and image_type not in TITLE_PREFIXES:
        raise ValidationError(f"Unknown image type: {image_type}")

    query = select(generated_images).where(generated_images.c.user_id == user_id)
    if image_type:
        query = query.where(generated_images.c.image_type == image_type)

    with get_db_session() as session:
        rows = session.execute(query.order_by(generated_images.c.created_at.desc())).all()
        return [_row_to_item(row) for row in rows]


def get_history_item(user_id: str, item_id: str) -> GeneratedImage:
    with get_db_session() as session:
        row = session.execute(
            select(generated_images)
            .where(generated_images.c.id == item_id)
            .where(generated_images.c.user_id == user_id)
        ).first()
    if not row:
        raise NotFoundError(f"History item {item_id} not found")
    return _row_to_item(row)


def delete_history_item(user_id: str, item_id: str) -> None:
    with get_db_session() as session:
        result = session.execute(
            delete(generated_images)
            .where(generated_images.c.id == item_id)
            .where(generated_images.c.user_id == user_id)
        )
        if result.rowcount == 0:
            raise NotFoundError(f"History item {item_id} not found")

    log_event("info", "history.deleted", user_id=user_id, event_type="history", extra={"item_id": item_id})
