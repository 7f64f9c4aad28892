"""Batch (re)generation of thumbnails for records already in the database."""
import logging
from typing import Callable, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession

from upload_behaviors.behaviors import ImageUploadBehavior
from upload_behaviors.core.exceptions import ImageProcessingException, StorageException

logger = logging.getLogger(__name__)


async def regenerate_thumbnails(
    db: AsyncSession,
    model: type,
    attribute: str,
    force: bool = False,
    batch_size: int = 100,
    progress: Optional[Callable[[object, str], None]] = None
) -> Dict[str, int]:
    """
    Create missing thumbnails for every record of ``model``.
    
    Args:
        db: Database session
        model: Mapped model class with an image behavior on ``attribute``
        attribute: Image attribute name
        force: Delete existing thumbnails first
        batch_size: Records loaded per query
        progress: Called with ``(record, outcome)`` after each record
        
    Returns:
        Counts of ``total``, ``generated``, ``skipped`` and ``errors``
        
    Raises:
        MissingBehaviorException: If ``attribute`` has no image behavior
    """
    behavior = ImageUploadBehavior.get_instance(model, attribute)
    column = getattr(model, attribute)
    stats = {"total": 0, "generated": 0, "skipped": 0, "errors": 0}
    
    stats["total"] = (
        await db.execute(
            select(func.count()).select_from(model).where(column.isnot(None), column != "")
        )
    ).scalar_one()
    
    order_by = sa_inspect(model).primary_key
    offset = 0
    while True:
        result = await db.execute(
            select(model)
            .where(column.isnot(None), column != "")
            .order_by(*order_by)
            .offset(offset)
            .limit(batch_size)
        )
        records = list(result.scalars().all())
        if not records:
            break
        
        for record in records:
            outcome = _regenerate_one(behavior, record, force)
            stats[outcome] += 1
            if progress:
                progress(record, outcome)
        
        offset += batch_size
    
    logger.info(
        f"Thumbnails for {model.__name__}.{attribute}: "
        f"{stats['generated']} generated, {stats['skipped']} skipped, {stats['errors']} errors"
    )
    return stats


def _regenerate_one(behavior: ImageUploadBehavior, record, force: bool) -> str:
    try:
        if force:
            for profile in behavior.thumbs:
                path = behavior.resolve_thumb_path(record, profile)
                behavior.storage.delete_file(behavior.storage.absolute(path))
        
        created = behavior.create_thumbs(record)
    except (ImageProcessingException, StorageException) as e:
        logger.error(f"Could not create thumbnails for {record!r}: {e.message}")
        return "errors"
    
    return "generated" if created else "skipped"
