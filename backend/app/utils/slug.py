"""URL slug helpers."""

import re
import uuid
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

MAX_SLUG_LENGTH = 50
MAX_SUFFIX_ATTEMPTS = 1000

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def generate_slug(text: str) -> str:
    """Turn a title into a lowercase, hyphen-separated slug.

    Text without any ASCII letters or digits gets a short random slug.
    """
    slug = _NON_ALNUM.sub("-", text.lower()).strip("-")

    if len(slug) > MAX_SLUG_LENGTH:
        slug = slug[:MAX_SLUG_LENGTH].rstrip("-")

    if not slug:
        return uuid.uuid4().hex[:8]

    return slug


async def generate_unique_slug(
    db: AsyncSession,
    text: str,
    model: Any,
    exclude_id: Optional[int] = None,
) -> str:
    """Generate a slug not yet used by any row of ``model``.

    Collisions get ``-1``, ``-2``, ... appended to the base slug.

    Args:
        db: Database session
        text: Source text
        model: Mapped class with ``slug`` and ``id`` columns
        exclude_id: Row to ignore (the one being renamed)
    """
    base_slug = generate_slug(text)
    slug = base_slug

    for counter in range(1, MAX_SUFFIX_ATTEMPTS + 1):
        stmt = select(func.count()).select_from(model).where(model.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(model.id != exclude_id)

        result = await db.execute(stmt)
        if result.scalar_one() == 0:
            return slug

        slug = f"{base_slug}-{counter}"

    return uuid.uuid4().hex[:8]
