"""User-scoped lookups of avatars, products and reference images."""

import uuid
from typing import Optional, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from ugcpipe.db.models import Avatar, Product, ReferenceImage
from ugcpipe.errors import ErrorKind, GenerationError

T = TypeVar("T", Avatar, Product, ReferenceImage)

_LABELS = {Avatar: "Avatar", Product: "Product", ReferenceImage: "Reference image"}


async def find_owned(
    session: AsyncSession,
    model: Type[T],
    user_id: str,
    item_id: Optional[uuid.UUID],
) -> Optional[T]:
    """Return the item if it exists and belongs to ``user_id``, else None."""
    if item_id is None:
        return None
    item = await session.get(model, item_id)
    if item is None or item.user_id != user_id:
        return None
    return item


async def require_owned(
    session: AsyncSession,
    model: Type[T],
    user_id: str,
    item_id: uuid.UUID,
) -> T:
    """Like ``find_owned`` but a miss is a NOT_FOUND denial."""
    item = await find_owned(session, model, user_id, item_id)
    if item is None:
        raise GenerationError(ErrorKind.NOT_FOUND, f"{_LABELS[model]} not found")
    return item


def image_url(item) -> str:
    if isinstance(item, Avatar):
        return item.reference_image_url
    return item.image_url
