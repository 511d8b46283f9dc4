"""Store image API endpoints."""

from fastapi import APIRouter, HTTPException, Response, status
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from app.api.routes.responses import image_response, placeholder_response
from app.core.deps import CurrentUserRequired, DBSession, Images, Layout
from app.imagestore.layout import PlaceholderVariant
from app.imagestore.owner import StoreOwner
from app.imagestore.paths import InvalidFilenameError
from app.schemas.image import ImageRecordCreate, ImageRecordDTO
from app.services.catalog_service import CatalogService

router = APIRouter()


async def _store_or_404(db: DBSession, store_id: int) -> StoreOwner:
    owner = await CatalogService(db).store_owner(store_id)
    if not owner:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Store not found",
        )
    return owner


@router.get("/{store_id}/primary-image", response_model=None)
async def get_primary_image(
    store_id: int,
    db: DBSession,
    images: Images,
    layout: Layout,
) -> Response:
    """
    Primary image of a store.

    Never 404s: a store without a usable image gets the placeholder.
    """
    try:
        owner = await CatalogService(db).store_owner(store_id)
    except SQLAlchemyError as e:
        logger.warning(f"Store lookup failed for {store_id}: {e}")
        return placeholder_response(layout, PlaceholderVariant.ERROR)
    if not owner:
        return placeholder_response(layout)
    return image_response(await images.resolve_primary(owner), layout)


@router.get("/{store_id}/thumbnail", response_model=None)
async def get_thumbnail(
    store_id: int,
    db: DBSession,
    images: Images,
    layout: Layout,
) -> Response:
    """Thumbnail of the store's primary image, or the primary image itself."""
    try:
        owner = await CatalogService(db).store_owner(store_id)
    except SQLAlchemyError as e:
        logger.warning(f"Store lookup failed for {store_id}: {e}")
        return placeholder_response(layout, PlaceholderVariant.ERROR)
    if not owner:
        return placeholder_response(layout)
    return image_response(await images.resolve_thumbnail(owner), layout)


@router.get("/{store_id}/images", response_model=list[ImageRecordDTO])
async def get_images(
    store_id: int,
    db: DBSession,
    images: Images,
) -> list[ImageRecordDTO]:
    """Store gallery, primary first."""
    owner = await _store_or_404(db, store_id)
    return await images.list_images(owner)


@router.post("/{store_id}/images", response_model=ImageRecordDTO, status_code=status.HTTP_201_CREATED)
async def register_image(
    store_id: int,
    data: ImageRecordCreate,
    db: DBSession,
    images: Images,
    current_user: CurrentUserRequired,
) -> ImageRecordDTO:
    """
    Register a file already written to ``stores/{store_id}/``.

    - **filename**: Bare file name
    - **thumbnailFilename**: Bare file name under ``thumbnails/``
    - **makePrimary**: Demote the store's other primaries
    """
    owner = await _store_or_404(db, store_id)
    try:
        return await images.register_image(owner, data)
    except InvalidFilenameError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{store_id}/images/{image_id}/primary", response_model=ImageRecordDTO)
async def set_primary_image(
    store_id: int,
    image_id: int,
    db: DBSession,
    images: Images,
    current_user: CurrentUserRequired,
) -> ImageRecordDTO:
    """Make an image the store's primary."""
    owner = await _store_or_404(db, store_id)
    result = await images.set_primary(owner, image_id)
    if not result:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Image not found",
        )
    return result


@router.delete("/{store_id}/images/{image_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_image(
    store_id: int,
    image_id: int,
    db: DBSession,
    images: Images,
    current_user: CurrentUserRequired,
) -> None:
    """Delete a store image with its file and thumbnail."""
    owner = await _store_or_404(db, store_id)
    if not await images.delete_image(owner, image_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Image not found",
        )
