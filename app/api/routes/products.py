"""Product image API endpoints."""

from fastapi import APIRouter, HTTPException, Response, status
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from app.api.routes.responses import image_response, placeholder_response
from app.core.deps import CurrentUserRequired, DBSession, Images, Layout
from app.imagestore.layout import PlaceholderVariant
from app.imagestore.owner import ProductOwner
from app.imagestore.paths import InvalidFilenameError
from app.schemas.image import ImageRecordCreate, ImageRecordDTO
from app.services.catalog_service import CatalogService

router = APIRouter()


async def _product_or_404(db: DBSession, product_id: int) -> ProductOwner:
    owner = await CatalogService(db).product_owner(product_id)
    if not owner:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )
    return owner


async def _product_owner(db: DBSession, product_id: int) -> ProductOwner | PlaceholderVariant:
    try:
        owner = await CatalogService(db).product_owner(product_id)
    except SQLAlchemyError as e:
        logger.warning(f"Product lookup failed for {product_id}: {e}")
        return PlaceholderVariant.ERROR
    return owner or PlaceholderVariant.DEFAULT


@router.get("/{product_id}/primary-image", response_model=None)
async def get_primary_image(
    product_id: int,
    db: DBSession,
    images: Images,
    layout: Layout,
) -> Response:
    """
    Primary image of a product.

    Only the product's own directory and its bounded legacy locations are
    searched; another product's image is never returned.
    """
    owner = await _product_owner(db, product_id)
    if isinstance(owner, PlaceholderVariant):
        return placeholder_response(layout, owner)
    return image_response(await images.resolve_primary(owner), layout)


@router.get("/{product_id}/thumbnail", response_model=None)
async def get_thumbnail(
    product_id: int,
    db: DBSession,
    images: Images,
    layout: Layout,
) -> Response:
    """Thumbnail of the product's primary image, or the primary image itself."""
    owner = await _product_owner(db, product_id)
    if isinstance(owner, PlaceholderVariant):
        return placeholder_response(layout, owner)
    return image_response(await images.resolve_thumbnail(owner), layout)


@router.get("/{product_id}/image/{image_id}", response_model=None)
async def get_image(
    product_id: int,
    image_id: int,
    db: DBSession,
    images: Images,
    layout: Layout,
) -> Response:
    """One image of a product; ids of other products' images give the placeholder."""
    owner = await _product_owner(db, product_id)
    if isinstance(owner, PlaceholderVariant):
        return placeholder_response(layout, owner)
    return image_response(await images.resolve_by_id(owner, image_id), layout)


@router.get("/{product_id}/images", response_model=list[ImageRecordDTO])
async def get_images(
    product_id: int,
    db: DBSession,
    images: Images,
) -> list[ImageRecordDTO]:
    """Product gallery, primary first."""
    owner = await _product_or_404(db, product_id)
    return await images.list_images(owner)


@router.post("/{product_id}/images", response_model=ImageRecordDTO, status_code=status.HTTP_201_CREATED)
async def register_image(
    product_id: int,
    data: ImageRecordCreate,
    db: DBSession,
    images: Images,
    current_user: CurrentUserRequired,
) -> ImageRecordDTO:
    """Register a file already written to ``stores/{storeId}/products/{product_id}/``."""
    owner = await _product_or_404(db, product_id)
    try:
        return await images.register_image(owner, data)
    except InvalidFilenameError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{product_id}/images/{image_id}/primary", response_model=ImageRecordDTO)
async def set_primary_image(
    product_id: int,
    image_id: int,
    db: DBSession,
    images: Images,
    current_user: CurrentUserRequired,
) -> ImageRecordDTO:
    """Make an image the product's primary."""
    owner = await _product_or_404(db, product_id)
    result = await images.set_primary(owner, image_id)
    if not result:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Image not found",
        )
    return result


@router.delete("/{product_id}/images/{image_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_image(
    product_id: int,
    image_id: int,
    db: DBSession,
    images: Images,
    current_user: CurrentUserRequired,
) -> None:
    """Delete a product image with its file and thumbnail."""
    owner = await _product_or_404(db, product_id)
    if not await images.delete_image(owner, image_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Image not found",
        )
