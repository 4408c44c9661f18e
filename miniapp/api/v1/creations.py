"""
Saved creations and the shared marketplace.

GET    /api/v1/creations?user_id=...
POST   /api/v1/creations
DELETE /api/v1/creations/{creation_id}
GET    /api/v1/marketplace
POST   /api/v1/marketplace/{creation_id}
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from miniapp.api.deps import get_store
from miniapp.core.store import KeyValueStore
from miniapp.models.creation import Creation
from miniapp.services.creations import MARKETPLACE_KEY, CreationRepository
from miniapp.utils.logging import get_logger, log_context

router = APIRouter()
logger = get_logger(__name__)


def get_repository(store: KeyValueStore = Depends(get_store)) -> CreationRepository:
    return CreationRepository(store)


def get_marketplace(store: KeyValueStore = Depends(get_store)) -> CreationRepository:
    return CreationRepository(store, key=MARKETPLACE_KEY)


def creation_not_found(creation_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "error": "creation_not_found",
            "message": f"Creation with ID {creation_id} not found"
        }
    )


@router.get("/creations", response_model=List[Creation], response_model_by_alias=True)
async def list_creations(
    user_id: Optional[str] = None,
    repository: CreationRepository = Depends(get_repository),
) -> List[Creation]:
    if user_id:
        return await repository.for_user(user_id)
    return await repository.load_all()


@router.post(
    "/creations",
    response_model=Creation,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def save_creation(
    creation: Creation,
    repository: CreationRepository = Depends(get_repository),
) -> Creation:
    with log_context(user_id=creation.user_id):
        return await repository.save(creation)


@router.delete("/creations/{creation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_creation(
    creation_id: str,
    repository: CreationRepository = Depends(get_repository),
) -> None:
    if not await repository.delete(creation_id):
        raise creation_not_found(creation_id)


@router.get("/marketplace", response_model=List[Creation], response_model_by_alias=True)
async def list_marketplace(
    marketplace: CreationRepository = Depends(get_marketplace),
) -> List[Creation]:
    return await marketplace.load_all()


@router.post(
    "/marketplace/{creation_id}",
    response_model=Creation,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def publish_creation(
    creation_id: str,
    repository: CreationRepository = Depends(get_repository),
    marketplace: CreationRepository = Depends(get_marketplace),
) -> Creation:
    """Copy a saved creation into the marketplace; publishing again replaces it"""
    creation = await repository.find(creation_id)
    if creation is None:
        raise creation_not_found(creation_id)
    with log_context(user_id=creation.user_id):
        published = await marketplace.save(creation)
        logger.info("🛒 creation.published", extra={"creation_id": creation_id})
        return published
