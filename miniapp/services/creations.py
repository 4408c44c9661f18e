"""
Repositories over the blob store.

Each key holds a JSON array of one model type. Reads are forgiving: a
missing or unreadable value is an empty list, never an exception.
"""
import json
from typing import Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from miniapp.core.store import KeyValueStore, PersistenceError
from miniapp.models.creation import Creation
from miniapp.utils.datetime_utils import utc_now
from miniapp.utils.logging import get_logger

logger = get_logger(__name__)

USER_CREATIONS_KEY = "userCreations"
MARKETPLACE_KEY = "marketplaceItems"

ModelT = TypeVar("ModelT", bound=BaseModel)


class JsonListRepository(Generic[ModelT]):

    def __init__(self, store: KeyValueStore, key: str, model: Type[ModelT]):
        self.store = store
        self.key = key
        self._adapter = TypeAdapter(List[model])

    async def load_all(self) -> List[ModelT]:
        try:
            raw = await self.store.get(self.key)
        except PersistenceError as e:
            logger.error("repository.load.failed", extra={"key": self.key, "error": str(e)})
            return []
        if raw is None:
            return []
        try:
            return self._adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning(
                "repository.load.corrupt",
                extra={"key": self.key, "errors": e.error_count()}
            )
            return []

    async def save_all(self, items: List[ModelT]) -> None:
        payload = [item.model_dump(mode="json", by_alias=True) for item in items]
        await self.store.set(self.key, json.dumps(payload))
        logger.debug("repository.saved", extra={"key": self.key, "count": len(items)})


class CreationRepository(JsonListRepository[Creation]):

    def __init__(self, store: KeyValueStore, key: str = USER_CREATIONS_KEY):
        super().__init__(store, key, Creation)

    async def save(self, creation: Creation) -> Creation:
        """Insert, or replace the entry with the same id"""
        items = await self.load_all()
        index = next((i for i, c in enumerate(items) if c.id == creation.id), None)
        if index is None:
            items.append(creation)
        else:
            creation = creation.model_copy(update={"updated_at": utc_now()})
            items[index] = creation
        await self.save_all(items)
        logger.info("💾 creation.saved", extra={"creation_id": creation.id, "user_id": creation.user_id})
        return creation

    async def delete(self, creation_id: str) -> bool:
        items = await self.load_all()
        remaining = [c for c in items if c.id != creation_id]
        if len(remaining) == len(items):
            return False
        await self.save_all(remaining)
        logger.info("creation.deleted", extra={"creation_id": creation_id})
        return True

    async def find(self, creation_id: str) -> Optional[Creation]:
        return next((c for c in await self.load_all() if c.id == creation_id), None)

    async def for_user(self, user_id: str) -> List[Creation]:
        return [c for c in await self.load_all() if c.user_id == user_id]
