import json
import logging
import random
import string
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import ValidationError

from wellbeing.errors import MalformedRecordError
from wellbeing.keys import user_key
from wellbeing.kv_store import KeyValueStore
from wellbeing.models import Record
from wellbeing.utils.clock import epoch_millis, system_clock

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Record)

ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(prefix: str, clock=system_clock) -> str:
    """
    "{prefix}_{epochMillis}_{9 random base36 chars}".
    Collisions are unlikely but not impossible; nothing checks for them.
    """
    suffix = "".join(random.choices(ID_ALPHABET, k=9))
    return f"{prefix}_{epoch_millis(clock.now())}_{suffix}"


class EntityRepository(Generic[T]):
    """
    Read-modify-write CRUD over one JSON collection per user.

    Every mutation loads the whole collection, changes it in memory and writes
    it back. There is no locking: two overlapping writes on the same key end
    with the later one winning.
    """

    id_field = "id"

    def __init__(self, store: KeyValueStore, model: Type[T], prefix: str, id_prefix: str, clock=system_clock):
        self.store = store
        self.model = model
        self.prefix = prefix
        self.id_prefix = id_prefix
        self.clock = clock

    # --- Keys / ordering hooks ---

    def key_for(self, user_id: str) -> str:
        return user_key(self.prefix, user_id)

    def sort_records(self, records: List[T]) -> List[T]:
        """Order applied to every read. Default keeps storage order."""
        return records

    # --- Codec ---

    def decode(self, key: str, raw: Optional[str]) -> List[T]:
        if not raw:
            return []
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedRecordError(key, f"invalid JSON ({e})") from e
        if not isinstance(payload, list):
            raise MalformedRecordError(key, f"expected a list, got {type(payload).__name__}")
        try:
            return [self.model.model_validate(item) for item in payload]
        except ValidationError as e:
            raise MalformedRecordError(key, f"{e.error_count()} invalid field(s)") from e

    def encode(self, records: List[T]) -> str:
        return json.dumps([r.to_storage() for r in records], ensure_ascii=False)

    async def _read(self, key: str) -> List[T]:
        raw = await self.store.get(key)
        try:
            return self.decode(key, raw)
        except MalformedRecordError as e:
            # Whole collection is dropped; the next write overwrites it
            logger.warning(f"{e}. Treating collection as empty.")
            return []

    async def _write(self, key: str, records: List[T]) -> None:
        await self.store.set(key, self.encode(records))

    # --- Record helpers ---

    def record_id(self, record: T) -> str:
        return getattr(record, self.id_field)

    def new_record(self, user_id: str, fields: Dict[str, Any]) -> T:
        data = dict(fields)
        model_fields = self.model.model_fields
        if self.id_field == "id" and not data.get("id"):
            data["id"] = generate_id(self.id_prefix, self.clock)
        if "user_id" in model_fields:
            data.setdefault("user_id", user_id)
        now = self.clock.now()
        for stamp in ("created_at", "updated_at"):
            if stamp in model_fields:
                data.setdefault(stamp, now)
        return self.model.model_validate(data)

    def normalize_patch(self, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Accept both field names and camelCase wire names."""
        by_alias = {f.alias: name for name, f in self.model.model_fields.items() if f.alias}
        return {by_alias.get(k, k): v for k, v in patch.items()}

    def merge(self, existing: T, patch: Dict[str, Any]) -> T:
        """
        Shallow merge: top-level fields in ``patch`` replace the stored value.
        List fields (tags, instructions...) are replaced wholesale.
        """
        data = existing.model_dump()
        data.update(patch)
        data[self.id_field] = self.record_id(existing)
        if "user_id" in self.model.model_fields:
            data["user_id"] = existing.user_id
        if "updated_at" in self.model.model_fields:
            data["updated_at"] = self.clock.now()
        return self.model.model_validate(data)

    def after_merge(self, existing: T, merged: T, patch: Dict[str, Any]) -> T:
        """Hook for derived fields. ``patch`` is already normalized."""
        return merged

    # --- CRUD ---

    async def load_all(self, user_id: str) -> List[T]:
        return self.sort_records(await self._read(self.key_for(user_id)))

    async def load_by_id(self, user_id: str, record_id: str) -> Optional[T]:
        for record in await self.load_all(user_id):
            if self.record_id(record) == record_id:
                return record
        return None

    async def insert(self, user_id: str, fields: Dict[str, Any]) -> T:
        key = self.key_for(user_id)
        record = self.new_record(user_id, fields)
        records = await self._read(key)
        records.append(record)
        await self._write(key, records)
        logger.info(f"Inserted {self.model.__name__} {self.record_id(record)} at {key}")
        return record

    async def update(self, user_id: str, record_id: str, patch: Dict[str, Any]) -> Optional[T]:
        key = self.key_for(user_id)
        records = await self._read(key)
        for index, existing in enumerate(records):
            if self.record_id(existing) == record_id:
                break
        else:
            return None

        patch = self.normalize_patch(patch)
        merged = self.after_merge(existing, self.merge(existing, patch), patch)
        records[index] = merged
        await self._write(key, records)
        return merged

    async def delete(self, user_id: str, record_id: str) -> bool:
        """Always returns True, whether or not anything matched."""
        key = self.key_for(user_id)
        records = await self._read(key)
        remaining = [r for r in records if self.record_id(r) != record_id]
        await self._write(key, remaining)
        return True

    async def save_all(self, user_id: str, records: List[T]) -> None:
        await self._write(self.key_for(user_id), records)

    async def clear(self, user_id: str) -> None:
        await self.store.remove(self.key_for(user_id))
