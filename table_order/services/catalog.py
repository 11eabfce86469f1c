"""
Catalog Service

Menu administration (create / partial update / delete), the one-time
bootstrap of an empty catalog, and the assembler that turns flat menu rows
into the category-grouped structure served to table clients.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from table_order.core.errors import InvalidInput, OrderingError, StoreError
from table_order.schemas import (
    CategoryResponse,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    MenuOption,
)
from table_order.services.images import encode_jpeg, menu_image_name, save_menu_image
from table_order.services.storage.base import BaseCatalogStore

logger = logging.getLogger(__name__)


# =============================================================================
# ASSEMBLER
# =============================================================================

def decode_options(raw: Any, item_id: str = "?") -> list[MenuOption]:
    """
    Decode a stored options blob.

    A malformed blob only costs this item its options: the failure is
    logged and an empty list returned.
    """
    if raw is None or raw == "":
        return []
    try:
        decoded = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        if not isinstance(decoded, list):
            raise ValueError(f"expected a list, got {type(decoded).__name__}")
        return [MenuOption.model_validate(option) for option in decoded]
    except (ValueError, TypeError) as e:
        # pydantic's ValidationError is a ValueError
        logger.warning(f"Ignoring malformed options of menu item '{item_id}': {e}")
        return []


def normalize_flag(value: Any) -> bool:
    """0/1, "0"/"1", "true"/"false" or a real bool, as a bool."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true")
    return bool(value)


def assemble_catalog(rows: Iterable[Mapping[str, Any]]) -> list[CategoryResponse]:
    """
    Group menu rows by category.

    Categories appear in the order their first item is seen, and items
    keep their input order inside each category.
    """
    categories: dict[str, CategoryResponse] = {}
    for row in rows:
        item = MenuItemResponse(
            id=row["id"],
            name=row["name"],
            description=row.get("description") or "",
            price=row["price"],
            image=row.get("image") or "",
            category=row["category"],
            options=decode_options(row.get("options"), row["id"]),
            is_recommended=normalize_flag(row.get("is_recommended")),
        )
        group = categories.get(item.category)
        if group is None:
            group = categories[item.category] = CategoryResponse(name=item.category)
        group.items.append(item)
    return list(categories.values())


# =============================================================================
# BOOTSTRAP
# =============================================================================

async def ensure_seeded(store: BaseCatalogStore, seed_file: str) -> int:
    """
    Load the initial catalog into an empty store.

    The store's own row count is the guard, so calling this again after a
    successful load (or once an admin added items) does nothing. Failures
    are logged and leave whatever was loaded so far in place.

    The seed file has the shape served by ``GET /api/menu``::

        {"categories": [{"name": "Drinks", "items": [{"id": "d1", ...}]}]}

    Returns:
        int: Number of items loaded
    """
    path = Path(seed_file)
    loaded = 0
    try:
        if await store.count() > 0:
            logger.debug("Catalog already populated, skipping seed")
            return 0
        if not path.exists():
            logger.info(f"No seed catalog at {path}; starting with an empty menu")
            return 0

        data = json.loads(path.read_text(encoding="utf-8"))
        for category in data["categories"]:
            for raw in category.get("items", []):
                item = MenuItemCreate.model_validate({**raw, "category": category["name"]})
                await store.create(item)
                loaded += 1
    except (OSError, ValueError, KeyError, TypeError, AttributeError, OrderingError) as e:
        logger.error(f"Initial menu load from {path} failed after {loaded} items: {e}")
        return loaded

    logger.info(f"✅ Loaded {loaded} menu items from {path}")
    return loaded


# =============================================================================
# SERVICE
# =============================================================================

class CatalogService:
    """
    Menu administration on top of a catalog store.

    Example:
        >>> catalog = CatalogService(get_catalog_store(session))
        >>> await catalog.create_menu_item({"id": "m1", "name": "Tea",
        ...                                 "price": 300, "category": "Drinks"})
        'm1'
    """

    def __init__(
        self,
        store: BaseCatalogStore,
        asset_directories: Iterable[Path] = (),
        jpeg_quality: int = 80,
    ):
        self.store = store
        self.asset_directories = list(asset_directories)
        self.jpeg_quality = jpeg_quality

    async def list_catalog(self) -> list[CategoryResponse]:
        rows = await self.store.list_all()
        return assemble_catalog(rows)

    async def create_menu_item(
        self,
        fields: Mapping[str, Any],
        image_data: Optional[bytes] = None,
    ) -> str:
        """
        Validate and insert a menu item, optionally with a picture.

        The picture is converted before the insert and written after it,
        so a rejected item never leaves a file behind.
        """
        try:
            item = MenuItemCreate.model_validate(dict(fields))
        except ValidationError as e:
            raise InvalidInput.from_validation_error(e) from e

        jpeg = None
        if image_data:
            jpeg = encode_jpeg(image_data, self.jpeg_quality)
            item = item.model_copy(update={"image": menu_image_name(item.id)})

        await self.store.create(item)
        if jpeg is not None:
            try:
                save_menu_image(item.id, jpeg, self.asset_directories)
            except StoreError:
                # The item must not reference a picture that was never written
                await self.store.delete(item.id)
                raise

        logger.info(f"Menu item '{item.id}' ({item.name}) added to {item.category}")
        return item.id

    async def update_menu_item(
        self,
        item_id: str,
        fields: Mapping[str, Any],
        image_data: Optional[bytes] = None,
    ) -> str:
        """
        Merge the supplied fields into an existing item.

        A new picture is written after the row is updated; a failed write
        is reported as StoreError.
        """
        try:
            changes = MenuItemUpdate.model_validate(dict(fields)).changes()
        except ValidationError as e:
            raise InvalidInput.from_validation_error(e) from e

        jpeg = None
        if image_data:
            jpeg = encode_jpeg(image_data, self.jpeg_quality)
            changes["image"] = menu_image_name(item_id)

        await self.store.update(item_id, changes)
        if jpeg is not None:
            save_menu_image(item_id, jpeg, self.asset_directories)

        logger.info(f"Menu item '{item_id}' updated: {sorted(changes)}")
        return item_id

    async def delete_menu_item(self, item_id: str) -> str:
        await self.store.delete(item_id)
        logger.info(f"Menu item '{item_id}' deleted")
        return item_id
