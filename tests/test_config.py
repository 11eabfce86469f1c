from pathlib import Path

import pytest
from pydantic import ValidationError

from table_order.core.config import Settings, StorageBackend


def test_asset_directories_split_on_commas():
    settings = Settings(asset_directories="assets, front/public ,")
    assert settings.asset_paths == [Path("assets"), Path("front/public")]


@pytest.mark.parametrize("value", ["", " ", " , "])
def test_asset_directories_required(value):
    with pytest.raises(ValidationError):
        Settings(asset_directories=value)


def test_storage_backend_is_case_insensitive():
    assert Settings(storage_backend="MEMORY").storage_backend == StorageBackend.MEMORY


def test_unknown_storage_backend_rejected():
    with pytest.raises(ValidationError):
        Settings(storage_backend="redis")
