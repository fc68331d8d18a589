import importlib
import typing

import pytest

from igshelf.core.iterator import TimelineStore
from igshelf.models.media import Media
from igshelf.storage.timeline import JSONTimelineStore

from tests.fakes import MemoryStore


@pytest.mark.parametrize(
    "module",
    [
        "igshelf.core",
        "igshelf.storage",
        "igshelf.sources",
        "igshelf.api",
        "igshelf.render",
        "igshelf.cli.app",
        "igshelf.__main__",
    ],
)
def test_modules_import(module):
    importlib.import_module(module)


@pytest.mark.parametrize("store_cls", [TimelineStore, JSONTimelineStore, MemoryStore])
def test_store_annotations_use_builtin_list(store_cls):
    hints = typing.get_type_hints(store_cls.store)
    assert hints["timeline"] == list[Media]
    assert typing.get_type_hints(store_cls.list)["return"] == list[Media]
