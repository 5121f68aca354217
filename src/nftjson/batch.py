"""
Ordered command builder.

Collects commands and bare list objects in insertion order and turns them
into a :class:`~nftjson.schema.objects.Document`. Nothing is deduplicated
or reordered: create a table before the chains inside it.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
from typing import Iterable

from nftjson.exceptions import BatchFinalizedError
from nftjson.schema.objects import Command, Document, Item, ListObject
from nftjson.schema.types import CommandVerb

logger = logging.getLogger(__name__)


class Batch:
    """Append-only buffer of document items.

    Example:
        batch = Batch()
        batch.add(Table.create("filter"))
        batch.add(Chain.create("input", hook=NfHook.INPUT))
        document = batch.to_document()
    """

    def __init__(self, items: Iterable[Item] | None = None):
        self._items: list[Item] = []
        self._finalized = False
        if items is not None:
            self.add_all(items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def _append(self, item: Item) -> None:
        if self._finalized:
            raise BatchFinalizedError("batch was already turned into a document")
        self._items.append(item)

    def add(self, obj: ListObject) -> "Batch":
        """Append an ``add`` command for ``obj``."""
        self._append(Command(CommandVerb.ADD, obj))
        return self

    def delete(self, obj: ListObject) -> "Batch":
        """Append a ``delete`` command for ``obj``."""
        self._append(Command(CommandVerb.DELETE, obj))
        return self

    def add_cmd(self, cmd: Command) -> "Batch":
        """Append a command as is."""
        if not isinstance(cmd, Command):
            raise TypeError(f"expected a Command, got {type(cmd).__name__}")
        self._append(cmd)
        return self

    def add_obj(self, obj: ListObject) -> "Batch":
        """Append a bare list object."""
        self._append(obj)
        return self

    def add_all(self, items: Iterable[Item]) -> "Batch":
        """Append several items, in order."""
        for item in items:
            self._append(item)
        return self

    def to_document(self) -> Document:
        """Finish the batch; any later append raises BatchFinalizedError."""
        if self._finalized:
            raise BatchFinalizedError("batch was already turned into a document")
        self._finalized = True
        document = Document(tuple(self._items))
        logger.debug("Batch finalized with %d items", len(document.items))
        return document
