"""
Model and codec of the nftables JSON schema.

Expressions, statements and ruleset objects live in their own modules
because their names overlap (``Counter`` is both a statement and a named
object); the document-level API is re-exported here.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from nftjson.schema.objects import (
    Command,
    Document,
    Item,
    ListObject,
    deserialize,
    item_from_json,
    item_to_json,
    serialize,
)
from nftjson.schema.types import CommandVerb, NfFamily

__all__ = [
    "Command",
    "CommandVerb",
    "Document",
    "Item",
    "ListObject",
    "NfFamily",
    "deserialize",
    "item_from_json",
    "item_to_json",
    "serialize",
]
