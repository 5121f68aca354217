"""
nftjson - nftables JSON model and codec

Builds and inspects nftables rulesets as Python values, converts them to
and from the JSON interface of libnftables, and talks to the ``nft``
program.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

__version__ = "0.4.1"

from nftjson.batch import Batch
from nftjson.engine import NftEngine
from nftjson.exceptions import (
    BatchFinalizedError,
    DecodeError,
    EncodeError,
    EngineError,
    EngineExecutionError,
    EngineFailedError,
    EngineOutputEncodingError,
    InvalidJSONError,
    NftJsonError,
    UnknownEnumValue,
)
from nftjson.schema import Command, CommandVerb, Document, deserialize, serialize

__all__ = [
    "Batch",
    "BatchFinalizedError",
    "Command",
    "CommandVerb",
    "DecodeError",
    "Document",
    "EncodeError",
    "EngineError",
    "EngineExecutionError",
    "EngineFailedError",
    "EngineOutputEncodingError",
    "InvalidJSONError",
    "NftEngine",
    "NftJsonError",
    "UnknownEnumValue",
    "deserialize",
    "serialize",
]
