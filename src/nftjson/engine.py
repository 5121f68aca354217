"""
Boundary to the ``nft`` program.

Every call runs one child process, feeds it the payload on stdin, waits for
it to exit and reads both output streams to the end. There is no timeout and
no retry; wrap the call if you need either.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import subprocess
from typing import Sequence

from nftjson.config import get_config
from nftjson.exceptions import (
    EngineExecutionError,
    EngineFailedError,
    EngineOutputEncodingError,
)
from nftjson.schema.objects import Document, deserialize, serialize

logger = logging.getLogger(__name__)

READ_HINT = "getting the current ruleset"
APPLY_HINT = "applying ruleset"


def _run(program: str, argv: list[str], payload: bytes | None, hint: str) -> str:
    """Run ``argv``, returning its stdout when it exits with status 0."""
    logger.debug("Running %s", " ".join(argv))
    try:
        with subprocess.Popen(
            argv,
            stdin=subprocess.PIPE if payload is not None else subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        ) as process:
            stdout, stderr = process.communicate(payload)
    except OSError as e:
        logger.warning("Unable to execute %s: %s", program, e)
        raise EngineExecutionError(program, e) from e

    try:
        out = stdout.decode("utf-8")
        err = stderr.decode("utf-8")
    except UnicodeDecodeError as e:
        raise EngineOutputEncodingError(program, e) from e

    if process.returncode != 0:
        logger.warning(
            "%s exited with status %d while %s: %s",
            program, process.returncode, hint, err.strip(),
        )
        if hint == APPLY_HINT:
            logger.warning("The ruleset may be partially applied; list it again to check")
        raise EngineFailedError(program, hint, process.returncode, out, err)
    return out


class NftEngine:
    """Runs ``nft`` to read and apply rulesets.

    Args:
        program: Path or name of the nft executable; defaults to the
            configured ``nft_program``.
        list_args: Arguments used to read the ruleset when a call gives none.
    """

    def __init__(self, program: str | None = None, list_args: Sequence[str] | None = None):
        config = get_config()
        self.program = program or config.nft_program
        self.list_args = tuple(list_args) if list_args else tuple(config.list_args)

    def get_current_ruleset_raw(self, args: Sequence[str] | None = None) -> str:
        """Output of ``nft -j <args>``, as text."""
        argv = [self.program, "-j", *(args or self.list_args)]
        return _run(self.program, argv, None, READ_HINT)

    def get_current_ruleset(self, args: Sequence[str] | None = None) -> Document:
        """The live ruleset, decoded."""
        return deserialize(self.get_current_ruleset_raw(args))

    def apply_ruleset_raw(self, payload: str | bytes, args: Sequence[str] = ()) -> None:
        """Feed a JSON payload to ``nft <args> -j -f -``."""
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        argv = [self.program, *args, "-j", "-f", "-"]
        _run(self.program, argv, payload, APPLY_HINT)

    def apply_ruleset(self, document: Document, args: Sequence[str] = ()) -> None:
        """Serialize ``document`` and apply it."""
        self.apply_ruleset_raw(serialize(document), args)


def get_current_ruleset_raw(program: str | None = None, args: Sequence[str] | None = None) -> str:
    return NftEngine(program).get_current_ruleset_raw(args)


def get_current_ruleset(program: str | None = None, args: Sequence[str] | None = None) -> Document:
    return NftEngine(program).get_current_ruleset(args)


def apply_ruleset_raw(payload: str | bytes, program: str | None = None, args: Sequence[str] = ()) -> None:
    NftEngine(program).apply_ruleset_raw(payload, args)


def apply_ruleset(document: Document, program: str | None = None, args: Sequence[str] = ()) -> None:
    NftEngine(program).apply_ruleset(document, args)
