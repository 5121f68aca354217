"""
Exception hierarchy for nftjson.

Decode errors always carry the JSON path of the offending node. Engine
errors carry the program that was run and, for failed runs, its captured
output verbatim.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from typing import Any

JsonPath = tuple[str | int, ...]


def format_path(path: JsonPath) -> str:
    """Render a JSON path as ``nftables[0].add.rule.expr[2].match.left``.

    Keys that are not plain words (``"ct helper"``, ``"&"``) are rendered
    in bracket form.
    """
    parts: list[str] = []
    for segment in path:
        if isinstance(segment, int):
            parts.append(f"[{segment}]")
        elif segment.replace("_", "").replace("-", "").isalnum():
            parts.append(f".{segment}" if parts else segment)
        else:
            parts.append(f'["{segment}"]')
    return "".join(parts) or "."


class NftJsonError(Exception):
    """Base exception for nftjson errors."""
    pass


class DecodeError(NftJsonError, ValueError):
    """Wire JSON does not match the expected shape at some path."""

    def __init__(self, message: str, path: JsonPath = ()):
        self.message = message
        self.path = tuple(path)
        super().__init__(f"{format_path(self.path)}: {message}")

    @property
    def location(self) -> str:
        return format_path(self.path)


class UnknownEnumValue(DecodeError):
    """A token outside a closed vocabulary."""

    def __init__(self, enum_name: str, value: Any, path: JsonPath = ()):
        self.enum_name = enum_name
        self.value = value
        super().__init__(f"unknown {enum_name} value {value!r}", path)


class InvalidJSONError(DecodeError):
    """Input is not valid UTF-8 JSON."""
    pass


class EncodeError(NftJsonError):
    """A model value has no wire representation."""
    pass


class BatchFinalizedError(NftJsonError, RuntimeError):
    """The batch was already turned into a document."""
    pass


class EngineError(NftJsonError):
    """Base exception for the nft process boundary."""

    def __init__(self, program: str, message: str):
        self.program = program
        super().__init__(message)


class EngineExecutionError(EngineError):
    """The program could not be launched or its pipes failed."""

    def __init__(self, program: str, inner: OSError):
        self.inner = inner
        super().__init__(program, f"unable to execute {program}: {inner}")


class EngineOutputEncodingError(EngineError):
    """The program's output was not valid UTF-8."""

    def __init__(self, program: str, inner: UnicodeDecodeError):
        self.inner = inner
        super().__init__(program, f"{program}'s output contained invalid utf8: {inner}")


class EngineFailedError(EngineError):
    """The program ran but exited with a nonzero status.

    When raised while applying a ruleset, the live configuration may be
    partially applied; re-read it to find out.
    """

    def __init__(
        self,
        program: str,
        hint: str,
        returncode: int,
        stdout: str,
        stderr: str,
    ):
        self.hint = hint
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            program,
            f"{program} did not return successfully while {hint} "
            f"(exit status {returncode})",
        )
