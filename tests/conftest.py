"""Shared fixtures for the nftjson test suite."""

import logging
from dataclasses import dataclass
from pathlib import Path

import pytest

from nftjson.config import NftConfig, set_config

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def default_config():
    """Pin the configuration so .env files and NFTJSON_* variables don't leak in."""
    set_config(NftConfig())
    yield
    set_config(None)
    logger = logging.getLogger("nftjson")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def fixture_bytes():
    def load(name: str) -> bytes:
        return (FIXTURES / name).read_bytes()
    return load


@dataclass
class FakeNft:
    """A shell script standing in for nft; records its argv and stdin."""

    program: str
    workdir: Path

    @property
    def argv(self) -> list[str]:
        return (self.workdir / "argv.txt").read_text().splitlines()

    @property
    def stdin(self) -> bytes:
        return (self.workdir / "stdin.txt").read_bytes()

    @property
    def called(self) -> bool:
        return (self.workdir / "argv.txt").exists()


@pytest.fixture
def fake_nft(tmp_path):
    """Factory writing a fake nft that prints canned output and exits."""

    def make(stdout: str | bytes = "", stderr: str = "", returncode: int = 0) -> FakeNft:
        out = tmp_path / "stdout.txt"
        if isinstance(stdout, bytes):
            out.write_bytes(stdout)
        else:
            out.write_text(stdout)
        (tmp_path / "stderr.txt").write_text(stderr)
        script = tmp_path / "nft"
        script.write_text(
            "#!/bin/sh\n"
            f'printf "%s\\n" "$@" > "{tmp_path}/argv.txt"\n'
            f'cat > "{tmp_path}/stdin.txt"\n'
            f'cat "{tmp_path}/stdout.txt"\n'
            f'cat "{tmp_path}/stderr.txt" >&2\n'
            f"exit {returncode}\n"
        )
        script.chmod(0o755)
        return FakeNft(program=str(script), workdir=tmp_path)

    return make
