"""
1Password CLI runner - spawn `op`, capture stdout, classify failures.

Retries are opt-in per call. Only the catalog listing asks for one: it is the
call most likely to race a vault unlock. Detail and OTP fetches never retry,
since a second OTP mint would hand back a different code.
"""

import logging
import shutil
import subprocess
from typing import Callable, Sequence

logger = logging.getLogger(__name__)

OP_DEFAULT = "op"

ITEM_LIST_ARGS = ("item", "list", "--format=json")


def item_get_args(external_id: str) -> tuple[str, ...]:
    return ("items", "get", external_id, "--format=json")


def item_otp_args(external_id: str) -> tuple[str, ...]:
    return ("items", "get", external_id, "--otp")


class OpError(Exception):
    """Base class for everything that can go wrong talking to `op`."""


class SpawnFailure(OpError):
    """The executable is missing or not runnable."""


class NonZeroExit(OpError):
    """`op` ran but exited with a non-zero status."""

    def __init__(self, code: int):
        super().__init__(f"op exited with status {code}")
        self.code = code


class UndecodableOutput(OpError):
    """stdout was not valid UTF-8."""


class CatalogDecodeFailure(OpError):
    """The item listing was not the JSON array we expect."""


class DetailDecodeFailure(OpError):
    """The item detail was not the JSON object we expect."""


Runner = Callable[..., str]


def find_op(name: str = OP_DEFAULT) -> str:
    """Resolve the op executable via PATH, falling back to the bare name"""
    return shutil.which(name) or name


def run_op(path: str, args: Sequence[str], retries: int = 0) -> str:
    """Run `path args...` and return its stdout as text.

    Only NonZeroExit is retried, with the identical argument vector.
    """
    attempt = 0
    while True:
        try:
            return _run_once(path, args)
        except NonZeroExit as e:
            if attempt >= retries:
                raise
            attempt += 1
            logger.warning(
                "op %s exited with %d, retrying (%d/%d)",
                " ".join(args[:2]),
                e.code,
                attempt,
                retries,
            )


def _run_once(path: str, args: Sequence[str]) -> str:
    logger.debug("Running %s %s", path, " ".join(args))
    try:
        result = subprocess.run(
            [path, *args],
            capture_output=True,
        )
    except OSError as e:
        raise SpawnFailure(f"Cannot run {path}: {e.strerror or e}") from e

    if result.returncode != 0:
        raise NonZeroExit(result.returncode)

    try:
        return result.stdout.decode("utf-8")
    except UnicodeDecodeError as e:
        raise UndecodableOutput(f"{path} wrote non UTF-8 output") from e
