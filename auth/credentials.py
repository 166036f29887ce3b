"""
auth/credentials.py -- Encoding of Argon2id password credentials.

Stored shape (the PHC-style string persisted in users.hashed_password):

    $argon2id$v=19$m=<memory KiB>,t=<iterations>,p=<parallelism>$<salt>$<digest>

salt and digest are standard base64 without padding. Splitting on "$" yields
exactly six fields, the first one empty.

The cost parameters travel with the credential. A verifier always uses the
decoded parameters, never its own defaults, so raising the defaults later
does not invalidate passwords hashed under the old ones.

Layer rule: no imports from api/, web/ or core/. No third-party imports --
the KDF itself lives in auth/passwords.py.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass, replace

from auth.errors import FormatError

ALGORITHM_TAG = "argon2id"
# Argon2 version 1.3 (0x13). The only version this codec accepts.
ARGON2_VERSION = 19

_DELIMITER = "$"
_FIELD_COUNT = 6
# ASCII digits without leading zeros. Always applied with fullmatch().
_NUMBER = r"([1-9][0-9]*)"
_VERSION_RE = re.compile(rf"v={_NUMBER}")
_PARAMS_RE = re.compile(rf"m={_NUMBER},t={_NUMBER},p={_NUMBER}")
_MAX_PARALLELISM = 255
# Ceilings for stored costs (1 GiB, 32 passes) so a tampered row cannot stall
# a worker thread on every login attempt.
_MAX_MEMORY_COST = 1024 * 1024
_MAX_TIME_COST = 32


@dataclass(frozen=True)
class Argon2Params:
    """Argon2id cost parameters plus the salt/digest lengths they produce."""

    memory_cost: int = 64 * 1024  # KiB (64 MiB)
    time_cost: int = 3
    parallelism: int = 2
    salt_len: int = 16
    hash_len: int = 32


def _b64encode(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(segment: str, name: str) -> bytes:
    # Unpadded input only; re-add the padding the stdlib decoder expects.
    if "=" in segment:
        raise FormatError(f"Invalid credential: {name} must be unpadded base64")
    try:
        return base64.b64decode(segment + "=" * (-len(segment) % 4), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise FormatError(f"Invalid credential: {name} is not valid base64") from exc


def encode(params: Argon2Params, salt: bytes, digest: bytes) -> str:
    """Serialize parameters, salt and digest into the stored credential string."""
    return _DELIMITER.join(
        [
            "",
            ALGORITHM_TAG,
            f"v={ARGON2_VERSION}",
            f"m={params.memory_cost},t={params.time_cost},p={params.parallelism}",
            _b64encode(salt),
            _b64encode(digest),
        ]
    )


def decode(encoded: str) -> tuple[Argon2Params, bytes, bytes]:
    """Parse a stored credential into (params, salt, digest).

    Raises FormatError on a wrong field count, a foreign algorithm tag, an
    unsupported or unparseable version, unparseable or out-of-range cost
    parameters (non-canonical numbers included), or a
    salt/digest that is not valid base64. salt_len and hash_len in the
    returned params come from the decoded bytes, not from any stored field.
    """
    if not isinstance(encoded, str):
        raise FormatError("Invalid credential: expected a string")

    fields = encoded.split(_DELIMITER)
    if len(fields) != _FIELD_COUNT or fields[0] != "":
        raise FormatError("Invalid credential: wrong number of fields")

    _, tag, version_field, params_field, salt_field, digest_field = fields
    if tag != ALGORITHM_TAG:
        raise FormatError("Invalid credential: not an argon2id hash")

    version_match = _VERSION_RE.fullmatch(version_field)
    if version_match is None or int(version_match.group(1)) != ARGON2_VERSION:
        raise FormatError("Invalid credential: incompatible version")

    params_match = _PARAMS_RE.fullmatch(params_field)
    if params_match is None:
        raise FormatError("Invalid credential: cannot parse cost parameters")
    memory_cost, time_cost, parallelism = (int(g) for g in params_match.groups())
    if (
        not 1 <= memory_cost <= _MAX_MEMORY_COST
        or not 1 <= time_cost <= _MAX_TIME_COST
        or not 1 <= parallelism <= _MAX_PARALLELISM
    ):
        raise FormatError("Invalid credential: cost parameters out of range")

    salt = _b64decode(salt_field, "salt")
    digest = _b64decode(digest_field, "digest")

    params = replace(
        Argon2Params(),
        memory_cost=memory_cost,
        time_cost=time_cost,
        parallelism=parallelism,
        salt_len=len(salt),
        hash_len=len(digest),
    )
    return params, salt, digest
