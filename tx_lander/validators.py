"""Validation helpers for RPC endpoints, public keys and keypair files."""
import json
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union
from urllib.parse import urlparse

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .exceptions import (
    InvalidAddressError,
    InvalidKeypairError,
    InvalidUrlError,
)

SOLANA_ADDRESS_LENGTH = 32
KEYPAIR_LENGTH = 64

ALLOWED_RPC_SCHEMES = ("http", "https")


def validate_rpc_url(url: Any) -> str:
    if not isinstance(url, str):
        raise InvalidUrlError(f"URL must be a string, got {type(url).__name__}")

    url = url.strip()
    if not url:
        raise InvalidUrlError("URL cannot be empty", url=url)

    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise InvalidUrlError(f"Invalid URL format: {e}", url=url) from e

    if parsed.scheme.lower() not in ALLOWED_RPC_SCHEMES:
        raise InvalidUrlError(
            f"RPC URL scheme must be one of: {', '.join(ALLOWED_RPC_SCHEMES)}",
            url=url
        )

    if not parsed.netloc:
        raise InvalidUrlError("RPC URL must include a host", url=url)

    return url


def is_valid_rpc_url(url: Any) -> bool:
    try:
        validate_rpc_url(url)
        return True
    except InvalidUrlError:
        return False


def validate_solana_address(address: Any, field_name: str = "address") -> Pubkey:
    if not isinstance(address, str):
        raise InvalidAddressError(
            f"{field_name} must be a string, got {type(address).__name__}",
            invalid_address=str(address)[:50]
        )

    address = address.strip()
    if not address:
        raise InvalidAddressError(f"{field_name} cannot be empty", invalid_address="")

    if len(address) < 32 or len(address) > 44:
        raise InvalidAddressError(
            f"Invalid {field_name} length: {len(address)} characters",
            invalid_address=address
        )

    try:
        decoded = base58.b58decode(address)
    except ValueError as e:
        raise InvalidAddressError(
            f"Invalid base58 encoding: {e}",
            invalid_address=address
        ) from e

    if len(decoded) != SOLANA_ADDRESS_LENGTH:
        raise InvalidAddressError(
            f"Decoded {field_name} must be {SOLANA_ADDRESS_LENGTH} bytes, got {len(decoded)}",
            invalid_address=address
        )

    return Pubkey.from_bytes(decoded)


def validate_public_key(key: Any) -> Optional[Pubkey]:
    try:
        return validate_solana_address(key)
    except InvalidAddressError:
        return None


def validate_public_keys(keys: Optional[Sequence[str]]) -> List[Pubkey]:
    if not keys:
        return []

    invalid = [key for key in keys if validate_public_key(key) is None]
    if invalid:
        raise InvalidAddressError(
            "One or more public keys are invalid",
            context={"invalid": invalid}
        )

    return [validate_solana_address(key) for key in keys]


def keypair_from_base58(secret: str) -> Keypair:
    try:
        raw = base58.b58decode(secret.strip())
    except ValueError as e:
        raise InvalidKeypairError(f"Invalid base58 secret key: {e}") from e

    if len(raw) != KEYPAIR_LENGTH:
        raise InvalidKeypairError(f"Secret key must be {KEYPAIR_LENGTH} bytes, got {len(raw)}")

    try:
        return Keypair.from_bytes(raw)
    except ValueError as e:
        raise InvalidKeypairError(f"Invalid secret key: {e}") from e


def load_keypair(path: Union[str, Path]) -> Keypair:
    """Load a keypair from a JSON file holding the 64 secret key bytes."""
    if not path:
        raise InvalidKeypairError("Keypair path is required")

    keypair_path = Path(path).expanduser()
    if not keypair_path.is_file():
        raise InvalidKeypairError(f"Keypair file not found at: {keypair_path}", path=str(keypair_path))

    try:
        data = json.loads(keypair_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InvalidKeypairError(
            f"Invalid keypair file format at: {keypair_path}",
            path=str(keypair_path)
        ) from e

    if (
        not isinstance(data, list)
        or len(data) != KEYPAIR_LENGTH
        or not all(isinstance(b, int) and 0 <= b <= 255 for b in data)
    ):
        raise InvalidKeypairError(
            f"Keypair file must contain {KEYPAIR_LENGTH} bytes: {keypair_path}",
            path=str(keypair_path)
        )

    try:
        return Keypair.from_bytes(bytes(data))
    except ValueError as e:
        raise InvalidKeypairError(f"Invalid keypair at {keypair_path}: {e}", path=str(keypair_path)) from e


__all__ = [
    "validate_rpc_url",
    "is_valid_rpc_url",
    "validate_solana_address",
    "validate_public_key",
    "validate_public_keys",
    "keypair_from_base58",
    "load_keypair",
]
