"""
Detached signing of transaction skeletons.

The canonical message is compiled once per call; each key signs those exact
bytes and its signature is written into the slot that matches the key's
position among the message's required signers.
"""

import logging
from typing import List, Sequence

from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction, VersionedTransaction

from .exceptions import MissingSignatureError, SignerMismatchError, TransactionBuildError
from .models import SignedTransaction, TransactionSkeleton

logger = logging.getLogger(__name__)


def compile_message(skeleton: TransactionSkeleton) -> Message:
    if skeleton.fee_payer is None:
        raise TransactionBuildError("Fee payer not set on transaction.")

    if skeleton.recent_blockhash is None:
        raise TransactionBuildError("Blockhash not set on transaction.")

    if not skeleton.instructions:
        raise TransactionBuildError("No instructions added to transaction.")

    try:
        return Message.new_with_blockhash(
            list(skeleton.instructions),
            skeleton.fee_payer,
            skeleton.recent_blockhash
        )
    except Exception as e:
        raise TransactionBuildError(f"Failed to compile transaction message: {e}") from e


def required_signers(message: Message) -> List[Pubkey]:
    return list(message.account_keys[:message.header.num_required_signatures])


def unsigned_transaction(skeleton: TransactionSkeleton) -> VersionedTransaction:
    """Transaction with placeholder signatures, suitable for simulation only."""
    message = compile_message(skeleton)
    placeholders = [Signature.default()] * message.header.num_required_signatures
    return VersionedTransaction.populate(message, placeholders)


def sign_transaction(
    skeleton: TransactionSkeleton,
    keys: Sequence[Keypair]
) -> SignedTransaction:
    message = compile_message(skeleton)
    message_bytes = bytes(message)
    signers = required_signers(message)
    signatures = [Signature.default()] * len(signers)

    for key in keys:
        pubkey = key.pubkey()
        if pubkey not in signers:
            raise SignerMismatchError(
                f"Key {pubkey} is not a required signer of this transaction",
                signer=str(pubkey),
            )
        signatures[signers.index(pubkey)] = key.sign_message(message_bytes)

    missing = [
        str(pubkey)
        for pubkey, signature in zip(signers, signatures)
        if signature == Signature.default()
    ]
    if missing:
        raise MissingSignatureError(
            f"Missing signatures for {', '.join(missing)}",
            missing_signers=missing,
        )

    tx = Transaction.populate(message, signatures)
    signed = SignedTransaction(
        raw=bytes(tx),
        signatures=tuple(str(signature) for signature in signatures),
    )
    logger.debug(f"Signed transaction {signed.signature} ({len(signed)} bytes, {len(keys)} signers)")
    return signed


__all__ = [
    "compile_message",
    "required_signers",
    "unsigned_transaction",
    "sign_transaction",
]
