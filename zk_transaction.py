"""
ZK TRANSACTION ACTION

Ledger action moving one committed note from the acting identity to `to`,
gated on a CubicZKProof over (from, to, asset_commitment).

The enclosing engine calls, in order:
  state_keys(actor)              conflict detection / scheduling, no state access
  execute(rules, state, actor)   proof generation + verification, no writes
and applies the balance mutation only when execute reports success
(see apply_transaction).
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from zk_proof import (
    COMMITMENT_LEN,
    FIELD_MODULUS,
    KEY_LEN,
    CubicZKProof,
    MalformedInputError,
    PrimeField,
    ProofRejected,
    ZKError,
    check_length,
    commit_asset,
    derive_public,
)

logger = logging.getLogger(__name__)

# ---- Chain constants ---------------------------------------------------------

ZK_TRANSACTION_ID = 7
ZK_TRANSACTION_COMPUTE_UNITS = 10
BALANCE_PREFIX = 0x0
BALANCE_CHUNKS = 1
UINT64_LEN = 8
DEFAULT_ASSET_VALUE = 100


class InsufficientBalanceError(ZKError):
    pass


@dataclass(frozen=True)
class Rules:
    field_modulus: int = FIELD_MODULUS
    network_id: int = 1


@dataclass
class KeyPair:
    """Identity resolved by the auth layer: 32-byte secret and public id."""
    secret: bytes
    public: bytes = field(default=None)

    def __post_init__(self):
        if self.public is None:
            self.public = derive_public(self.secret)


@dataclass
class Result:
    success: bool
    compute_units: int
    output: bytes = b""
    warp_message: Optional[bytes] = None
    error: Optional[Exception] = None

# ---- State -------------------------------------------------------------------

def balance_key(identity: bytes, asset: bytes) -> bytes:
    check_length("identity", identity, KEY_LEN)
    check_length("asset", asset, COMMITMENT_LEN)
    return (bytes([BALANCE_PREFIX]) + bytes(identity) + bytes(asset)
            + BALANCE_CHUNKS.to_bytes(2, "big"))


class MemoryState:
    """Dict-backed mutable state with the get_value/insert/remove surface."""
    def __init__(self, values: dict = None):
        self.values = dict(values or {})

    def get_value(self, key: bytes) -> Optional[bytes]:
        return self.values.get(key)

    def insert(self, key: bytes, value: bytes):
        self.values[key] = value

    def remove(self, key: bytes):
        self.values.pop(key, None)


def get_balance(state, key: bytes) -> int:
    raw = state.get_value(key)
    return 0 if raw is None else int.from_bytes(raw, "big")


def set_balance(state, key: bytes, amount: int):
    if amount == 0:
        state.remove(key)
    else:
        state.insert(key, amount.to_bytes(UINT64_LEN, "big"))

# ---- Action ------------------------------------------------------------------

class ZKTransaction:
    def __init__(self, from_: bytes, to: bytes, asset_commitment: bytes,
                 asset_value: int = DEFAULT_ASSET_VALUE):
        check_length("from", from_, KEY_LEN)
        check_length("to", to, KEY_LEN)
        check_length("asset commitment", asset_commitment, COMMITMENT_LEN)
        self.from_ = bytes(from_)
        self.to = bytes(to)
        self.asset_commitment = bytes(asset_commitment)
        # Opening of asset_commitment; held in memory, never serialized
        self.asset_value = asset_value

    def __repr__(self):
        return (f"ZKTransaction(from={self.from_.hex()[:16]}, to={self.to.hex()[:16]}, "
                f"asset={self.asset_commitment.hex()[:16]})")

    def __eq__(self, other):
        return isinstance(other, ZKTransaction) and self.to_bytes() == other.to_bytes()

    @staticmethod
    def get_type_id() -> int:
        return ZK_TRANSACTION_ID

    def state_keys(self, actor: KeyPair):
        return (
            balance_key(actor.public, self.asset_commitment),
            balance_key(self.to, self.asset_commitment),
        )

    @staticmethod
    def state_keys_max_chunks():
        return (BALANCE_CHUNKS, BALANCE_CHUNKS)

    @staticmethod
    def max_compute_units(rules: Rules) -> int:
        return ZK_TRANSACTION_COMPUTE_UNITS

    @staticmethod
    def valid_range(rules: Rules):
        return (-1, -1)

    @staticmethod
    def outputs_warp_message() -> bool:
        return False

    @staticmethod
    def size() -> int:
        return KEY_LEN + KEY_LEN + COMMITMENT_LEN

    def to_bytes(self) -> bytes:
        return self.from_ + self.to + self.asset_commitment

    @classmethod
    def from_bytes(cls, data: bytes):
        if len(data) != cls.size():
            raise MalformedInputError(f"zk transaction must be {cls.size()} bytes, got {len(data)}")
        return cls(data[:KEY_LEN], data[KEY_LEN:2 * KEY_LEN], data[2 * KEY_LEN:])

    def execute(self, rules: Rules, state, actor: KeyPair) -> Result:
        """
        Generate and verify the transfer proof. Never writes to `state`.

        A rejected proof is a normal outcome: success is False, the rejection
        is returned in `error` and compute units are still charged. Entropy
        failures and malformed input raise and abort the execution.
        """
        proof_system = CubicZKProof(PrimeField(rules.field_modulus))
        commitment = commit_asset(self.asset_value)

        proof = proof_system.generate_proof(actor.secret, self.to, commitment)
        try:
            proof_system.verify_proof(self.from_, self.to, self.asset_commitment, *proof)
        except ProofRejected as exc:
            logger.warning("Rejected zk transaction %r: %s", self, exc)
            return Result(False, ZK_TRANSACTION_COMPUTE_UNITS, error=exc)

        logger.debug("Verified zk transaction %r", self)
        return Result(True, ZK_TRANSACTION_COMPUTE_UNITS)


def apply_transaction(action: ZKTransaction, rules: Rules, state, actor: KeyPair) -> Result:
    """Execute `action` and move one note sender -> receiver on success."""
    if actor.public == action.to:
        raise MalformedInputError("Cannot transfer to self")

    result = action.execute(rules, state, actor)
    if not result.success:
        return result

    sender_key, receiver_key = action.state_keys(actor)
    sender_balance = get_balance(state, sender_key)
    if sender_balance < 1:
        raise InsufficientBalanceError(f"{actor.public.hex()[:16]} holds no note for this asset")

    receiver_balance = get_balance(state, receiver_key)
    set_balance(state, sender_key, sender_balance - 1)
    set_balance(state, receiver_key, receiver_balance + 1)
    logger.info("Applied zk transaction %r", action)
    return result
