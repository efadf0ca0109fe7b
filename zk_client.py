import secrets

from zk_proof import (
    FIELD_MODULUS,
    KEY_LEN,
    CubicZKProof,
    PrimeField,
    commit_asset,
    derive_public,
)
from zk_transaction import KeyPair

# ---- Chain-constant parameters & helpers (mirror contract) ----

p = FIELD_MODULUS

def generate_keypair() -> KeyPair:
    return KeyPair(secrets.token_bytes(KEY_LEN))

def keypair_from_secret(secret: bytes) -> KeyPair:
    return KeyPair(bytes(secret), derive_public(secret))

def commitment_hex(asset_value: int) -> str:
    return commit_asset(asset_value).hex()

# ---- High-level builders -----------------------------------------------------

def build_register(keypair: KeyPair):
    """
    Returns args for contract.register_key():
        (public_key)
    """
    return {'public_key': keypair.public.hex()}

def build_mint(asset_value: int, next_nonce: int = 1):
    """
    Returns args for contract.mint():
        (to, asset_commitment, nonce)
    Operator-only on-chain. You still supply `to`.
    """
    return {
        'asset_commitment': commitment_hex(asset_value),
        'nonce': next_nonce
    }

def build_zk_transfer(sender: KeyPair,
                      receiver_public: bytes,
                      asset_value: int,
                      next_nonce: int = 1,
                      field: PrimeField = None):
    """
    Returns args for contract.zk_transfer():
        (to, asset_commitment, challenge, response, nonce)
    You still supply the `to` address when calling the chain method; the
    contract looks up receiver_public from its key registry.
    """
    commitment = commit_asset(asset_value)
    proof = CubicZKProof(field).generate_proof(sender.secret, receiver_public, commitment)
    return {
        'asset_commitment': commitment.hex(),
        'challenge': proof.challenge,
        'response': proof.response,
        'nonce': next_nonce
    }

# ---- Convenience: wallet-side note tracker (optional) ------------------------

class NoteWallet:
    """
    Optional local helper holding the openings of the notes a user owns.
    Only commitments ever go on-chain; the values stay here.
    """
    def __init__(self, keypair: KeyPair = None):
        self.keypair = keypair or generate_keypair()
        # (commitment hex, value), one entry per note held
        self.notes = []

    def receive(self, asset_value: int) -> str:
        cmt = commitment_hex(asset_value)
        self.notes.append((cmt, asset_value))
        return cmt

    def spend(self, asset_commitment: str, receiver_public: bytes, next_nonce: int = 1):
        for i, (cmt, value) in enumerate(self.notes):
            if cmt == asset_commitment:
                break
        else:
            raise ValueError("Wallet does not hold the opening for this commitment")
        plan = build_zk_transfer(self.keypair, receiver_public, value, next_nonce)
        del self.notes[i]
        return plan

    def balance(self) -> int:
        return sum(value for _, value in self.notes)
