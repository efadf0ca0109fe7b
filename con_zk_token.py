"""
ZK NOTE TOKEN

Balances count committed notes per (address, asset_commitment), where
asset_commitment = sha256(value) hides the note value.
A note moves only if the sender's cubic ZK proof verifies:
  point     = sha256(sender_public | receiver_public | asset_commitment) mod p
  challenge == sha256(point | response) mod p

A rejected proof returns False and writes nothing.
"""

# -----------------------------------------------------------------------------
# Parameters & Helpers
# -----------------------------------------------------------------------------

p = 2**255 - 19  # field modulus, must match zk_proof.FIELD_MODULUS
HEX_DIGITS = '0123456789abcdef'

def to_hex32(x: int):
    h = hex(x)[2:]
    return '0' * (64 - len(h)) + h

def is_hex32(s: str):
    return len(s) == 64 and all(c in HEX_DIGITS for c in s)

def challenge_point(sender_public: str, receiver_public: str, asset_commitment: str):
    # hashlib.sha256 hashes the bytes of a hex string
    return int(hashlib.sha256(sender_public + receiver_public + asset_commitment), 16) % p

def seal(point: int, response: int):
    return int(hashlib.sha256(to_hex32(point) + to_hex32(response)), 16) % p

def verify_proof(sender_public: str, receiver_public: str, asset_commitment: str,
                 challenge: int, response: int):
    if challenge < 0 or challenge >= p or response < 0 or response >= p:
        return False
    point = challenge_point(sender_public, receiver_public, asset_commitment)
    return seal(point, response) == challenge

# -----------------------------------------------------------------------------
# State
# -----------------------------------------------------------------------------

# (address, asset_commitment) -> int notes held
balances = Hash(default_value=0)

# address -> hex public identifier
public_keys = Hash()

# contract metadata / config
metadata = Hash()
# address -> int (monotonic)
nonces = Hash()

# counter for events
next_tx_id = Variable()

# Events
ZkTransferEvent = LogEvent('ZkTransfer', {
    'from': {'type': str, 'idx': True},
    'to': {'type': str, 'idx': True},
    'asset_commitment': {'type': str},
    'tx_id': {'type': int, 'idx': True}
})

MintNoteEvent = LogEvent('MintNote', {
    'to': {'type': str, 'idx': True},
    'asset_commitment': {'type': str},
    'tx_id': {'type': int, 'idx': True}
})

# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------

@construct
def seed():
    metadata['name'] = "ZK Note Token"
    metadata['symbol'] = "ZKN"
    metadata['operator'] = ctx.caller
    metadata['notes_minted'] = 0

    next_tx_id.set(1)

# -----------------------------------------------------------------------------
# Views
# -----------------------------------------------------------------------------

@export
def get_metadata():
    return {
        'name': metadata['name'],
        'symbol': metadata['symbol'],
        'operator': metadata['operator'],
        'notes_minted': metadata['notes_minted']
    }

@export
def get_balance(address: str, asset_commitment: str):
    return balances[address, asset_commitment]

@export
def get_public_key(address: str):
    return public_keys[address]

@export
def get_nonce(address: str):
    n = nonces[address]
    return n if n is not None else 0

@export
def check_proof(sender: str, to: str, asset_commitment: str, challenge: int, response: int):
    sender_public = public_keys[sender]
    receiver_public = public_keys[to]
    if sender_public is None or receiver_public is None or not is_hex32(asset_commitment):
        return False
    return verify_proof(sender_public, receiver_public, asset_commitment, challenge, response)

# -----------------------------------------------------------------------------
# Core
# -----------------------------------------------------------------------------

def check_nonce(addr: str, provided: int):
    current = nonces[addr]
    if current is None:
        current = 0
    assert provided == current + 1, 'Bad nonce'

def next_tx():
    tid = next_tx_id.get()
    next_tx_id.set(tid + 1)
    return tid

@export
def register_key(public_key: str):
    assert is_hex32(public_key), 'Public key must be 32 bytes of lowercase hex'
    assert 1 < int(public_key, 16) < p, 'Public key outside the field'
    assert public_keys[ctx.caller] is None, 'Key already registered'
    public_keys[ctx.caller] = public_key

@export
def mint(to: str, asset_commitment: str, nonce: int):
    assert ctx.caller == metadata['operator'], 'Only operator can mint'
    assert is_hex32(asset_commitment), 'Asset commitment must be 32 bytes of lowercase hex'

    check_nonce(ctx.caller, nonce)
    nonces[ctx.caller] = nonce

    balances[to, asset_commitment] += 1
    metadata['notes_minted'] = (metadata['notes_minted'] or 0) + 1

    tx_id = next_tx()
    MintNoteEvent({
        'to': to,
        'asset_commitment': asset_commitment,
        'tx_id': tx_id
    })

@export
def zk_transfer(to: str, asset_commitment: str, challenge: int, response: int, nonce: int):
    assert to != ctx.caller, 'Cannot transfer to self'
    assert is_hex32(asset_commitment), 'Asset commitment must be 32 bytes of lowercase hex'

    check_nonce(ctx.caller, nonce)

    sender_public = public_keys[ctx.caller]
    receiver_public = public_keys[to]
    assert sender_public is not None, 'Sender key not registered'
    assert receiver_public is not None, 'Receiver key not registered'

    sender_notes = balances[ctx.caller, asset_commitment]
    assert sender_notes >= 1, 'No note to transfer'

    # Rejected proof: normal outcome, nothing written
    if not verify_proof(sender_public, receiver_public, asset_commitment, challenge, response):
        return False

    nonces[ctx.caller] = nonce
    balances[ctx.caller, asset_commitment] = sender_notes - 1
    balances[to, asset_commitment] += 1

    tx_id = next_tx()
    ZkTransferEvent({
        'from': ctx.caller,
        'to': to,
        'asset_commitment': asset_commitment,
        'tx_id': tx_id
    })
    return True
