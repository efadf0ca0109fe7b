"""
CUBIC ZK PROOF

Field arithmetic, cubic polynomials, asset commitments and the
challenge/response proof used by the confidential transfer action.

  point     = H(sender_public || receiver_public || commitment) mod p
  response  = P(point)            P: fresh random cubic, never transmitted
  challenge = H(point || response) mod p

The verifier recomputes point and challenge from public material only.
"""

import enum
import hashlib
import hmac
import logging
import secrets

logger = logging.getLogger(__name__)

# ---- Protocol constants ------------------------------------------------------

FIELD_MODULUS = 2**255 - 19
CUBIC_DEGREE = 3
KEY_LEN = 32
COMMITMENT_LEN = 32
ELEMENT_LEN = 32
PROOF_LEN = 2 * ELEMENT_LEN

# ---- Errors ------------------------------------------------------------------

class ZKError(Exception):
    """Base class for proof subsystem failures."""


class RandomSourceError(ZKError):
    pass


class DegreeMismatchError(ZKError):
    def __init__(self, expected: int, got: int):
        super().__init__(f"expected {expected} coefficients, got {got}")
        self.expected = expected
        self.got = got


class ProofRejected(ZKError):
    pass


class MalformedInputError(ZKError, ValueError):
    pass

# ---- Field arithmetic --------------------------------------------------------

def mod_exp(base: int, exponent: int, modulus: int) -> int:
    if exponent == 0:
        return 1
    result = 1
    base = base % modulus
    e = exponent
    while e > 0:
        if e & 1:
            result = (result * base) % modulus
        e >>= 1
        base = (base * base) % modulus
    return result


class PrimeField:
    """
    Integers modulo a prime. Elements are plain ints kept in [0, modulus).
    `randbelow` is the entropy source, secrets.randbelow unless overridden.
    """
    def __init__(self, modulus: int = FIELD_MODULUS, randbelow=None):
        if modulus < 3:
            raise ValueError("Modulus must be an odd prime")
        self.modulus = modulus
        self.randbelow = randbelow or secrets.randbelow

    def __repr__(self):
        return f"PrimeField({hex(self.modulus)})"

    def __eq__(self, other):
        return isinstance(other, PrimeField) and other.modulus == self.modulus

    def __hash__(self):
        return hash(self.modulus)

    def element(self, x: int) -> int:
        return x % self.modulus

    def contains(self, x) -> bool:
        return isinstance(x, int) and 0 <= x < self.modulus

    def add(self, a: int, b: int) -> int:
        return (a + b) % self.modulus

    def sub(self, a: int, b: int) -> int:
        return (a - b) % self.modulus

    def mul(self, a: int, b: int) -> int:
        return (a * b) % self.modulus

    def neg(self, a: int) -> int:
        return -a % self.modulus

    def exp(self, base: int, exponent: int) -> int:
        return mod_exp(base, exponent, self.modulus)

    def inverse(self, a: int) -> int:
        # Fermat since modulus is prime
        if a % self.modulus == 0:
            raise ZeroDivisionError("0 has no inverse")
        return mod_exp(a, self.modulus - 2, self.modulus)

    def random_element(self) -> int:
        try:
            value = self.randbelow(self.modulus)
        except (OSError, NotImplementedError, RuntimeError) as exc:
            raise RandomSourceError(f"Secure random source failed: {exc}") from exc
        if not self.contains(value):
            raise RandomSourceError("Secure random source returned an out-of-range value")
        return value

    def to_bytes(self, x: int) -> bytes:
        return self.element(x).to_bytes(ELEMENT_LEN, "big")

    def hash_to_element(self, *parts: bytes) -> int:
        digest = hashlib.sha256(b"".join(parts)).digest()
        return int.from_bytes(digest, "big") % self.modulus

# ---- Polynomial --------------------------------------------------------------

class Polynomial:
    """
    c0 + c1*x + ... + cd*x^d over a PrimeField. Coefficients are reduced
    and frozen at construction.
    """
    def __init__(self, field: PrimeField, coefficients, degree: int = None):
        coefficients = tuple(field.element(c) for c in coefficients)
        if degree is not None and len(coefficients) != degree + 1:
            raise DegreeMismatchError(degree + 1, len(coefficients))
        if not coefficients:
            raise DegreeMismatchError(1, 0)
        self.field = field
        self.coefficients = coefficients

    @classmethod
    def random(cls, field: PrimeField, degree: int = CUBIC_DEGREE):
        return cls(field, [field.random_element() for _ in range(degree + 1)], degree=degree)

    @property
    def degree(self) -> int:
        return len(self.coefficients) - 1

    def __len__(self):
        return len(self.coefficients)

    def __eq__(self, other):
        return (isinstance(other, Polynomial)
                and self.field == other.field
                and self.coefficients == other.coefficients)

    def __repr__(self):
        return f"Polynomial(degree={self.degree})"

    def evaluate(self, x: int) -> int:
        # Horner
        f = self.field
        result = self.coefficients[-1]
        for c in reversed(self.coefficients[:-1]):
            result = f.add(f.mul(result, x), c)
        return result

    __call__ = evaluate

    def __add__(self, other):
        self._check_field(other)
        n = max(len(self), len(other))
        a = self.coefficients + (0,) * (n - len(self))
        b = other.coefficients + (0,) * (n - len(other))
        return Polynomial(self.field, [self.field.add(x, y) for x, y in zip(a, b)])

    def __mul__(self, other):
        self._check_field(other)
        f = self.field
        out = [0] * (len(self) + len(other) - 1)
        for i, a in enumerate(self.coefficients):
            for j, b in enumerate(other.coefficients):
                out[i + j] = f.add(out[i + j], f.mul(a, b))
        return Polynomial(f, out)

    def _check_field(self, other):
        if not isinstance(other, Polynomial) or other.field != self.field:
            raise TypeError("Polynomials must share a field")

# ---- Commitment --------------------------------------------------------------

def value_to_bytes(value: int) -> bytes:
    # Minimal big-endian; 0 encodes as b""
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def commit_asset(value: int) -> bytes:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise MalformedInputError("Asset value must be a non-negative integer")
    return hashlib.sha256(value_to_bytes(value)).digest()


def commitment_to_int(commitment: bytes) -> int:
    return int.from_bytes(commitment, "big")

# ---- Keys --------------------------------------------------------------------

def map_to_base(tag: str, modulus: int = FIELD_MODULUS) -> int:
    # Derive a base in [2, p-2] from sha3(tag)
    digest = hashlib.sha3_256(("XZK:gen:" + tag).encode()).hexdigest()
    return int(digest[:32], 16) % (modulus - 3) + 2


g = map_to_base("g")


def derive_public(secret: bytes) -> bytes:
    """Public identifier g^s mod p for a 32-byte secret."""
    check_length("sender secret", secret, KEY_LEN)
    s = int.from_bytes(secret, "big") % (FIELD_MODULUS - 1)
    return mod_exp(g, s, FIELD_MODULUS).to_bytes(KEY_LEN, "big")


def check_length(name: str, data, expected: int):
    if not isinstance(data, (bytes, bytearray)) or len(data) != expected:
        raise MalformedInputError(f"{name} must be {expected} bytes")

# ---- Proof -------------------------------------------------------------------

class Proof:
    __slots__ = ("challenge", "response")

    def __init__(self, challenge: int, response: int):
        self.challenge = challenge
        self.response = response

    def __iter__(self):
        return iter((self.challenge, self.response))

    def __eq__(self, other):
        return isinstance(other, Proof) and tuple(self) == tuple(other)

    def __repr__(self):
        return f"Proof(challenge={hex(self.challenge)}, response={hex(self.response)})"

    def to_bytes(self) -> bytes:
        return (self.challenge.to_bytes(ELEMENT_LEN, "big")
                + self.response.to_bytes(ELEMENT_LEN, "big"))

    @classmethod
    def from_bytes(cls, data: bytes):
        check_length("proof", data, PROOF_LEN)
        return cls(int.from_bytes(data[:ELEMENT_LEN], "big"),
                   int.from_bytes(data[ELEMENT_LEN:], "big"))


class ProofState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    POLYNOMIAL_SAMPLED = "polynomial_sampled"
    PROOF_GENERATED = "proof_generated"
    VERIFIED = "verified"
    REJECTED = "rejected"


class CubicZKProof:
    """
    One proof invocation. Holds the sampled polynomial for the lifetime of
    the instance only; create a new instance per execution.
    """
    def __init__(self, field: PrimeField = None):
        self.field = field or PrimeField()
        self.polynomial = None
        self.state = ProofState.UNINITIALIZED

    def challenge_point(self, sender_public: bytes, receiver_public: bytes, commitment: bytes) -> int:
        check_length("sender public key", sender_public, KEY_LEN)
        check_length("receiver public key", receiver_public, KEY_LEN)
        check_length("commitment", commitment, COMMITMENT_LEN)
        return self.field.hash_to_element(sender_public, receiver_public, commitment)

    def seal(self, point: int, response: int) -> int:
        f = self.field
        return f.hash_to_element(f.to_bytes(point), f.to_bytes(response))

    def generate_proof(self, sender_secret: bytes, receiver_public: bytes, commitment: bytes) -> Proof:
        sender_public = derive_public(sender_secret)
        point = self.challenge_point(sender_public, receiver_public, commitment)

        self.polynomial = Polynomial.random(self.field, CUBIC_DEGREE)
        self.state = ProofState.POLYNOMIAL_SAMPLED

        response = self.polynomial.evaluate(point)
        proof = Proof(self.seal(point, response), response)
        self.state = ProofState.PROOF_GENERATED
        logger.debug("Generated proof for receiver %s", receiver_public.hex()[:16])
        return proof

    def verify_proof(self, sender_public: bytes, receiver_public: bytes, commitment: bytes,
                     challenge: int, response: int):
        point = self.challenge_point(sender_public, receiver_public, commitment)
        f = self.field
        if not (f.contains(challenge) and f.contains(response)):
            self.state = ProofState.REJECTED
            raise ProofRejected("Challenge or response outside the field")

        expected = f.to_bytes(self.seal(point, response))
        if not hmac.compare_digest(expected, f.to_bytes(challenge)):
            self.state = ProofState.REJECTED
            raise ProofRejected("Challenge does not match the transcript")
        self.state = ProofState.VERIFIED
