"""
Cryptographic utilities for device authentication.

Uses ECDSA over P-256 (the curve burned into the devices' secure
elements) for:
  • Device keypair generation (provisioning and test fixtures)
  • Challenge signing (device side)
  • Challenge signature verification (hub side)
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import secrets
from pathlib import Path

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

CHALLENGE_BYTES = 32


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------

def generate_challenge() -> str:
    """Return 32 random bytes as a 64-char lowercase hex string."""
    return secrets.token_hex(CHALLENGE_BYTES)


# ---------------------------------------------------------------------------
# Key generation
# ---------------------------------------------------------------------------

def generate_keypair() -> tuple[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey]:
    """Generate a fresh P-256 keypair."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    return private_key, private_key.public_key()


def private_key_to_pem(key: ec.EllipticCurvePrivateKey) -> str:
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("ascii")


def public_key_to_pem(key: ec.EllipticCurvePublicKey) -> str:
    return key.public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


def private_key_from_pem(pem: str) -> ec.EllipticCurvePrivateKey:
    key = serialization.load_pem_private_key(pem.encode("ascii"), password=None)
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise ValueError("not an EC private key")
    return key


def public_key_from_pem(pem: str) -> ec.EllipticCurvePublicKey:
    key = serialization.load_pem_public_key(pem.encode("ascii"))
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise ValueError("not an EC public key")
    if not isinstance(key.curve, ec.SECP256R1):
        raise ValueError(f"unsupported curve {key.curve.name}")
    return key


# ---------------------------------------------------------------------------
# Signing / verification
# ---------------------------------------------------------------------------

def sign_challenge(private_key: ec.EllipticCurvePrivateKey, challenge: str) -> str:
    """Sign the challenge's UTF-8 bytes; return base64 DER signature."""
    der = private_key.sign(challenge.encode("utf-8"), ec.ECDSA(hashes.SHA256()))
    return base64.b64encode(der).decode("ascii")


def verify_challenge_signature(
    public_key_pem: str,
    challenge: str,
    signature_b64: str,
) -> bool:
    """
    Verify a base64 DER ECDSA/SHA-256 signature over *challenge*.

    Malformed keys or signatures count as a failed verification.
    """
    try:
        signature = base64.b64decode(signature_b64, validate=True)
        public_key = public_key_from_pem(public_key_pem)
        public_key.verify(signature, challenge.encode("utf-8"), ec.ECDSA(hashes.SHA256()))
        return True
    except (InvalidSignature, UnsupportedAlgorithm, ValueError, TypeError, binascii.Error):
        return False


def simulated_signature(device_uuid: str, challenge: str) -> str:
    """
    Development-only signature: base64(SHA-256(device_uuid + challenge)).

    This is what dev firmware without a secure element produces.
    """
    digest = hashlib.sha256((device_uuid + challenge).encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


# ---------------------------------------------------------------------------
# Persistence helpers
# ---------------------------------------------------------------------------

def save_keypair(directory: str | Path, private_key: ec.EllipticCurvePrivateKey) -> Path:
    """Persist a keypair to *directory* as PEM; returns the directory path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    (directory / "private.pem").write_text(private_key_to_pem(private_key))
    (directory / "public.pem").write_text(public_key_to_pem(private_key.public_key()))
    return directory


def load_keypair(
    directory: str | Path,
) -> tuple[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey]:
    """Load a previously-saved keypair from *directory*."""
    directory = Path(directory)
    priv = private_key_from_pem((directory / "private.pem").read_text())
    return priv, priv.public_key()
