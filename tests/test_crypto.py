"""Tests for shared.crypto – P-256 keypairs, challenge signing, verification."""

import base64
import tempfile

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from shared.crypto import (
    generate_challenge,
    generate_keypair,
    load_keypair,
    private_key_to_pem,
    public_key_from_pem,
    public_key_to_pem,
    save_keypair,
    sign_challenge,
    simulated_signature,
    verify_challenge_signature,
)


def test_generate_challenge_is_64_lowercase_hex():
    challenge = generate_challenge()
    assert len(challenge) == 64
    assert challenge == challenge.lower()
    int(challenge, 16)


def test_challenges_are_fresh():
    assert generate_challenge() != generate_challenge()


def test_generate_keypair_is_p256():
    priv, pub = generate_keypair()
    assert isinstance(priv.curve, ec.SECP256R1)
    assert public_key_to_pem(pub).startswith("-----BEGIN PUBLIC KEY-----")


def test_sign_and_verify():
    priv, pub = generate_keypair()
    challenge = generate_challenge()

    sig = sign_challenge(priv, challenge)
    assert isinstance(sig, str)
    base64.b64decode(sig, validate=True)

    assert verify_challenge_signature(public_key_to_pem(pub), challenge, sig) is True


def test_signature_covers_hex_text_not_decoded_bytes():
    priv, pub = generate_keypair()
    challenge = generate_challenge()
    der = priv.sign(bytes.fromhex(challenge), ec.ECDSA(hashes.SHA256()))
    sig = base64.b64encode(der).decode()
    assert verify_challenge_signature(public_key_to_pem(pub), challenge, sig) is False


def test_verify_rejects_tampered_challenge():
    priv, pub = generate_keypair()
    challenge = generate_challenge()
    sig = sign_challenge(priv, challenge)
    tampered = ("0" if challenge[0] != "0" else "1") + challenge[1:]
    assert verify_challenge_signature(public_key_to_pem(pub), tampered, sig) is False


def test_verify_rejects_wrong_key():
    priv1, _ = generate_keypair()
    _, pub2 = generate_keypair()
    challenge = generate_challenge()
    sig = sign_challenge(priv1, challenge)
    assert verify_challenge_signature(public_key_to_pem(pub2), challenge, sig) is False


def test_verify_malformed_input_returns_false():
    priv, pub = generate_keypair()
    pem = public_key_to_pem(pub)
    challenge = generate_challenge()
    assert verify_challenge_signature(pem, challenge, "not base64!!") is False
    assert verify_challenge_signature(pem, challenge, base64.b64encode(b"garbage").decode()) is False
    assert verify_challenge_signature(pem, challenge, "") is False
    assert verify_challenge_signature("not a pem", challenge, sign_challenge(priv, challenge)) is False


def test_verify_rejects_non_p256_key():
    other = ec.generate_private_key(ec.SECP384R1())
    challenge = generate_challenge()
    sig = base64.b64encode(
        other.sign(challenge.encode(), ec.ECDSA(hashes.SHA256()))
    ).decode()
    assert verify_challenge_signature(public_key_to_pem(other.public_key()), challenge, sig) is False


def test_public_key_from_pem_roundtrip():
    _, pub = generate_keypair()
    loaded = public_key_from_pem(public_key_to_pem(pub))
    assert public_key_to_pem(loaded) == public_key_to_pem(pub)


def test_simulated_signature_known_value():
    # base64(sha256("abc" + "def"))
    assert simulated_signature("abc", "def") == "vvV+x/U6bUC+tkCngKY5yDvCmsipgW8fxsXG3Nk8RyE="


def test_save_and_load_keypair():
    priv, pub = generate_keypair()
    with tempfile.TemporaryDirectory() as tmpdir:
        save_keypair(tmpdir, priv)
        loaded_priv, loaded_pub = load_keypair(tmpdir)

    assert private_key_to_pem(loaded_priv) == private_key_to_pem(priv)
    assert public_key_to_pem(loaded_pub) == public_key_to_pem(pub)
