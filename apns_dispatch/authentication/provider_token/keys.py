from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec


def _as_bytes(pem) -> bytes:
    if isinstance(pem, bytes):
        return pem
    return pem.strip().encode("utf-8")


def load_private_key(pem) -> ec.EllipticCurvePrivateKey:
    """
    Load an APNs auth key (the PKCS#8 ``.p8`` file Apple issues, or a SEC1 EC key).

    Raises:
        ValueError: If the PEM cannot be parsed or is not a P-256 key.
    """
    try:
        key = serialization.load_pem_private_key(_as_bytes(pem), password=None)
    except (ValueError, TypeError) as e:
        raise ValueError(f"Unreadable private key: {e}") from e
    if not isinstance(key, ec.EllipticCurvePrivateKey) or not isinstance(
        key.curve, ec.SECP256R1
    ):
        raise ValueError("Private key must be an EC key on the P-256 curve")
    return key


def load_public_key(pem) -> ec.EllipticCurvePublicKey:
    """Load the verification half of an APNs auth key."""
    try:
        key = serialization.load_pem_public_key(_as_bytes(pem))
    except (ValueError, TypeError) as e:
        raise ValueError(f"Unreadable public key: {e}") from e
    if not isinstance(key, ec.EllipticCurvePublicKey) or not isinstance(
        key.curve, ec.SECP256R1
    ):
        raise ValueError("Public key must be an EC key on the P-256 curve")
    return key
