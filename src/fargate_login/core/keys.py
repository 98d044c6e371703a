"""SSH key pair generation."""

import logging

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from fargate_login.core.errors import KeyGenerationError
from fargate_login.core.models import KeyPair

logger = logging.getLogger(__name__)

KEY_SIZE_BITS = 2048
PUBLIC_EXPONENT = 65537


def generate_key_pair() -> KeyPair:
    """Generate a fresh RSA key pair for one login session.

    The private half is a PKCS#1 PEM usable by `ssh -i`; the public half is a
    single `authorized_keys` line without a trailing newline, so it can be
    passed through an environment variable.

    Returns:
        The encoded key pair.

    Raises:
        KeyGenerationError: When the key cannot be generated or encoded.
    """
    try:
        private_key = rsa.generate_private_key(
            public_exponent=PUBLIC_EXPONENT,
            key_size=KEY_SIZE_BITS,
        )
        logger.debug("Private key generated")

        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public_openssh = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.OpenSSH,
            format=serialization.PublicFormat.OpenSSH,
        )
    except (UnsupportedAlgorithm, ValueError, TypeError) as exc:
        raise KeyGenerationError(f"Failed to generate SSH key pair: {exc}") from exc

    logger.debug("Public key generated")
    return KeyPair(
        private_key_pem=private_pem.decode("ascii"),
        public_key_authorized=public_openssh.decode("ascii").strip(),
    )
