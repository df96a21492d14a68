"""Password-keyed AES-256-GCM for mesh message content.

Envelope wire format (must match other implementations byte for byte):

    hex(nonce[12]) ":" hex(AES-256-GCM(SHA-256(password), nonce, plaintext) || tag[16])

Hex is lowercase on output and accepted in either case on input.
"""
import hashlib
import logging
import re
import secrets
from typing import Optional
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
TAG_SIZE = 16
MESH_KEY_BYTES = 16

UNDECRYPTABLE_PLACEHOLDER = "[Unable to decrypt message]"

_HEX = re.compile(r"[0-9a-fA-F]+")

class CryptoError(Exception):
    """Base class for message crypto failures."""

class EncryptError(CryptoError):
    """The AEAD primitive refused to encrypt; the message must not be sent."""

class DecryptError(CryptoError):
    """Malformed envelope, wrong password or tampered ciphertext."""

def derive_key(password: str) -> bytes:
    """SHA-256 of the UTF-8 password, used directly as the 256-bit AES key."""
    if not password:
        raise ValueError("mesh password must be non-empty")
    return hashlib.sha256(password.encode("utf-8")).digest()

def encrypt_message(message: str, password: str) -> str:
    """Encrypt message under password and return a "nonce:ciphertext" envelope."""
    key = derive_key(password)
    nonce = secrets.token_bytes(NONCE_SIZE)
    try:
        ct = AESGCM(key).encrypt(nonce, message.encode("utf-8"), None)
    except (ValueError, TypeError, OverflowError) as exc:
        logger.error("[crypto] Encryption failed: %s", exc)
        raise EncryptError("failed to encrypt message") from exc
    return f"{nonce.hex()}:{ct.hex()}"

def _unhex(field: str) -> bytes:
    if not _HEX.fullmatch(field) or len(field) % 2:
        raise DecryptError("invalid encrypted message format")
    return bytes.fromhex(field)

def decrypt_message(envelope: str, password: str) -> str:
    """Decrypt an envelope produced by encrypt_message.

    Raises DecryptError when the envelope is malformed, the password is wrong
    or the ciphertext was tampered with. Never returns unauthenticated data.
    """
    parts = envelope.split(":")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise DecryptError("invalid encrypted message format")
    nonce = _unhex(parts[0])
    ct = _unhex(parts[1])

    key = derive_key(password)
    try:
        plaintext = AESGCM(key).decrypt(nonce, ct, None)
    except InvalidTag as exc:
        raise DecryptError("failed to decrypt message") from exc
    except ValueError as exc:
        # nonce of unsupported length
        raise DecryptError("failed to decrypt message") from exc
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecryptError("decrypted payload is not UTF-8 text") from exc

def is_encrypted_message(message: str) -> bool:
    """Best-effort check that message looks like an envelope.

    This is a shape test, not a cryptographic one: a plaintext that happens to
    be 24 hex characters, a colon and more hex is reported as encrypted.
    """
    parts = message.split(":")
    if len(parts) != 2:
        return False
    nonce_hex, ct_hex = parts
    if len(nonce_hex) != NONCE_SIZE * 2:
        return False
    return bool(_HEX.fullmatch(nonce_hex)) and bool(_HEX.fullmatch(ct_hex))

def generate_mesh_key() -> str:
    """Random shareable mesh password: 16 bytes as 32 hex characters."""
    return secrets.token_hex(MESH_KEY_BYTES)

def reveal_content(content: str, password: Optional[str]) -> str:
    """Content for display: plaintext as-is, envelopes decrypted or replaced by a placeholder."""
    if not password or not is_encrypted_message(content):
        return content
    try:
        return decrypt_message(content, password)
    except DecryptError:
        logger.warning("[crypto] Could not decrypt message content")
        return UNDECRYPTABLE_PLACEHOLDER
