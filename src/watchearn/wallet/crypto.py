"""Encryption of withdrawal payment details at rest.

Payment details (UPI id, bank account, PayPal address) are stored as Fernet
tokens. The key lives only in service configuration (WE_PAYMENT_DETAILS_KEY);
generate one with `Fernet.generate_key()`.
"""

from __future__ import annotations

from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from watchearn.config import get_settings


class PaymentDetailsKeyError(RuntimeError):
    """The service has no usable payment-details key configured."""


@lru_cache
def _fernet(key: str) -> Fernet:
    try:
        return Fernet(key.encode())
    except (ValueError, TypeError) as e:
        msg = "WE_PAYMENT_DETAILS_KEY is not a valid Fernet key"
        raise PaymentDetailsKeyError(msg) from e


def get_cipher() -> Fernet:
    key = get_settings().payment_details_key
    if not key:
        msg = "WE_PAYMENT_DETAILS_KEY is not configured"
        raise PaymentDetailsKeyError(msg)
    return _fernet(key)


def encrypt_payment_details(plaintext: str) -> str:
    return get_cipher().encrypt(plaintext.encode()).decode()


def decrypt_payment_details(token: str) -> str:
    """Decrypt a stored token.

    Raises:
        PaymentDetailsKeyError: If the token was not produced with the configured key.
    """
    try:
        return get_cipher().decrypt(token.encode()).decode()
    except InvalidToken as e:
        msg = "Stored payment details cannot be decrypted with the configured key"
        raise PaymentDetailsKeyError(msg) from e
