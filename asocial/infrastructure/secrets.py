# asocial/infrastructure/secrets.py
import os
from typing import Optional

import structlog
from cryptography.fernet import Fernet, InvalidToken

logger = structlog.get_logger(__name__)

CREDENTIALS_KEY = os.getenv("CREDENTIALS_KEY")  # base64 Fernet key, must be set in prod

if not CREDENTIALS_KEY:
    # dev fallback: secrets written by this process are unreadable after a restart
    CREDENTIALS_KEY = Fernet.generate_key().decode()
    logger.warning("credentials_key_generated", hint="set CREDENTIALS_KEY to persist platform secrets")

fernet = Fernet(CREDENTIALS_KEY.encode())


def encrypt_secret(plaintext: Optional[str]) -> Optional[str]:
    if plaintext is None:
        return None
    return fernet.encrypt(plaintext.encode()).decode()


def decrypt_secret(ciphertext: Optional[str]) -> Optional[str]:
    if not ciphertext:
        return None
    try:
        return fernet.decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        return None
