import json

from cryptography.fernet import Fernet

from studysphere.config import get_settings


def get_fernet() -> Fernet:
    settings = get_settings()
    return Fernet(settings.FERNET_KEY.encode() if isinstance(settings.FERNET_KEY, str) else settings.FERNET_KEY)


def encrypt_payload(data: dict, fernet: Fernet | None = None) -> str:
    """Encrypt a JSON-serialisable dict into a URL-safe Fernet token."""
    f = fernet or get_fernet()
    json_bytes = json.dumps(data, sort_keys=True).encode("utf-8")
    return f.encrypt(json_bytes).decode("ascii")


def decrypt_payload(token: str, fernet: Fernet | None = None, ttl: int | None = None) -> dict:
    """Decrypt a Fernet token back to a dict.

    Raises ``cryptography.fernet.InvalidToken`` if the token was tampered
    with, signed with another key, or is older than ``ttl`` seconds.
    """
    f = fernet or get_fernet()
    decrypted = f.decrypt(token.encode("ascii"), ttl=ttl)
    return json.loads(decrypted.decode("utf-8"))
