"""One-time password-reset codes kept in a TTL cache keyed by user id.

Two cache backends are supported, chosen by ``settings.otp_backend``:
Redis for multi-process deployments and an in-process ``TTLCache`` for
single-process and development use. Entries are JSON-compatible dicts::

    {"code_hash": str, "attempts": int, "verified": bool, "expires_at": float}

``expires_at`` is checked on every read so a rewritten entry (attempt
counter bump) never outlives the TTL granted when the code was issued.
"""
import json
import logging
import secrets
import threading
from datetime import timedelta
from typing import Any, Dict, Optional

import redis
from cachetools import TTLCache

from app.core.clock import utcnow
from app.core.settings import settings
from app.security.passwords import hash_code, verify_code


logger = logging.getLogger(__name__)


class OTPStoreUnavailable(Exception):
    pass


class OTPError(Exception):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class MemoryOTPStore:
    def __init__(self, maxsize: int = 10_000, ttl: Optional[int] = None):
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl or settings.otp_ttl_seconds)
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._cache.get(key)
            return dict(entry) if entry is not None else None

    def set(self, key: str, entry: Dict[str, Any], ttl_seconds: int) -> None:
        with self._lock:
            self._cache[key] = dict(entry)

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)


class RedisOTPStore:
    def __init__(self, url: str):
        self._client = redis.Redis.from_url(
            url, socket_connect_timeout=1, socket_timeout=1, decode_responses=True
        )

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            raw = self._client.get(key)
        except redis.RedisError as exc:
            raise OTPStoreUnavailable(str(exc)) from exc
        return json.loads(raw) if raw else None

    def set(self, key: str, entry: Dict[str, Any], ttl_seconds: int) -> None:
        try:
            self._client.setex(key, max(1, ttl_seconds), json.dumps(entry))
        except redis.RedisError as exc:
            raise OTPStoreUnavailable(str(exc)) from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            raise OTPStoreUnavailable(str(exc)) from exc


_store = None
_store_lock = threading.Lock()


def get_store():
    global _store
    with _store_lock:
        if _store is None:
            if settings.otp_backend == "redis":
                _store = RedisOTPStore(settings.redis_url)
            else:
                _store = MemoryOTPStore()
            logger.info("OTP store initialised with %s backend", settings.otp_backend)
        return _store


def set_store(store) -> None:
    global _store
    with _store_lock:
        _store = store


def _key(user_id: int) -> str:
    return f"otp:{user_id}"


def generate_code() -> str:
    return str(secrets.randbelow(900_000) + 100_000)


def _seconds_left(entry: Dict[str, Any]) -> int:
    return int(entry["expires_at"] - utcnow().timestamp())


def issue_otp(user_id: int) -> str:
    code = generate_code()
    ttl = settings.otp_ttl_seconds
    entry = {
        "code_hash": hash_code(code),
        "attempts": 0,
        "verified": False,
        "expires_at": (utcnow() + timedelta(seconds=ttl)).timestamp(),
    }
    get_store().set(_key(user_id), entry, ttl)
    return code


def _load_live_entry(user_id: int) -> Dict[str, Any]:
    store = get_store()
    entry = store.get(_key(user_id))
    if not entry or _seconds_left(entry) <= 0:
        if entry:
            store.delete(_key(user_id))
        raise OTPError("OTP_EXPIRED", "OTP has expired or was never requested")
    return entry


def check_otp(user_id: int, code: str) -> None:
    """Verify a submitted code and mark the entry as verified."""
    store = get_store()
    entry = _load_live_entry(user_id)

    if not verify_code(code, entry["code_hash"]):
        entry["attempts"] += 1
        if entry["attempts"] >= settings.otp_max_attempts:
            store.delete(_key(user_id))
            raise OTPError("OTP_ATTEMPTS_EXCEEDED", "Too many invalid attempts. Request a new code.")
        store.set(_key(user_id), entry, _seconds_left(entry))
        raise OTPError("OTP_INVALID", "Invalid OTP")

    entry["verified"] = True
    store.set(_key(user_id), entry, _seconds_left(entry))


def consume_otp(user_id: int, code: str) -> None:
    """Final step of the reset flow: the code must already be verified and still match."""
    entry = _load_live_entry(user_id)
    if not entry.get("verified"):
        raise OTPError("OTP_NOT_VERIFIED", "OTP has not been verified")
    if not verify_code(code, entry["code_hash"]):
        raise OTPError("OTP_INVALID", "Invalid OTP")
    get_store().delete(_key(user_id))
