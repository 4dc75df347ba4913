"""
Identity Provider

Signup, login and bearer-session resolution.

- Accounts persist in the "users" collection of the document store
- Passwords are stored as PBKDF2-HMAC-SHA256 hashes with a per-user salt
- Login issues an opaque token; sessions live in process memory and
  expire after session_expiry_hours
- resolve() turns a token into an AuthenticatedIdentity for the core

Passwords and tokens are never logged.
"""

import hashlib
import hmac
import logging
import secrets
import threading
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Tuple

from .document_store import DocumentStore
from .errors import InvalidCredentialsError, UnauthorizedError, UserAlreadyExistsError
from .models import AuthenticatedIdentity, User, to_timestamp, utc_now

logger = logging.getLogger("identity")

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------
USERS_COLLECTION = "users"
SESSION_EXPIRY_HOURS = 24
PBKDF2_ITERATIONS = 200_000


def hash_password(password: str, salt: str) -> str:
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), bytes.fromhex(salt), PBKDF2_ITERATIONS
    )
    return digest.hex()


def _normalize_email(email: str) -> str:
    return email.strip().lower()


# -----------------------------------------------------------------------------
# Identity Provider
# -----------------------------------------------------------------------------
class IdentityProvider:
    """Issues and resolves bearer credentials for registered users."""

    def __init__(
        self,
        store: DocumentStore,
        session_expiry_hours: int = SESSION_EXPIRY_HOURS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._users = store.collection(USERS_COLLECTION)
        self._session_expiry = timedelta(hours=session_expiry_hours)
        self._clock = clock
        self._sessions: Dict[str, Dict[str, Any]] = {}
        self._sessions_lock = threading.Lock()
        # Serializes the duplicate-email check with the insert
        self._signup_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def signup(self, name: str, email: str, password: str) -> User:
        """
        Register a new account.

        Raises:
            UserAlreadyExistsError: the email is already registered
            StorageUnavailableError: the users collection is unavailable
        """
        email = _normalize_email(email)
        salt = secrets.token_hex(16)
        user = User(
            id=str(uuid.uuid4()),
            name=name.strip(),
            email=email,
            password_hash=hash_password(password, salt),
            salt=salt,
            created_at=to_timestamp(self._clock()),
        )

        with self._signup_lock:
            if self._users.find_one({"email": email}) is not None:
                logger.warning("Signup rejected, email already registered")
                raise UserAlreadyExistsError(email)
            self._users.insert_one(user.to_dict())

        logger.info(f"Registered user {user.id}")
        return user

    def authenticate(self, email: str, password: str) -> User:
        """
        Check credentials.

        Raises:
            InvalidCredentialsError: unknown email or wrong password
        """
        doc = self._users.find_one({"email": _normalize_email(email)})
        if doc is None:
            logger.warning("Login failed, unknown email")
            raise InvalidCredentialsError()

        user = User.from_dict(doc)
        if not hmac.compare_digest(hash_password(password, user.salt), user.password_hash):
            logger.warning(f"Login failed, wrong password for user {user.id}")
            raise InvalidCredentialsError()
        return user

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def login(self, email: str, password: str) -> Tuple[str, User]:
        """
        Authenticate and open a session.

        Returns:
            (token, user)
        """
        user = self.authenticate(email, password)
        token = secrets.token_urlsafe(32)
        now = self._clock()

        with self._sessions_lock:
            self._sweep_expired(now)
            self._sessions[token] = {
                "user_id": user.id,
                "email": user.email,
                "created_at": now,
                "expires_at": now + self._session_expiry,
            }

        logger.info(f"Opened session for user {user.id}")
        return token, user

    def resolve(self, token: Optional[str]) -> AuthenticatedIdentity:
        """
        Map a bearer token to the identity it was issued for.

        Raises:
            UnauthorizedError: token missing, unknown or expired
        """
        if not token:
            raise UnauthorizedError()

        with self._sessions_lock:
            session = self._sessions.get(token)
            if session is None:
                raise UnauthorizedError("Invalid token")

            if self._clock() > session["expires_at"]:
                del self._sessions[token]
                logger.info(f"Session expired for user {session['user_id']}")
                raise UnauthorizedError("Token expired")

        return AuthenticatedIdentity(user_id=session["user_id"], email=session["email"])

    def logout(self, token: str) -> None:
        with self._sessions_lock:
            session = self._sessions.pop(token, None)
        if session:
            logger.info(f"Closed session for user {session['user_id']}")

    def _sweep_expired(self, now: datetime) -> None:
        """Drop expired sessions. Caller holds _sessions_lock."""
        expired = [t for t, s in self._sessions.items() if now > s["expires_at"]]
        for token in expired:
            del self._sessions[token]
        if expired:
            logger.debug(f"Swept {len(expired)} expired sessions")
