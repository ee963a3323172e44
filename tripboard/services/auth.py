"""Email/password sign-in with signed bearer tokens.

Passwords are stored as Argon2id hashes (``auth_users`` setting); tokens are
HS256 JWTs carrying a ``jti`` so sign-out can revoke them.
"""

import logging
import re
import time
import uuid
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from tripboard.errors import AuthenticationError, TooManyAttemptsError
from tripboard.models.auth import AuthSession, User

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

AuthStateCallback = Callable[[User | None], None]


def get_password_hasher() -> PasswordHasher:
    """Argon2id hasher shared by hashing and verification."""
    return PasswordHasher(time_cost=3, memory_cost=65536, parallelism=1, hash_len=32, salt_len=16)


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("Password must not be empty")
    return get_password_hasher().hash(password)


def verify_password(password: str, hash_string: str) -> bool:
    try:
        return get_password_hasher().verify(hash_string, password)
    except (VerificationError, InvalidHashError):
        return False


def user_for_email(email: str) -> User:
    """Stable user identity derived from the email address."""
    return User(uid=str(uuid.uuid5(uuid.NAMESPACE_URL, f"mailto:{email}")), email=email)


class AuthService:
    """Signs users in and out and notifies auth-state listeners."""

    def __init__(
        self,
        users: Mapping[str, str],
        secret: str,
        token_ttl_minutes: int = 720,
        lockout_threshold: int = 5,
        lockout_window_seconds: int = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._users = {email.lower(): hashed for email, hashed in users.items()}
        self._secret = secret
        self._token_ttl = timedelta(minutes=token_ttl_minutes)
        self._lockout_threshold = lockout_threshold
        self._lockout_window = lockout_window_seconds
        self._clock = clock
        # email -> (window start, failures)
        self._failures: dict[str, tuple[float, int]] = {}
        # jti -> token expiry
        self._revoked: dict[str, float] = {}
        self._listeners: list[AuthStateCallback] = []
        self._current_user: User | None = None

    @property
    def current_user(self) -> User | None:
        return self._current_user

    def sign_in(self, email: str, password: str) -> AuthSession:
        """Verify credentials and issue a token.

        Raises:
            AuthenticationError: Invalid email format or incorrect credentials
            TooManyAttemptsError: Too many failures inside the lockout window
        """
        email = email.strip().lower()
        if not EMAIL_PATTERN.match(email):
            raise AuthenticationError("Adresse email invalide")

        self._check_lockout(email)

        hashed = self._users.get(email)
        if hashed is None or not verify_password(password, hashed):
            self._record_failure(email)
            logger.warning("Sign-in failed", extra={"structured": {"email": email}})
            raise AuthenticationError("Email ou mot de passe incorrect")

        self._failures.pop(email, None)
        user = user_for_email(email)
        session = self._issue_token(user)
        logger.info("Signed in", extra={"structured": {"uid": user.uid}})
        self._set_current_user(user)
        return session

    def sign_out(self, token: str) -> None:
        """Revoke ``token``; its user is signed out."""
        payload = self._decode(token)
        self._prune_revoked()
        self._revoked[payload["jti"]] = float(payload["exp"])
        logger.info("Signed out", extra={"structured": {"uid": payload["sub"]}})
        self._set_current_user(None)

    def verify_token(self, token: str) -> User:
        """User carried by a valid, unrevoked token.

        Raises:
            AuthenticationError: If the token is invalid, expired or revoked
        """
        payload = self._decode(token)
        if payload["jti"] in self._revoked:
            raise AuthenticationError("Token has been revoked")
        return User(uid=payload["sub"], email=payload["email"])

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        """Register a listener; it fires now with the current user and on every change.

        Returns:
            Function removing the listener
        """
        self._listeners.append(callback)
        callback(self._current_user)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_current_user(self, user: User | None) -> None:
        self._current_user = user
        for listener in list(self._listeners):
            try:
                listener(user)
            except Exception:
                logger.exception("Auth state listener failed")

    def _issue_token(self, user: User) -> AuthSession:
        now = datetime.fromtimestamp(self._clock(), tz=UTC)
        expires = now + self._token_ttl
        payload = {
            "sub": user.uid,
            "email": user.email,
            "iat": now,
            "exp": expires,
            "jti": uuid.uuid4().hex,
        }
        token = jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)
        return AuthSession(token=token, expires_at=expires, user=user)

    def _decode(self, token: str) -> dict:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["sub", "exp", "jti"], "verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid token: {e}") from e

        if "email" not in payload:
            raise AuthenticationError("Malformed token payload")
        # Expiry is checked against the service clock
        if payload["exp"] <= self._clock():
            raise AuthenticationError("Token has expired")
        return payload

    def _check_lockout(self, email: str) -> None:
        start, failures = self._failures.get(email, (0.0, 0))
        if self._clock() - start >= self._lockout_window:
            self._failures.pop(email, None)
            return
        if failures >= self._lockout_threshold:
            raise TooManyAttemptsError("Trop de tentatives de connexion, veuillez réessayer plus tard")

    def _record_failure(self, email: str) -> None:
        now = self._clock()
        start, failures = self._failures.get(email, (now, 0))
        if now - start >= self._lockout_window:
            start, failures = now, 0
        self._failures[email] = (start, failures + 1)

    def _prune_revoked(self) -> None:
        now = self._clock()
        for jti in [jti for jti, expires in self._revoked.items() if expires <= now]:
            del self._revoked[jti]
