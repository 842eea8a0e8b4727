"""Registration, login and the process-wide sign-in session.

The session moves booting -> anonymous|authenticated at startup
(``AuthService.restore``), anonymous -> authenticated on ``login`` and back to
anonymous on ``logout``. Only the user id is persisted, under
``SESSION_KEY`` in the configured :class:`SessionStore`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import structlog

from expense_tracker.core.config import Settings, settings as default_settings
from expense_tracker.core.datetime_utils import utc_now_iso
from expense_tracker.core.errors import AuthError, ConflictError, Field, StorageError, ValidationError
from expense_tracker.core.security import hash_password, verify_and_update
from expense_tracker.core.session_store import SESSION_KEY, SessionStore
from expense_tracker.db.gateway import SQLITE_MAX_INTEGER, Database
from expense_tracker.schemas.auth import SessionStatus, UserPublic

logger = structlog.get_logger(__name__)

EMAIL_RE = re.compile(r"^\S+@\S+\.\S+$")

USERNAME_TAKEN = "Username already exists"
EMAIL_TAKEN = "Email already exists"


def normalize_username(username: str) -> str:
    # Case is significant for usernames; only surrounding whitespace goes.
    return (username or "").strip()


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


@dataclass
class AuthSession:
    status: SessionStatus = SessionStatus.BOOTING
    user: UserPublic | None = field(default=None)

    @property
    def is_logged_in(self) -> bool:
        return self.status == SessionStatus.AUTHENTICATED and self.user is not None

    @property
    def is_booting(self) -> bool:
        return self.status == SessionStatus.BOOTING

    def sign_in(self, user: UserPublic) -> None:
        self.user = user
        self.status = SessionStatus.AUTHENTICATED

    def sign_out(self) -> None:
        self.user = None
        self.status = SessionStatus.ANONYMOUS


class AuthService:
    def __init__(
        self,
        db: Database,
        store: SessionStore,
        session: AuthSession | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.db = db
        self.store = store
        self.session = session or AuthSession()
        self.settings = settings or default_settings

    def _get_user_by_username(self, username: str) -> UserPublic | None:
        return self.db.fetch_one(
            "SELECT id, username, email FROM users WHERE username = ? COLLATE BINARY",
            [username],
            model=UserPublic,
        )

    def get_user(self, user_id: int) -> UserPublic | None:
        return self.db.fetch_one(
            "SELECT id, username, email FROM users WHERE id = ?",
            [int(user_id)],
            model=UserPublic,
        )

    def register(self, username: str, email: str, password: str) -> UserPublic:
        """Create an account. Does not sign the new user in."""

        u = normalize_username(username)
        e = normalize_email(email)

        if not u:
            raise ValidationError("Username is required.", field=Field.USERNAME)
        if not e:
            raise ValidationError("Email is required.", field=Field.EMAIL)
        if not EMAIL_RE.match(e):
            raise ValidationError("Please enter a valid email address.", field=Field.EMAIL)
        if not password or not password.strip():
            raise ValidationError("Password is required.", field=Field.PASSWORD)
        if len(password) < self.settings.password_min_length:
            raise ValidationError(
                f"Password must be at least {self.settings.password_min_length} characters.",
                field=Field.PASSWORD,
            )

        # Fast, friendly errors; the UNIQUE constraints below remain the real guarantee.
        if self._get_user_by_username(u) is not None:
            raise ConflictError(USERNAME_TAKEN, field=Field.USERNAME)
        if self.db.fetch_one("SELECT id FROM users WHERE email = ?", [e]) is not None:
            raise ConflictError(EMAIL_TAKEN, field=Field.EMAIL)

        try:
            self.db.execute(
                "INSERT INTO users (username, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
                [u, e, hash_password(password), utc_now_iso()],
            )
        except StorageError as err:
            if err.constraint == "users.username":
                raise ConflictError(USERNAME_TAKEN, field=Field.USERNAME) from err
            if err.constraint == "users.email":
                raise ConflictError(EMAIL_TAKEN, field=Field.EMAIL) from err
            raise

        created = self._get_user_by_username(u)
        if created is None:
            raise StorageError("Failed to create account.")

        logger.info("user_registered", user_id=created.id)
        return created

    def login(self, username: str, password: str) -> UserPublic:
        u = normalize_username(username)

        if not u:
            raise ValidationError("Username is required.", field=Field.USERNAME)
        if not password or not password.strip():
            raise ValidationError("Password is required.", field=Field.PASSWORD)

        row = self.db.fetch_one(
            "SELECT id, username, email, password_hash FROM users WHERE username = ? COLLATE BINARY",
            [u],
        )
        if row is None:
            logger.info("login_failed", reason="user_not_found")
            raise AuthError("User not found", field=Field.USERNAME)

        try:
            ok, new_hash = verify_and_update(password, row["password_hash"])
        except ValueError:
            # Stored value is not a recognised hash format.
            ok, new_hash = False, None
        if not ok:
            logger.info("login_failed", reason="invalid_password", user_id=row["id"])
            raise AuthError("Invalid password", field=Field.PASSWORD)

        if new_hash is not None:
            self.db.execute("UPDATE users SET password_hash = ? WHERE id = ?", [new_hash, row["id"]])
            logger.info("password_hash_upgraded", user_id=row["id"])

        user = UserPublic(id=row["id"], username=row["username"], email=row["email"])
        try:
            self.store.set(SESSION_KEY, str(user.id))
        except OSError as err:
            raise StorageError(f"Could not save session: {err}") from err
        self.session.sign_in(user)

        logger.info("login_succeeded", user_id=user.id)
        return user

    def logout(self) -> None:
        try:
            self.store.delete(SESSION_KEY)
        except OSError as err:
            logger.warning("logout_storage_failed", error=str(err))
        finally:
            self.session.sign_out()

    def restore(self) -> AuthSession:
        """Boot transition: load the persisted user, or stay anonymous without complaint."""

        self.session.status = SessionStatus.BOOTING
        user: UserPublic | None = None
        try:
            user_id = int(self.store.get(SESSION_KEY) or 0)
            if 0 < user_id <= SQLITE_MAX_INTEGER:
                user = self.get_user(user_id)
        except ValueError:
            logger.debug("session_value_invalid")
        except (OSError, StorageError) as err:
            logger.warning("session_restore_failed", error=str(err))

        if user is not None:
            self.session.sign_in(user)
            logger.info("session_restored", user_id=user.id)
        else:
            self.session.sign_out()
            logger.debug("session_restore_miss")

        return self.session
