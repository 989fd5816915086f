"""Account registration and sign-in.

Passwords are hashed with werkzeug; signed-in clients hold an opaque
bearer token stored in the auth_sessions table.
"""

from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from worship_chords.db.client import DatabaseClient
from worship_chords.db.models import AuthSession, Song, User
from worship_chords.logging_config import get_logger

logger = get_logger(__name__)


class AuthenticationError(Exception):
    """Email and password did not match an account."""


class AuthService:
    """Registers users and issues and resolves bearer tokens.

    Attributes:
        db: Database client
        session_ttl_hours: Lifetime of issued tokens
    """

    def __init__(self, db: DatabaseClient, session_ttl_hours: int = 24 * 7):
        self.db = db
        self.session_ttl_hours = session_ttl_hours

    def register(self, name: str, email: str, password: str, is_admin: bool = False) -> User:
        """Create an account.

        Args:
            name: Display name
            email: Login email (stored lowercased)
            password: Plain-text password, hashed before storage
            is_admin: Grant admin rights

        Returns:
            The new user

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        user = User(
            id=User.generate_id(),
            name=name.strip(),
            email=email.strip().lower(),
            password_hash=generate_password_hash(password),
            is_admin=is_admin,
        )
        return self.db.create_user(user)

    def login(self, email: str, password: str) -> tuple[AuthSession, User]:
        """Check credentials and issue a token.

        Raises:
            AuthenticationError: If the email is unknown or the password is wrong
        """
        user = self.db.get_user_by_email(email)
        if user is None or not check_password_hash(user.password_hash, password):
            logger.info(f"Failed sign-in for {email.strip().lower()}")
            raise AuthenticationError("Invalid email or password")
        session = self.db.create_session(user.id, self.session_ttl_hours)
        logger.info(f"User {user.id} signed in")
        return session, user

    def logout(self, token: str) -> None:
        self.db.delete_session(token)

    def user_for_token(self, token: str) -> Optional[User]:
        """Resolve a bearer token, or None if unknown or expired."""
        if not token:
            return None
        return self.db.get_session_user(token)


def can_edit(user: Optional[User], song: Song) -> bool:
    """Whether a user may change or delete a song (owner or admin)."""
    if user is None:
        return False
    return user.is_admin or song.created_by == user.id
