"""
Auth Service.

Owns the current ``Session``. In local single-client mode the session is
persisted under the ``currentUser`` key and restored when the service starts;
the HTTP API builds a non-persistent service per request from the bearer token.
"""

import logging
from typing import Any, Dict, Optional

from errors import AuthenticationFailure, DuplicateEmail, NoSession, NotFound, ValidationError
from record_store import Collection, RecordStore
from schemas import Role, Session, User
from security import hash_password, verify_password
from validation import ensure_valid, validate_password, validate_user_fields

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, store: RecordStore, session: Optional[Session] = None, persist_session: bool = True):
        self.store = store
        self.persist_session = persist_session
        if session is not None:
            self.session = session
        elif persist_session:
            self.session = Session(user=store.load_current_user())
        else:
            self.session = Session()

    @property
    def current_user(self) -> Optional[User]:
        return self.session.user

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    def _set_session(self, user: Optional[User]) -> None:
        self.session.user = user
        if self.persist_session:
            self.store.save_current_user(user)

    def login(self, email: str, password: str) -> User:
        users = self.store.load(Collection.USERS)
        user = next((u for u in users if u.email == email and verify_password(password, u.password_hash)), None)
        if user is None:
            logger.warning(f"Failed login for {email}")
            raise AuthenticationFailure()
        self._set_session(user)
        logger.info(f"User {user.id} logged in")
        return user

    def register(self, user_data: Dict[str, Any]) -> User:
        """Create a user from ``user_data`` and sign in as them.

        ``user_data`` holds name, email, address, password and optionally role
        (defaults to ``user``).
        """
        validate_user_fields(
            user_data.get("name", ""),
            user_data.get("email", ""),
            user_data.get("address", ""),
            user_data.get("password", ""),
        )
        try:
            role = Role(user_data.get("role") or Role.USER)
        except ValueError:
            raise ValidationError({"role": "Role must be admin, user or store_owner"})
        with self.store.locked(Collection.USERS):
            users = self.store.load(Collection.USERS)
            if any(u.email == user_data["email"] for u in users):
                raise DuplicateEmail(user_data["email"])
            user = User(
                name=user_data["name"],
                email=user_data["email"],
                address=user_data["address"],
                password_hash=hash_password(user_data["password"]),
                role=role,
            )
            users.append(user)
            self.store.save(Collection.USERS, users)
        logger.info(f"Registered user {user.id} ({user.role.value})")
        self._set_session(user)
        return user

    def logout(self) -> None:
        self._set_session(None)

    def update_password(self, new_password: str) -> User:
        """Replace the session user's password. The old password is not required."""
        if not self.is_authenticated:
            raise NoSession()
        ensure_valid({"password": validate_password(new_password)})
        user_id = self.session.user.id
        with self.store.locked(Collection.USERS):
            users = self.store.load(Collection.USERS)
            user = next((u for u in users if u.id == user_id), None)
            if user is None:
                raise NotFound("User not found")
            user.password_hash = hash_password(new_password)
            self.store.save(Collection.USERS, users)
        self._set_session(user)
        logger.info(f"Password updated for user {user_id}")
        return user
