"""
Auth subsystem: accounts, password hashing and signed bearer tokens.

Tokens are timestamped, signed payloads carrying the user id. Nothing is
stored server-side, so logging out is purely a client-side teardown.
"""
import logging
from typing import Any, Dict, Tuple

from itsdangerous import BadData, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from .errors import Unauthorized, ValidationError
from .schema import User, clean_email, clean_name, clean_password
from .store import TaskStore

logger = logging.getLogger(__name__)

TOKEN_SALT = "taskboard-auth"


class AuthService:
    """Registers users, issues tokens and resolves tokens back to users."""

    def __init__(self, store: TaskStore, secret_key: str, token_max_age: int = 30 * 24 * 3600):
        if not secret_key:
            raise ValueError("secret_key is required to sign tokens")
        self.store = store
        self.token_max_age = token_max_age
        self._serializer = URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)

    def issue_token(self, user: User) -> str:
        return self._serializer.dumps({"uid": user.id})

    def verify(self, token: str) -> User:
        """Resolve a bearer token to its user, or raise Unauthorized."""
        if not token:
            raise Unauthorized("Not authorized, no token")
        try:
            payload = self._serializer.loads(token, max_age=self.token_max_age)
        except SignatureExpired:
            logger.info("Rejected expired token")
            raise Unauthorized("Not authorized, token failed")
        except BadData:
            logger.warning("Rejected token with bad signature")
            raise Unauthorized("Not authorized, token failed")

        user = self.store.get_user(payload.get("uid", "")) if isinstance(payload, dict) else None
        if user is None:
            raise Unauthorized("Not authorized, token failed")
        return user

    def register(self, name: Any, email: Any, password: Any) -> Tuple[User, str]:
        name = clean_name(name)
        email = clean_email(email)
        password = clean_password(password)
        if self.store.get_user_by_email(email):
            raise ValidationError("User already exists")
        user = self.store.create_user(name, email, generate_password_hash(password))
        logger.info(f"Registered user {user.id} <{email}>")
        return user, self.issue_token(user)

    def login(self, email: Any, password: Any) -> Tuple[User, str]:
        if not email or not password:
            raise ValidationError("Please provide email and password")
        user = self.store.get_user_by_email(str(email))
        if user is None or not check_password_hash(user.password_hash, str(password)):
            logger.warning(f"Failed login for {email}")
            raise Unauthorized("Invalid email or password")
        return user, self.issue_token(user)

    def update_profile(self, user_id: str, data: Dict[str, Any]) -> Tuple[User, str]:
        """Change name, email and/or password; returns a fresh token."""
        changes = {}
        if "name" in data:
            changes["name"] = clean_name(data["name"])
        if "email" in data:
            changes["email"] = clean_email(data["email"])
            existing = self.store.get_user_by_email(changes["email"])
            if existing and existing.id != user_id:
                raise ValidationError("Email already in use")
        if data.get("password"):
            changes["password_hash"] = generate_password_hash(clean_password(data["password"]))
        user = self.store.update_user(user_id, changes)
        if user is None:
            raise Unauthorized("Not authorized, token failed")
        return user, self.issue_token(user)

    def delete_account(self, user_id: str) -> None:
        """Remove the user and, through the store cascade, all of their tasks."""
        if not self.store.delete_user(user_id):
            raise Unauthorized("Not authorized, token failed")
        logger.info(f"Deleted user {user_id}")
