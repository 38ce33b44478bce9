"""User directory: the store the matcher reads its snapshot from.

Two implementations share one async interface: MongoDB via motor for the
running service, and an in-process dict for tests and local runs.
"""
import logging
from typing import Optional, Protocol

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError

from db import USERS_COLLECTION
from models.user import User
from services.matcher import MalformedUserError

logger = logging.getLogger(__name__)


class DuplicateUserError(Exception):
    """The id or email of a new user is already registered."""


class UserDirectory(Protocol):
    async def get(self, uid: str) -> Optional[User]: ...

    async def get_by_email(self, email: str) -> Optional[User]: ...

    async def get_all(self) -> dict[str, User]: ...

    async def add(self, user: User) -> User: ...

    async def put(self, user: User) -> User: ...

    async def delete(self, uid: str) -> bool: ...


async def resolve_user(directory: UserDirectory, user_ref: str) -> Optional[User]:
    """Look a user up by id first, then by email."""
    user = await directory.get(user_ref)
    if user is None:
        user = await directory.get_by_email(user_ref)
    return user


# ── MongoDB ──────────────────────────────────────────────────────────────

def _to_user(doc: dict) -> User:
    try:
        return User.model_validate(doc)
    except ValidationError as e:
        raise MalformedUserError(f"Malformed user record in directory: {e}") from e


class MongoUserDirectory:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[USERS_COLLECTION]

    async def get(self, uid: str) -> Optional[User]:
        doc = await self.collection.find_one({"id": uid}, {"_id": 0})
        if doc is None:
            return None
        return _to_user(doc)

    async def get_by_email(self, email: str) -> Optional[User]:
        doc = await self.collection.find_one({"email": email.strip().lower()}, {"_id": 0})
        if doc is None:
            return None
        return _to_user(doc)

    async def get_all(self) -> dict[str, User]:
        """Snapshot of every user keyed by id."""
        cursor = self.collection.find({}, {"_id": 0})
        docs = await cursor.to_list(length=None)
        users = [_to_user(doc) for doc in docs]
        return {user.id: user for user in users}

    async def add(self, user: User) -> User:
        try:
            await self.collection.insert_one(user.model_dump(mode="json"))
        except DuplicateKeyError as e:
            raise DuplicateUserError(f"User {user.id} <{user.email}> already exists") from e
        logger.info("Added user %s", user.id)
        return user

    async def put(self, user: User) -> User:
        try:
            await self.collection.replace_one(
                {"id": user.id}, user.model_dump(mode="json"), upsert=True
            )
        except DuplicateKeyError as e:
            raise DuplicateUserError(f"Email {user.email} belongs to another user") from e
        return user

    async def delete(self, uid: str) -> bool:
        result = await self.collection.delete_one({"id": uid})
        if result.deleted_count:
            logger.info("Deleted user %s", uid)
        return result.deleted_count > 0


# ── In-memory ────────────────────────────────────────────────────────────

class InMemoryUserDirectory:
    def __init__(self, users: Optional[list[User]] = None):
        self.users: dict[str, User] = {}
        for user in users or []:
            self.users[user.id] = user

    def _email_taken(self, user: User) -> bool:
        return any(
            other.email == user.email and other.id != user.id
            for other in self.users.values()
        )

    async def get(self, uid: str) -> Optional[User]:
        return self.users.get(uid)

    async def get_by_email(self, email: str) -> Optional[User]:
        email = email.strip().lower()
        return next((u for u in self.users.values() if u.email == email), None)

    async def get_all(self) -> dict[str, User]:
        return dict(self.users)

    async def add(self, user: User) -> User:
        if user.id in self.users or self._email_taken(user):
            raise DuplicateUserError(f"User {user.id} <{user.email}> already exists")
        self.users[user.id] = user
        return user

    async def put(self, user: User) -> User:
        if self._email_taken(user):
            raise DuplicateUserError(f"Email {user.email} belongs to another user")
        self.users[user.id] = user
        return user

    async def delete(self, uid: str) -> bool:
        return self.users.pop(uid, None) is not None
