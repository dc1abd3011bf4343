"""Authentication adapter backed by the discord-clone schema.

The identity framework drives every call: it creates users and sessions on
sign-in, links OAuth accounts, consumes e-mail verification tokens and
tears sessions down on sign-out. Nothing here runs on its own and nothing
expires rows in the background.

Each write is followed by a fresh read of the row instead of trusting what
the driver returns from the write, and the write and the read share one
transaction so the read sees exactly what was written.
"""
import abc
import logging
from typing import Optional

from sqlalchemy import and_, delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from discord_clone import errors, models, schemas, security
from discord_clone.database import Database

logger = logging.getLogger(__name__)


class Adapter(abc.ABC):
    """Operations the identity framework requires from a persistence backend."""

    @abc.abstractmethod
    async def create_user(self, user: schemas.UserCreate) -> schemas.User: ...

    @abc.abstractmethod
    async def get_user(self, user_id: str) -> Optional[schemas.User]: ...

    @abc.abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[schemas.User]: ...

    @abc.abstractmethod
    async def create_session(self, session: schemas.SessionCreate) -> schemas.Session: ...

    @abc.abstractmethod
    async def get_session_and_user(self, session_token: str) -> Optional[schemas.SessionAndUser]: ...

    @abc.abstractmethod
    async def update_user(self, user: schemas.UserUpdate) -> Optional[schemas.User]: ...

    @abc.abstractmethod
    async def update_session(self, session: schemas.SessionUpdate) -> Optional[schemas.Session]: ...

    @abc.abstractmethod
    async def link_account(self, account: schemas.AccountCreate) -> None: ...

    @abc.abstractmethod
    async def get_user_by_account(self, account: schemas.AccountKey) -> Optional[schemas.User]: ...

    @abc.abstractmethod
    async def delete_session(self, session_token: str) -> Optional[schemas.Session]: ...

    @abc.abstractmethod
    async def create_verification_token(self, token: schemas.VerificationToken) -> schemas.VerificationToken: ...

    @abc.abstractmethod
    async def use_verification_token(self, token: schemas.VerificationTokenKey) -> schemas.VerificationToken: ...

    @abc.abstractmethod
    async def delete_user(self, user_id: str) -> Optional[schemas.User]: ...

    @abc.abstractmethod
    async def unlink_account(self, account: schemas.AccountKey) -> None: ...


# --- Row lookups shared by the operations below ---
# populate_existing makes the read hit the database even when the row is
# already in the session's identity map.

async def _select_user(db: AsyncSession, user_id: str) -> Optional[models.User]:
    result = await db.execute(
        select(models.User).filter(models.User.id == user_id).execution_options(populate_existing=True)
    )
    return result.scalars().first()

async def _select_session(db: AsyncSession, session_token: str) -> Optional[models.Session]:
    result = await db.execute(
        select(models.Session)
        .filter(models.Session.session_token == session_token)
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()

def _account_matches(account: schemas.AccountKey):
    return and_(
        models.Account.provider_account_id == account.provider_account_id,
        models.Account.provider == account.provider,
    )

def _token_matches(token: schemas.VerificationTokenKey):
    return and_(
        models.VerificationToken.identifier == token.identifier,
        models.VerificationToken.token == token.token,
    )

def _user_or_none(row: Optional[models.User]) -> Optional[schemas.User]:
    return schemas.User.model_validate(row) if row is not None else None

def _session_or_none(row: Optional[models.Session]) -> Optional[schemas.Session]:
    return schemas.Session.model_validate(row) if row is not None else None


class SQLAlchemyAdapter(Adapter):
    def __init__(self, database: Database):
        self.database = database

    # --- Users ---
    async def create_user(self, user: schemas.UserCreate) -> schemas.User:
        user_id = security.create_id()
        async with self.database.session() as db, db.begin():
            db.add(models.User(id=user_id, **user.model_dump()))
            await db.flush()
            created = await _select_user(db, user_id)
            logger.debug("Created user %s", user_id)
            return schemas.User.model_validate(created)

    async def get_user(self, user_id: str) -> Optional[schemas.User]:
        async with self.database.session() as db:
            return _user_or_none(await _select_user(db, user_id))

    async def get_user_by_email(self, email: str) -> Optional[schemas.User]:
        async with self.database.session() as db:
            result = await db.execute(select(models.User).filter(models.User.email == email))
            return _user_or_none(result.scalars().first())

    async def update_user(self, user: schemas.UserUpdate) -> Optional[schemas.User]:
        if not user.id:
            raise errors.MissingUserIdError()

        changes = user.model_dump(exclude_unset=True, exclude={"id"})
        async with self.database.session() as db, db.begin():
            if changes:
                await db.execute(
                    update(models.User)
                    .where(models.User.id == user.id)
                    .values({getattr(models.User, field): value for field, value in changes.items()})
                )
            logger.debug("Updated user %s (%s)", user.id, ", ".join(sorted(changes)) or "no fields")
            return _user_or_none(await _select_user(db, user.id))

    async def delete_user(self, user_id: str) -> Optional[schemas.User]:
        async with self.database.session() as db, db.begin():
            existing = _user_or_none(await _select_user(db, user_id))
            # Accounts, sessions and the profile go with it (ON DELETE CASCADE)
            await db.execute(
                delete(models.User)
                .where(models.User.id == user_id)
                .execution_options(synchronize_session=False)
            )
            logger.debug("Deleted user %s (existed: %s)", user_id, existing is not None)
            return existing

    # --- Sessions ---
    async def create_session(self, session: schemas.SessionCreate) -> schemas.Session:
        async with self.database.session() as db, db.begin():
            db.add(models.Session(**session.model_dump()))
            await db.flush()
            created = await _select_session(db, session.session_token)
            logger.debug("Created session for user %s", session.user_id)
            return schemas.Session.model_validate(created)

    async def get_session_and_user(self, session_token: str) -> Optional[schemas.SessionAndUser]:
        async with self.database.session() as db:
            result = await db.execute(
                select(models.Session, models.User)
                .join(models.User, models.User.id == models.Session.user_id)
                .filter(models.Session.session_token == session_token)
            )
            row = result.first()
            if row is None:
                return None
            session, user = row
            return schemas.SessionAndUser(
                session=schemas.Session.model_validate(session),
                user=schemas.User.model_validate(user),
            )

    async def update_session(self, session: schemas.SessionUpdate) -> Optional[schemas.Session]:
        changes = session.model_dump(exclude_unset=True, exclude={"session_token"})
        async with self.database.session() as db, db.begin():
            if changes:
                await db.execute(
                    update(models.Session)
                    .where(models.Session.session_token == session.session_token)
                    .values({getattr(models.Session, field): value for field, value in changes.items()})
                )
            return _session_or_none(await _select_session(db, session.session_token))

    async def delete_session(self, session_token: str) -> Optional[schemas.Session]:
        async with self.database.session() as db, db.begin():
            existing = _session_or_none(await _select_session(db, session_token))
            if existing is None:
                return None
            await db.execute(
                delete(models.Session)
                .where(models.Session.session_token == session_token)
                .execution_options(synchronize_session=False)
            )
            logger.debug("Deleted session for user %s", existing.user_id)
            return existing

    # --- Accounts ---
    async def link_account(self, account: schemas.AccountCreate) -> None:
        async with self.database.session() as db, db.begin():
            db.add(models.Account(**account.model_dump()))
        logger.debug("Linked %s account to user %s", account.provider, account.user_id)

    async def get_user_by_account(self, account: schemas.AccountKey) -> Optional[schemas.User]:
        async with self.database.session() as db:
            result = await db.execute(
                select(models.Account, models.User)
                .outerjoin(models.User, models.Account.user_id == models.User.id)
                .filter(_account_matches(account))
            )
            row = result.first()
            if row is None:
                return None
            # LEFT JOIN: the account may exist without a matching user
            _, user = row
            return _user_or_none(user)

    async def unlink_account(self, account: schemas.AccountKey) -> None:
        async with self.database.session() as db, db.begin():
            await db.execute(
                delete(models.Account)
                .where(_account_matches(account))
                .execution_options(synchronize_session=False)
            )
        logger.debug("Unlinked %s account %s", account.provider, account.provider_account_id)

    # --- Verification tokens ---
    async def create_verification_token(self, token: schemas.VerificationToken) -> schemas.VerificationToken:
        async with self.database.session() as db, db.begin():
            db.add(models.VerificationToken(**token.model_dump()))
            await db.flush()
            result = await db.execute(
                select(models.VerificationToken)
                .filter(_token_matches(token))
                .execution_options(populate_existing=True)
            )
            return schemas.VerificationToken.model_validate(result.scalars().first())

    async def use_verification_token(self, token: schemas.VerificationTokenKey) -> schemas.VerificationToken:
        try:
            async with self.database.session() as db, db.begin():
                result = await db.execute(select(models.VerificationToken).filter(_token_matches(token)))
                row = result.scalars().first()
                if row is None:
                    raise errors.VerificationTokenNotFoundError()
                consumed = schemas.VerificationToken.model_validate(row)

                deleted = await db.execute(
                    delete(models.VerificationToken)
                    .where(_token_matches(token))
                    .execution_options(synchronize_session=False)
                )
                # Someone else consumed it between our read and delete
                if deleted.rowcount == 0:
                    raise errors.VerificationTokenNotFoundError()
        except SQLAlchemyError as exc:
            raise errors.VerificationTokenNotFoundError() from exc
        return consumed
