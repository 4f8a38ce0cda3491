from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, List, Optional

import structlog
from sqlalchemy import Numeric, case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from . import errors, models, schemas
from .schemas import CENT
from .security import PasswordHasher

logger = structlog.get_logger(__name__)

TRAILING_WINDOW_DAYS = 30


def _money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT)


# --- credentials -----------------------------------------------------------

async def get_user_by_email(db: AsyncSession, email: str) -> Optional[models.User]:
    result = await db.execute(select(models.User).where(models.User.email == email))
    return result.scalars().first()


async def create_user(db: AsyncSession, user: schemas.UserCreate, hasher: PasswordHasher) -> models.User:
    # The pre-check saves a bcrypt round on the common case; the unique index decides.
    if await get_user_by_email(db, user.email):
        raise errors.DuplicateEmail()

    # bcrypt is CPU-bound; keep it off the event loop
    password_hash = await run_in_threadpool(hasher.hash, user.password)
    db_user = models.User(
        name=user.name,
        email=user.email,
        password_hash=password_hash,
    )
    db.add(db_user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("duplicate_email_on_insert", email=user.email)
        raise errors.DuplicateEmail()

    await db.refresh(db_user)
    return db_user


async def authenticate_user(db: AsyncSession, email: str, password: str, hasher: PasswordHasher) -> Optional[models.User]:
    user = await get_user_by_email(db, email)
    if user is None:
        return None
    if not await run_in_threadpool(hasher.verify, password, user.password_hash):
        return None
    return user


# --- transactions ----------------------------------------------------------

async def create_transaction(db: AsyncSession, owner_id: int, tx: schemas.TransactionCreate) -> models.Transaction:
    db_tx = models.Transaction(
        owner_id=owner_id,
        description=tx.description,
        kind=tx.kind,
        amount=tx.amount,
        date=tx.date,
    )
    db.add(db_tx)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(db_tx)
    return db_tx


async def get_transactions_for_user(db: AsyncSession, owner_id: int) -> List[models.Transaction]:
    result = await db.execute(
        select(models.Transaction)
        .where(models.Transaction.owner_id == owner_id)
        .order_by(models.Transaction.date.desc(), models.Transaction.id.desc())
    )
    return list(result.scalars().all())


async def get_balance(db: AsyncSession, owner_id: int) -> Decimal:
    signed_amount = case(
        (models.Transaction.kind == "income", models.Transaction.amount),
        else_=-models.Transaction.amount,
    )
    result = await db.execute(
        select(func.coalesce(func.sum(signed_amount), 0, type_=Numeric(12, 2)))
        .where(models.Transaction.owner_id == owner_id)
    )
    return _money(result.scalar_one())


async def get_trailing_total(
    db: AsyncSession,
    owner_id: int,
    kind: str,
    today: Callable[[], date] = date.today,
) -> Decimal:
    """
    Sum of ``kind`` amounts dated within the last 30 days.

    The window is inclusive on both ends: a row dated exactly 30 days before
    ``today()`` counts, one dated 31 days before does not.
    """
    if kind not in models.TRANSACTION_KINDS:
        raise errors.ValidationError(f"kind must be one of {', '.join(models.TRANSACTION_KINDS)}")

    since = today() - timedelta(days=TRAILING_WINDOW_DAYS)
    result = await db.execute(
        select(func.coalesce(func.sum(models.Transaction.amount), 0, type_=Numeric(12, 2)))
        .where(
            models.Transaction.owner_id == owner_id,
            models.Transaction.kind == kind,
            models.Transaction.date >= since,
        )
    )
    return _money(result.scalar_one())


async def get_dashboard(db: AsyncSession, owner_id: int, today: Callable[[], date] = date.today) -> schemas.DashboardOut:
    return schemas.DashboardOut(
        balance=await get_balance(db, owner_id),
        income30=await get_trailing_total(db, owner_id, "income", today=today),
        expense30=await get_trailing_total(db, owner_id, "expense", today=today),
    )
