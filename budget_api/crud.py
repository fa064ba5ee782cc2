import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from . import models, schemas
from .categories import get_static_category

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT_NAME = "Main Wallet"
DEFAULT_ACCOUNT_TYPE = "cash"


# Users
def get_user(db: Session, user_id: str):
    return db.query(models.User).filter(models.User.id == user_id).first()


def ensure_user(db: Session, user_id: str, email: Optional[str] = None):
    db_user = get_user(db, user_id)
    if db_user:
        return db_user
    db_user = models.User(id=user_id, email=email)
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError:
        # created by a concurrent request
        db.rollback()
        return get_user(db, user_id)
    db.refresh(db_user)
    logger.info("Created user %s", user_id)
    return db_user


def sync_user(db: Session, db_user: models.User, payload: schemas.UserSync):
    values = {
        "email": payload.email,
        "name": payload.display_name(),
        "username": payload.username,
        "currency": payload.currency,
    }
    for key, value in values.items():
        if value is not None:
            setattr(db_user, key, value)
    db.commit()
    db.refresh(db_user)
    return db_user


def update_profile(db: Session, db_user: models.User, payload: schemas.ProfileUpdate):
    for key, value in payload.model_dump(exclude_none=True).items():
        setattr(db_user, key, value)
    db.commit()
    db.refresh(db_user)
    return db_user


# Accounts
def get_accounts(db: Session, user_id: str):
    return (
        db.query(models.Account)
        .filter(models.Account.user_id == user_id)
        .order_by(models.Account.id)
        .all()
    )


def get_account(db: Session, account_id: int, user_id: str):
    return db.query(models.Account).filter(models.Account.id == account_id, models.Account.user_id == user_id).first()


def create_account(db: Session, account: schemas.AccountCreate, user_id: str):
    db_account = models.Account(**account.model_dump(), user_id=user_id)
    db.add(db_account)
    db.commit()
    db.refresh(db_account)
    return db_account


def ensure_default_account(db: Session, user_id: str):
    accounts = get_accounts(db, user_id)
    if accounts:
        return accounts[0]
    return create_account(
        db,
        schemas.AccountCreate(name=DEFAULT_ACCOUNT_NAME, type=DEFAULT_ACCOUNT_TYPE),
        user_id=user_id,
    )


# Categories
def get_categories(db: Session, user_id: str):
    return (
        db.query(models.Category)
        .filter(models.Category.user_id == user_id)
        .order_by(models.Category.name)
        .all()
    )


def get_category(db: Session, category_id: int, user_id: str):
    return db.query(models.Category).filter(models.Category.id == category_id, models.Category.user_id == user_id).first()


def _same_name(name: str):
    # category names match case-insensitively
    return func.lower(models.Category.name) == name.lower()


def get_category_by_name(db: Session, name: str, user_id: str):
    return db.query(models.Category).filter(_same_name(name), models.Category.user_id == user_id).first()


def category_name_taken(db: Session, name: str, user_id: str, exclude_id: Optional[int] = None) -> bool:
    if get_static_category(name):
        return True
    query = db.query(models.Category).filter(_same_name(name), models.Category.user_id == user_id)
    if exclude_id is not None:
        query = query.filter(models.Category.id != exclude_id)
    return query.first() is not None


def create_category(db: Session, category: schemas.CategoryCreate, user_id: str, commit: bool = True):
    db_category = models.Category(**category.model_dump(), user_id=user_id)
    db.add(db_category)
    if commit:
        db.commit()
        db.refresh(db_category)
    else:
        db.flush()
    return db_category


def update_category(db: Session, db_category: models.Category, category: schemas.CategoryUpdate):
    for key, value in category.model_dump().items():
        setattr(db_category, key, value)
    db.commit()
    db.refresh(db_category)
    return db_category


def count_category_usage(db: Session, category_id: int) -> int:
    return db.query(models.Transaction).filter(models.Transaction.category_id == category_id).count()


def delete_category(db: Session, db_category: models.Category):
    db.delete(db_category)
    db.commit()


# Transactions
def get_transactions(db: Session, user_id: str, start: Optional[datetime] = None, end: Optional[datetime] = None):
    query = (
        db.query(models.Transaction)
        .options(joinedload(models.Transaction.category))
        .filter(models.Transaction.user_id == user_id)
    )
    if start is not None:
        query = query.filter(models.Transaction.occurred_at >= start)
    if end is not None:
        query = query.filter(models.Transaction.occurred_at < end)
    return query.order_by(models.Transaction.occurred_at.desc(), models.Transaction.id.desc()).all()


def get_transaction(db: Session, transaction_id: int, user_id: str):
    return (
        db.query(models.Transaction)
        .filter(models.Transaction.id == transaction_id, models.Transaction.user_id == user_id)
        .first()
    )


def resolve_transaction_category(db: Session, transaction: schemas.TransactionCreate, user_id: str):
    """
    Returns (category_id, static_category) for a transaction payload, or None
    when an explicit categoryId does not belong to the user. A free-text name
    that is neither the user's nor predefined creates a new user category.
    """
    if transaction.category_id is not None:
        db_category = get_category(db, transaction.category_id, user_id)
        if db_category is None:
            return None
        return db_category.id, None

    name = transaction.category
    if not name:
        return None, None

    db_category = get_category_by_name(db, name, user_id)
    if db_category:
        return db_category.id, None
    static = get_static_category(name)
    if static:
        return None, static.name

    db_category = create_category(db, schemas.CategoryCreate(name=name), user_id=user_id, commit=False)
    return db_category.id, None


def _transaction_values(transaction: schemas.TransactionCreate, category_id, static_category):
    return {
        "account_id": transaction.account_id,
        "amount": transaction.amount,
        "type": transaction.type,
        "note": transaction.note,
        "occurred_at": transaction.occurred_at,
        "category_id": category_id,
        "static_category": static_category,
    }


def create_transaction(db: Session, transaction: schemas.TransactionCreate, user_id: str, category_id=None, static_category=None):
    db_transaction = models.Transaction(**_transaction_values(transaction, category_id, static_category), user_id=user_id)
    db.add(db_transaction)
    db.commit()
    db.refresh(db_transaction)
    return db_transaction


def update_transaction(db: Session, db_transaction: models.Transaction, transaction: schemas.TransactionCreate, category_id=None, static_category=None):
    for key, value in _transaction_values(transaction, category_id, static_category).items():
        setattr(db_transaction, key, value)
    db.commit()
    db.refresh(db_transaction)
    return db_transaction


def delete_transaction(db: Session, db_transaction: models.Transaction):
    db.delete(db_transaction)
    db.commit()
