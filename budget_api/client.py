"""
Data-access client for the Budget Buddy API.

Every call takes an explicit ClientSession carrying the HTTP client and a
token provider; the token is looked up per request and never cached here.
Server records are normalized into view models the summary helpers accept.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import httpx

from .config import get_settings
from .categories import UNCATEGORIZED

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Request failed"


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass
class ClientSession:
    http: httpx.Client
    token_provider: Callable[[], Optional[str]]


@dataclass
class TransactionView:
    id: int
    type: str
    category_name: str
    amount: float
    occurred_at: datetime
    account_id: int
    category_id: Optional[int] = None
    description: Optional[str] = None


@dataclass
class AccountView:
    id: int
    name: str
    type: str
    user_id: str


@dataclass
class CategoryView:
    name: str
    icon: str
    type: str
    kind: str
    id: Optional[int] = None
    color: Optional[str] = None


def client_from_env(token_provider: Callable[[], Optional[str]], timeout: float = 10.0) -> ClientSession:
    settings = get_settings().require_client()
    return ClientSession(http=httpx.Client(base_url=settings.api_url, timeout=timeout), token_provider=token_provider)


def _request(session: ClientSession, method: str, endpoint: str, **kwargs) -> Any:
    headers = {"Content-Type": "application/json"}
    token = session.token_provider()
    if token:
        headers["Authorization"] = f"Bearer {token}"

    try:
        response = session.http.request(method, endpoint, headers=headers, **kwargs)
    except httpx.HTTPError as exc:
        logger.warning("%s %s failed: %s", method, endpoint, exc)
        raise ApiError(0, GENERIC_ERROR) from exc

    try:
        data = response.json()
    except ValueError:
        data = None

    if response.is_error:
        message = data.get("detail") if isinstance(data, dict) else None
        if not isinstance(message, str):
            message = GENERIC_ERROR
        raise ApiError(response.status_code, message)
    return data


def _to_transaction(record: Dict[str, Any]) -> TransactionView:
    return TransactionView(
        id=record["id"],
        type=record["type"],
        category_name=record.get("categoryName") or UNCATEGORIZED,
        amount=float(record["amount"]),
        occurred_at=datetime.fromisoformat(record["occurredAt"]),
        account_id=record["accountId"],
        category_id=record.get("categoryId"),
        description=record.get("note") or record.get("description"),
    )


def _to_account(record: Dict[str, Any]) -> AccountView:
    return AccountView(id=record["id"], name=record["name"], type=record["type"], user_id=record["userId"])


def _to_category(record: Dict[str, Any]) -> CategoryView:
    return CategoryView(
        id=record.get("id"),
        name=record["name"],
        icon=record["icon"],
        color=record.get("color"),
        type=record["type"],
        kind=record["kind"],
    )


def _transaction_payload(
    type: str,
    amount: float,
    occurred_at: datetime,
    account_id: int,
    category: Optional[str] = None,
    description: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "type": type,
        "amount": amount,
        "occurredAt": occurred_at.isoformat(),
        "accountId": account_id,
        "category": category,
        "note": description,
    }


# Users
def sync_user(session: ClientSession, email=None, first_name=None, last_name=None) -> Optional[Dict[str, Any]]:
    """
    Push the signed-in user's details to the API. A failure here does not end
    the session, so it is logged and None is returned.
    """
    payload = {"email": email, "firstName": first_name, "lastName": last_name}
    try:
        return _request(session, "POST", "/auth/sync", json={k: v for k, v in payload.items() if v is not None})
    except ApiError as exc:
        logger.warning("User sync failed: %s", exc.message)
        return None


def get_user_profile(session: ClientSession) -> Dict[str, Any]:
    return _request(session, "GET", "/user/profile")


def update_user_profile(session: ClientSession, name: Optional[str] = None, currency: Optional[str] = None) -> Dict[str, Any]:
    payload = {"name": name, "currency": currency}
    return _request(session, "PUT", "/user/profile", json={k: v for k, v in payload.items() if v is not None})


# Transactions
def get_transactions(session: ClientSession) -> List[TransactionView]:
    data = _request(session, "GET", "/transactions")
    transactions = [_to_transaction(t) for t in data]
    transactions.sort(key=lambda t: t.occurred_at, reverse=True)
    return transactions


def add_transaction(session: ClientSession, **fields) -> TransactionView:
    return _to_transaction(_request(session, "POST", "/transactions", json=_transaction_payload(**fields)))


def update_transaction(session: ClientSession, transaction_id: int, **fields) -> TransactionView:
    data = _request(session, "PUT", f"/transactions/{transaction_id}", json=_transaction_payload(**fields))
    return _to_transaction(data)


def delete_transaction(session: ClientSession, transaction_id: int) -> None:
    _request(session, "DELETE", f"/transactions/{transaction_id}")


# Accounts
def get_accounts(session: ClientSession) -> List[AccountView]:
    return [_to_account(a) for a in _request(session, "GET", "/accounts")]


def create_account(session: ClientSession, name: str, type: str) -> AccountView:
    return _to_account(_request(session, "POST", "/accounts", json={"name": name, "type": type}))


def ensure_default_account(session: ClientSession) -> AccountView:
    accounts = get_accounts(session)
    if accounts:
        return accounts[0]
    return create_account(session, name="Main Wallet", type="cash")


# Categories
def get_categories(session: ClientSession, active_type: str = "expense", include_static: bool = False) -> List[CategoryView]:
    params = {"type": active_type, "includeStatic": str(include_static).lower()}
    return [_to_category(c) for c in _request(session, "GET", "/categories", params=params)]


def update_category(session: ClientSession, category_id: int, name: str, icon: str, color: Optional[str] = None) -> CategoryView:
    data = _request(session, "PUT", f"/categories/{category_id}", json={"name": name, "icon": icon, "color": color})
    return _to_category(data)


def delete_category(session: ClientSession, category_id: int) -> str:
    return _request(session, "DELETE", f"/categories/{category_id}")["message"]
