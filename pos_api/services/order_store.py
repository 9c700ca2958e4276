"""Persistence for orders.

Both stores enforce the two uniqueness rules orders rely on:
``(branch_id, order_number)`` and ``client_request_id``. A violation is
raised as ``ConflictError`` so the service can retry or replay.
"""
import logging
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from ..core.errors import ConflictError, StoreError
from ..database import get_supabase_admin
from ..models.order import Order

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class OrderStore:
    """Interface the order service persists through."""

    async def insert(self, order: Order) -> Order:
        raise NotImplementedError

    async def get(self, order_id: str) -> Optional[Order]:
        raise NotImplementedError

    async def get_by_client_request_id(self, client_request_id: str) -> Optional[Order]:
        raise NotImplementedError

    async def next_order_number(self, branch_id: Optional[str]) -> int:
        raise NotImplementedError

    async def update(self, order_id: str, changes: Dict[str, Any]) -> Optional[Order]:
        """Apply ``changes`` in one write; ``None`` when the order is absent."""
        raise NotImplementedError

    async def list(self, branch_id: Optional[str] = None, limit: int = 500) -> List[Order]:
        raise NotImplementedError


def _to_column(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


class SupabaseOrderStore(OrderStore):
    """Orders kept in the Supabase ``orders`` table (see ``sql/orders.sql``)."""

    TABLE = "orders"

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        return self._client or get_supabase_admin()

    def _execute(self, query) -> List[Dict[str, Any]]:
        try:
            return query.execute().data or []
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                detail = f"{e.message or ''} {e.details or ''}"
                if "client_request_id" in detail:
                    raise ConflictError(ConflictError.CLIENT_REQUEST_ID) from e
                raise ConflictError(ConflictError.ORDER_NUMBER) from e
            logger.error("Supabase error on %s: %s", self.TABLE, e.message)
            raise StoreError() from e
        except httpx.HTTPError as e:
            logger.error("Supabase unreachable: %s", e)
            raise StoreError() from e

    async def insert(self, order: Order) -> Order:
        rows = self._execute(self.client.table(self.TABLE).insert(order.to_row()))
        return Order.model_validate(rows[0])

    async def get(self, order_id: str) -> Optional[Order]:
        rows = self._execute(self.client.table(self.TABLE).select("*").eq("id", order_id).limit(1))
        return Order.model_validate(rows[0]) if rows else None

    async def get_by_client_request_id(self, client_request_id: str) -> Optional[Order]:
        rows = self._execute(
            self.client.table(self.TABLE).select("*").eq("client_request_id", client_request_id).limit(1)
        )
        return Order.model_validate(rows[0]) if rows else None

    async def next_order_number(self, branch_id: Optional[str]) -> int:
        query = self.client.table(self.TABLE).select("order_number")
        if branch_id:
            query = query.eq("branch_id", branch_id)
        else:
            query = query.is_("branch_id", "null")
        rows = self._execute(query.order("order_number", desc=True).limit(1))
        return rows[0]["order_number"] + 1 if rows else 1

    async def update(self, order_id: str, changes: Dict[str, Any]) -> Optional[Order]:
        row = {key: _to_column(value) for key, value in changes.items()}
        rows = self._execute(self.client.table(self.TABLE).update(row).eq("id", order_id))
        return Order.model_validate(rows[0]) if rows else None

    async def list(self, branch_id: Optional[str] = None, limit: int = 500) -> List[Order]:
        query = self.client.table(self.TABLE).select("*")
        if branch_id:
            query = query.eq("branch_id", branch_id)
        rows = self._execute(query.order("created_at", desc=True).limit(limit))
        return [Order.model_validate(row) for row in rows]


class InMemoryOrderStore(OrderStore):
    """Process-local store for development and tests.

    Every method completes without awaiting, so each check-and-write runs
    as one step on the event loop.
    """

    def __init__(self):
        self._orders: Dict[str, Order] = {}

    async def insert(self, order: Order) -> Order:
        for existing in self._orders.values():
            if order.client_request_id and existing.client_request_id == order.client_request_id:
                raise ConflictError(ConflictError.CLIENT_REQUEST_ID)
            if existing.branch_id == order.branch_id and existing.order_number == order.order_number:
                raise ConflictError(ConflictError.ORDER_NUMBER)
        self._orders[order.id] = order.model_copy(deep=True)
        return order.model_copy(deep=True)

    async def get(self, order_id: str) -> Optional[Order]:
        order = self._orders.get(order_id)
        return order.model_copy(deep=True) if order else None

    async def get_by_client_request_id(self, client_request_id: str) -> Optional[Order]:
        for order in self._orders.values():
            if order.client_request_id == client_request_id:
                return order.model_copy(deep=True)
        return None

    async def next_order_number(self, branch_id: Optional[str]) -> int:
        numbers = [o.order_number for o in self._orders.values() if o.branch_id == branch_id]
        return max(numbers, default=0) + 1

    async def update(self, order_id: str, changes: Dict[str, Any]) -> Optional[Order]:
        existing = self._orders.get(order_id)
        if existing is None:
            return None
        updated = existing.model_copy(update=changes, deep=True)
        self._orders[order_id] = updated
        return updated.model_copy(deep=True)

    async def list(self, branch_id: Optional[str] = None, limit: int = 500) -> List[Order]:
        orders = [
            o for o in reversed(list(self._orders.values()))
            if branch_id is None or o.branch_id == branch_id
        ]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return [o.model_copy(deep=True) for o in orders[:limit]]
