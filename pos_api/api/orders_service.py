import logging
from typing import List, Optional, Tuple

from ..config import settings
from ..core.errors import ConflictError, NotFoundError
from ..core.permissions import (
    PAYMENT_CORRECTION_ROLES,
    can_access_branch,
    require_role,
    resolve_effective_branch,
)
from ..models.order import (
    Order,
    OrderCreate,
    OrderEvent,
    OrderStatus,
    PaymentMethod,
    PaymentCreate,
    PaymentMethodUpdate,
)
from ..models.user import Principal
from ..services.order_state import apply_status
from ..services.order_store import OrderStore
from ..services.pricing import apply_discount, calculate_order_total, to_money
from ..services.realtime import RealtimeNotifier, broadcast_order
from ..utils.time import get_local_time

logger = logging.getLogger(__name__)


class OrderService:
    """Order lifecycle: creation, status changes and payment settlement."""

    def __init__(
        self,
        store: OrderStore,
        notifier: RealtimeNotifier,
        max_number_retries: Optional[int] = None,
        list_limit: Optional[int] = None,
        strict_transitions: Optional[bool] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.max_number_retries = (
            settings.ORDER_NUMBER_MAX_RETRIES if max_number_retries is None else max_number_retries
        )
        self.list_limit = settings.ORDER_LIST_LIMIT if list_limit is None else list_limit
        self.strict_transitions = (
            settings.ORDER_STRICT_TRANSITIONS if strict_transitions is None else strict_transitions
        )

    async def list_orders(self, principal: Principal, branch_id: Optional[str] = None) -> List[Order]:
        effective_branch = resolve_effective_branch(principal, branch_id)
        return await self.store.list(effective_branch, limit=self.list_limit)

    async def create_order(self, principal: Principal, request: OrderCreate) -> Tuple[Order, bool]:
        """Create an order, or return the stored one for a repeated request id.

        The boolean is ``True`` when the result is an idempotent replay.
        """
        branch_id = resolve_effective_branch(principal, request.branch_id)

        if request.client_request_id:
            existing = await self.store.get_by_client_request_id(request.client_request_id)
            if existing:
                logger.info(
                    "Replaying order %s for request %s", existing.id, request.client_request_id
                )
                return existing, True

        totals = calculate_order_total(request.items)

        for attempt in range(self.max_number_retries + 1):
            now = get_local_time()
            order = Order(
                order_number=await self.store.next_order_number(branch_id),
                branch_id=branch_id,
                items=request.items,
                client_request_id=request.client_request_id,
                subtotal=totals["subtotal"],
                tax=totals["tax"],
                discount=totals["discount"],
                total=totals["total"],
                status=OrderStatus.PENDING,
                table=request.table,
                customer=request.customer,
                customer_id=request.customer_id,
                waiter=request.waiter,
                waiter_user_id=request.waiter_user_id,
                created_at=now,
                updated_at=now,
            )
            try:
                created = await self.store.insert(order)
            except ConflictError as e:
                if e.constraint == ConflictError.CLIENT_REQUEST_ID:
                    winner = await self.store.get_by_client_request_id(request.client_request_id)
                    if winner:
                        return winner, True
                    raise
                logger.warning(
                    "Order number %s taken in branch %s (attempt %s)",
                    order.order_number, branch_id, attempt + 1,
                )
                continue

            logger.info(
                "Order %s created as #%s in branch %s by %s",
                created.id, created.order_number, branch_id, principal.id,
            )
            await broadcast_order(self.notifier, OrderEvent.CREATED, created)
            return created, False

        raise ConflictError(ConflictError.ORDER_NUMBER, "Could not allocate an order number, please retry")

    async def _get_scoped(self, principal: Optional[Principal], order_id: str) -> Order:
        order = await self.store.get(order_id)
        if order is None:
            raise NotFoundError()
        if principal is not None and not can_access_branch(principal, order.branch_id):
            raise NotFoundError()
        return order

    async def _update(self, order_id: str, changes: dict) -> Order:
        order = await self.store.update(order_id, changes)
        if order is None:
            raise NotFoundError()
        await broadcast_order(self.notifier, OrderEvent.UPDATED, order)
        return order

    async def set_status(
        self, order_id: str, status: OrderStatus, principal: Optional[Principal] = None
    ) -> Order:
        current = await self._get_scoped(principal, order_id)
        changes = apply_status(
            status, get_local_time(), current_status=current.status, strict=self.strict_transitions
        )
        order = await self._update(order_id, changes)
        logger.info("Order %s moved %s -> %s", order_id, current.status.value, status.value)
        return order

    async def complete_payment(
        self, order_id: str, payment: PaymentCreate, principal: Optional[Principal] = None
    ) -> Order:
        existing = await self._get_scoped(principal, order_id)
        discount = to_money(payment.discount)
        now = get_local_time()
        changes = apply_status(OrderStatus.PAID, now)
        changes.update({
            "payment_method": payment.payment_method,
            "bank_type": payment.bank_type,
            "discount": discount,
            "total": apply_discount(existing.subtotal, existing.tax, discount),
        })
        order = await self._update(order_id, changes)
        logger.info(
            "Order %s settled by %s, discount %s, total %s",
            order_id, payment.payment_method.value, discount, order.total,
        )
        return order

    async def update_payment_method(
        self, principal: Principal, order_id: str, update: PaymentMethodUpdate
    ) -> Order:
        require_role(principal, PAYMENT_CORRECTION_ROLES)
        existing = await self._get_scoped(principal, order_id)

        if update.payment_method == PaymentMethod.BANK:
            bank_type = update.bank_type if update.bank_type is not None else existing.bank_type
        else:
            bank_type = None

        order = await self._update(order_id, {
            "payment_method": update.payment_method,
            "bank_type": bank_type,
            "updated_at": get_local_time(),
        })
        logger.info(
            "Order %s payment method corrected to %s by %s",
            order_id, update.payment_method.value, principal.id,
        )
        return order
