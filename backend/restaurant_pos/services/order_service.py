"""Order lifecycle engine.

Status graph::

    pending   -> confirmed | cancelled
    confirmed -> preparing | completed | cancelled
    preparing -> ready | cancelled
    ready     -> completed

``completed`` and ``cancelled`` are terminal. On top of the graph each role
may only set certain target statuses; the role check runs first so a
kitchen user asking for ``completed`` is told it is forbidden rather than
that the move is invalid.
"""

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from restaurant_pos.core.exceptions import (
    ForbiddenError,
    InvalidStateError,
    NotAvailableError,
    NotFoundError,
    ValidationError,
)
from restaurant_pos.core.rbac import TokenData, UserRole
from restaurant_pos.core.timeutils import Clock, as_utc, utcnow
from restaurant_pos.models.order import (
    KITCHEN_QUEUE_STATUSES,
    Order,
    OrderItem,
    OrderStatus,
    OrderStatusEntry,
    OrderType,
)
from restaurant_pos.repositories.ports import MenuItemRepository, Notifier, OrderRepository, UnitOfWork
from restaurant_pos.services.notification_service import ORDER_AUDIENCES
from restaurant_pos.services.numbering import document_number
from restaurant_pos.services.table_service import TableService

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

ORDER_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

ROLE_TARGET_STATUSES = {
    UserRole.CASHIER: frozenset({
        OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.COMPLETED, OrderStatus.CANCELLED,
    }),
    UserRole.KITCHEN: frozenset({OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY}),
    UserRole.MANAGER: frozenset(OrderStatus),
    UserRole.ADMIN: frozenset(OrderStatus),
}

EDITABLE_STATUSES = (OrderStatus.PENDING, OrderStatus.CONFIRMED)
DELETABLE_STATUSES = (OrderStatus.PENDING, OrderStatus.CANCELLED)
CLOSED_STATUSES = (OrderStatus.COMPLETED, OrderStatus.CANCELLED)
EDITABLE_FIELDS = ("customer_name", "customer_phone", "customer_email", "table_number", "notes")


def money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def price_order(lines: Sequence[Tuple[Decimal, int]], tax_rate: Decimal, discount: Decimal = Decimal("0")):
    """Return ``(subtotal, tax, total)`` for ``(unit_price, quantity)`` lines."""
    subtotal = money(sum((money(price) * qty for price, qty in lines), Decimal("0")))
    tax = money(subtotal * tax_rate)
    discount = money(discount)
    if discount > subtotal + tax:
        raise ValidationError("Discount cannot exceed the order total", field="discount")
    return subtotal, tax, subtotal + tax - discount


class OrderService:
    def __init__(
        self,
        orders: OrderRepository,
        menu_items: MenuItemRepository,
        table_engine: TableService,
        uow: UnitOfWork,
        notifier: Notifier,
        clock: Clock = utcnow,
        tax_rate: float = 0.08,
        number_prefix: str = "ORD",
    ):
        self.orders = orders
        self.menu_items = menu_items
        self.table_engine = table_engine
        self.uow = uow
        self.notifier = notifier
        self.clock = clock
        self.tax_rate = Decimal(str(tax_rate))
        self.number_prefix = number_prefix

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_orders(
        self,
        actor: TokenData,
        status: Optional[OrderStatus] = None,
        order_type: Optional[OrderType] = None,
        on_date: Optional[date] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        """Orders visible to the actor: cashiers see their own, the kitchen its queue."""
        statuses = [status] if status else None
        cashier_id = None
        if actor.role == UserRole.CASHIER:
            cashier_id = actor.user_id
        elif actor.role == UserRole.KITCHEN:
            statuses = [s for s in (statuses or KITCHEN_QUEUE_STATUSES) if s in KITCHEN_QUEUE_STATUSES]
            if not statuses:
                return [], 0
        return self.orders.search(
            statuses=statuses, order_type=order_type, cashier_id=cashier_id, on_date=on_date,
            offset=(page - 1) * limit, limit=limit,
        )

    def kitchen_display(self) -> List[Order]:
        return self.orders.kitchen_queue(KITCHEN_QUEUE_STATUSES)

    def get_order(self, order_id: int, actor: Optional[TokenData] = None) -> Order:
        order = self.orders.get(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        if actor is not None:
            self._check_visibility(order, actor)
        return order

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, data: Dict[str, Any], actor: TokenData) -> Order:
        items = data["items"]
        order_type = data.get("order_type", OrderType.DINE_IN)
        table_number = data.get("table_number")
        if order_type == OrderType.DINE_IN and not table_number:
            raise ValidationError("Dine-in orders need a table number", field="table_number")
        if order_type == OrderType.DELIVERY and not data.get("delivery_address"):
            raise ValidationError("Delivery orders need a delivery address", field="delivery_address")

        linked = False
        with self.uow:
            if table_number and self.table_engine.tables.get_by_number(table_number) is None:
                raise ValidationError(f"Table {table_number} does not exist", field="table_number")

            menu = {m.id: m for m in self.menu_items.get_many([line["menu_item_id"] for line in items])}
            lines = []
            for line in items:
                menu_item = menu.get(line["menu_item_id"])
                if menu_item is None:
                    raise NotFoundError("Menu item", line["menu_item_id"])
                if not menu_item.available:
                    raise NotAvailableError(f"{menu_item.name} is not available")
                lines.append(OrderItem(
                    menu_item_id=menu_item.id,
                    name=menu_item.name,
                    quantity=line["quantity"],
                    price=money(menu_item.price),
                    notes=line.get("notes"),
                ))

            subtotal, tax, total = price_order(
                [(line.price, line.quantity) for line in lines],
                self.tax_rate,
                data.get("discount") or Decimal("0"),
            )

            now = self.clock()
            order = Order(
                order_number=document_number(self.number_prefix, self.orders.count() + 1, now),
                order_type=order_type,
                customer_name=data.get("customer_name"),
                customer_phone=data.get("customer_phone"),
                customer_email=data.get("customer_email"),
                table_number=table_number,
                delivery_address=data.get("delivery_address"),
                notes=data.get("notes"),
                estimated_time=data.get("estimated_time") or 30,
                status=OrderStatus.PENDING,
                subtotal=subtotal,
                tax=tax,
                discount=money(data.get("discount") or Decimal("0")),
                total=total,
                cashier_id=actor.user_id,
                created_at=now,
                updated_at=now,
            )
            order.items.extend(lines)
            order.status_history.append(self._history(OrderStatus.PENDING, actor, now, "Order created"))
            self.orders.add(order)
            self.uow.flush()
            if table_number:
                linked = self.table_engine.attach_order(table_number, order.id)

        logger.info(f"Order {order.order_number} created by {actor.name}: total {order.total}")
        self.notifier.publish("order:created", order, actor, ORDER_AUDIENCES)
        if linked:
            self._announce_table(table_number, actor)
        return order

    def update_status(
        self, order_id: int, new_status: OrderStatus, actor: TokenData, notes: Optional[str] = None,
    ) -> Order:
        allowed = ROLE_TARGET_STATUSES.get(actor.role, frozenset())
        if new_status not in allowed:
            raise ForbiddenError(
                f"Role {actor.role.value} may not set orders to {new_status.value}",
                role=actor.role.value,
                status=new_status.value,
            )

        released = False
        with self.uow:
            order = self._lock(order_id)
            self._check_visibility(order, actor)
            if new_status not in ORDER_TRANSITIONS[order.status]:
                raise InvalidStateError(
                    f"Order {order.order_number} cannot move from {order.status.value} to {new_status.value}",
                    current_status=order.status.value,
                    target_status=new_status.value,
                )

            now = self.clock()
            previous = order.status
            order.status = new_status
            order.status_history.append(self._history(new_status, actor, now, notes))

            if new_status == OrderStatus.PREPARING and order.kitchen_started_at is None:
                order.kitchen_started_at = now
                if actor.role == UserRole.KITCHEN:
                    order.kitchen_assigned_to = actor.user_id
            if new_status == OrderStatus.READY and order.kitchen_completed_at is None:
                order.kitchen_completed_at = now
                elapsed = as_utc(now) - as_utc(order.created_at)
                order.actual_time = round(elapsed.total_seconds() / 60)
            if new_status in CLOSED_STATUSES:
                released = self.table_engine.detach_order(order.table_number, order.id)

        logger.info(
            f"Order {order.order_number}: {previous.value} -> {new_status.value} "
            f"by {actor.name} ({actor.role.value})"
        )
        self.notifier.publish("order:status_updated", order, actor, ORDER_AUDIENCES)
        if released:
            self._announce_table(order.table_number, actor)
        return order

    def update(self, order_id: int, patch: Dict[str, Any], actor: TokenData) -> Order:
        with self.uow:
            order = self._lock(order_id)
            self._check_visibility(order, actor)
            if order.status not in EDITABLE_STATUSES:
                raise InvalidStateError(
                    f"Order {order.order_number} is {order.status.value} and can no longer be edited",
                    current_status=order.status.value,
                )
            unknown = set(patch) - set(EDITABLE_FIELDS)
            if unknown:
                raise ValidationError(
                    f"Fields cannot be edited after creation: {', '.join(sorted(unknown))}",
                    errors=[{"field": f, "message": "Not editable"} for f in sorted(unknown)],
                )

            new_table = patch.get("table_number", order.table_number)
            if "table_number" in patch and new_table != order.table_number:
                if new_table is None and order.order_type == OrderType.DINE_IN:
                    raise ValidationError("Dine-in orders need a table number", field="table_number")
                if new_table and self.table_engine.tables.get_by_number(new_table) is None:
                    raise ValidationError(f"Table {new_table} does not exist", field="table_number")
                self.table_engine.detach_order(order.table_number, order.id)
                if new_table:
                    self.table_engine.attach_order(new_table, order.id)

            for field, value in patch.items():
                setattr(order, field, value)

        logger.info(f"Order {order.order_number} edited by {actor.name}")
        self.notifier.publish("order:updated", order, actor, ORDER_AUDIENCES)
        return order

    def delete(self, order_id: int, actor: TokenData) -> None:
        with self.uow:
            order = self._lock(order_id)
            if order.status not in DELETABLE_STATUSES:
                raise InvalidStateError(
                    f"Order {order.order_number} is {order.status.value} and cannot be deleted",
                    current_status=order.status.value,
                )
            self.table_engine.detach_order(order.table_number, order.id)
            number = order.order_number
            self.orders.delete(order)
        logger.info(f"Order {number} deleted by {actor.name}")
        self.notifier.publish(
            "order:deleted", {"id": order_id, "order_number": number, "deleted": True},
            actor, ORDER_AUDIENCES,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock(self, order_id: int) -> Order:
        order = self.orders.get_for_update(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    @staticmethod
    def _check_visibility(order: Order, actor: TokenData) -> None:
        if actor.role == UserRole.CASHIER and order.cashier_id != actor.user_id:
            raise ForbiddenError("Cashiers can only access their own orders", role=actor.role.value)

    @staticmethod
    def _history(status: OrderStatus, actor: TokenData, when, notes: Optional[str]) -> OrderStatusEntry:
        return OrderStatusEntry(
            status=status,
            timestamp=when,
            updated_by=actor.user_id,
            updated_by_name=actor.name,
            notes=notes,
        )

    def _announce_table(self, table_number: str, actor: TokenData) -> None:
        table = self.table_engine.tables.get_by_number(table_number)
        if table is not None:
            self.table_engine.announce(table, actor, "table:updated")
