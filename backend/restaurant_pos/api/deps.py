"""Engine factories for route dependencies.

Each request gets engines bound to its own session; all of them publish to
the process-wide broadcaster.
"""

from typing import Annotated

from fastapi import Depends

from restaurant_pos.core.config import settings
from restaurant_pos.db.session import DbSession
from restaurant_pos.repositories.sql import (
    SqlInventoryRepository,
    SqlMenuItemRepository,
    SqlOrderRepository,
    SqlReservationRepository,
    SqlTableRepository,
    SqlUnitOfWork,
)
from restaurant_pos.services import (
    InventoryService,
    OrderService,
    ReservationService,
    TableService,
    broadcaster,
)


def get_notifier():
    return broadcaster


def get_table_service(db: DbSession, notifier=Depends(get_notifier)) -> TableService:
    return TableService(
        tables=SqlTableRepository(db),
        reservations=SqlReservationRepository(db),
        uow=SqlUnitOfWork(db),
        notifier=notifier,
    )


def get_reservation_service(
    db: DbSession,
    table_service: Annotated[TableService, Depends(get_table_service)],
    notifier=Depends(get_notifier),
) -> ReservationService:
    return ReservationService(
        reservations=SqlReservationRepository(db),
        table_engine=table_service,
        uow=SqlUnitOfWork(db),
        notifier=notifier,
        tz_name=settings.timezone,
        number_prefix=settings.reservation_number_prefix,
        default_duration=settings.default_reservation_duration,
    )


def get_order_service(
    db: DbSession,
    table_service: Annotated[TableService, Depends(get_table_service)],
    notifier=Depends(get_notifier),
) -> OrderService:
    return OrderService(
        orders=SqlOrderRepository(db),
        menu_items=SqlMenuItemRepository(db),
        table_engine=table_service,
        uow=SqlUnitOfWork(db),
        notifier=notifier,
        tax_rate=settings.tax_rate,
        number_prefix=settings.order_number_prefix,
    )


def get_inventory_service(db: DbSession, notifier=Depends(get_notifier)) -> InventoryService:
    return InventoryService(
        items=SqlInventoryRepository(db),
        uow=SqlUnitOfWork(db),
        notifier=notifier,
        tz_name=settings.timezone,
    )


TableEngine = Annotated[TableService, Depends(get_table_service)]
ReservationEngine = Annotated[ReservationService, Depends(get_reservation_service)]
OrderEngine = Annotated[OrderService, Depends(get_order_service)]
InventoryLedger = Annotated[InventoryService, Depends(get_inventory_service)]
