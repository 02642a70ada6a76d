"""Table routes."""

from typing import Optional

from fastapi import APIRouter, Query

from restaurant_pos.api.deps import TableEngine
from restaurant_pos.core.rbac import CurrentUser, RequireAdmin, RequireManager
from restaurant_pos.core.responses import paginated_response, success_response
from restaurant_pos.models.table import TableStatus
from restaurant_pos.schemas.tables import (
    MaintenanceReport,
    TableCreate,
    TableResponse,
    TableStatusUpdate,
    TableUpdate,
)

router = APIRouter()


def _table(table) -> dict:
    return TableResponse.model_validate(table).model_dump(mode="json")


@router.get("")
def list_tables(
    engine: TableEngine,
    current_user: CurrentUser,
    status: Optional[TableStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
):
    """List tables in floor order."""
    tables = engine.list_tables(status)
    start = (page - 1) * limit
    return paginated_response(
        "tables", [_table(t) for t in tables[start:start + limit]], len(tables), page, limit,
    )


@router.get("/{table_id}")
def get_table(table_id: int, engine: TableEngine, current_user: CurrentUser):
    return success_response({"table": _table(engine.get_table(table_id))})


@router.post("", status_code=201)
def create_table(body: TableCreate, engine: TableEngine, current_user: RequireManager):
    table = engine.create_table(body.model_dump(), current_user)
    return success_response({"table": _table(table)}, "Table created successfully")


@router.put("/{table_id}")
def update_table(table_id: int, body: TableUpdate, engine: TableEngine, current_user: RequireManager):
    table = engine.update_table(table_id, body.model_dump(exclude_unset=True), current_user)
    return success_response({"table": _table(table)}, "Table updated successfully")


@router.delete("/{table_id}")
def delete_table(table_id: int, engine: TableEngine, current_user: RequireAdmin):
    engine.delete_table(table_id, current_user)
    return success_response(None, "Table deleted successfully")


@router.put("/{table_id}/status")
def update_table_status(
    table_id: int, body: TableStatusUpdate, engine: TableEngine, current_user: CurrentUser,
):
    """Occupy, free or take a table out of service."""
    table = engine.set_status(
        table_id, body.status, body.model_dump(exclude={"status"}), current_user,
    )
    return success_response({"table": _table(table)}, f"Table status updated to {table.status.value}")


@router.post("/{table_id}/maintenance")
def report_maintenance(
    table_id: int, body: MaintenanceReport, engine: TableEngine, current_user: CurrentUser,
):
    table = engine.report_maintenance(table_id, body.issue, current_user)
    return success_response({"table": _table(table)}, "Maintenance issue reported")
