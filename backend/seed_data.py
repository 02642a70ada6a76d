"""Seed a development database with staff accounts, tables and a starter menu.

Usage:
    cd backend
    python seed_data.py
"""

import logging
import os
import sys
from decimal import Decimal

# Ensure the backend package is importable
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from restaurant_pos.core.config import settings
from restaurant_pos.core.rbac import UserRole
from restaurant_pos.core.security import get_password_hash
from restaurant_pos.db.base import Base
from restaurant_pos.db.session import SessionLocal, engine
from restaurant_pos.models import MenuItem, User
from restaurant_pos.repositories.sql import SqlReservationRepository, SqlTableRepository, SqlUnitOfWork
from restaurant_pos.services import TableService, broadcaster

logger = logging.getLogger(__name__)

STAFF = [
    ("Admin", "admin@example.com", UserRole.ADMIN, "admin123"),
    ("Maria Manager", "manager@example.com", UserRole.MANAGER, "manager123"),
    ("Carl Cashier", "cashier@example.com", UserRole.CASHIER, "cashier123"),
    ("Kim Kitchen", "kitchen@example.com", UserRole.KITCHEN, "kitchen123"),
]

MENU = [
    ("Margherita Pizza", "Tomato, mozzarella, basil", "12.50", "Mains", 15),
    ("Caesar Salad", "Romaine, parmesan, croutons", "9.00", "Starters", 8),
    ("Grilled Salmon", "With seasonal vegetables", "21.00", "Mains", 20),
    ("Fries", None, "4.50", "Sides", 6),
    ("Lemonade", "House made", "3.50", "Drinks", 2),
    ("Tiramisu", None, "6.75", "Desserts", 5),
]


def seed() -> None:
    if settings.database_url.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        for name, email, role, password in STAFF:
            if db.query(User).filter(User.email == email).first() is None:
                db.add(User(name=name, email=email, role=role, password_hash=get_password_hash(password)))
        if db.query(MenuItem).count() == 0:
            for name, description, price, category, prep in MENU:
                db.add(MenuItem(
                    name=name,
                    description=description,
                    price=Decimal(price),
                    category=category,
                    preparation_time=prep,
                ))
        db.commit()

        created = TableService(
            tables=SqlTableRepository(db),
            reservations=SqlReservationRepository(db),
            uow=SqlUnitOfWork(db),
            notifier=broadcaster,
        ).provision_default_tables(settings.default_table_count)
        print(f"Seed data committed successfully ({created} tables created).")
    except Exception as e:
        db.rollback()
        print(f"Error seeding data: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    seed()
