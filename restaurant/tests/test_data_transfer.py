import uuid
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from rest_framework.exceptions import ValidationError

from restaurant.data_transfer import SnapshotImporter, seed_demo_data
from restaurant.models import (
    AppSettings,
    Customer,
    InventoryItem,
    Invoice,
    MenuItem,
    Order,
    OrderLine,
    RestaurantSettings,
    Table,
)


@pytest.mark.django_db
class TestSeedDemoData:
    def test_seeds_an_empty_database(self):
        result = seed_demo_data()

        assert result == {"success": True, "message": "Database seeded successfully", "created": True}
        assert MenuItem.objects.count() == 3
        assert Table.objects.count() == 4
        assert InventoryItem.objects.count() == 4
        assert Customer.objects.count() == 2
        assert RestaurantSettings.load().tax_rate == Decimal("8.50")
        assert AppSettings.objects.exists()

    def test_existing_menu_is_left_alone(self, margherita):
        result = seed_demo_data()

        assert result["created"] is False
        assert list(MenuItem.objects.all()) == [margherita]
        assert not Table.objects.exists()

    def test_demo_inventory_has_low_stock_items(self):
        seed_demo_data()
        assert [item.name for item in InventoryItem.objects.all() if item.is_low_stock] == ["Tomatoes"]


def snapshot():
    menu_id, customer_id, server_id, table_id, order_id = (str(uuid.uuid4()) for _ in range(5))
    return {
        "menu_items": [{"id": menu_id, "name": "Lasagna", "price": "15.50", "category": "Pasta"}],
        "customers": [{"id": customer_id, "name": "Grace", "email": "grace@example.com", "loyalty_points": 4}],
        "employees": [{"id": server_id, "name": "Sam", "role": "server"}],
        "tables": [{
            "id": table_id, "name": "Table 9", "capacity": 4, "status": "occupied",
            "current_order_id": order_id, "assigned_server_id": server_id,
        }],
        "inventory_items": [{"name": "Basil", "category": "Produce", "quantity": "1.5", "unit": "kg",
                             "min_quantity": "2", "is_low_stock": True}],
        "orders": [{
            "id": order_id, "status": "pending", "subtotal": "31.00", "tax_rate": "8.50", "tax_amount": "2.64",
            "tip": "0.00", "total": "33.64", "customer_id": customer_id, "table_id": table_id,
            "created_at": "2026-01-02T12:00:00Z",
            # Lines as exported by the API, with the menu item nested
            "items": [
                {"menu_item": {"id": menu_id, "price": "15.50"}, "quantity": 2},
                {"menu_item_id": str(uuid.uuid4()), "quantity": 1},
            ],
        }],
        "invoices": [{
            "order_id": order_id, "customer_id": "guest", "subtotal": "31.00", "tax_rate": "8.50",
            "tax_amount": "2.64", "total": "33.64", "status": "draft",
        }],
        "restaurant_settings": {"name": "Imported Bistro", "tax_rate": "9.00"},
    }


@pytest.mark.django_db
class TestSnapshotImporter:
    def test_imports_every_collection(self):
        payload = snapshot()

        result = SnapshotImporter().run(payload)

        assert result["success"] is True
        assert result["results"]["orders"] == {"created": 1, "skipped": 0}

        order = Order.objects.get(pk=payload["orders"][0]["id"])
        assert order.created_at == datetime(2026, 1, 2, 12, 0, tzinfo=dt_timezone.utc)
        assert order.customer.name == "Grace"
        # The line for a menu item missing everywhere is dropped
        line = OrderLine.objects.get(order=order)
        assert (line.menu_item.name, line.quantity, line.price) == ("Lasagna", 2, Decimal("15.50"))

        table = Table.objects.get(pk=payload["tables"][0]["id"])
        assert table.current_order_id == order.pk
        assert table.assigned_server.name == "Sam"

        invoice = Invoice.objects.get()
        assert invoice.order_id == order.pk
        assert invoice.customer_id is None

        assert RestaurantSettings.load().name == "Imported Bistro"
        assert RestaurantSettings.load().tax_rate == Decimal("9.00")

    def test_running_twice_skips_existing_rows(self):
        payload = snapshot()
        SnapshotImporter().run(payload)

        result = SnapshotImporter().run(payload)

        results = result["results"]
        for name in ("menu_items", "customers", "employees", "tables", "orders"):
            assert results[name] == {"created": 0, "skipped": 1}, name
        # The invoice carries no id; the order already has one, so it is refused
        assert results["invoices"] == {"created": 0, "skipped": 1}
        assert Invoice.objects.count() == 1
        assert Order.objects.count() == 1
        assert Customer.objects.get().loyalty_points == 4

    def test_missing_references_are_dropped(self):
        result = SnapshotImporter().run({
            "orders": [{"status": "completed", "total": "10.00", "customer_id": str(uuid.uuid4()),
                        "table_id": str(uuid.uuid4())}],
        })

        assert result["results"]["orders"] == {"created": 1, "skipped": 0}
        order = Order.objects.get()
        assert order.customer_id is None
        assert order.table_id is None

    def test_invalid_payload_writes_nothing(self):
        with pytest.raises(ValidationError):
            SnapshotImporter().run({
                "menu_items": [
                    {"name": "Fine", "price": "1.00", "category": "Misc"},
                    {"name": "Broken", "price": "-3.00", "category": "Misc"},
                ],
            })

        assert not MenuItem.objects.exists()
