"""
HTTP API tests: status codes, the error envelope and response shapes.
"""
import uuid
from decimal import Decimal

import pytest

from restaurant.models import Customer, InventoryItem, Invoice, MenuItem, Order, RestaurantSettings, Table


@pytest.mark.django_db
class TestCatalogueEndpoints:
    def test_menu_crud(self, api_client):
        response = api_client.post("/api/menu/", {"name": "Tiramisu", "price": "6.50", "category": "Desserts"})
        assert response.status_code == 201
        item_id = response.data["id"]

        response = api_client.put(f"/api/menu/{item_id}/", {"price": "7.00"})
        assert response.status_code == 200
        assert response.data["price"] == "7.00"
        assert response.data["name"] == "Tiramisu"

        assert [row["name"] for row in api_client.get("/api/menu/").data] == ["Tiramisu"]

        response = api_client.delete(f"/api/menu/{item_id}/")
        assert response.status_code == 200
        assert response.data == {"success": True}
        assert not MenuItem.objects.exists()

    def test_invalid_menu_item_returns_details(self, api_client):
        response = api_client.post("/api/menu/", {"name": "Free lunch", "price": "-1.00", "category": "Mains"})

        assert response.status_code == 400
        assert response.data["error"] == "Invalid request data"
        assert "price" in response.data["details"]

    def test_menu_item_on_an_order_cannot_be_deleted(self, api_client, placed_order, margherita):
        response = api_client.delete(f"/api/menu/{margherita.id}/")

        assert response.status_code == 409
        assert response.data == {"error": "Menu item is referenced by existing orders"}
        assert MenuItem.objects.filter(pk=margherita.pk).exists()

    def test_unknown_ids_are_not_found(self, api_client, db):
        response = api_client.get(f"/api/customers/{uuid.uuid4()}/")
        assert response.status_code == 404
        assert response.data == {"error": "Customer not found"}

    def test_customer_detail_includes_orders(self, api_client, placed_order, customer):
        response = api_client.get(f"/api/customers/{customer.id}/")

        assert response.status_code == 200
        assert response.data["loyalty_points"] == 3
        assert [order["id"] for order in response.data["orders"]] == [str(placed_order.id)]

    def test_table_shows_its_server(self, api_client, db):
        server = api_client.post("/api/employees/", {"name": "Sam", "role": "server"}).data
        response = api_client.post("/api/tables/", {"name": "Patio 1", "capacity": 2, "assigned_server": server["id"]})

        assert response.status_code == 201
        assert response.data["status"] == Table.Status.AVAILABLE
        assert response.data["assigned_server_name"] == "Sam"


@pytest.mark.django_db
class TestOrderEndpoints:
    def test_place_order(self, api_client, restaurant_settings, margherita, customer, table):
        response = api_client.post("/api/orders/", {
            "customer_id": str(customer.id),
            "table_id": str(table.id),
            "items": [{"menu_item_id": str(margherita.id), "quantity": 2}],
            "payment_method": "card",
            "tip": "3.00",
        })

        assert response.status_code == 201
        assert response.data["status"] == "pending"
        assert response.data["subtotal"] == "25.98"
        assert response.data["tax_amount"] == "2.21"
        assert response.data["total"] == "31.19"
        assert response.data["items"][0]["menu_item"]["name"] == "Margherita Pizza"
        assert response.data["items"][0]["line_total"] == "25.98"
        assert response.data["table"]["status"] == "occupied"

    def test_client_totals_are_ignored(self, api_client, restaurant_settings, margherita):
        response = api_client.post("/api/orders/", {
            "items": [{"menu_item_id": str(margherita.id), "quantity": 1}],
            "total": "0.01",
            "subtotal": "0.01",
        })

        assert response.status_code == 201
        assert response.data["total"] == "14.09"

    def test_unknown_menu_item(self, api_client, restaurant_settings):
        response = api_client.post("/api/orders/", {"items": [{"menu_item_id": str(uuid.uuid4())}]})

        assert response.status_code == 400
        assert response.data["error"] == "Invalid request data"
        assert "items" in response.data["details"]
        assert not Order.objects.exists()

    def test_order_needs_items(self, api_client, db):
        response = api_client.post("/api/orders/", {"items": []})
        assert response.status_code == 400
        assert "items" in response.data["details"]

    def test_occupied_table_conflicts(self, api_client, placed_order, margherita, table):
        response = api_client.post("/api/orders/", {
            "table_id": str(table.id),
            "items": [{"menu_item_id": str(margherita.id)}],
        })

        assert response.status_code == 409
        assert response.data == {"error": "Table is already occupied"}
        assert Order.objects.count() == 1

    def test_list_filters_by_status_and_limit(self, api_client, order_service, margherita):
        first = order_service.place_order(items=[{"menu_item_id": margherita.id}])
        order_service.place_order(items=[{"menu_item_id": margherita.id}])
        order_service.update_status(first.id, Order.Status.CANCELLED)

        assert len(api_client.get("/api/orders/").data) == 2
        assert len(api_client.get("/api/orders/?limit=1").data) == 1
        cancelled = api_client.get("/api/orders/?status=cancelled").data
        assert [order["id"] for order in cancelled] == [str(first.id)]

        response = api_client.get("/api/orders/?status=served")
        assert response.status_code == 400

    def test_complete_then_fetch_invoice(self, api_client, placed_order):
        response = api_client.put(f"/api/orders/{placed_order.id}/", {"status": "completed"})
        assert response.status_code == 200
        assert response.data["status"] == "completed"
        assert response.data["table"]["status"] == "cleaning"

        by_order = api_client.get(f"/api/invoices/by-order/{placed_order.id}/")
        assert by_order.status_code == 200
        assert by_order.data["status"] == "paid"
        assert by_order.data["total"] == "31.19"
        assert by_order.data["order"]["id"] == str(placed_order.id)

        # The detail route also accepts the order id
        resolved = api_client.get(f"/api/invoices/{placed_order.id}/")
        assert resolved.data["id"] == by_order.data["id"]

    def test_terminal_order_rejects_a_transition(self, api_client, order_service, placed_order):
        order_service.update_status(placed_order.id, Order.Status.COMPLETED)

        response = api_client.put(f"/api/orders/{placed_order.id}/", {"status": "cancelled"})

        assert response.status_code == 400
        assert response.data == {"error": "Cannot change order from completed to cancelled"}
        assert Invoice.objects.count() == 1

    def test_update_needs_a_field(self, api_client, placed_order):
        response = api_client.put(f"/api/orders/{placed_order.id}/", {})
        assert response.status_code == 400

    def test_delete_order(self, api_client, placed_order, table):
        response = api_client.delete(f"/api/orders/{placed_order.id}/")

        assert response.status_code == 200
        assert response.data == {"success": True}
        assert Table.objects.get(pk=table.pk).status == Table.Status.AVAILABLE

    def test_unknown_order(self, api_client, db):
        response = api_client.get(f"/api/orders/{uuid.uuid4()}/")
        assert response.status_code == 404
        assert response.data == {"error": "Order not found"}

    @pytest.mark.parametrize("method, path, error", [
        ("get", "/api/orders/not-a-uuid/", "Order not found"),
        ("delete", "/api/orders/1712345678901/", "Order not found"),
        ("put", "/api/menu/1712345678901/", "Menu item not found"),
        ("get", "/api/invoices/1712345678901/", "Invoice not found"),
        ("get", "/api/invoices/by-order/1712345678901/", "Invoice not found"),
        ("post", "/api/inventory/abc/restock/", "Inventory item not found"),
    ])
    def test_malformed_ids_are_a_json_not_found(self, api_client, db, method, path, error):
        response = getattr(api_client, method)(path, {"status": "completed"})

        assert response.status_code == 404
        assert response["Content-Type"] == "application/json"
        assert response.json() == {"error": error}


@pytest.mark.django_db
class TestInvoiceEndpoints:
    def test_create_guest_invoice(self, api_client, restaurant_settings):
        response = api_client.post("/api/invoices/", {"customer_id": "guest", "subtotal": "20.00", "tip": "2.00"})

        assert response.status_code == 201
        assert response.data["customer_id"] == "guest"
        assert response.data["customer"] is None
        assert response.data["tax_amount"] == "1.70"
        assert response.data["total"] == "23.70"
        assert response.data["status"] == "draft"

    def test_second_invoice_for_an_order_conflicts(self, api_client, order_service, placed_order):
        order_service.update_status(placed_order.id, Order.Status.COMPLETED)

        response = api_client.post("/api/invoices/", {"order_id": str(placed_order.id), "subtotal": "1.00"})

        assert response.status_code == 409
        assert response.data == {"error": "Order already has an invoice"}

    def test_update_and_delete(self, api_client, invoice_service):
        invoice = invoice_service.create_manual(subtotal=Decimal("10.00"))

        response = api_client.put(f"/api/invoices/{invoice.id}/", {"status": "sent", "notes": "Net 30"})
        assert response.status_code == 200
        assert response.data["status"] == "sent"
        assert response.data["notes"] == "Net 30"

        response = api_client.delete(f"/api/invoices/{invoice.id}/")
        assert response.data == {"message": "Invoice deleted successfully"}
        assert not Invoice.objects.exists()

    def test_send_and_pdf(self, api_client, invoice_service, customer):
        invoice = invoice_service.create_manual(subtotal=Decimal("10.00"), customer_id=str(customer.id))

        response = api_client.post(f"/api/invoices/{invoice.id}/send/", {})
        assert response.status_code == 200
        assert response.data["sent_to"] == customer.email

        response = api_client.post(f"/api/invoices/{invoice.id}/pdf/")
        assert response.status_code == 200
        assert response["Content-Type"].startswith("text/plain")
        assert f'filename="invoice-{invoice.id}.txt"' in response["Content-Disposition"]
        assert b"Total: $10.85" in response.content

    def test_unknown_invoice(self, api_client, db):
        response = api_client.get(f"/api/invoices/{uuid.uuid4()}/")
        assert response.status_code == 404
        assert response.data == {"error": "Invoice not found"}


@pytest.mark.django_db
class TestInventoryEndpoints:
    def test_low_stock_and_restock(self, api_client):
        low = InventoryItem.objects.create(name="Tomatoes", category="Produce", quantity=Decimal("8"), unit="kg",
                                           min_quantity=Decimal("10"))
        InventoryItem.objects.create(name="Flour", category="Baking", quantity=Decimal("25"), unit="kg",
                                     min_quantity=Decimal("10"))

        response = api_client.get("/api/inventory/low-stock/")
        assert [row["name"] for row in response.data] == ["Tomatoes"]
        assert response.data[0]["is_low_stock"] is True

        response = api_client.post(f"/api/inventory/{low.id}/restock/")
        assert response.status_code == 200
        assert Decimal(response.data["quantity"]) == Decimal("30")
        assert api_client.get("/api/inventory/low-stock/").data == []


@pytest.mark.django_db
class TestSettingsEndpoint:
    def test_defaults_before_anything_is_saved(self, api_client):
        response = api_client.get("/api/settings/")

        assert response.status_code == 200
        assert response.data["restaurant_settings"]["tax_rate"] == "8.50"
        assert response.data["restaurant_settings"]["default_tip_percentages"] == [15, 18, 20]
        assert response.data["app_settings"]["receipt_footer"] == "Thank you for your business!"
        assert not RestaurantSettings.objects.exists()

    def test_partial_save_keeps_other_fields(self, api_client):
        api_client.post("/api/settings/", {
            "restaurant_settings": {"name": "Chez Test", "default_tip_percentages": [10, 15]},
        })
        response = api_client.post("/api/settings/", {
            "restaurant_settings": {"tax_rate": "7.25"},
            "app_settings": {"dark_mode": True},
        })

        assert response.status_code == 200
        saved = response.data["restaurant_settings"]
        assert saved["name"] == "Chez Test"
        assert saved["tax_rate"] == "7.25"
        assert saved["default_tip_percentages"] == [10, 15]
        assert response.data["app_settings"]["dark_mode"] is True
        assert RestaurantSettings.objects.count() == 1

    def test_new_tax_rate_applies_to_new_orders(self, api_client, margherita):
        api_client.post("/api/settings/", {"restaurant_settings": {"tax_rate": "10.00"}})

        response = api_client.post("/api/orders/", {"items": [{"menu_item_id": str(margherita.id)}]})

        assert response.data["tax_amount"] == "1.30"


@pytest.mark.django_db
class TestReportAndDataEndpoints:
    def test_stats(self, api_client, placed_order):
        assert api_client.get("/api/stats/tables/").data["occupied"] == 1
        assert api_client.get("/api/stats/orders/").data["pending"] == 1
        assert api_client.get("/api/stats/sales/").status_code == 200

    def test_summary_rejects_unknown_timeframe(self, api_client, db):
        response = api_client.get("/api/reports/summary/?timeframe=hourly")
        assert response.status_code == 400
        assert "timeframe" in response.data["details"]

    def test_unexpected_failures_return_a_stable_message(self, api_client, db, monkeypatch):
        def explode(self):
            raise RuntimeError("database on fire")

        monkeypatch.setattr("restaurant.reports.ReportService.sales_stats", explode)

        response = api_client.get("/api/stats/sales/")

        assert response.status_code == 500
        assert response.data == {"error": "Failed to fetch sales stats"}

    def test_seed_is_idempotent(self, api_client, db):
        first = api_client.post("/api/seed/")
        second = api_client.post("/api/seed/")

        assert first.data["created"] is True
        assert second.data == {"success": True, "message": "Database already seeded", "created": False}
        assert MenuItem.objects.count() == 3
        assert Customer.objects.count() == 2

    def test_migrate_twice(self, api_client, db):
        payload = {
            "menu_items": [{"id": str(uuid.uuid4()), "name": "Soup", "price": "5.00", "category": "Starters"}],
            "customers": [{"id": str(uuid.uuid4()), "name": "Ada"}],
        }

        first = api_client.post("/api/migrate/", payload)
        second = api_client.post("/api/migrate/", payload)

        assert first.status_code == 200
        assert first.data["results"]["menu_items"] == {"created": 1, "skipped": 0}
        assert second.data["results"]["menu_items"] == {"created": 0, "skipped": 1}
        assert second.data["results"]["customers"] == {"created": 0, "skipped": 1}
        assert MenuItem.objects.count() == 1
