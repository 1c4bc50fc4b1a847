"""
Shared fixtures for the restaurant tests.

Prices and the 8.5% tax rate mirror the demo restaurant, so two Margherita
pizzas with a 3.00 tip come to 25.98 + 2.21 + 3.00 = 31.19.
"""
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from restaurant.models import Customer, MenuItem, RestaurantSettings, Table
from restaurant.services import InvoiceService, OrderService


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def restaurant_settings(db):
    return RestaurantSettings.objects.create(name="Test Bistro", tax_rate=Decimal("8.50"))


@pytest.fixture
def margherita(db):
    return MenuItem.objects.create(name="Margherita Pizza", price=Decimal("12.99"), category="Pizza")


@pytest.fixture
def caesar_salad(db):
    return MenuItem.objects.create(name="Caesar Salad", price=Decimal("8.99"), category="Salads")


@pytest.fixture
def customer(db):
    return Customer.objects.create(name="John Doe", email="john.doe@example.com", loyalty_points=0)


@pytest.fixture
def table(db):
    return Table.objects.create(name="Table 1", capacity=4)


@pytest.fixture
def order_service(restaurant_settings):
    return OrderService()


@pytest.fixture
def invoice_service(restaurant_settings):
    return InvoiceService()


@pytest.fixture
def placed_order(order_service, margherita, customer, table):
    """A pending order on `table`: two pizzas, 3.00 tip, paid by card."""
    return order_service.place_order(
        items=[{"menu_item_id": margherita.id, "quantity": 2}],
        customer_id=customer.id,
        table_id=table.id,
        payment_method="card",
        tip=Decimal("3.00"),
    )
