"""
Demo data seeding and bulk import of a full data snapshot.
"""
import logging
import uuid
from decimal import Decimal

from django.db import IntegrityError, transaction

from .models import (
    AppSettings,
    Customer,
    Employee,
    InventoryItem,
    Invoice,
    MenuItem,
    Order,
    OrderLine,
    RestaurantSettings,
    Table,
)
from .serializers import SnapshotSerializer

logger = logging.getLogger(__name__)

DEMO_MENU_ITEMS = [
    ("Margherita Pizza", Decimal("12.99"), "Pizza", "Classic pizza with tomato sauce, mozzarella, and basil"),
    ("Caesar Salad", Decimal("8.99"), "Salads", "Romaine lettuce with Caesar dressing, croutons, and parmesan"),
    ("Spaghetti Carbonara", Decimal("14.99"), "Pasta", "Spaghetti with eggs, cheese, pancetta, and black pepper"),
]

DEMO_INVENTORY = [
    ("Flour", "Baking", Decimal("25"), "kg", Decimal("10"), Decimal("1.50"), "Wholesale Foods Inc."),
    ("Tomatoes", "Produce", Decimal("8"), "kg", Decimal("10"), Decimal("2.99"), "Local Farms Co."),
    ("Mozzarella Cheese", "Dairy", Decimal("15"), "kg", Decimal("5"), Decimal("8.50"), "Dairy Distributors"),
    ("Olive Oil", "Oils", Decimal("12"), "liters", Decimal("5"), Decimal("12.99"), "Mediterranean Imports"),
]

DEMO_TABLES = [("Table 1", 4), ("Table 2", 2), ("Table 3", 6), ("Table 4", 8)]

DEMO_CUSTOMERS = [
    ("John Doe", "john.doe@example.com", "(555) 123-4567", "123 Main St, Anytown, USA", 150,
     "Regular customer, prefers window seating"),
    ("Jane Smith", "jane.smith@example.com", "(555) 987-6543", "456 Oak Ave, Somewhere, USA", 75,
     "Allergic to nuts"),
]


@transaction.atomic
def seed_demo_data():
    """Insert the demo restaurant. Does nothing if the menu already has items."""
    if MenuItem.objects.exists():
        logger.info("Menu already populated, skipping demo seed")
        return {"success": True, "message": "Database already seeded", "created": False}

    RestaurantSettings.load().save()
    AppSettings.load().save()

    MenuItem.objects.bulk_create([
        MenuItem(name=name, price=price, category=category, description=description)
        for name, price, category, description in DEMO_MENU_ITEMS
    ])
    InventoryItem.objects.bulk_create([
        InventoryItem(name=name, category=category, quantity=quantity, unit=unit, min_quantity=minimum,
                      cost=cost, supplier=supplier)
        for name, category, quantity, unit, minimum, cost, supplier in DEMO_INVENTORY
    ])
    Table.objects.bulk_create([Table(name=name, capacity=capacity) for name, capacity in DEMO_TABLES])
    Customer.objects.bulk_create([
        Customer(name=name, email=email, phone=phone, address=address, loyalty_points=points, notes=notes)
        for name, email, phone, address, points, notes in DEMO_CUSTOMERS
    ])
    logger.info("Seeded demo data")
    return {"success": True, "message": "Database seeded successfully", "created": True}


class SnapshotImporter:
    """
    Load an exported snapshot of every collection.

    Rows whose id already exists are skipped, as are rows the database
    refuses (each row goes in under its own savepoint). References to rows
    that are missing from both the snapshot and the database are dropped.
    """

    COLLECTIONS = ("menu_items", "customers", "employees", "tables", "inventory_items", "orders", "invoices")

    def __init__(self):
        self.report = {name: {"created": 0, "skipped": 0} for name in self.COLLECTIONS}

    @transaction.atomic
    def run(self, payload):
        serializer = SnapshotSerializer(data=payload)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        self._load("menu_items", MenuItem, data.get("menu_items", []), self._create_simple(MenuItem))
        self._load("customers", Customer, data.get("customers", []), self._create_simple(Customer))
        self._load("employees", Employee, data.get("employees", []), self._create_simple(Employee))

        # Current orders are linked once the orders exist
        pending_links = {}
        self._load("tables", Table, data.get("tables", []), lambda row: self._create_table(row, pending_links))
        self._load("inventory_items", InventoryItem, data.get("inventory_items", []), self._create_simple(InventoryItem))
        self._load("orders", Order, data.get("orders", []), self._create_order)
        self._load("invoices", Invoice, data.get("invoices", []), self._create_invoice)

        for table_id, order_id in pending_links.items():
            if Order.objects.filter(pk=order_id).exists():
                Table.objects.filter(pk=table_id).update(current_order_id=order_id)

        if "restaurant_settings" in data:
            self._upsert(RestaurantSettings, data["restaurant_settings"])
        if "app_settings" in data:
            self._upsert(AppSettings, data["app_settings"])

        logger.info("Snapshot import finished: %s", self.report)
        return {"success": True, "message": "Data migrated successfully", "results": self.report}

    def _load(self, name, model, rows, create):
        for row in rows:
            row = dict(row)
            pk = row.get("id")
            if pk is not None and model.objects.filter(pk=pk).exists():
                self.report[name]["skipped"] += 1
                continue
            try:
                with transaction.atomic():
                    create(row)
            except IntegrityError as exc:
                logger.warning("Skipping %s row %s: %s", name, pk, exc)
                self.report[name]["skipped"] += 1
            else:
                self.report[name]["created"] += 1

    @staticmethod
    def _create_simple(model):
        def create(row):
            row.pop("is_low_stock", None)
            model.objects.create(**row)
        return create

    @staticmethod
    def _existing(model, pk):
        return pk if pk is not None and model.objects.filter(pk=pk).exists() else None

    def _create_table(self, row, pending_links):
        current_order_id = row.pop("current_order_id", None)
        row["assigned_server_id"] = self._existing(Employee, row.get("assigned_server_id"))
        table = Table.objects.create(**row)
        if current_order_id:
            pending_links[table.pk] = current_order_id

    def _create_order(self, row):
        lines = row.pop("items", [])
        created_at = row.pop("created_at", None)
        row["customer_id"] = self._existing(Customer, row.get("customer_id"))
        row["table_id"] = self._existing(Table, row.get("table_id"))
        order = Order.objects.create(**row)
        if created_at is not None:
            Order.objects.filter(pk=order.pk).update(created_at=created_at)

        quantities = {}
        prices = {}
        for line in lines:
            menu_item_id = line["menu_item_id"]
            quantities[menu_item_id] = quantities.get(menu_item_id, 0) + line["quantity"]
            if line.get("price") is not None:
                prices.setdefault(menu_item_id, line["price"])
        menu = MenuItem.objects.in_bulk(list(quantities))
        OrderLine.objects.bulk_create([
            OrderLine(order=order, menu_item=menu[pk], quantity=quantity, price=prices.get(pk, menu[pk].price))
            for pk, quantity in quantities.items()
            if pk in menu
        ])

    def _create_invoice(self, row):
        try:
            customer_id = uuid.UUID(str(row.get("customer_id")))
        except ValueError:
            # "guest", blank or an id from another system
            customer_id = None
        row["customer_id"] = self._existing(Customer, customer_id)
        row["order_id"] = self._existing(Order, row.get("order_id"))
        Invoice.objects.create(**row)

    @staticmethod
    def _upsert(model, values):
        instance = model.load()
        for field, value in values.items():
            setattr(instance, field, value)
        instance.save()
