from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
import uuid
from decimal import Decimal

from .config import default_tax_rate, default_tip_percentages


# 1. Menu
class MenuItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    category = models.CharField(max_length=100)
    description = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['category', 'name']

    def __str__(self):
        return self.name


# 2. Customers
class Customer(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=30, blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    loyalty_points = models.PositiveIntegerField(default=0)
    join_date = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True, null=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


# 3. Staff (servers get assigned to tables)
class Employee(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    role = models.CharField(max_length=50)
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=30, blank=True, null=True)
    hire_date = models.DateField(default=timezone.localdate)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.role})"


# 4. Tables
class Table(models.Model):
    class Status(models.TextChoices):
        AVAILABLE = 'available', 'Available'
        OCCUPIED = 'occupied', 'Occupied'
        RESERVED = 'reserved', 'Reserved'
        CLEANING = 'cleaning', 'Cleaning'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=50)
    capacity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.AVAILABLE)
    # The live order sitting on this table; cleared when it completes or is cancelled
    current_order = models.ForeignKey('Order', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    assigned_server = models.ForeignKey(Employee, on_delete=models.SET_NULL, null=True, blank=True, related_name='tables')
    reservation_time = models.DateTimeField(null=True, blank=True)
    reservation_name = models.CharField(max_length=100, blank=True, null=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.status})"


# 5. Orders
class OrderQuerySet(models.QuerySet):
    def with_details(self):
        return self.select_related('customer', 'table').prefetch_related('items__menu_item')


class Order(models.Model):
    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        COMPLETED = 'completed', 'Completed'
        CANCELLED = 'cancelled', 'Cancelled'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    table = models.ForeignKey(Table, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    payment_method = models.CharField(max_length=30, blank=True, null=True)

    # Totals are always computed server-side; total includes tax and tip
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    tip = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0.00'))])
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OrderQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Order {self.id} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in (self.Status.COMPLETED, self.Status.CANCELLED)


class OrderLine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    menu_item = models.ForeignKey(MenuItem, on_delete=models.PROTECT, related_name='order_lines')
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    # Snapshot of MenuItem.price when the order was placed
    price = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['order', 'menu_item'], name='unique_menu_item_per_order'),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.menu_item.name}"

    @property
    def line_total(self):
        return self.price * self.quantity


# 6. Invoices
class InvoiceQuerySet(models.QuerySet):
    def with_details(self):
        return self.select_related('customer', 'order__customer', 'order__table').prefetch_related(
            'order__items__menu_item'
        )


class Invoice(models.Model):
    class Status(models.TextChoices):
        DRAFT = 'draft', 'Draft'
        SENT = 'sent', 'Sent'
        PAID = 'paid', 'Paid'
        OVERDUE = 'overdue', 'Overdue'

    GUEST = 'guest'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # At most one invoice per order; manual invoices carry no order
    order = models.OneToOneField(Order, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoice')
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='invoices')
    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2)
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2)
    total = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    issue_date = models.DateTimeField(default=timezone.now)
    due_date = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = InvoiceQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Invoice {self.id} ({self.status})"


# ==========================================
# 7. INVENTORY
# ==========================================

class InventoryItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    category = models.CharField(max_length=100)
    quantity = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal('0.000'), validators=[MinValueValidator(Decimal('0'))])
    unit = models.CharField(max_length=20)
    # Reorder threshold
    min_quantity = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal('0.000'))
    cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    supplier = models.CharField(max_length=255, blank=True, null=True)
    last_restocked = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['category', 'name']

    def __str__(self):
        return f"{self.name} ({self.quantity} {self.unit})"

    @property
    def is_low_stock(self):
        return self.quantity <= self.min_quantity


# ==========================================
# 8. SETTINGS (one row each, fixed key)
# ==========================================

class SingletonModel(models.Model):
    SINGLETON_PK = 1

    id = models.PositiveSmallIntegerField(primary_key=True, default=SINGLETON_PK, editable=False)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        self.pk = self.SINGLETON_PK
        super().save(*args, **kwargs)

    @classmethod
    def load(cls):
        instance = cls.objects.filter(pk=cls.SINGLETON_PK).first()
        return instance if instance is not None else cls()


class RestaurantSettings(SingletonModel):
    name = models.CharField(max_length=255, default="My Restaurant")
    address = models.TextField(blank=True, null=True, default="123 Main St, City, State")
    phone = models.CharField(max_length=30, blank=True, null=True, default="(555) 123-4567")
    # Percent, e.g. 8.50
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=default_tax_rate, validators=[MinValueValidator(Decimal('0'))])
    enable_tips = models.BooleanField(default=True)
    default_tip_percentages = models.JSONField(default=default_tip_percentages)

    def __str__(self):
        return self.name


class AppSettings(SingletonModel):
    dark_mode = models.BooleanField(default=False)
    compact_mode = models.BooleanField(default=False)
    receipt_footer = models.TextField(blank=True, null=True, default="Thank you for your business!")

    def __str__(self):
        return "App settings"
