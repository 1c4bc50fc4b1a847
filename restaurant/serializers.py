from decimal import Decimal

from rest_framework import serializers

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

# --- CATALOGUE & PEOPLE ---

class MenuItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = MenuItem
        fields = ['id', 'name', 'price', 'category', 'description']


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ['id', 'name', 'email', 'phone', 'address', 'loyalty_points', 'join_date', 'notes']
        extra_kwargs = {'join_date': {'required': False}}


class EmployeeSerializer(serializers.ModelSerializer):
    class Meta:
        model = Employee
        fields = ['id', 'name', 'role', 'email', 'phone', 'hire_date', 'is_active']
        extra_kwargs = {'hire_date': {'required': False}}


class TableSerializer(serializers.ModelSerializer):
    assigned_server_name = serializers.CharField(source='assigned_server.name', read_only=True, default=None)

    class Meta:
        model = Table
        fields = [
            'id', 'name', 'capacity', 'status', 'current_order', 'assigned_server', 'assigned_server_name',
            'reservation_time', 'reservation_name',
        ]


# --- ORDERS ---

class OrderLineSerializer(serializers.ModelSerializer):
    menu_item = MenuItemSerializer(read_only=True)
    line_total = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = OrderLine
        fields = ['id', 'menu_item', 'quantity', 'price', 'line_total']


class OrderSerializer(serializers.ModelSerializer):
    items = OrderLineSerializer(many=True, read_only=True)
    customer = CustomerSerializer(read_only=True)
    table = TableSerializer(read_only=True)
    customer_id = serializers.UUIDField(read_only=True)
    table_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'status', 'items', 'subtotal', 'tax_rate', 'tax_amount', 'tip', 'total', 'payment_method',
            'customer_id', 'customer', 'table_id', 'table', 'created_at', 'updated_at',
        ]


class CustomerDetailSerializer(CustomerSerializer):
    orders = OrderSerializer(many=True, read_only=True)

    class Meta(CustomerSerializer.Meta):
        fields = CustomerSerializer.Meta.fields + ['orders']


class OrderLineInputSerializer(serializers.Serializer):
    menu_item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class PlaceOrderSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField(required=False, allow_null=True)
    table_id = serializers.UUIDField(required=False, allow_null=True)
    items = OrderLineInputSerializer(many=True, allow_empty=False)
    payment_method = serializers.CharField(max_length=30, required=False, allow_blank=True, allow_null=True)
    tip = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'), default=Decimal('0.00'))
    create_invoice = serializers.BooleanField(default=False)


class UpdateOrderSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.Status.choices, required=False)
    payment_method = serializers.CharField(max_length=30, required=False, allow_blank=True)
    tip = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'), required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Provide at least one of: status, payment_method, tip.")
        return attrs


# --- INVOICES ---

class InvoiceSerializer(serializers.ModelSerializer):
    order = OrderSerializer(read_only=True)
    order_id = serializers.UUIDField(read_only=True)
    customer = CustomerSerializer(read_only=True)
    customer_id = serializers.SerializerMethodField()

    class Meta:
        model = Invoice
        fields = [
            'id', 'order_id', 'order', 'customer_id', 'customer', 'subtotal', 'tax_rate', 'tax_amount', 'total',
            'status', 'issue_date', 'due_date', 'notes', 'created_at',
        ]

    def get_customer_id(self, obj):
        return str(obj.customer_id) if obj.customer_id else Invoice.GUEST


class InvoiceCreateSerializer(serializers.Serializer):
    order_id = serializers.UUIDField(required=False, allow_null=True)
    # A customer id, or "guest"
    customer_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    subtotal = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'))
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal('0'), required=False, allow_null=True)
    tip = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'), default=Decimal('0.00'))
    status = serializers.ChoiceField(choices=Invoice.Status.choices, default=Invoice.Status.DRAFT)
    issue_date = serializers.DateTimeField(required=False, allow_null=True)
    due_date = serializers.DateTimeField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class InvoiceUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Invoice
        fields = ['status', 'due_date', 'notes']


class SendInvoiceSerializer(serializers.Serializer):
    email = serializers.EmailField(required=False, allow_null=True)


# --- INVENTORY ---

class InventoryItemSerializer(serializers.ModelSerializer):
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = InventoryItem
        fields = [
            'id', 'name', 'category', 'quantity', 'unit', 'min_quantity', 'cost', 'supplier', 'last_restocked',
            'is_low_stock',
        ]
        extra_kwargs = {'last_restocked': {'required': False}}


# --- SETTINGS ---

class RestaurantSettingsSerializer(serializers.ModelSerializer):
    default_tip_percentages = serializers.ListField(
        child=serializers.IntegerField(min_value=0, max_value=100),
        required=False,
    )

    class Meta:
        model = RestaurantSettings
        fields = ['name', 'address', 'phone', 'tax_rate', 'enable_tips', 'default_tip_percentages']


class AppSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = AppSettings
        fields = ['dark_mode', 'compact_mode', 'receipt_footer']


class SettingsSerializer(serializers.Serializer):
    restaurant_settings = RestaurantSettingsSerializer(required=False)
    app_settings = AppSettingsSerializer(required=False)


# --- SNAPSHOT IMPORT (/migrate) ---
# Rows keep their ids; references are raw ids and are checked on insert.

class MenuItemSnapshotSerializer(MenuItemSerializer):
    id = serializers.UUIDField(required=False)


class CustomerSnapshotSerializer(CustomerSerializer):
    id = serializers.UUIDField(required=False)


class EmployeeSnapshotSerializer(EmployeeSerializer):
    id = serializers.UUIDField(required=False)


class TableSnapshotSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(required=False)
    current_order_id = serializers.UUIDField(required=False, allow_null=True)
    assigned_server_id = serializers.UUIDField(required=False, allow_null=True)

    class Meta:
        model = Table
        fields = [
            'id', 'name', 'capacity', 'status', 'current_order_id', 'assigned_server_id', 'reservation_time',
            'reservation_name',
        ]


class InventoryItemSnapshotSerializer(InventoryItemSerializer):
    id = serializers.UUIDField(required=False)


class OrderLineSnapshotSerializer(serializers.Serializer):
    menu_item_id = serializers.UUIDField(required=False)
    # Export shape: the nested menu item as rendered by the API
    menu_item = serializers.DictField(required=False)
    quantity = serializers.IntegerField(min_value=1, default=1)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False)

    def validate(self, attrs):
        nested = attrs.pop('menu_item', None) or {}
        if 'menu_item_id' not in attrs:
            if not nested.get('id'):
                raise serializers.ValidationError("Each line needs menu_item_id or menu_item.id.")
            attrs['menu_item_id'] = serializers.UUIDField().to_internal_value(nested['id'])
        if 'price' not in attrs and nested.get('price') is not None:
            attrs['price'] = serializers.DecimalField(max_digits=10, decimal_places=2).to_internal_value(nested['price'])
        return attrs


class OrderSnapshotSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(required=False)
    customer_id = serializers.UUIDField(required=False, allow_null=True)
    table_id = serializers.UUIDField(required=False, allow_null=True)
    items = OrderLineSnapshotSerializer(many=True, required=False)
    created_at = serializers.DateTimeField(required=False)

    class Meta:
        model = Order
        fields = [
            'id', 'status', 'subtotal', 'tax_rate', 'tax_amount', 'tip', 'total', 'payment_method', 'customer_id',
            'table_id', 'items', 'created_at',
        ]


class InvoiceSnapshotSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(required=False)
    order_id = serializers.UUIDField(required=False, allow_null=True)
    customer_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)

    class Meta:
        model = Invoice
        fields = [
            'id', 'order_id', 'customer_id', 'subtotal', 'tax_rate', 'tax_amount', 'total', 'status', 'issue_date',
            'due_date', 'notes',
        ]


class SnapshotSerializer(serializers.Serializer):
    menu_items = MenuItemSnapshotSerializer(many=True, required=False)
    customers = CustomerSnapshotSerializer(many=True, required=False)
    employees = EmployeeSnapshotSerializer(many=True, required=False)
    tables = TableSnapshotSerializer(many=True, required=False)
    inventory_items = InventoryItemSnapshotSerializer(many=True, required=False)
    orders = OrderSnapshotSerializer(many=True, required=False)
    invoices = InvoiceSnapshotSerializer(many=True, required=False)
    restaurant_settings = RestaurantSettingsSerializer(required=False)
    app_settings = AppSettingsSerializer(required=False)
