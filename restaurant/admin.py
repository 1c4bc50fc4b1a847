from django.contrib import admin
from .models import AppSettings, Customer, Employee, InventoryItem, Invoice, MenuItem, Order, OrderLine, RestaurantSettings, Table

# 1. Lines are edited inside their order
class OrderLineInline(admin.TabularInline):
    model = OrderLine
    extra = 0
    readonly_fields = ['price']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'status', 'table', 'customer', 'total', 'created_at']
    list_filter = ['status']
    inlines = [OrderLineInline]


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'price']
    search_fields = ['name', 'category']


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'phone', 'loyalty_points']
    search_fields = ['name', 'email', 'phone']


@admin.register(Table)
class TableAdmin(admin.ModelAdmin):
    list_display = ['name', 'capacity', 'status', 'assigned_server', 'reservation_time']
    list_filter = ['status']


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ['id', 'order', 'customer', 'total', 'status', 'issue_date']
    list_filter = ['status']


# 2. Low stock shows up straight in the list
@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'quantity', 'unit', 'min_quantity', 'is_low_stock']

    @admin.display(boolean=True)
    def is_low_stock(self, obj):
        return obj.is_low_stock


admin.site.register(Employee)
admin.site.register(RestaurantSettings)
admin.site.register(AppSettings)
