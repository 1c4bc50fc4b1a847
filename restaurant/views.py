import logging

from django.db.models import ProtectedError, Prefetch
from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from .data_transfer import SnapshotImporter, seed_demo_data
from .exceptions import Conflict, NotFound, ValidationFailure, handle_errors
from .models import AppSettings, Customer, Employee, InventoryItem, Invoice, MenuItem, Order, RestaurantSettings, Table
from .reports import ReportService
from .serializers import (
    AppSettingsSerializer,
    CustomerDetailSerializer,
    CustomerSerializer,
    EmployeeSerializer,
    InventoryItemSerializer,
    InvoiceCreateSerializer,
    InvoiceSerializer,
    InvoiceUpdateSerializer,
    MenuItemSerializer,
    OrderSerializer,
    PlaceOrderSerializer,
    RestaurantSettingsSerializer,
    SendInvoiceSerializer,
    SettingsSerializer,
    TableSerializer,
    UpdateOrderSerializer,
)
from .services import InventoryService, InvoiceService, OrderService, parse_id

logger = logging.getLogger(__name__)


def get_or_not_found(model, pk, queryset=None):
    queryset = queryset if queryset is not None else model.objects.all()
    instance = queryset.filter(pk=parse_id(model, pk)).first()
    if instance is None:
        raise NotFound.for_model(model)
    return instance


def list_or_create(request, queryset, serializer_class):
    if request.method == 'GET':
        return Response(serializer_class(queryset, many=True).data)
    serializer = serializer_class(data=request.data)
    serializer.is_valid(raise_exception=True)
    instance = serializer.save()
    return Response(serializer_class(instance).data, status=status.HTTP_201_CREATED)


def retrieve_update_destroy(request, instance, serializer_class, read_serializer_class=None):
    read_serializer_class = read_serializer_class or serializer_class
    if request.method == 'GET':
        return Response(read_serializer_class(instance).data)
    if request.method == 'PUT':
        serializer = serializer_class(instance, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        instance = serializer.save()
        return Response(read_serializer_class(instance).data)
    instance.delete()
    return Response({"success": True})


# =========================================
#  MENU
# =========================================

@api_view(['GET', 'POST'])
@handle_errors("Failed to process menu items")
def menu_list(request):
    return list_or_create(request, MenuItem.objects.all(), MenuItemSerializer)


@api_view(['GET', 'PUT', 'DELETE'])
@handle_errors("Failed to process menu item")
def menu_detail(request, pk):
    item = get_or_not_found(MenuItem, pk)
    try:
        return retrieve_update_destroy(request, item, MenuItemSerializer)
    except ProtectedError:
        raise Conflict("Menu item is referenced by existing orders")


# =========================================
#  CUSTOMERS & STAFF
# =========================================

@api_view(['GET', 'POST'])
@handle_errors("Failed to process customers")
def customer_list(request):
    return list_or_create(request, Customer.objects.all(), CustomerSerializer)


@api_view(['GET', 'PUT', 'DELETE'])
@handle_errors("Failed to process customer")
def customer_detail(request, pk):
    queryset = Customer.objects.prefetch_related(
        Prefetch('orders', queryset=Order.objects.with_details())
    )
    customer = get_or_not_found(Customer, pk, queryset)
    return retrieve_update_destroy(request, customer, CustomerSerializer, CustomerDetailSerializer)


@api_view(['GET', 'POST'])
@handle_errors("Failed to process employees")
def employee_list(request):
    return list_or_create(request, Employee.objects.all(), EmployeeSerializer)


@api_view(['GET', 'PUT', 'DELETE'])
@handle_errors("Failed to process employee")
def employee_detail(request, pk):
    return retrieve_update_destroy(request, get_or_not_found(Employee, pk), EmployeeSerializer)


# =========================================
#  TABLES
# =========================================

@api_view(['GET', 'POST'])
@handle_errors("Failed to process tables")
def table_list(request):
    return list_or_create(request, Table.objects.select_related('assigned_server'), TableSerializer)


@api_view(['GET', 'PUT', 'DELETE'])
@handle_errors("Failed to process table")
def table_detail(request, pk):
    return retrieve_update_destroy(request, get_or_not_found(Table, pk), TableSerializer)


@api_view(['GET'])
@handle_errors("Failed to fetch reservations")
def table_reservations(request):
    tables = ReportService().todays_reservations().select_related('assigned_server')
    return Response(TableSerializer(tables, many=True).data)


# =========================================
#  ORDERS
# =========================================

@api_view(['GET', 'POST'])
@handle_errors("Failed to process orders")
def order_list(request):
    if request.method == 'POST':
        serializer = PlaceOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService().place_order(**serializer.validated_data)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    orders = Order.objects.with_details()
    order_status = request.query_params.get('status')
    if order_status:
        if order_status not in Order.Status.values:
            raise ValidationFailure("Invalid request data", details={"status": [f"'{order_status}' is not a valid order status."]})
        orders = orders.filter(status=order_status)
    limit = request.query_params.get('limit')
    if limit:
        try:
            limit = int(limit)
        except ValueError:
            raise ValidationFailure("Invalid request data", details={"limit": ["Must be a whole number."]})
        if limit < 1:
            raise ValidationFailure("Invalid request data", details={"limit": ["Must be at least 1."]})
        orders = orders[:limit]
    return Response(OrderSerializer(orders, many=True).data)


@api_view(['GET', 'PUT', 'DELETE'])
@handle_errors("Failed to process order")
def order_detail(request, pk):
    service = OrderService()
    if request.method == 'GET':
        return Response(OrderSerializer(service.get_order(pk)).data)

    if request.method == 'PUT':
        serializer = UpdateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = service.update_order(pk, **serializer.validated_data)
        return Response(OrderSerializer(order).data)

    service.delete_order(pk)
    return Response({"success": True})


# =========================================
#  INVOICES
# =========================================

@api_view(['GET', 'POST'])
@handle_errors("Failed to process invoices")
def invoice_list(request):
    if request.method == 'GET':
        return Response(InvoiceSerializer(Invoice.objects.with_details(), many=True).data)

    serializer = InvoiceCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    invoice = InvoiceService().create_manual(**serializer.validated_data)
    return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@handle_errors("Failed to process invoice")
def invoice_detail(request, pk):
    service = InvoiceService()
    if request.method == 'GET':
        # Accepts an invoice id or the id of the invoiced order
        return Response(InvoiceSerializer(service.resolve(pk)).data)

    invoice = get_or_not_found(Invoice, pk)
    if request.method == 'PUT':
        serializer = InvoiceUpdateSerializer(invoice, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(InvoiceSerializer(service.resolve(invoice.pk)).data)

    invoice.delete()
    return Response({"message": "Invoice deleted successfully"})


@api_view(['GET'])
@handle_errors("Failed to fetch invoice")
def invoice_by_order(request, order_id):
    return Response(InvoiceSerializer(InvoiceService().for_order(order_id)).data)


@api_view(['POST'])
@handle_errors("Failed to send email")
def invoice_send(request, pk):
    serializer = SendInvoiceSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    service = InvoiceService()
    invoice = get_or_not_found(Invoice, pk, Invoice.objects.with_details())
    return Response(service.send(invoice, serializer.validated_data.get('email')))


@api_view(['POST'])
@handle_errors("Failed to generate PDF")
def invoice_pdf(request, pk):
    invoice = get_or_not_found(Invoice, pk, Invoice.objects.with_details())
    response = HttpResponse(InvoiceService().render_text(invoice), content_type='text/plain')
    response['Content-Disposition'] = f'attachment; filename="invoice-{invoice.id}.txt"'
    return response


# =========================================
#  INVENTORY
# =========================================

@api_view(['GET', 'POST'])
@handle_errors("Failed to process inventory items")
def inventory_list(request):
    return list_or_create(request, InventoryItem.objects.all(), InventoryItemSerializer)


@api_view(['GET', 'PUT', 'DELETE'])
@handle_errors("Failed to process inventory item")
def inventory_detail(request, pk):
    return retrieve_update_destroy(request, get_or_not_found(InventoryItem, pk), InventoryItemSerializer)


@api_view(['GET'])
@handle_errors("Failed to fetch low stock items")
def inventory_low_stock(request):
    return Response(InventoryItemSerializer(InventoryService.low_stock(), many=True).data)


@api_view(['POST'])
@handle_errors("Failed to restock inventory item")
def inventory_restock(request, pk):
    return Response(InventoryItemSerializer(InventoryService.restock(pk)).data)


# =========================================
#  SETTINGS
# =========================================

@api_view(['GET', 'POST'])
@handle_errors("Failed to process settings")
def settings_view(request):
    if request.method == 'POST':
        serializer = SettingsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        for key, model in (('restaurant_settings', RestaurantSettings), ('app_settings', AppSettings)):
            if key in serializer.validated_data:
                # Upsert on the fixed key; omitted fields keep their stored values
                instance = model.load()
                for field, value in serializer.validated_data[key].items():
                    setattr(instance, field, value)
                instance.save()
                logger.info("Saved %s", key)

    # Unsaved singletons render their defaults
    return Response({
        "restaurant_settings": RestaurantSettingsSerializer(RestaurantSettings.load()).data,
        "app_settings": AppSettingsSerializer(AppSettings.load()).data,
    })


# =========================================
#  REPORTS
# =========================================

@api_view(['GET'])
@handle_errors("Failed to build report")
def report_summary(request):
    timeframe = request.query_params.get('timeframe', 'daily')
    return Response(ReportService().sales_summary(timeframe))


@api_view(['GET'])
@handle_errors("Failed to fetch sales stats")
def sales_stats(request):
    return Response(ReportService().sales_stats())


@api_view(['GET'])
@handle_errors("Failed to fetch table stats")
def table_stats(request):
    return Response(ReportService().table_stats())


@api_view(['GET'])
@handle_errors("Failed to fetch order stats")
def order_stats(request):
    return Response(ReportService().order_stats())


# =========================================
#  DATA
# =========================================

@api_view(['POST'])
@handle_errors("Failed to seed database")
def seed(request):
    return Response(seed_demo_data())


@api_view(['POST'])
@handle_errors("Failed to migrate data")
def migrate(request):
    return Response(SnapshotImporter().run(request.data))
