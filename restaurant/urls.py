from django.urls import path
from . import views

urlpatterns = [
    # --- MENU, CUSTOMERS, STAFF ---
    path('menu/', views.menu_list),
    path('menu/<str:pk>/', views.menu_detail),
    path('customers/', views.customer_list),
    path('customers/<str:pk>/', views.customer_detail),
    path('employees/', views.employee_list),
    path('employees/<str:pk>/', views.employee_detail),

    # --- FLOOR ---
    path('tables/', views.table_list),
    path('tables/reservations/', views.table_reservations),
    path('tables/<str:pk>/', views.table_detail),

    # --- ORDER LIFECYCLE ---
    path('orders/', views.order_list),
    path('orders/<str:pk>/', views.order_detail),

    # --- INVOICES ---
    path('invoices/', views.invoice_list),
    path('invoices/by-order/<str:order_id>/', views.invoice_by_order),
    path('invoices/<str:pk>/', views.invoice_detail),
    path('invoices/<str:pk>/send/', views.invoice_send),
    path('invoices/<str:pk>/pdf/', views.invoice_pdf),

    # --- INVENTORY ---
    path('inventory/', views.inventory_list),
    path('inventory/low-stock/', views.inventory_low_stock),
    path('inventory/<str:pk>/', views.inventory_detail),
    path('inventory/<str:pk>/restock/', views.inventory_restock),

    # --- SETTINGS & REPORTS ---
    path('settings/', views.settings_view),
    path('reports/summary/', views.report_summary),
    path('stats/sales/', views.sales_stats),
    path('stats/tables/', views.table_stats),
    path('stats/orders/', views.order_stats),

    # --- DATA ---
    path('seed/', views.seed),
    path('migrate/', views.migrate),
]
