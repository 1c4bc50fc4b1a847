"""
Sales and floor statistics for the dashboard and the reports screen.

Only completed orders count as sales.
"""
from datetime import datetime, time, timedelta
from decimal import Decimal

from django.db.models import Count, Sum
from django.utils import timezone

from .calculators import ZERO, quantize_money
from .exceptions import ValidationFailure
from .models import Order, OrderLine, Table

TIMEFRAMES = ("daily", "weekly", "monthly")
TOP_ITEMS_LIMIT = 5


def start_of_day(moment):
    local = timezone.localtime(moment)
    return timezone.make_aware(datetime.combine(local.date(), time.min), timezone.get_current_timezone())


def one_month_before(moment):
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    # Clamp the day for shorter months (e.g. March 31st -> February 28th)
    for day in (moment.day, 30, 29, 28):
        try:
            return moment.replace(year=year, month=month, day=day)
        except ValueError:
            continue


class ReportService:
    def __init__(self, now=None):
        self.now = now or timezone.now()

    def window_start(self, timeframe):
        if timeframe == "daily":
            return start_of_day(self.now)
        if timeframe == "weekly":
            return self.now - timedelta(days=7)
        if timeframe == "monthly":
            return one_month_before(timezone.localtime(self.now))
        raise ValidationFailure(
            "Invalid request data", details={"timeframe": [f"Choose one of: {', '.join(TIMEFRAMES)}."]}
        )

    def completed_orders(self, start, end=None):
        orders = Order.objects.filter(status=Order.Status.COMPLETED, created_at__gte=start)
        if end is not None:
            orders = orders.filter(created_at__lt=end)
        return orders

    def sales_summary(self, timeframe="daily"):
        orders = self.completed_orders(self.window_start(timeframe))
        totals = orders.aggregate(total_sales=Sum("total"), total_orders=Count("id"))
        total_sales = totals["total_sales"] or ZERO
        total_orders = totals["total_orders"]
        average = quantize_money(total_sales / total_orders) if total_orders else ZERO

        top_items = (
            OrderLine.objects.filter(order__in=orders)
            .values("menu_item__name")
            .annotate(quantity=Sum("quantity"))
            .order_by("-quantity", "menu_item__name")[:TOP_ITEMS_LIMIT]
        )
        return {
            "timeframe": timeframe,
            "total_sales": quantize_money(total_sales),
            "total_orders": total_orders,
            "average_order_value": average,
            "top_selling_items": [
                {"name": row["menu_item__name"], "quantity": row["quantity"]} for row in top_items
            ],
        }

    def sales_stats(self):
        today = start_of_day(self.now)
        yesterday = today - timedelta(days=1)
        today_sales = self.completed_orders(today).aggregate(s=Sum("total"))["s"] or ZERO
        yesterday_sales = self.completed_orders(yesterday, today).aggregate(s=Sum("total"))["s"] or ZERO

        if yesterday_sales:
            change = (today_sales - yesterday_sales) / yesterday_sales * Decimal("100")
        else:
            change = Decimal("100") if today_sales else ZERO
        return {
            "today_sales": quantize_money(today_sales),
            "yesterday_sales": quantize_money(yesterday_sales),
            "percent_change": change.quantize(Decimal("0.1")),
        }

    def table_stats(self):
        counts = dict(Table.objects.order_by().values_list("status").annotate(n=Count("id")))
        return {
            "total": sum(counts.values()),
            "available": counts.get(Table.Status.AVAILABLE, 0),
            "occupied": counts.get(Table.Status.OCCUPIED, 0),
            "reserved": counts.get(Table.Status.RESERVED, 0),
            "cleaning": counts.get(Table.Status.CLEANING, 0),
        }

    def order_stats(self):
        pending = Order.objects.filter(status=Order.Status.PENDING).count()
        completed_today = self.completed_orders(start_of_day(self.now)).count()
        return {
            "active": pending,
            "pending": pending,
            "completed_today": completed_today,
        }

    def todays_reservations(self):
        today = start_of_day(self.now)
        return Table.objects.filter(
            reservation_time__gte=today,
            reservation_time__lt=today + timedelta(days=1),
        ).order_by("reservation_time")
