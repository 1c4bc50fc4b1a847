"""
Order lifecycle coordination.

OrderService owns every write that touches more than one entity: placing an
order (lines, loyalty points, table claim, optional invoice), moving it to a
terminal status (invoice, table release) and deleting it. Each of those runs
inside a single transaction so a partial cascade is never visible.
"""
import logging
import uuid
from collections import OrderedDict
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .calculators import OrderCalculator, ZERO, loyalty_points_for, quantize_money, to_decimal
from .config import SettingsProvider
from .exceptions import Conflict, InvalidTransition, NotFound, ValidationFailure
from .models import Customer, InventoryItem, Invoice, MenuItem, Order, OrderLine, Table
from .notifications import (
    ORDER_CANCELLED,
    ORDER_COMPLETED,
    ORDER_DELETED,
    ORDER_PLACED,
    broadcast_order_event,
    order_summary,
)

logger = logging.getLogger(__name__)


def _as_uuid(value, field):
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationFailure("Invalid request data", details={field: [f"'{value}' is not a valid id."]})


def parse_id(model, value):
    """Id taken from the URL; anything that is not a UUID names no row."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise NotFound.for_model(model)


def _get_optional(model, pk, field):
    """Resolve an optional reference from request input; unknown ids are a validation failure."""
    if pk in (None, ""):
        return None
    instance = model.objects.filter(pk=_as_uuid(pk, field)).first()
    if instance is None:
        raise ValidationFailure("Invalid request data", details={field: [f"Unknown {model._meta.verbose_name} '{pk}'."]})
    return instance


def payment_notes(payment_method, tip):
    notes = f"Payment method: {payment_method or 'unspecified'}"
    if tip:
        notes += f", Tip: ${quantize_money(tip):.2f}"
    return notes


class InvoiceService:
    """Invoice creation and the read-side invoice projection."""

    def __init__(self, settings_provider=None):
        self.settings = settings_provider or SettingsProvider()

    def resolve(self, key):
        """
        Find an invoice by its own id, or failing that by the id of its order.

        Callers that only know the order id can use the same lookup as the
        invoice screens.
        """
        key = parse_id(Invoice, key)
        invoices = Invoice.objects.with_details()
        invoice = invoices.filter(pk=key).first() or invoices.filter(order_id=key).first()
        if invoice is None:
            raise NotFound.for_model(Invoice)
        return invoice

    def for_order(self, order_id):
        invoice = Invoice.objects.with_details().filter(order_id=parse_id(Invoice, order_id)).first()
        if invoice is None:
            raise NotFound.for_model(Invoice)
        return invoice

    def issue_for_order(self, order, notes=None):
        """
        Create the paid invoice for an order, or bring the existing one in line
        with the order's current totals. An order never gets a second invoice.
        """
        values = {
            "customer_id": order.customer_id,
            "subtotal": order.subtotal,
            "tax_rate": order.tax_rate,
            "tax_amount": order.tax_amount,
            "total": order.total,
            "status": Invoice.Status.PAID,
        }
        invoice = Invoice.objects.select_for_update().filter(order=order).first()
        if invoice is None:
            now = timezone.now()
            invoice = Invoice.objects.create(order=order, issue_date=now, due_date=now, notes=notes or "", **values)
            logger.info("Created invoice %s for order %s (total %s)", invoice.id, order.id, invoice.total)
        else:
            for field, value in values.items():
                setattr(invoice, field, value)
            if notes:
                invoice.notes = notes
            invoice.save()
            logger.info("Refreshed invoice %s for order %s (total %s)", invoice.id, order.id, invoice.total)
        return invoice

    @transaction.atomic
    def create_manual(self, subtotal, tax_rate=None, tip=ZERO, order_id=None, customer_id=None,
                      status=Invoice.Status.DRAFT, issue_date=None, due_date=None, notes=None):
        """Invoice typed in by hand; tax is derived from subtotal and rate."""
        order = _get_optional(Order, order_id, "order_id")
        if order is not None and Invoice.objects.filter(order=order).exists():
            raise Conflict("Order already has an invoice")

        customer = None
        if customer_id not in (None, "", Invoice.GUEST):
            customer = _get_optional(Customer, customer_id, "customer_id")
        elif order is not None:
            customer = order.customer

        if tax_rate is None:
            tax_rate = self.settings.tax_rate
        totals = OrderCalculator(tax_rate).totals_for_subtotal(subtotal, tip)
        now = timezone.now()
        invoice = Invoice.objects.create(
            order=order,
            customer=customer,
            subtotal=totals.subtotal,
            tax_rate=totals.tax_rate,
            tax_amount=totals.tax_amount,
            total=totals.total,
            status=status,
            issue_date=issue_date or now,
            due_date=due_date or now,
            notes=notes,
        )
        logger.info("Created manual invoice %s (total %s)", invoice.id, invoice.total)
        return Invoice.objects.with_details().get(pk=invoice.pk)

    def send(self, invoice, email=None):
        # Email delivery is not wired up; the request is only recorded
        recipient = email or (invoice.customer.email if invoice.customer_id else None)
        if not recipient:
            raise ValidationFailure("Invalid request data", details={"email": ["No recipient address available."]})
        logger.info("Would send invoice %s to %s", invoice.id, recipient)
        return {"message": "Email sent successfully", "sent_to": recipient}

    def render_text(self, invoice):
        """Plain-text stand-in for the PDF export."""
        customer = invoice.customer.name if invoice.customer_id else "N/A"
        lines = [
            f"Invoice #{invoice.id}",
            f"Date: {timezone.localtime(invoice.issue_date):%Y-%m-%d}",
            f"Customer: {customer}",
        ]
        if invoice.order_id:
            for line in invoice.order.items.all():
                lines.append(f"  {line.quantity} x {line.menu_item.name} @ ${line.price:.2f}")
        lines.extend([
            f"Subtotal: ${invoice.subtotal:.2f}",
            f"Tax ({invoice.tax_rate}%): ${invoice.tax_amount:.2f}",
            f"Total: ${invoice.total:.2f}",
        ])
        return "\n".join(lines) + "\n"


class OrderService:
    """Placement, status transitions and deletion of orders."""

    VALID_STATUS_TRANSITIONS = {
        Order.Status.PENDING: [Order.Status.COMPLETED, Order.Status.CANCELLED],
        Order.Status.COMPLETED: [],
        Order.Status.CANCELLED: [],
    }

    TABLE_STATUS_AFTER = {
        Order.Status.COMPLETED: Table.Status.CLEANING,
        Order.Status.CANCELLED: Table.Status.AVAILABLE,
    }

    EVENTS = {
        Order.Status.COMPLETED: ORDER_COMPLETED,
        Order.Status.CANCELLED: ORDER_CANCELLED,
    }

    def __init__(self, settings_provider=None, invoice_service=None):
        self.settings = settings_provider or SettingsProvider()
        self.invoices = invoice_service or InvoiceService(self.settings)

    def calculator(self):
        return OrderCalculator(self.settings.tax_rate)

    def get_order(self, order_id):
        order = Order.objects.with_details().filter(pk=parse_id(Order, order_id)).first()
        if order is None:
            raise NotFound.for_model(Order)
        return order

    # -------------------------------------------------------------- placement

    def _merge_lines(self, items):
        """One quantity per distinct menu item, in first-seen order."""
        if not items:
            raise ValidationFailure("Invalid request data", details={"items": ["An order needs at least one item."]})
        quantities = OrderedDict()
        for position, item in enumerate(items):
            menu_item_id = item.get("menu_item_id")
            if menu_item_id in (None, ""):
                raise ValidationFailure("Invalid request data", details={"items": [f"Line {position + 1} has no menu item."]})
            quantity = item.get("quantity", 1)
            if not isinstance(quantity, int) or quantity < 1:
                raise ValidationFailure("Invalid request data", details={"items": [f"Line {position + 1} needs a quantity of at least 1."]})
            key = _as_uuid(menu_item_id, "menu_item_id")
            quantities[key] = quantities.get(key, 0) + quantity
        return quantities

    def _apply_totals(self, order, totals):
        order.subtotal = totals.subtotal
        order.tax_rate = totals.tax_rate
        order.tax_amount = totals.tax_amount
        order.tip = totals.tip
        order.total = totals.total

    def _claim_table(self, table, order):
        # Compare-and-swap: only a table that is not already occupied can be claimed
        claimed = (
            Table.objects.filter(pk=table.pk)
            .exclude(status=Table.Status.OCCUPIED)
            .update(status=Table.Status.OCCUPIED, current_order=order)
        )
        if not claimed:
            raise Conflict("Table is already occupied")

    def _release_table(self, table_id, order_id, status):
        # A table already holding another order keeps it
        released = Table.objects.filter(pk=table_id, current_order_id=order_id).update(
            status=status, current_order=None
        )
        if not released:
            logger.info("Table %s no longer holds order %s, leaving it as is", table_id, order_id)

    def place_order(self, items, customer_id=None, table_id=None, payment_method=None,
                    tip=ZERO, create_invoice=False):
        quantities = self._merge_lines(items)
        tip = to_decimal(tip)
        if tip < 0:
            raise ValidationFailure("Invalid request data", details={"tip": ["Tip cannot be negative."]})

        menu = MenuItem.objects.in_bulk(list(quantities))
        missing = [str(pk) for pk in quantities if pk not in menu]
        if missing:
            raise ValidationFailure("Invalid request data", details={"items": [f"Unknown menu item '{pk}'." for pk in missing]})
        customer = _get_optional(Customer, customer_id, "customer_id")
        table = _get_optional(Table, table_id, "table_id")

        with transaction.atomic():
            order = Order.objects.create(
                status=Order.Status.PENDING,
                customer=customer,
                table=table,
                payment_method=payment_method or None,
                tip=tip,
            )
            lines = OrderLine.objects.bulk_create([
                OrderLine(order=order, menu_item=menu[pk], quantity=quantity, price=menu[pk].price)
                for pk, quantity in quantities.items()
            ])

            self._apply_totals(order, self.calculator().calculate_totals(lines, tip))
            order.save(update_fields=["subtotal", "tax_rate", "tax_amount", "tip", "total", "updated_at"])

            if customer is not None:
                points = loyalty_points_for(order.total)
                if points:
                    Customer.objects.filter(pk=customer.pk).update(loyalty_points=F("loyalty_points") + points)
                logger.info("Customer %s earned %s loyalty points", customer.pk, points)

            if table is not None:
                self._claim_table(table, order)

            if create_invoice:
                self.invoices.issue_for_order(order, notes=payment_notes(payment_method, tip))

            order = self.get_order(order.pk)
            summary = order_summary(order)
            transaction.on_commit(lambda: broadcast_order_event(ORDER_PLACED, summary))

        logger.info("Placed order %s with %s line(s), total %s", order.id, len(lines), order.total)
        return order

    # ------------------------------------------------------------ transitions

    def update_order(self, order_id, status=None, payment_method=None, tip=None):
        """
        Apply an edit and/or a status change to an order.

        Only pending orders can be edited. Moving to completed or cancelled
        runs the matching cascade; asking for the status an order already
        has is a no-op while pending and an InvalidTransition once terminal.
        """
        with transaction.atomic():
            order = Order.objects.select_for_update().filter(pk=parse_id(Order, order_id)).first()
            if order is None:
                raise NotFound.for_model(Order)

            if status is not None and status not in Order.Status.values:
                raise ValidationFailure("Invalid request data", details={"status": [f"'{status}' is not a valid order status."]})

            if payment_method is not None or tip is not None:
                if order.is_terminal:
                    raise ValidationFailure(f"Cannot edit a {order.status} order")
                self._edit_pending(order, payment_method, tip)

            if status is not None and not (status == order.status and not order.is_terminal):
                self._transition(order, status)

        return self.get_order(order.pk)

    def update_status(self, order_id, status):
        return self.update_order(order_id, status=status)

    def _edit_pending(self, order, payment_method, tip):
        if payment_method is not None:
            order.payment_method = payment_method or None
        if tip is not None:
            tip = to_decimal(tip)
            if tip < 0:
                raise ValidationFailure("Invalid request data", details={"tip": ["Tip cannot be negative."]})
            self._apply_totals(order, self.calculator().calculate_totals(order.items.all(), tip))
        order.save()

    def _transition(self, order, new_status):
        if new_status not in self.VALID_STATUS_TRANSITIONS.get(order.status, []):
            raise InvalidTransition(order.status, new_status)

        previous = order.status
        order.status = new_status
        if new_status == Order.Status.COMPLETED:
            # Tax is settled at the rate in force when the bill is closed
            self._apply_totals(order, self.calculator().calculate_totals(order.items.all(), order.tip))
        order.save()

        if new_status == Order.Status.COMPLETED:
            self.invoices.issue_for_order(order, notes=payment_notes(order.payment_method, order.tip))

        if order.table_id:
            self._release_table(order.table_id, order.id, self.TABLE_STATUS_AFTER[new_status])

        logger.info("Order %s moved from %s to %s", order.id, previous, new_status)
        summary = order_summary(order)
        event = self.EVENTS[new_status]
        transaction.on_commit(lambda: broadcast_order_event(event, summary))

    # --------------------------------------------------------------- deletion

    @transaction.atomic
    def delete_order(self, order_id):
        order = Order.objects.select_for_update().filter(pk=parse_id(Order, order_id)).first()
        if order is None:
            raise NotFound.for_model(Order)
        # current_order is SET_NULL, so the release has to match before the delete runs
        order_pk, table_id = order.pk, order.table_id
        summary = {"id": str(order_pk), "status": order.status}
        if table_id:
            self._release_table(table_id, order_pk, Table.Status.AVAILABLE)
        order.delete()
        logger.info("Deleted order %s", summary["id"])
        transaction.on_commit(lambda: broadcast_order_event(ORDER_DELETED, summary))


class InventoryService:
    # Restocking tops an item up to three times its reorder threshold
    RESTOCK_MULTIPLIER = Decimal('3')

    @staticmethod
    def low_stock():
        return InventoryItem.objects.filter(quantity__lte=F("min_quantity"))

    @staticmethod
    @transaction.atomic
    def restock(item_id):
        item = InventoryItem.objects.select_for_update().filter(pk=parse_id(InventoryItem, item_id)).first()
        if item is None:
            raise NotFound.for_model(InventoryItem)
        item.quantity = item.min_quantity * InventoryService.RESTOCK_MULTIPLIER
        item.last_restocked = timezone.now()
        item.save(update_fields=["quantity", "last_restocked"])
        logger.info("Restocked %s to %s %s", item.name, item.quantity, item.unit)
        return item
