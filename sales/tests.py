from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import DatabaseError
from django.test import TestCase
from rest_framework.test import APIClient

from common.utils import today as local_today
from core.models import AuditLog
from repairs.services import create_booking
from sales import services
from sales.models import Customer, Invoice
from sales.receipts import render_invoice

SHOP = {"name": "RAKESH ELECTRONICS", "phone": "+91 98765 43210"}


class InvoiceComputationTests(TestCase):
    def test_tax_applies_to_discounted_subtotal(self):
        items = [{"qty": "2", "rate": "150"}, {"qty": "1", "rate": "100.50"}]

        totals = services.compute_invoice_totals(items, discount=Decimal("50"), tax_percent=Decimal("18"))

        self.assertEqual(totals["subtotal"], Decimal("400.50"))
        self.assertEqual(totals["tax_amount"], Decimal("63.09"))
        self.assertEqual(totals["total"], Decimal("413.59"))

    def test_empty_invoice_totals_are_zero(self):
        totals = services.compute_invoice_totals([], discount=0, tax_percent=18)

        self.assertEqual(totals, {"subtotal": Decimal("0.00"), "tax_amount": Decimal("0.00"), "total": Decimal("0.00")})

    def test_payment_status(self):
        self.assertEqual(services.derive_payment_status(0, 100), "unpaid")
        self.assertEqual(services.derive_payment_status(40, 100), "partial")
        self.assertEqual(services.derive_payment_status(100, 100), "paid")
        self.assertEqual(services.derive_payment_status(120, 100), "paid")
        self.assertEqual(services.derive_payment_status(0, 0), "unpaid")

    def test_rows_without_description_are_dropped(self):
        items = services.normalize_items(
            [
                {"description": "Rewinding", "qty": 1, "rate": 650},
                {"description": "  ", "qty": 5, "rate": 10},
            ]
        )

        self.assertEqual(items, [{"description": "Rewinding", "qty": "1", "rate": "650.00", "amount": "650.00"}])

    def test_stored_rate_is_rounded_to_money_before_line_amount(self):
        items = services.normalize_items([{"description": "Fuse", "qty": 2, "rate": "10.005"}])

        self.assertEqual(items[0]["rate"], "10.01")
        self.assertEqual(items[0]["amount"], "20.02")
        self.assertEqual(services.compute_invoice_totals(items)["subtotal"], Decimal("20.02"))


class InvoiceApiTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        user_model = get_user_model()
        self.staff = user_model.objects.create_user(username="billing-staff", password="pass1234", role="staff")
        self.technician = user_model.objects.create_user(username="billing-tech", password="pass1234", role="technician")
        self.client.force_authenticate(user=self.staff)

    def _create(self, **overrides):
        payload = {
            "customer_name": "Ram Kumar",
            "customer_phone": "9876543210",
            "items": [
                {"description": "Rewinding (copper)", "qty": "1", "rate": "650"},
                {"description": "", "qty": "0", "rate": "0"},
            ],
            "tax_percent": "18",
        }
        payload.update(overrides)
        return self.client.post("/api/v1/invoices/", payload, format="json")

    def test_create_computes_totals_and_number(self):
        response = self._create(amount_paid="200", subtotal="1", payment_status="paid")

        self.assertEqual(response.status_code, 201)
        body = response.json()
        today = local_today()
        self.assertEqual(body["invoice_number"], f"INV-{today:%Y%m}-001")
        self.assertEqual(body["invoice_date"], today.isoformat())
        self.assertEqual(len(body["items"]), 1)
        self.assertEqual(body["subtotal"], "650.00")
        self.assertEqual(body["tax_amount"], "117.00")
        self.assertEqual(body["total"], "767.00")
        self.assertEqual(body["payment_status"], "partial")
        self.assertEqual(body["balance_due"], "567.00")

    def test_missing_customer_is_rejected_without_write(self):
        response = self._create(customer_phone="")

        self.assertEqual(response.status_code, 400)
        self.assertFalse(Invoice.objects.exists())

    def test_update_recomputes_totals_and_status(self):
        invoice_id = self._create().json()["id"]

        discounted = self.client.patch(f"/api/v1/invoices/{invoice_id}/", {"discount": "50"}, format="json")
        paid = self.client.patch(f"/api/v1/invoices/{invoice_id}/", {"amount_paid": "800"}, format="json")

        self.assertEqual(discounted.json()["total"], "708.00")
        self.assertEqual(discounted.json()["payment_status"], "unpaid")
        self.assertEqual(paid.json()["payment_status"], "paid")

    def test_mark_paid_settles_balance(self):
        invoice_id = self._create().json()["id"]

        response = self.client.post(f"/api/v1/invoices/{invoice_id}/mark-paid/")

        body = response.json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(body["payment_status"], "paid")
        self.assertEqual(body["amount_paid"], body["total"])
        self.assertEqual(body["payment_date"], local_today().isoformat())
        self.assertTrue(AuditLog.objects.filter(action="invoice.mark_paid").exists())

    def test_mark_paid_on_zero_total_invoice_stays_unpaid(self):
        invoice_id = self._create(items=[]).json()["id"]

        response = self.client.post(f"/api/v1/invoices/{invoice_id}/mark-paid/")

        body = response.json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(body["total"], "0.00")
        self.assertEqual(body["payment_status"], "unpaid")
        self.assertIsNone(body["payment_date"])

    def test_failed_audit_write_leaves_invoice_unpaid(self):
        invoice_id = self._create().json()["id"]

        with patch.object(AuditLog.objects, "create", side_effect=DatabaseError("audit table locked")):
            with self.assertLogs("common.exceptions", level="ERROR"):
                response = self.client.post(f"/api/v1/invoices/{invoice_id}/mark-paid/")

        invoice = Invoice.objects.get(id=invoice_id)
        self.assertEqual(response.status_code, 503)
        self.assertEqual(invoice.payment_status, Invoice.PaymentStatus.UNPAID)
        self.assertIsNone(invoice.payment_date)

    def test_lookup_by_number(self):
        number = self._create().json()["invoice_number"]

        found = self.client.get(f"/api/v1/invoices/by-number/?number={number}")
        missing = self.client.get("/api/v1/invoices/by-number/?number=INV-190001-001")

        self.assertEqual(found.json()["result"]["invoice_number"], number)
        self.assertIsNone(missing.json()["result"])

    def test_filter_rejects_unknown_payment_status(self):
        self.assertEqual(self.client.get("/api/v1/invoices/?payment_status=overdue").status_code, 400)

    def test_technician_cannot_see_invoices(self):
        self.client.force_authenticate(user=self.technician)

        self.assertEqual(self.client.get("/api/v1/invoices/").status_code, 403)

    def test_invoice_receipt(self):
        invoice = services.create_invoice(
            {
                "customer_name": "Ram Kumar",
                "customer_phone": "9876543210",
                "items": [{"description": "Capacitor", "qty": 2, "rate": 45}],
                "discount": Decimal("10"),
            }
        )

        text = render_invoice(invoice, shop=SHOP)

        self.assertIn(invoice.invoice_number, text)
        self.assertIn("1. Capacitor", text)
        self.assertRegex(text, r"Discount:\s+-₹10")
        self.assertRegex(text, r"Total:\s+₹80\.00")
        self.assertIn("UNPAID", text)


class CustomerDirectoryTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.staff = get_user_model().objects.create_user(username="directory-staff", password="pass1234", role="staff")
        self.client.force_authenticate(user=self.staff)

    def _booking(self, name, phone, actual_cost=None):
        booking = create_booking(
            {"customer_name": name, "phone": phone, "device_type": "Ceiling Fan", "issue_description": "Slow"}
        )
        if actual_cost is not None:
            booking.actual_cost = actual_cost
            booking.save(update_fields=["actual_cost"])
        return booking

    def test_directory_falls_back_to_bookings(self):
        for _ in range(3):
            self._booking("Ram Kumar", "9876543210", Decimal("100"))
        self._booking("Sita Devi", "9123456780")

        response = self.client.get("/api/v1/customers/directory/")

        body = response.json()
        self.assertEqual(body["source"], "bookings")
        self.assertEqual(body["count"], 2)
        ram = next(row for row in body["results"] if row["phone"] == "9876543210")
        self.assertIsNone(ram["id"])
        self.assertEqual(ram["total_repairs"], 3)
        self.assertEqual(ram["total_spent"], "300.00")
        self.assertTrue(ram["is_vip"])

    def test_directory_search_applies_to_fallback(self):
        self._booking("Ram Kumar", "9876543210")
        self._booking("Sita Devi", "9123456780")

        response = self.client.get("/api/v1/customers/directory/?search=sita")

        self.assertEqual([row["name"] for row in response.json()["results"]], ["Sita Devi"])

    def test_directory_prefers_stored_customers(self):
        self._booking("Ram Kumar", "9876543210")
        Customer.objects.create(name="Stored Customer", phone="9000000000")

        body = self.client.get("/api/v1/customers/directory/").json()

        self.assertEqual(body["source"], "customers")
        self.assertEqual([row["name"] for row in body["results"]], ["Stored Customer"])

    def test_customer_bookings_require_phone(self):
        self._booking("Ram Kumar", "9876543210")
        self._booking("Sita Devi", "9123456780")

        missing = self.client.get("/api/v1/customers/bookings/")
        response = self.client.get("/api/v1/customers/bookings/?phone=9876543210")

        self.assertEqual(missing.status_code, 400)
        self.assertEqual([row["customer_name"] for row in response.json()], ["Ram Kumar"])

    def test_by_phone_returns_null_when_unknown(self):
        customer = Customer.objects.create(name="Stored Customer", phone="9000000000")

        found = self.client.get("/api/v1/customers/by-phone/?phone=9000000000")
        missing = self.client.get("/api/v1/customers/by-phone/?phone=9111111111")

        self.assertEqual(found.json()["result"]["id"], str(customer.id))
        self.assertIsNone(missing.json()["result"])
