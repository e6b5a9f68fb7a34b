from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from catalog.models import Product, ServiceRate
from common.utils import today as local_today
from core.models import Contact, Setting
from repairs.models import Booking, DeviceEntry, Warranty
from repairs.services import create_booking, create_device_entry, create_warranty, update_device_entry
from sales.models import Invoice
from sales.services import create_invoice

DEMO_USERS = [
    ("admin", "admin1234", "admin", True),
    ("frontdesk", "frontdesk1234", "staff", False),
    ("technician", "technician1234", "technician", False),
]

DEMO_SETTINGS = {
    "business_name": ("RAKESH ELECTRONICS", "Name printed on receipts"),
    "business_phone": ("+91 98765 43210", "Phone printed on receipts"),
    "warranty_days": ("90", "Default warranty length in days"),
    "low_stock_threshold": ("5", "Products at or below this stock are flagged"),
}


class Command(BaseCommand):
    help = "Seed demo repair-shop data for local development."

    @transaction.atomic
    def handle(self, *args, **options):
        User = get_user_model()

        for username, password, role, is_superuser in DEMO_USERS:
            user, created = User.objects.get_or_create(
                username=username,
                defaults={
                    "email": f"{username}@example.com",
                    "role": role,
                    "is_staff": is_superuser,
                    "is_superuser": is_superuser,
                    "is_active": True,
                },
            )
            if created:
                user.set_password(password)
                user.save(update_fields=["password"])

        for key, (value, description) in DEMO_SETTINGS.items():
            Setting.objects.get_or_create(key=key, defaults={"value": value, "description": description})

        for name, category, price, stock, featured in [
            ("Ceiling Fan 1200mm", Product.Category.FANS, Decimal("2450.00"), 12, True),
            ("Table Fan 400mm", Product.Category.FANS, Decimal("1650.00"), 3, False),
            ("Fan Capacitor 2.5uF", Product.Category.SPARE_PARTS, Decimal("45.00"), 40, False),
            ("Mixer Grinder 750W", Product.Category.APPLIANCES, Decimal("3299.00"), 2, True),
        ]:
            Product.objects.get_or_create(
                name=name,
                defaults={"category": category, "price": price, "stock": stock, "is_featured": featured},
            )

        for device_type, service_name, base_price in [
            ("Ceiling Fan", "Rewinding (copper)", Decimal("650.00")),
            ("Ceiling Fan", "Capacitor replacement", Decimal("150.00")),
            ("Submersible Motor", "Rewinding 1HP", Decimal("1800.00")),
            ("Mixer Grinder", "Coupler replacement", Decimal("120.00")),
        ]:
            ServiceRate.objects.get_or_create(
                device_type=device_type,
                service_name=service_name,
                defaults={"base_price": base_price},
            )

        if not DeviceEntry.objects.exists():
            entry = create_device_entry(
                {
                    "customer_name": "Ram Kumar",
                    "mobile_number": "9876543210",
                    "village_name": "Rampur",
                    "device_type": "Ceiling Fan",
                    "device_brand": "Usha",
                    "winding_type": DeviceEntry.WindingType.COPPER,
                    "problem_description": "Not spinning",
                    "estimated_cost": Decimal("650.00"),
                    "advance_paid": Decimal("200.00"),
                }
            )
            update_device_entry(entry, {"status": DeviceEntry.Status.IN_REPAIR, "technician_name": "Suresh"})
            create_device_entry(
                {
                    "customer_name": "Sita Devi",
                    "mobile_number": "9123456780",
                    "device_type": "Submersible Motor",
                    "motor_hp": "1HP",
                    "problem_description": "Motor hums but does not start",
                }
            )

        if not Booking.objects.exists():
            create_booking(
                {
                    "customer_name": "Ram Kumar",
                    "phone": "9876543210",
                    "device_type": "Ceiling Fan",
                    "issue_description": "Fan makes noise at high speed",
                }
            )

        if not Warranty.objects.exists():
            create_warranty(
                {
                    "customer_name": "Ram Kumar",
                    "customer_phone": "9876543210",
                    "device_type": "Ceiling Fan",
                    "service_description": "Rewinding (copper)",
                }
            )

        if not Invoice.objects.exists():
            create_invoice(
                {
                    "customer_name": "Ram Kumar",
                    "customer_phone": "9876543210",
                    "items": [
                        {"description": "Rewinding (copper)", "qty": Decimal("1"), "rate": Decimal("650")},
                        {"description": "Capacitor", "qty": Decimal("2"), "rate": Decimal("45")},
                    ],
                    "tax_percent": Decimal("18"),
                    "amount_paid": Decimal("200"),
                }
            )

        Contact.objects.get_or_create(
            email="visitor@example.com",
            defaults={"name": "Demo Visitor", "subject": "Opening hours", "message": "Are you open on Sunday?"},
        )

        self.stdout.write(self.style.SUCCESS(f"Demo data seeded successfully ({local_today().isoformat()})."))
        self.stdout.write("Credentials: " + ", ".join(f"{name}/{password}" for name, password, _, _ in DEMO_USERS))
