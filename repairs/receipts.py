from common import printing
from common.utils import shop_identity


def render_device_receipt(entry, shop=None):
    shop = shop or shop_identity()
    lines = printing.header(shop, "Device Repair Receipt")
    lines += [
        "",
        printing.centered(entry.serial_number or "N/A"),
        printing.centered("Write this number on device"),
        "",
        printing.row("Date", printing.format_date(entry.received_date)),
        printing.row("Customer", entry.customer_name),
        printing.row("Mobile", entry.mobile_number),
        printing.row("Village", entry.village_name),
        printing.row("Device", entry.device_type),
        printing.row("Brand", entry.device_brand),
    ]
    if entry.winding_type:
        lines.append(printing.row("Winding", entry.winding_type))
    if entry.motor_hp:
        lines.append(printing.row("HP", entry.motor_hp))
    lines.append(printing.row("Problem", entry.problem_description))
    if entry.accessories_received:
        lines.append(printing.row("Accessories", entry.accessories_received))
    lines += [
        printing.row("Est. Cost", printing.format_money(entry.estimated_cost) if entry.estimated_cost else "TBD"),
        printing.row("Advance", printing.format_money(entry.advance_paid or 0)),
        printing.rule(),
        printing.centered("Please bring this receipt when collecting your device"),
        printing.centered(f"Thank you for choosing {shop['name']}!"),
    ]
    return printing.render(lines)


def job_id(booking):
    return str(booking.id)[:8].upper()


def render_booking_job_card(booking, shop=None):
    shop = shop or shop_identity()
    lines = printing.header(shop, "Job Card / Repair Slip", phone=False)
    lines += [
        "JOB DETAILS",
        printing.row("Job ID", job_id(booking)),
        printing.row("Date", printing.format_date(booking.created_at)),
        printing.row("Status", booking.status.upper()),
        "",
        "CUSTOMER DETAILS",
        printing.row("Name", booking.customer_name),
        printing.row("Phone", booking.phone),
        printing.row("Email", booking.email),
        "",
        "DEVICE DETAILS",
        printing.row("Device Type", booking.device_type),
        printing.row("Brand", booking.brand),
        printing.row("Issue", booking.issue_description),
        "",
        "SERVICE DETAILS",
        printing.row("Technician", booking.technician_name or "Not assigned"),
        printing.row("Estimated Cost", printing.format_money(booking.estimated_cost or 0)),
        printing.row("Actual Cost", printing.format_money(booking.actual_cost or 0)),
        printing.rule(),
        printing.centered(f"Thank you for choosing {shop['name']}!"),
        printing.centered(f"Contact: {shop['phone']}"),
    ]
    return printing.render(lines)
