from decimal import Decimal

from common import printing
from common.utils import shop_identity


def render_invoice(invoice, shop=None):
    shop = shop or shop_identity()
    lines = printing.header(shop, "Tax Invoice", phone=False)
    lines += [
        "INVOICE TO",
        invoice.customer_name,
        invoice.customer_phone,
    ]
    if invoice.customer_address:
        lines.append(invoice.customer_address)
    lines += [
        "",
        printing.row("Invoice #", invoice.invoice_number),
        printing.row("Date", printing.format_date(invoice.invoice_date)),
        printing.row("Status", invoice.payment_status.upper()),
        printing.rule(),
    ]
    for index, item in enumerate(invoice.items, start=1):
        lines.append(f"{index}. {item['description']}")
        lines.append(
            printing.row(
                f"   {item['qty']} x {printing.format_money(item['rate'])}",
                printing.format_money(item["amount"]),
            )
        )
    lines += [printing.rule(), printing.row("Subtotal", printing.format_money(invoice.subtotal))]
    if invoice.discount:
        lines.append(printing.row("Discount", f"-{printing.format_money(invoice.discount)}"))
    if invoice.tax_amount:
        lines.append(printing.row(f"Tax ({invoice.tax_percent}%)", printing.format_money(invoice.tax_amount)))
    lines += [
        printing.row("Total", printing.format_money(invoice.total)),
        printing.row("Paid", printing.format_money(invoice.amount_paid)),
        printing.row("Balance", printing.format_money(Decimal(invoice.total) - Decimal(invoice.amount_paid))),
        printing.rule(),
        printing.centered("Thank you for your business!"),
        printing.centered(f"{shop['name']} | {shop['phone']}"),
    ]
    return printing.render(lines)
