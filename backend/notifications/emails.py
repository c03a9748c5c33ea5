"""
Stock notification emails.

Each sender renders an HTML template, attaches an XLSX sheet where useful and
returns True when a message went out. Theaters without an email are skipped.
"""
import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils.html import strip_tags
from django.utils.text import slugify

from backend.inventory.excel import (
    XLSX_CONTENT_TYPE, build_workbook, expiring_stock_frame, low_stock_frame, sales_report_frame,
)

logger = logging.getLogger(__name__)


def send_theater_email(theater, subject, template_name, context, attachments=()):
    """Send an HTML email to the theater; ``attachments`` are (filename, xlsx bytes) pairs"""
    if not theater.email:
        logger.warning(f"Theater {theater.name} has no email configured, skipping '{subject}'")
        return False

    html_body = render_to_string(template_name, {'theater': theater, **context})
    message = EmailMultiAlternatives(
        subject=subject,
        body=strip_tags(html_body),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[theater.email],
    )
    message.attach_alternative(html_body, 'text/html')
    for filename, content in attachments:
        message.attach(filename, content, XLSX_CONTENT_TYPE)
    message.send()
    logger.info(f"Sent '{subject}' to {theater.email}")
    return True


def send_expiration_warning(theater, batches, days=None):
    days = days if days is not None else settings.STOCK_EXPIRY_WARNING_DAYS
    attachment = build_workbook([('Expiring Stock', expiring_stock_frame(batches))])
    return send_theater_email(
        theater,
        f"Stock Expiration Warning - {theater.name}",
        'notifications/expiration_warning.html',
        {'batches': batches, 'days': days},
        attachments=[(f"expiring_stock_{slugify(theater.name)}.xlsx", attachment)],
    )


def send_low_stock_alert(theater, products):
    attachment = build_workbook([('Low Stock', low_stock_frame(products))])
    return send_theater_email(
        theater,
        f"Low Stock Alert - {theater.name}",
        'notifications/low_stock_alert.html',
        {'products': products},
        attachments=[(f"low_stock_{slugify(theater.name)}.xlsx", attachment)],
    )


def send_stock_added_notification(theater, product, entry):
    return send_theater_email(
        theater,
        f"Stock Added - {product.name} - {theater.name}",
        'notifications/stock_added.html',
        {'product': product, 'entry': entry},
    )


def send_daily_sales_report(theater, report_date, product_rows, summary):
    attachment = build_workbook([('Sales', sales_report_frame(product_rows))])
    return send_theater_email(
        theater,
        f"Daily Sales Report - {theater.name} - {report_date.strftime('%d/%m/%Y')}",
        'notifications/daily_sales_report.html',
        {'report_date': report_date.strftime('%d/%m/%Y'), 'products': product_rows, 'summary': summary},
        attachments=[(f"sales_{slugify(theater.name)}_{report_date.isoformat()}.xlsx", attachment)],
    )
