"""
XLSX workbooks for stock exports and email attachments.

Built with pandas on the openpyxl engine; every sheet gets a bold header row,
frozen header and columns sized to their content.
"""
import io
import re

import pandas as pd
from openpyxl.styles import Font

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

PRODUCT_LEDGER_COLUMNS = ['S.No', 'Date', 'Type', 'Old Stock', 'Invord Stock', 'Sales', 'Damage Stock',
                          'Expired Stock', 'Balance', 'Expire Date', 'Batch Number', 'Notes']
THEATER_STOCK_COLUMNS = ['S.No', 'Product Name', 'Old Stock', 'Invord Stock', 'Sales', 'Damage Stock',
                         'Expired Stock', 'Balance', 'Expire Date', 'Status']
EXPIRING_STOCK_COLUMNS = ['S.No', 'Product Name', 'Batch Number', 'Expire Date', 'Days Left', 'Remaining Stock']
LOW_STOCK_COLUMNS = ['S.No', 'Product Name', 'SKU', 'Current Stock', 'Minimum Stock']
SALES_REPORT_COLUMNS = ['S.No', 'Product Name', 'Quantity Sold', 'Revenue']


def autofit_columns(worksheet):
    for col in worksheet.columns:
        max_length = 0
        column_letter = col[0].column_letter
        for cell in col:
            if cell.value is not None:
                max_length = max(max_length, len(str(cell.value)))
        worksheet.column_dimensions[column_letter].width = max_length + 4


def build_workbook(sheets):
    """Render ``[(sheet_name, DataFrame), ...]`` into XLSX bytes"""
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        for sheet_name, frame in sheets:
            sheet_name = re.sub(r"[\[\]:*?/\\]", " ", sheet_name)[:31]  # Excel limits
            frame.to_excel(writer, sheet_name=sheet_name, index=False)
            worksheet = writer.sheets[sheet_name]
            for cell in worksheet[1]:
                cell.font = Font(bold=True)
            worksheet.freeze_panes = 'A2'
            autofit_columns(worksheet)
    return buffer.getvalue()


def _numbered(rows, columns):
    for index, row in enumerate(rows, start=1):
        row['S.No'] = index
    return pd.DataFrame(rows, columns=columns)


def _with_total_row(frame, label_column, label, sum_columns):
    if frame.empty:
        return frame
    total = {column: '' for column in frame.columns}
    total[label_column] = label
    for column in sum_columns:
        total[column] = int(frame[column].sum())
    return pd.concat([frame, pd.DataFrame([total], columns=frame.columns)], ignore_index=True)


def product_ledger_frame(entries):
    rows = [{
        'Date': entry.date.isoformat(),
        'Type': entry.entry_type,
        'Old Stock': entry.old_stock,
        'Invord Stock': entry.invord_stock,
        'Sales': entry.sales,
        'Damage Stock': entry.damage_stock,
        'Expired Stock': entry.expired_stock,
        'Balance': entry.balance,
        'Expire Date': entry.expire_date.isoformat() if entry.expire_date else '',
        'Batch Number': entry.batch_number,
        'Notes': entry.notes,
    } for entry in entries]
    frame = _numbered(rows, PRODUCT_LEDGER_COLUMNS)
    return _with_total_row(frame, 'Date', 'TOTAL',
                           ['Invord Stock', 'Sales', 'Damage Stock', 'Expired Stock'])


def theater_stock_frame(overview_rows):
    rows = [{
        'Product Name': row['product_name'],
        'Old Stock': row['old_stock'],
        'Invord Stock': row['invord_stock'],
        'Sales': row['sales'],
        'Damage Stock': row['damage_stock'],
        'Expired Stock': row['expired_stock'],
        'Balance': row['closing_balance'],
        'Expire Date': row.get('next_expire_date') or '',
        'Status': row['status'],
    } for row in overview_rows]
    frame = _numbered(rows, THEATER_STOCK_COLUMNS)
    return _with_total_row(frame, 'Product Name', 'SUMMARY',
                           ['Old Stock', 'Invord Stock', 'Sales', 'Damage Stock', 'Expired Stock', 'Balance'])


def expiring_stock_frame(batches):
    rows = [{
        'Product Name': batch['product_name'],
        'Batch Number': batch['batch_number'] or '',
        'Expire Date': batch['expire_date'],
        'Days Left': batch['days_left'],
        'Remaining Stock': batch['remaining'],
    } for batch in batches]
    return _numbered(rows, EXPIRING_STOCK_COLUMNS)


def low_stock_frame(products):
    rows = [{
        'Product Name': product.name,
        'SKU': product.sku or '',
        'Current Stock': product.current_stock,
        'Minimum Stock': product.low_stock_threshold,
    } for product in products]
    return _numbered(rows, LOW_STOCK_COLUMNS)


def sales_report_frame(product_rows):
    rows = [{
        'Product Name': row['product_name'],
        'Quantity Sold': row['quantity'],
        'Revenue': float(row['revenue']),
    } for row in product_rows]
    return _numbered(rows, SALES_REPORT_COLUMNS)


def product_ledger_workbook(monthly, entries):
    sheet_name = f"{monthly.product.name} {monthly.month} {monthly.year}"
    return build_workbook([(sheet_name, product_ledger_frame(entries))])


def theater_stock_workbook(overview):
    period = overview['period']
    sheet_name = f"Stock {period['month_name']} {period['year']}"
    return build_workbook([(sheet_name, theater_stock_frame(overview['products']))])
