import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.text import slugify
from backend.catalog.models import Product
from backend.core.utils import create_audit_log
from backend.notifications.emails import send_stock_added_notification
from backend.theaters.models import Theater
from backend.theaters.permissions import require_capability
from .excel import XLSX_CONTENT_TYPE, product_ledger_workbook, theater_stock_workbook
from .exceptions import StockError
from .models import MonthlyStock, StockEntry
from .serializers import StockEntrySerializer, StockEntryInputSerializer, MonthlyStockSerializer
from .services import StockService, validate_period

logger = logging.getLogger(__name__)

StockAccess = require_capability('view_stock', write_capability='manage_stock')


def stock_error_response(error):
    return Response({'error': error.message}, status=error.status_code)


def _theater_product(theater_id, product_id):
    theater = get_object_or_404(Theater, pk=theater_id)
    product = get_object_or_404(Product, pk=product_id, theater=theater)
    return theater, product


def _period(request):
    return request.query_params.get('year'), request.query_params.get('month')


def _excel_response(content, filename):
    response = HttpResponse(content, content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, StockAccess])
def product_stock(request, theater_id, product_id):
    """Monthly stock ledger of a product (GET) or add a ledger entry (POST)"""
    theater, product = _theater_product(theater_id, product_id)

    if request.method == 'GET':
        year, month = _period(request)
        try:
            data = StockService.get_monthly_stock(theater, product, year=year, month=month)
        except StockError as e:
            return stock_error_response(e)

        monthly = data['monthly']
        product.refresh_from_db(fields=['current_stock'])
        response = Response({
            'entries': StockEntrySerializer(data['entries'], many=True).data,
            'current_stock': max(0, monthly.closing_balance),
            'statistics': data['statistics'],
            'period': {
                'year': monthly.year,
                'month': monthly.month_number,
                'month_name': monthly.month,
            },
            'product': {
                'id': product.id,
                'name': product.name,
                'current_stock': product.current_stock,
            },
        })
        # Ledger data changes with the wall clock (auto expiry), never cache it client side
        response['Cache-Control'] = 'no-store, no-cache, must-revalidate, private'
        return response

    serializer = StockEntryInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        entry = StockService.add_entry(
            theater, product,
            entry_date=data.get('date') or timezone.localdate(),
            entry_type=data['entry_type'],
            quantity=data['quantity'],
            expire_date=data.get('expire_date'),
            batch_number=data.get('batch_number', ''),
            notes=data.get('notes', ''),
            user=request.user,
        )
    except StockError as e:
        logger.warning(f"Stock entry rejected for product {product.id}: {e.message}")
        return stock_error_response(e)

    create_audit_log(
        request=request,
        action='stock_add',
        model_name='StockEntry',
        object_id=entry.id,
        theater=theater,
        object_name=product.name,
        object_reference=entry.batch_number or None,
        changes={'entry_type': entry.entry_type, 'quantity': entry.quantity, 'date': entry.date.isoformat()},
    )

    if entry.entry_type == StockEntry.TYPE_ADDED:
        try:
            send_stock_added_notification(theater, product, entry)
        except Exception as e:
            logger.error(f"Stock added notification failed for entry {entry.id}: {e}", exc_info=True)

    monthly = MonthlyStock.objects.get(pk=entry.monthly_stock_id)
    return Response({
        'entry': StockEntrySerializer(entry).data,
        'monthly': MonthlyStockSerializer(monthly).data,
        'current_stock': product.current_stock,
    }, status=status.HTTP_201_CREATED)


@api_view(['PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, StockAccess])
def stock_entry_detail(request, theater_id, product_id, entry_id):
    """Update or delete one ledger entry"""
    theater, product = _theater_product(theater_id, product_id)

    if request.method == 'DELETE':
        try:
            snapshot = StockService.delete_entry(theater, product, entry_id, user=request.user)
        except StockError as e:
            return stock_error_response(e)
        create_audit_log(request=request, action='stock_delete', model_name='StockEntry', object_id=entry_id,
                         theater=theater, object_name=product.name,
                         object_reference=snapshot['batch_number'] or None, changes=snapshot)
        return Response({'deleted': snapshot, 'current_stock': product.current_stock})

    serializer = StockEntryInputSerializer(data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        entry = StockService.update_entry(theater, product, entry_id, serializer.validated_data, user=request.user)
    except StockError as e:
        return stock_error_response(e)

    create_audit_log(
        request=request,
        action='stock_update',
        model_name='StockEntry',
        object_id=entry.id,
        theater=theater,
        object_name=product.name,
        object_reference=entry.batch_number or None,
        changes={key: str(value) for key, value in serializer.validated_data.items()},
    )
    monthly = MonthlyStock.objects.get(pk=entry.monthly_stock_id)
    return Response({
        'entry': StockEntrySerializer(entry).data,
        'monthly': MonthlyStockSerializer(monthly).data,
        'current_stock': product.current_stock,
    })


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, StockAccess])
def clear_month(request, theater_id, product_id):
    """Remove every entry of one month (?year=&month=, default current month)"""
    theater, product = _theater_product(theater_id, product_id)
    today = timezone.localdate()
    year = request.query_params.get('year') or today.year
    month = request.query_params.get('month') or today.month

    try:
        cleared = StockService.clear_month(theater, product, year, month, user=request.user)
    except StockError as e:
        return stock_error_response(e)

    create_audit_log(request=request, action='stock_clear', model_name='MonthlyStock', object_id=product.id,
                     theater=theater, object_name=product.name, object_reference=f"{year}-{int(month):02d}",
                     changes={'cleared_count': cleared})
    return Response({
        'message': f'Cleared {cleared} entries successfully',
        'cleared_count': cleared,
        'current_stock': product.current_stock,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, require_capability('manage_stock')])
def rebuild_product_stock(request, theater_id, product_id):
    """Recalculate every month of a product and write off expired batches"""
    theater, product = _theater_product(theater_id, product_id)
    fixed = StockService.rebuild(theater, product)
    expired = StockService.auto_expire(theater, product, user=request.user)
    product.refresh_from_db(fields=['current_stock'])
    return Response({
        'months_fixed': fixed,
        'expired_entries': len(expired),
        'current_stock': product.current_stock,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_capability('view_stock')])
def theater_stock_overview(request, theater_id):
    """Month totals of every stock-tracked product of a theater"""
    theater = get_object_or_404(Theater, pk=theater_id)
    year, month = _period(request)
    try:
        data = StockService.theater_overview(theater, year=year, month=month)
    except StockError as e:
        return stock_error_response(e)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_capability('view_stock')])
def export_product_stock(request, theater_id, product_id):
    """XLSX export of a product's monthly ledger"""
    theater, product = _theater_product(theater_id, product_id)
    year, month = _period(request)
    try:
        data = StockService.get_monthly_stock(theater, product, year=year, month=month)
    except StockError as e:
        return stock_error_response(e)

    monthly = data['monthly']
    entries = list(monthly.entries.all()) if monthly.pk else []
    content = product_ledger_workbook(monthly, entries)
    filename = f"stock_{slugify(product.name) or product.id}_{monthly.year}_{monthly.month_number:02d}.xlsx"
    logger.info(f"User {request.user.username} exported stock ledger of product {product.id} ({monthly.month} {monthly.year})")
    return _excel_response(content, filename)


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_capability('view_stock')])
def export_theater_stock(request, theater_id):
    """XLSX export of the theater stock overview"""
    theater = get_object_or_404(Theater, pk=theater_id)
    year, month = _period(request)
    try:
        year, month = validate_period(year or timezone.localdate().year, month or timezone.localdate().month)
        overview = StockService.theater_overview(theater, year=year, month=month)
    except StockError as e:
        return stock_error_response(e)

    content = theater_stock_workbook(overview)
    filename = f"stock_{slugify(theater.name) or theater.id}_{year}_{month:02d}.xlsx"
    logger.info(f"User {request.user.username} exported stock overview of theater {theater.id} ({month}/{year})")
    return _excel_response(content, filename)
