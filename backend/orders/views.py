import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.core.paginator import Paginator
from django.shortcuts import get_object_or_404
from backend.catalog.models import Category, Product
from backend.catalog.serializers import CategorySerializer
from backend.core.utils import create_audit_log
from backend.theaters.models import Theater
from backend.theaters.permissions import require_capability
from .exceptions import OrderError
from .models import QRCode, Order
from .serializers import (
    QRCodeSerializer, OrderSerializer, OrderCreateSerializer, QROrderCreateSerializer,
    OrderStatusSerializer, MenuProductSerializer,
)
from .services import create_order, update_order_status

logger = logging.getLogger(__name__)

OrderAccess = require_capability('manage_orders')
QRCodeAccess = require_capability('manage_orders', write_capability='manage_products')


# Order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, OrderAccess])
def order_list_create(request, theater_id):
    """List the theater's orders or place a counter/kiosk order"""
    theater = get_object_or_404(Theater, pk=theater_id)

    if request.method == 'GET':
        queryset = Order.objects.filter(theater=theater).select_related('qr_code', 'created_by') \
            .prefetch_related('items')
        status_filter = request.query_params.get('status')
        source = request.query_params.get('source')
        date_from = request.query_params.get('date_from')
        date_to = request.query_params.get('date_to')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        if source:
            queryset = queryset.filter(source=source)
        if date_from:
            queryset = queryset.filter(created_at__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(created_at__date__lte=date_to)

        try:
            page = max(int(request.query_params.get('page', 1)), 1)
            limit = min(max(int(request.query_params.get('limit', 50)), 1), 200)
        except ValueError:
            return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)

        paginator = Paginator(queryset, limit)
        page_obj = paginator.get_page(page)
        return Response({
            'results': OrderSerializer(page_obj.object_list, many=True).data,
            'count': paginator.count,
            'page': page_obj.number,
            'total_pages': paginator.num_pages,
        })

    serializer = OrderCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        order = create_order(
            theater, data['items'],
            source=data['source'],
            user=request.user,
            request=request,
            seat=data.get('seat', ''),
            customer_name=data.get('customer_name', ''),
            customer_phone=data.get('customer_phone', ''),
            payment_method=data['payment_method'],
            notes=data.get('notes', ''),
        )
    except OrderError as e:
        return Response({'error': e.message}, status=e.status_code)
    return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, OrderAccess])
def order_detail(request, theater_id, pk):
    order = get_object_or_404(Order.objects.prefetch_related('items'), pk=pk, theater_id=theater_id)
    return Response(OrderSerializer(order).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, OrderAccess])
def order_status(request, theater_id, pk):
    """Change an order's status; cancelling returns its items to stock"""
    order = get_object_or_404(Order.objects.select_related('theater'), pk=pk, theater_id=theater_id)
    serializer = OrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        order = update_order_status(order, serializer.validated_data['status'], user=request.user, request=request)
    except OrderError as e:
        return Response({'error': e.message}, status=e.status_code)
    return Response(OrderSerializer(order).data)


# QR code views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, QRCodeAccess])
def qr_code_list_create(request, theater_id):
    theater = get_object_or_404(Theater, pk=theater_id)

    if request.method == 'GET':
        qr_codes = QRCode.objects.filter(theater=theater)
        qr_type = request.query_params.get('qr_type')
        if qr_type:
            qr_codes = qr_codes.filter(qr_type=qr_type)
        return Response(QRCodeSerializer(qr_codes, many=True).data)

    serializer = QRCodeSerializer(data=request.data)
    if serializer.is_valid():
        qr_code = serializer.save(theater=theater)
        create_audit_log(request=request, action='create', model_name='QRCode', object_id=qr_code.id,
                         theater=theater, object_name=qr_code.name, object_reference=qr_code.seat)
        return Response(QRCodeSerializer(qr_code).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, QRCodeAccess])
def qr_code_detail(request, theater_id, pk):
    qr_code = get_object_or_404(QRCode, pk=pk, theater_id=theater_id)

    if request.method == 'GET':
        return Response(QRCodeSerializer(qr_code).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = QRCodeSerializer(qr_code, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(request=request, action='delete', model_name='QRCode', object_id=qr_code.id,
                         theater=qr_code.theater, object_name=qr_code.name, object_reference=qr_code.seat)
        qr_code.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Public seat ordering
def _active_qr_code(token):
    return get_object_or_404(QRCode.objects.select_related('theater'), token=token, is_active=True,
                             theater__is_active=True)


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def qr_menu(request, token):
    """Menu of the theater a scanned QR code belongs to"""
    qr_code = _active_qr_code(token)
    theater = qr_code.theater
    categories = Category.objects.filter(theater=theater, is_active=True)
    products = Product.objects.filter(theater=theater, is_active=True, is_available=True) \
        .select_related('category').order_by('category__sort_order', 'name')
    return Response({
        'theater': {'id': theater.id, 'name': theater.name, 'currency': theater.currency},
        'qr_code': {'name': qr_code.name, 'qr_type': qr_code.qr_type, 'seat': qr_code.seat,
                    'seat_class': qr_code.seat_class},
        'categories': CategorySerializer(categories, many=True).data,
        'products': MenuProductSerializer(products, many=True).data,
    })


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def qr_order_create(request, token):
    """Place an order from a seat without logging in"""
    qr_code = _active_qr_code(token)
    serializer = QROrderCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    seat = qr_code.seat if qr_code.qr_type == QRCode.TYPE_SINGLE else data.get('seat', '')
    if qr_code.qr_type == QRCode.TYPE_SCREEN and not seat:
        return Response({'error': 'Seat is required for screen QR codes'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        order = create_order(
            qr_code.theater, data['items'],
            source=Order.SOURCE_QR,
            request=request,
            qr_code=qr_code,
            seat=seat,
            customer_name=data.get('customer_name', ''),
            customer_phone=data.get('customer_phone', ''),
            payment_method=data['payment_method'],
            notes=data.get('notes', ''),
        )
    except OrderError as e:
        return Response({'error': e.message}, status=e.status_code)
    logger.info(f"QR order {order.order_number} placed from {qr_code.name} seat {seat}")
    return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)
