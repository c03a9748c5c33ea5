import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.paginator import Paginator
from django.db.models import Count
from django.shortcuts import get_object_or_404
from backend.core.utils import create_audit_log
from backend.theaters.models import Theater
from backend.theaters.permissions import require_capability
from .filters import ProductFilter
from .models import Category, Product
from .serializers import CategorySerializer, ProductSerializer

logger = logging.getLogger(__name__)

AUDITED_PRODUCT_FIELDS = ['name', 'sku', 'base_price', 'tax_rate', 'gst_type', 'discount_percentage',
                          'track_stock', 'min_stock', 'is_active']


def _product_snapshot(product):
    return {field: str(getattr(product, field)) for field in AUDITED_PRODUCT_FIELDS}


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_capability('view_stock', write_capability='manage_products')])
def category_list_create(request, theater_id):
    """List the theater's categories or create a new category"""
    theater = get_object_or_404(Theater, pk=theater_id)

    if request.method == 'GET':
        categories = Category.objects.filter(theater=theater).annotate(product_count=Count('products'))
        if request.query_params.get('active') == 'true':
            categories = categories.filter(is_active=True)
        return Response(CategorySerializer(categories, many=True).data)

    serializer = CategorySerializer(data=request.data, context={'theater': theater})
    if serializer.is_valid():
        category = serializer.save(theater=theater)
        create_audit_log(request=request, action='create', model_name='Category', object_id=category.id,
                         theater=theater, object_name=category.name)
        return Response(CategorySerializer(category).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, require_capability('view_stock', write_capability='manage_products')])
def category_detail(request, theater_id, pk):
    """Retrieve, update or delete a category"""
    category = get_object_or_404(Category, pk=pk, theater_id=theater_id)

    if request.method == 'GET':
        return Response(CategorySerializer(category).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CategorySerializer(category, data=request.data, partial=request.method == 'PATCH',
                                        context={'theater': category.theater})
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(request=request, action='delete', model_name='Category', object_id=category.id,
                         theater=category.theater, object_name=category.name)
        category.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_capability('view_stock', write_capability='manage_products')])
def product_list_create(request, theater_id):
    """List the theater's products (filtered, paginated) or create a new product"""
    theater = get_object_or_404(Theater, pk=theater_id)

    if request.method == 'GET':
        queryset = Product.objects.filter(theater=theater).select_related('category')
        filterset = ProductFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = filterset.qs.order_by('name', 'id')

        try:
            page = max(int(request.query_params.get('page', 1)), 1)
            limit = min(max(int(request.query_params.get('limit', 50)), 1), 200)
        except ValueError:
            return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)

        paginator = Paginator(queryset, limit)
        page_obj = paginator.get_page(page)
        return Response({
            'results': ProductSerializer(page_obj.object_list, many=True).data,
            'count': paginator.count,
            'page': page_obj.number,
            'total_pages': paginator.num_pages,
        })

    serializer = ProductSerializer(data=request.data, context={'theater': theater})
    if serializer.is_valid():
        product = serializer.save(theater=theater)
        logger.info(f"Product '{product.name}' created in theater {theater.name} by {request.user.username}")
        create_audit_log(request=request, action='create', model_name='Product', object_id=product.id,
                         theater=theater, object_name=product.name, object_reference=product.sku,
                         changes=_product_snapshot(product))
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
    logger.warning(f"Product creation validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, require_capability('view_stock', write_capability='manage_products')])
def product_detail(request, theater_id, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product.objects.select_related('category', 'theater'), pk=pk, theater_id=theater_id)

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH',
                                       context={'theater': product.theater})
        if serializer.is_valid():
            old_data = _product_snapshot(product)
            serializer.save()
            new_data = _product_snapshot(product)
            changes = {k: {'old': old_data[k], 'new': new_data[k]} for k in old_data if old_data[k] != new_data[k]}
            if changes:
                create_audit_log(request=request, action='update', model_name='Product', object_id=product.id,
                                 theater=product.theater, object_name=product.name,
                                 object_reference=product.sku, changes=changes)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        theater = product.theater
        product_name = product.name
        product_sku = product.sku
        product_id = product.id
        product.delete()
        create_audit_log(request=request, action='delete', model_name='Product', object_id=product_id,
                         theater=theater, object_name=product_name, object_reference=product_sku,
                         changes={'name': product_name, 'sku': product_sku})
        return Response(status=status.HTTP_204_NO_CONTENT)
