import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from backend.core.utils import create_audit_log
from .models import Theater, TheaterUser
from .permissions import is_platform_admin, accessible_theater_ids, require_capability
from .serializers import TheaterSerializer, TheaterUserSerializer

logger = logging.getLogger(__name__)


# Theater views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def theater_list_create(request):
    """List theaters visible to the user or create a theater (platform admins only)"""
    if request.method == 'GET':
        if is_platform_admin(request.user):
            theaters = Theater.objects.all()
        else:
            theaters = Theater.objects.filter(id__in=accessible_theater_ids(request.user))
        active = request.query_params.get('is_active')
        if active is not None:
            theaters = theaters.filter(is_active=active.lower() in ('1', 'true', 'yes'))
        return Response(TheaterSerializer(theaters, many=True).data)

    if not is_platform_admin(request.user):
        logger.warning(f"User {request.user.username} attempted to create a theater without admin privileges")
        return Response({'error': 'Only administrators can create theaters'}, status=status.HTTP_403_FORBIDDEN)

    serializer = TheaterSerializer(data=request.data)
    if serializer.is_valid():
        theater = serializer.save()
        logger.info(f"Theater '{theater.name}' created by {request.user.username}")
        create_audit_log(request=request, action='create', model_name='Theater', object_id=theater.id,
                         theater=theater, object_name=theater.name, object_reference=theater.code)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    logger.warning(f"Theater creation validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, require_capability('view_stock', write_capability='manage_users')])
def theater_detail(request, theater_id):
    """Retrieve, update or delete a theater (delete requires platform admin)"""
    theater = get_object_or_404(Theater, pk=theater_id)

    if request.method == 'GET':
        return Response(TheaterSerializer(theater).data)
    elif request.method == 'PATCH':
        serializer = TheaterSerializer(theater, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='Theater', object_id=theater.id,
                             theater=theater, object_name=theater.name, changes=dict(request.data))
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if not is_platform_admin(request.user):
            return Response({'error': 'Only administrators can delete theaters'}, status=status.HTTP_403_FORBIDDEN)
        logger.info(f"User {request.user.username} deleting theater {theater_id} ({theater.name})")
        theater.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Theater membership views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_capability('manage_users')])
def theater_user_list_create(request, theater_id):
    """List or add members of a theater"""
    theater = get_object_or_404(Theater, pk=theater_id)

    if request.method == 'GET':
        members = TheaterUser.objects.filter(theater=theater).select_related('user').order_by('user__username')
        return Response(TheaterUserSerializer(members, many=True).data)

    serializer = TheaterUserSerializer(data=request.data, context={'theater': theater})
    if serializer.is_valid():
        member = serializer.save(theater=theater)
        logger.info(f"User {member.user.username} added to theater {theater.name} as {member.role}")
        create_audit_log(request=request, action='create', model_name='TheaterUser', object_id=member.id,
                         theater=theater, object_name=member.user.username, changes={'role': member.role})
        return Response(TheaterUserSerializer(member).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, require_capability('manage_users')])
def theater_user_detail(request, theater_id, pk):
    """Retrieve, change the role of, or remove a theater member"""
    member = get_object_or_404(TheaterUser.objects.select_related('user', 'theater'), pk=pk, theater_id=theater_id)

    if request.method == 'GET':
        return Response(TheaterUserSerializer(member).data)
    elif request.method == 'PATCH':
        serializer = TheaterUserSerializer(member, data=request.data, partial=True,
                                           context={'theater': member.theater})
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='TheaterUser', object_id=member.id,
                             theater=member.theater, object_name=member.user.username,
                             changes={'role': member.role, 'is_active': member.is_active})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if member.user_id == request.user.id:
            return Response({'error': 'You cannot remove yourself from a theater'}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='delete', model_name='TheaterUser', object_id=member.id,
                         theater=member.theater, object_name=member.user.username)
        member.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
