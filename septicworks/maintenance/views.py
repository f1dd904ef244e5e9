import logging

from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from septicworks.core.permissions import IsOfficeStaff, is_field_user
from septicworks.core.utils import create_audit_log, paginate_queryset
from septicworks.works.models import Work
from . import services
from .filters import MaintenanceVisitFilter
from .models import MaintenanceVisit, MaintenanceMedia
from .pdf import render_visit_pdf
from .serializers import (
    MaintenanceVisitSerializer, MaintenanceVisitListSerializer, MaintenanceVisitUpdateSerializer,
    MaintenanceMediaSerializer, ScheduleSerializer, HistoricalScheduleSerializer,
)

logger = logging.getLogger(__name__)


def _visit_queryset(user):
    queryset = MaintenanceVisit.objects.select_related(
        'work', 'work__permit', 'staff', 'completed_by_staff'
    ).prefetch_related('media')
    # Field staff only see the visits assigned to them
    if is_field_user(user):
        queryset = queryset.filter(staff=user)
    return queryset


def _can_work_visit(user, visit):
    return not is_field_user(user) or visit.staff_id in (None, user.id)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def work_maintenance_list(request, pk):
    work = get_object_or_404(Work, pk=pk)
    visits = _visit_queryset(request.user).filter(work=work)
    return Response({
        'work_id': work.id,
        'property_address': work.property_address,
        'maintenance_start_date': work.maintenance_start_date,
        'visits': MaintenanceVisitListSerializer(visits, many=True).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def work_maintenance_schedule(request, pk):
    """Create (or with force_reschedule, replace) the visit cycle of a work"""
    work = get_object_or_404(Work, pk=pk)
    serializer = ScheduleSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        visits, rescheduled = services.schedule_visits(
            work, start_date=serializer.validated_data.get('start_date'),
            force_reschedule=serializer.validated_data['force_reschedule'], user=request.user,
        )
    except services.SchedulingError as e:
        return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

    return Response({
        'message': f"{len(visits)} maintenance visits {'rescheduled' if rescheduled else 'scheduled'}",
        'rescheduled': rescheduled,
        'visits': MaintenanceVisitListSerializer(visits, many=True).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def work_maintenance_initialize_historical(request, pk):
    """Schedule visits for a legacy work from its original installation date"""
    work = get_object_or_404(Work, pk=pk)
    serializer = HistoricalScheduleSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        visits, overdue = services.initialize_historical(
            work, serializer.validated_data['start_date'],
            generate_past_visits=serializer.validated_data['generate_past_visits'], user=request.user,
        )
    except services.SchedulingError as e:
        return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

    return Response({
        'message': f"{len(visits)} maintenance visits created",
        'overdue_count': overdue,
        'visits': MaintenanceVisitListSerializer(visits, many=True).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def visit_list(request):
    filterset = MaintenanceVisitFilter(request.query_params, queryset=_visit_queryset(request.user))
    queryset = filterset.qs.order_by('scheduled_date', 'work_id', 'visit_number')
    return Response(paginate_queryset(request, queryset, MaintenanceVisitListSerializer))


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def visit_detail(request, pk):
    visit = get_object_or_404(_visit_queryset(request.user), pk=pk)

    if request.method == 'GET':
        return Response(MaintenanceVisitSerializer(visit, context={'request': request}).data)

    if is_field_user(request.user):
        return Response({'error': 'Only office staff can edit visit scheduling'}, status=status.HTTP_403_FORBIDDEN)
    serializer = MaintenanceVisitUpdateSerializer(visit, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    old_status = visit.status
    visit = serializer.save()
    create_audit_log(request=request, action='update', model_name='MaintenanceVisit', object_id=visit.id,
                     object_name=str(visit), changes={k: str(v) for k, v in serializer.validated_data.items()})
    logger.info(f"Maintenance visit {visit.id} updated ({old_status} -> {visit.status})")
    return Response(MaintenanceVisitSerializer(_visit_queryset(request.user).get(pk=visit.pk),
                                               context={'request': request}).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def visit_media_upload(request, pk):
    visit = get_object_or_404(_visit_queryset(request.user), pk=pk)
    if not _can_work_visit(request.user, visit):
        return Response({'error': 'Visit is assigned to another technician'}, status=status.HTTP_403_FORBIDDEN)

    uploads = [(upload, request.data.get('field_name', '')) for upload in request.FILES.getlist('file')]
    uploads += services.collect_uploads(request.FILES)
    if not uploads:
        return Response({'error': 'No files uploaded'}, status=status.HTTP_400_BAD_REQUEST)

    media = services.store_media(visit, uploads, user=request.user)
    return Response(MaintenanceMediaSerializer(media, many=True, context={'request': request}).data,
                    status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def media_delete(request, pk):
    media = get_object_or_404(MaintenanceMedia, pk=pk)
    media.file.delete(save=False)
    media.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def visit_complete(request, pk):
    """
    Submit the maintenance form for a visit.

    The submission_id makes the call idempotent: resending the same
    submission returns the stored visit with 200 instead of creating
    duplicates.
    """
    visit = get_object_or_404(_visit_queryset(request.user), pk=pk)
    if not _can_work_visit(request.user, visit):
        return Response({'error': 'Visit is assigned to another technician'}, status=status.HTTP_403_FORBIDDEN)

    submission_id = request.data.get('submission_id') or request.headers.get('X-Submission-Id')
    try:
        visit, replayed = services.complete_visit(visit, request.data, request.FILES, user=request.user,
                                                  submission_id=submission_id)
    except services.SubmissionConflict as e:
        return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    data = MaintenanceVisitSerializer(_visit_queryset(request.user).get(pk=visit.pk),
                                      context={'request': request}).data
    if replayed:
        return Response({'replayed': True, 'visit': data})
    return Response({'replayed': False, 'visit': data}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def visit_pdf(request, pk):
    visit = get_object_or_404(_visit_queryset(request.user), pk=pk)
    response = HttpResponse(render_visit_pdf(visit), content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="maintenance_{visit.work_id}_{visit.visit_number}.pdf"'
    return response
