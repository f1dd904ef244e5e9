import logging
import secrets
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response

from septicworks.core.models import User
from septicworks.core.notifications import send_document_email
from septicworks.core.permissions import IsOfficeStaff, has_role, OFFICE_ROLES, is_field_user
from septicworks.core.utils import create_audit_log, paginate_queryset, resolve_mentions
from .filters import PermitFilter, WorkFilter
from .models import Permit, Work, WorkNote, Inspection, ChangeOrder, WorkChecklist
from .serializers import (
    PermitSerializer, WorkSerializer, WorkListSerializer, WorkNoteSerializer,
    WorkStateHistorySerializer, InspectionSerializer, ChangeOrderSerializer, WorkChecklistSerializer
)
from .status_manager import change_work_status, StatusChangeConflict, StatusChangeError, STATUS_ORDER

logger = logging.getLogger(__name__)


def _permit_conflict(permit_number, property_address, exclude_pk=None):
    """Return an error message if another permit already uses the number or address"""
    queryset = Permit.objects.all()
    if exclude_pk:
        queryset = queryset.exclude(pk=exclude_pk)
    if permit_number and queryset.filter(permit_number__iexact=permit_number.strip()).exists():
        return f"A permit with number {permit_number} already exists."
    if property_address and queryset.filter(property_address__iexact=property_address.strip()).exists():
        return f"A permit for {property_address} already exists."
    return None


def _can_access_work(user, work):
    if has_role(user, *OFFICE_ROLES) or user.is_staff:
        return True
    return work.staff_id == user.id


# Permit views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def permit_list_create(request):
    """List permits or create a new permit"""
    if request.method == 'GET':
        queryset = Permit.objects.all().prefetch_related('works')
        filterset = PermitFilter(request.query_params, queryset=queryset)
        queryset = filterset.qs.order_by('-created_at')
        return Response(paginate_queryset(request, queryset, PermitSerializer))

    serializer = PermitSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    conflict = _permit_conflict(
        serializer.validated_data.get('permit_number'),
        serializer.validated_data.get('property_address'),
    )
    if conflict:
        return Response({'error': conflict}, status=status.HTTP_409_CONFLICT)

    permit = serializer.save()
    create_audit_log(request=request, action='create', model_name='Permit', object_id=permit.id,
                     object_name=permit.property_address, object_reference=permit.permit_number)
    return Response(PermitSerializer(permit).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def permit_detail(request, pk):
    """Retrieve, update or delete a permit"""
    permit = get_object_or_404(Permit, pk=pk)

    if request.method == 'GET':
        return Response(PermitSerializer(permit).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = PermitSerializer(permit, data=request.data, partial=(request.method == 'PATCH'))
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        conflict = _permit_conflict(
            serializer.validated_data.get('permit_number'),
            serializer.validated_data.get('property_address'),
            exclude_pk=permit.pk,
        )
        if conflict:
            return Response({'error': conflict}, status=status.HTTP_409_CONFLICT)
        serializer.save()
        return Response(serializer.data)
    else:  # DELETE
        if permit.works.exists():
            return Response({'error': 'Permit is linked to works and cannot be deleted.'},
                            status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='delete', model_name='Permit', object_id=permit.id,
                         object_name=permit.property_address, object_reference=permit.permit_number)
        permit.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def permit_check(request):
    """Check whether a permit number or property address is already registered"""
    permit_number = request.query_params.get('permit_number', '').strip()
    property_address = request.query_params.get('property_address', '').strip()
    if not permit_number and not property_address:
        return Response({'error': 'permit_number or property_address is required'},
                        status=status.HTTP_400_BAD_REQUEST)

    result = {'permit_number_exists': False, 'property_address_exists': False, 'permit': None}
    match = None
    if permit_number:
        match = Permit.objects.filter(permit_number__iexact=permit_number).first()
        result['permit_number_exists'] = match is not None
    if property_address:
        by_address = Permit.objects.filter(property_address__iexact=property_address).first()
        result['property_address_exists'] = by_address is not None
        match = match or by_address
    if match:
        result['permit'] = {'id': match.id, 'permit_number': match.permit_number,
                            'property_address': match.property_address}
    return Response(result)


# Work views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def work_list_create(request):
    """List works or create a new work"""
    if request.method == 'GET':
        queryset = Work.objects.select_related('permit', 'staff', 'budget')
        if is_field_user(request.user):
            queryset = queryset.filter(staff=request.user)
        filterset = WorkFilter(request.query_params, queryset=queryset)
        queryset = filterset.qs.order_by('-created_at')
        return Response(paginate_queryset(request, queryset, WorkListSerializer))

    if not IsOfficeStaff().has_permission(request, None):
        return Response({'error': 'Office staff role required.'}, status=status.HTTP_403_FORBIDDEN)

    serializer = WorkSerializer(data=request.data)
    if serializer.is_valid():
        work = serializer.save()
        create_audit_log(request=request, action='create', model_name='Work', object_id=work.id,
                         object_name=work.property_address)
        return Response(WorkSerializer(work).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def work_detail(request, pk):
    """Retrieve, update or delete a work"""
    work = get_object_or_404(Work.objects.select_related('permit', 'staff', 'budget'), pk=pk)
    if not _can_access_work(request.user, work):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        return Response(WorkSerializer(work).data)

    if not IsOfficeStaff().has_permission(request, None):
        return Response({'error': 'Office staff role required.'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = WorkSerializer(work, data=request.data, partial=(request.method == 'PATCH'))
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='Work', object_id=work.id,
                             object_name=work.property_address,
                             changes={k: str(v) for k, v in serializer.validated_data.items()})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(request=request, action='delete', model_name='Work', object_id=work.id,
                         object_name=work.property_address)
        work.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def work_change_status(request, pk):
    """
    Change the status of a work.

    Body: {status, reason?, force?, staff?}
    Moving backward without force returns 409 with the list of conflicts.
    """
    work = get_object_or_404(Work, pk=pk)
    if not _can_access_work(request.user, work):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    target_status = request.data.get('status')
    if not target_status:
        return Response({'error': 'status is required'}, status=status.HTTP_400_BAD_REQUEST)

    force = str(request.data.get('force', '')).lower() in ('true', '1')
    reason = request.data.get('reason', '')

    staff = None
    staff_id = request.data.get('staff')
    if staff_id:
        staff = User.objects.filter(pk=staff_id, is_active=True).first()
        if not staff:
            return Response({'error': 'Staff member not found'}, status=status.HTTP_400_BAD_REQUEST)
    if target_status == 'assigned' and not (staff or work.staff_id):
        return Response({'error': 'A staff member is required to assign the work'},
                        status=status.HTTP_400_BAD_REQUEST)

    try:
        result = change_work_status(work, target_status, user=request.user, reason=reason,
                                    force=force, staff=staff, request=request)
    except StatusChangeConflict as e:
        return Response({
            'error': str(e),
            'conflicts': e.conflicts,
            'requires_force': True,
            'current_status': work.status,
            'target_status': target_status,
        }, status=status.HTTP_409_CONFLICT)
    except StatusChangeError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'message': f"Work status updated to {target_status}",
        'work': WorkSerializer(result['work']).data,
        'from_status': result['from_status'],
        'to_status': result['to_status'],
        'rolled_back': result['rolled_back'],
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def work_history(request, pk):
    work = get_object_or_404(Work, pk=pk)
    if not _can_access_work(request.user, work):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
    history = work.state_history.select_related('changed_by')
    return Response(WorkStateHistorySerializer(history, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def work_statuses(request):
    """Ordered workflow statuses with labels"""
    labels = dict(Work.STATUS_CHOICES)
    return Response([{'value': s, 'label': labels[s]} for s in STATUS_ORDER + ['cancelled']])


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def notice_to_owner_list(request):
    """
    Works whose notice-to-owner must be filed within the deadline counted from
    the installation start date.
    """
    deadline_days = getattr(settings, 'NOTICE_TO_OWNER_DAYS', 45)
    today = timezone.localdate()
    include_filed = request.query_params.get('include_filed', 'false').lower() == 'true'

    queryset = Work.objects.filter(
        installation_start_date__isnull=False,
        notice_to_owner_required=True,
    ).exclude(status='cancelled').select_related('permit')
    if not include_filed:
        queryset = queryset.filter(notice_to_owner_filed=False)

    results = []
    for work in queryset.order_by('installation_start_date'):
        deadline = work.installation_start_date + timedelta(days=deadline_days)
        days_remaining = (deadline - today).days
        results.append({
            'id': work.id,
            'property_address': work.property_address,
            'status': work.status,
            'installation_start_date': work.installation_start_date,
            'deadline': deadline,
            'days_remaining': days_remaining,
            'is_overdue': days_remaining < 0,
            'notice_to_owner_filed': work.notice_to_owner_filed,
            'notice_to_owner_filed_date': work.notice_to_owner_filed_date,
            'lien_required': work.lien_required,
            'lien_filed': work.lien_filed,
        })
    return Response({'deadline_days': deadline_days, 'count': len(results), 'results': results})


# Work note views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def work_note_list_create(request, pk):
    work = get_object_or_404(Work, pk=pk)
    if not _can_access_work(request.user, work):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        notes = work.work_notes.select_related('staff')
        note_type = request.query_params.get('note_type')
        if note_type:
            notes = notes.filter(note_type=note_type)
        resolved = request.query_params.get('is_resolved')
        if resolved in ('true', 'false'):
            notes = notes.filter(is_resolved=(resolved == 'true'))
        return Response(WorkNoteSerializer(notes, many=True).data)

    serializer = WorkNoteSerializer(data=request.data)
    if serializer.is_valid():
        note = serializer.save(work=work, staff=request.user)
        if 'mentioned_staff' not in serializer.validated_data:
            note.mentioned_staff.set(resolve_mentions(note.message, exclude=request.user))
        return Response(WorkNoteSerializer(note).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def work_note_detail(request, pk):
    note = get_object_or_404(WorkNote.objects.select_related('work', 'staff'), pk=pk)
    if not _can_access_work(request.user, note.work):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        return Response(WorkNoteSerializer(note).data)
    elif request.method == 'PATCH':
        serializer = WorkNoteSerializer(note, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if note.staff_id != request.user.id and not IsOfficeStaff().has_permission(request, None):
            return Response({'error': 'Only the author can delete this note'}, status=status.HTTP_403_FORBIDDEN)
        note.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def work_note_alerts(request):
    """Unresolved high/urgent notes and notes mentioning the current user"""
    notes = WorkNote.objects.filter(is_resolved=False).filter(
        Q(priority__in=['high', 'urgent']) | Q(mentioned_staff=request.user)
    ).select_related('work', 'staff').distinct().order_by('-created_at')
    return Response(WorkNoteSerializer(notes, many=True).data)


# Inspection views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def inspection_list_create(request, pk):
    """
    List inspections of a work or request a new one.

    Requesting an inspection moves the work to firstInspectionPending /
    finalInspectionPending.
    """
    work = get_object_or_404(Work, pk=pk)

    if request.method == 'GET':
        return Response(InspectionSerializer(work.inspections.all(), many=True).data)

    serializer = InspectionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    target_status = 'firstInspectionPending' if serializer.validated_data['type'] == 'first' else 'finalInspectionPending'
    with transaction.atomic():
        if work.status != target_status:
            try:
                change_work_status(work, target_status, user=request.user,
                                   reason='Inspection requested', request=request)
            except StatusChangeConflict as e:
                return Response({'error': str(e), 'conflicts': e.conflicts}, status=status.HTTP_409_CONFLICT)
            except StatusChangeError as e:
                return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        inspection = serializer.save(
            work=work,
            created_by=request.user,
            date_requested=serializer.validated_data.get('date_requested') or timezone.localdate(),
        )
    return Response(InspectionSerializer(inspection).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def inspection_result(request, pk):
    """Record approved/rejected and advance the work accordingly"""
    inspection = get_object_or_404(Inspection.objects.select_related('work'), pk=pk)
    result = request.data.get('result')
    if result not in ('approved', 'rejected'):
        return Response({'error': "result must be 'approved' or 'rejected'"}, status=status.HTTP_400_BAD_REQUEST)

    target_status = {
        ('first', 'approved'): 'approvedInspection',
        ('first', 'rejected'): 'rejectedInspection',
        ('final', 'approved'): 'finalApproved',
        ('final', 'rejected'): 'finalRejected',
    }[(inspection.type, result)]

    with transaction.atomic():
        inspection.final_status = result
        inspection.date_result = request.data.get('date_result') or timezone.localdate()
        if request.data.get('notes'):
            inspection.notes = request.data['notes']
        inspection.save()

        work = inspection.work
        if work.status != target_status:
            try:
                change_work_status(work, target_status, user=request.user,
                                   reason=f"{inspection.get_type_display()} inspection {result}",
                                   force=True, request=request)
            except StatusChangeError as e:
                transaction.set_rollback(True)
                return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    inspection.refresh_from_db()
    return Response(InspectionSerializer(inspection).data)


# Change order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def change_order_list_create(request, pk):
    work = get_object_or_404(Work, pk=pk)

    if request.method == 'GET':
        return Response(ChangeOrderSerializer(work.change_orders.all(), many=True).data)

    serializer = ChangeOrderSerializer(data=request.data)
    if serializer.is_valid():
        change_order = serializer.save(work=work, created_by=request.user)
        return Response(ChangeOrderSerializer(change_order).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def change_order_detail(request, pk):
    change_order = get_object_or_404(ChangeOrder.objects.select_related('work'), pk=pk)

    if request.method == 'GET':
        return Response(ChangeOrderSerializer(change_order).data)

    if change_order.status not in ChangeOrder.EDITABLE_STATUSES + ('pendingClientApproval',):
        return Response({'error': f"Change order in status {change_order.status} cannot be modified"},
                        status=status.HTTP_400_BAD_REQUEST)

    if request.method == 'PATCH':
        serializer = ChangeOrderSerializer(change_order, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        change_order.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def change_order_send(request, pk):
    """Send the change order to the client for approval"""
    change_order = get_object_or_404(ChangeOrder.objects.select_related('work', 'work__permit', 'work__budget'), pk=pk)
    if change_order.status not in ChangeOrder.EDITABLE_STATUSES + ('pendingClientApproval',):
        return Response({'error': f"Change order in status {change_order.status} cannot be sent"},
                        status=status.HTTP_400_BAD_REQUEST)

    work = change_order.work
    recipient = work.applicant_email
    if not recipient:
        return Response({'error': 'The client has no email address on file'}, status=status.HTTP_400_BAD_REQUEST)

    if request.data.get('client_message'):
        change_order.client_message = request.data['client_message']
    change_order.approval_token = secrets.token_urlsafe(32)
    change_order.status = 'pendingClientApproval'
    change_order.requested_at = timezone.now()
    change_order.save()

    link = f"{settings.CLIENT_PORTAL_URL.rstrip('/')}/change-order/{change_order.id}?token={change_order.approval_token}"
    body = (
        f"Change order {change_order.change_order_number} for {work.property_address}\n\n"
        f"{change_order.description}\n\n"
        f"Amount: ${change_order.total_cost:,.2f}\n\n"
        f"{change_order.client_message}\n\n"
        f"Please review and approve or reject it here: {link}\n"
    )
    try:
        send_document_email(f"Change order {change_order.change_order_number}", body, [recipient])
    except Exception as e:
        logger.error(f"Failed to email change order {change_order.id}: {str(e)}")
        return Response({'error': f'Email could not be sent: {str(e)}'}, status=status.HTTP_502_BAD_GATEWAY)

    WorkNote.objects.create(work=work, staff=request.user, note_type='client_contact', priority='medium',
                            message=f"Change order {change_order.change_order_number} sent to {recipient}")
    return Response(ChangeOrderSerializer(change_order).data)


@api_view(['POST'])
@permission_classes([AllowAny])
def change_order_respond(request, pk):
    """Client approval/rejection through the emailed link"""
    change_order = get_object_or_404(ChangeOrder, pk=pk)
    token = request.data.get('token') or request.query_params.get('token')
    decision = request.data.get('decision')

    if not token or not change_order.approval_token or not secrets.compare_digest(token, change_order.approval_token):
        return Response({'error': 'Invalid or expired link'}, status=status.HTTP_403_FORBIDDEN)
    if decision not in ('approved', 'rejected'):
        return Response({'error': "decision must be 'approved' or 'rejected'"}, status=status.HTTP_400_BAD_REQUEST)
    if change_order.status != 'pendingClientApproval':
        return Response({'error': 'This change order has already been answered'}, status=status.HTTP_409_CONFLICT)

    change_order.status = decision
    change_order.responded_at = timezone.now()
    change_order.approval_token = ''
    change_order.save()

    WorkNote.objects.create(work=change_order.work, note_type='client_contact',
                            priority='high' if decision == 'rejected' else 'medium',
                            message=f"Client {decision} change order {change_order.change_order_number}")
    return Response({'id': change_order.id, 'status': change_order.status})


# Checklist views
@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def work_checklist(request, pk):
    """Review checklist of a work, created empty on first access"""
    work = get_object_or_404(Work, pk=pk)
    checklist, _ = WorkChecklist.objects.get_or_create(work=work)

    if request.method == 'GET':
        return Response(WorkChecklistSerializer(checklist).data)

    serializer = WorkChecklistSerializer(checklist, data=request.data, partial=True, context={'request': request})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    checklist = serializer.save()
    create_audit_log(request=request, action='update', model_name='WorkChecklist', object_id=checklist.id,
                     object_name=work.property_address,
                     changes={key: value for key, value in serializer.validated_data.items() if key != 'notes'})
    return Response(WorkChecklistSerializer(checklist).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def work_checklist_stats(request):
    total_works = Work.objects.count()
    with_checklist = WorkChecklist.objects.count()
    completed = WorkChecklist.objects.filter(final_review_completed=True).count()
    return Response({
        'total_works': total_works,
        'with_checklist': with_checklist,
        'completed': completed,
        'pending': total_works - completed,
        'completion_rate': round(completed * 100 / total_works, 1) if total_works else 0,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def work_checklist_batch(request):
    """Checklists for many works at once; works without one get an unsaved empty checklist"""
    work_ids = request.data.get('work_ids')
    if not isinstance(work_ids, list):
        return Response({'error': 'work_ids must be a list'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        work_ids = [int(work_id) for work_id in work_ids]
    except (TypeError, ValueError):
        return Response({'error': 'work_ids must contain numbers'}, status=status.HTTP_400_BAD_REQUEST)

    checklists = {c.work_id: c for c in WorkChecklist.objects.filter(work_id__in=work_ids).select_related('work')}
    empty = {field: False for field in WorkChecklist.CHECK_FIELDS}
    results = {}
    for work_id in work_ids:
        checklist = checklists.get(work_id)
        if checklist is not None:
            results[str(work_id)] = WorkChecklistSerializer(checklist).data
        else:
            results[str(work_id)] = dict(empty, work=work_id, id=None, completed_count=0, reviewed_by=None,
                                         reviewed_at=None, notes='')
    return Response(results)
