import logging
from datetime import date

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db.models import Q, Count
from django.shortcuts import get_object_or_404
from django.utils import timezone

from .models import Setting, AuditLog, StaffAttendance
from .permissions import IsAdminRole, IsOfficeStaff, is_admin_user
from .serializers import (
    UserSerializer, UserCreateSerializer, UserUpdateSerializer,
    SettingSerializer, AuditLogSerializer, StaffAttendanceSerializer
)
from .utils import create_audit_log, paginate_queryset

User = get_user_model()
logger = logging.getLogger(__name__)


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.role
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Custom token refresh serializer that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    """Custom token refresh view that handles deleted users gracefully"""
    serializer_class = CustomTokenRefreshSerializer


@api_view(['GET'])
@permission_classes([AllowAny])
def health(request):
    """Unauthenticated health check used by field devices"""
    return Response({'status': 'ok', 'time': timezone.now()})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current staff member with role-derived access flags"""
    user = request.user
    user_data = UserSerializer(user).data
    is_admin = is_admin_user(user)
    user_data['is_admin'] = is_admin
    user_data['can_access_finance'] = is_admin or user.role == 'finance'
    user_data['can_access_works'] = is_admin or user.role in ('recept', 'finance')
    user_data['can_access_maintenance'] = is_admin or user.role in ('recept', 'maintenance', 'worker')
    return Response(user_data)


# Staff views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def staff_list_create(request):
    """List all staff or create a new staff member"""
    if request.method == 'GET':
        users = User.objects.all().order_by('first_name', 'username')

        role = request.query_params.get('role', None)
        if role:
            users = users.filter(role=role)
        active = request.query_params.get('active', None)
        if active in ('true', 'false'):
            users = users.filter(is_active=(active == 'true'))
        search = request.query_params.get('search', '').strip()
        if search:
            users = users.filter(
                Q(username__icontains=search) | Q(first_name__icontains=search) |
                Q(last_name__icontains=search) | Q(email__icontains=search)
            )

        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)
    else:
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            create_audit_log(
                request=request, action='create', model_name='User', object_id=user.id,
                object_name=user.display_name, changes={'role': user.role}
            )
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def staff_detail(request, pk):
    """Retrieve, update or delete a staff member"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = UserUpdateSerializer(user, data=request.data, partial=(request.method == 'PATCH'))
        if serializer.is_valid():
            serializer.save()
            return Response(UserSerializer(user).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user == request.user:
            return Response({'error': 'You cannot delete your own account.'}, status=status.HTTP_400_BAD_REQUEST)

        from septicworks.works.models import Work
        from septicworks.maintenance.models import MaintenanceVisit

        # Staff with history is deactivated so works and visits keep their assignee
        has_history = (
            Work.objects.filter(staff=user).exists() or
            MaintenanceVisit.objects.filter(Q(staff=user) | Q(completed_by_staff=user)).exists()
        )
        if has_history:
            user.is_active = False
            user.save(update_fields=['is_active', 'updated_at'])
            create_audit_log(request=request, action='update', model_name='User', object_id=user.id,
                             object_name=user.display_name, changes={'is_active': False})
            return Response({'message': 'Staff member has assigned work and was deactivated.',
                             'deactivated': True})

        create_audit_log(request=request, action='delete', model_name='User', object_id=user.id,
                         object_name=user.display_name)
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Setting views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def setting_list_create(request):
    """List all settings or create a new setting"""
    if request.method == 'GET':
        settings = Setting.objects.all().order_by('key')
        serializer = SettingSerializer(settings, many=True)
        return Response(serializer.data)
    else:
        serializer = SettingSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def setting_detail(request, pk):
    """Retrieve, update or delete a setting"""
    setting = get_object_or_404(Setting, pk=pk)

    if request.method == 'GET':
        serializer = SettingSerializer(setting)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SettingSerializer(setting, data=request.data, partial=(request.method == 'PATCH'))
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        setting.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs with filtering"""
    queryset = AuditLog.objects.select_related('user')

    # Non-admin staff only see their own actions
    if not is_admin_user(request.user):
        queryset = queryset.filter(user=request.user)

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model_name', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    user_filter = request.query_params.get('user', None)
    if user_filter:
        queryset = queryset.filter(user_id=user_filter)

    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    queryset = queryset.order_by('-created_at')
    return Response(paginate_queryset(request, queryset, AuditLogSerializer, default_limit=50))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_404(AuditLog, pk=pk)

    if not is_admin_user(request.user) and audit_log.user != request.user:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    serializer = AuditLogSerializer(audit_log)
    return Response(serializer.data)


# Attendance views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def attendance_list_create(request):
    """List attendance records or mark attendance for a staff member/day"""
    if request.method == 'GET':
        queryset = StaffAttendance.objects.select_related('staff')

        staff_id = request.query_params.get('staff', None)
        if staff_id:
            queryset = queryset.filter(staff_id=staff_id)
        month = request.query_params.get('month', None)
        year = request.query_params.get('year', None)
        if year:
            queryset = queryset.filter(date__year=year)
        if month:
            queryset = queryset.filter(date__month=month)

        serializer = StaffAttendanceSerializer(queryset.order_by('-date', 'staff__first_name'), many=True)
        return Response(serializer.data)

    serializer = StaffAttendanceSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    record, created = StaffAttendance.objects.update_or_create(
        staff=data['staff'],
        date=data['date'],
        defaults={
            'is_present': data.get('is_present', True),
            'notes': data.get('notes', ''),
            'recorded_by': request.user,
        }
    )
    return Response(
        StaffAttendanceSerializer(record).data,
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
    )


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def attendance_detail(request, pk):
    record = get_object_or_404(StaffAttendance, pk=pk)

    if request.method == 'GET':
        return Response(StaffAttendanceSerializer(record).data)
    elif request.method == 'PATCH':
        serializer = StaffAttendanceSerializer(record, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save(recorded_by=request.user)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        record.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def attendance_summary(request):
    """Present/absent day counts per staff member for a month"""
    today = date.today()
    try:
        month = int(request.query_params.get('month', today.month))
        year = int(request.query_params.get('year', today.year))
    except ValueError:
        return Response({'error': 'month and year must be integers'}, status=status.HTTP_400_BAD_REQUEST)
    if month < 1 or month > 12:
        return Response({'error': 'Invalid month'}, status=status.HTTP_400_BAD_REQUEST)

    rows = StaffAttendance.objects.filter(date__year=year, date__month=month).values(
        'staff_id', 'staff__username', 'staff__first_name', 'staff__last_name'
    ).annotate(
        present_days=Count('id', filter=Q(is_present=True)),
        absent_days=Count('id', filter=Q(is_present=False)),
    ).order_by('staff__first_name', 'staff__username')

    summary = []
    for row in rows:
        name = f"{row['staff__first_name']} {row['staff__last_name']}".strip() or row['staff__username']
        summary.append({
            'staff': row['staff_id'],
            'staff_name': name,
            'present_days': row['present_days'],
            'absent_days': row['absent_days'],
        })

    return Response({'month': month, 'year': year, 'staff': summary})
