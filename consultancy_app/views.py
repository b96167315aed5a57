# views.py
from django.db import transaction
from django.http import HttpResponse
from django.utils import timezone
from rest_framework import status, viewsets, permissions
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView
from django.db.models import Q
import logging
import pandas as pd
from io import BytesIO

from . import auth_gate, blob_store, ledger, records
from .audit import client_ip, record_audit
from .exceptions import BackofficeError, ConflictError, NotFoundError
from .models import *
from .permission_engine import (
    PermissionDraft, PermissionEntry, PermissionMatrix, StageEdit, Capabilities,
    load_matrix, page_path, save_permissions,
)
from .route_guard import HasPagePermission
from .serializers import *

logger = logging.getLogger(__name__)

GUARDED = [permissions.IsAuthenticated, HasPagePermission]


def error_response(e):
    return Response({
        'success': False,
        'error': e.message,
        'code': e.code
    }, status=e.status_code)


def validation_error(serializer):
    return Response({
        'success': False,
        'error': 'Validation failed',
        'errors': serializer.errors
    }, status=status.HTTP_400_BAD_REQUEST)


def actor_name(request):
    return request.user.name or request.user.email


# ==================== AUTHENTICATION VIEWS ====================
class LoginView(APIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error(serializer)

        email = serializer.validated_data['email']
        try:
            result = auth_gate.login(
                email,
                serializer.validated_data['password'],
                client_ip=client_ip(request),
                user_agent=request.META.get('HTTP_USER_AGENT', ''),
            )
        except BackofficeError as e:
            record_audit(request, 'USER_LOGIN', 'User', username=email,
                         new_values={'email': email, 'status': 'failed'})
            return error_response(e)

        user = result.user
        record_audit(request, 'USER_LOGIN', 'User', record_id=user.id, user=user,
                     new_values={'email': user.email, 'status': 'success', 'role': user.role_name})

        return Response({
            'success': True,
            'message': 'Login successful',
            'token': result.access,
            'refresh_token': result.refresh,
            'session_id': str(result.session.id),
            'user': UserSerializer(user).data,
        }, status=status.HTTP_200_OK)


class LogoutView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error(serializer)

        try:
            auth_gate.logout(request.user, serializer.validated_data['refresh_token'])
        except NotFoundError as e:
            return Response({'success': False, 'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

        record_audit(request, 'USER_LOGOUT', 'UserSession', record_id=request.user.id, operation='DELETE')
        return Response({'success': True, 'message': 'Successfully logged out'}, status=status.HTTP_200_OK)


class RefreshTokenView(APIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = RefreshTokenSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error(serializer)

        try:
            access = auth_gate.refresh_access(serializer.validated_data['refresh_token'])
        except BackofficeError as e:
            return error_response(e)

        return Response({
            'success': True,
            'token': access,
            'refresh_token': serializer.validated_data['refresh_token']
        }, status=status.HTTP_200_OK)


class ValidateTokenView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        session = auth_gate.current_session(request.user, request.auth)
        if session is None:
            return Response({'success': False, 'error': 'Invalid or expired session'},
                            status=status.HTTP_401_UNAUTHORIZED)

        session.save(update_fields=['last_activity'])
        return Response({'success': True, 'user': UserSerializer(request.user).data}, status=status.HTTP_200_OK)


class ChangePasswordView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = ChangePasswordSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error(serializer)

        data = serializer.validated_data
        try:
            user = auth_gate.change_password(
                request.user.email,
                data['old_password'],
                data['new_password'],
                data['confirm_password'],
                keep_session=auth_gate.current_session(request.user, request.auth),
            )
        except BackofficeError as e:
            body = {'success': False, 'error': e.message, 'code': e.code}
            if hasattr(e, 'reason'):
                body['reason'] = e.reason
            return Response(body, status=e.status_code)

        record_audit(request, 'USER_UPDATE', 'User', record_id=user.id, operation='UPDATE',
                     changed_fields=['password'])
        return Response({'success': True, 'message': 'Password changed successfully'}, status=status.HTTP_200_OK)


class VerifyPasswordView(APIView):
    """Step-up password check before a sensitive action; issues no token."""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = VerifyPasswordSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({'success': False, 'error': 'User ID and password are required'},
                            status=status.HTTP_400_BAD_REQUEST)

        try:
            verified = auth_gate.verify_password(
                serializer.validated_data['user_id'],
                serializer.validated_data['password']
            )
        except NotFoundError as e:
            return error_response(e)

        if not verified:
            return Response({'success': False, 'error': 'Invalid password'}, status=status.HTTP_401_UNAUTHORIZED)
        return Response({'success': True, 'message': 'Password verified'}, status=status.HTTP_200_OK)


# ==================== USER MANAGEMENT VIEWS ====================
class UserViewSet(viewsets.ModelViewSet):
    queryset = User.objects.select_related('role').order_by('-date_joined')
    serializer_class = UserSerializer
    permission_classes = GUARDED

    def get_serializer_class(self):
        if self.action == 'create':
            return UserCreateSerializer
        elif self.action in ['update', 'partial_update']:
            return UserUpdateSerializer
        return super().get_serializer_class()

    def get_queryset(self):
        queryset = super().get_queryset()
        role = self.request.query_params.get('role')
        search = self.request.query_params.get('search')
        if role:
            queryset = queryset.filter(role_id=role)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(email__icontains=search))
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return validation_error(serializer)

        if User.objects.filter(email__iexact=serializer.validated_data['email']).exists():
            return error_response(ConflictError('A user with this email already exists'))

        user = serializer.save(created_by=actor_name(request))
        record_audit(request, 'USER_CREATE', 'User', record_id=user.id,
                     new_values={'email': user.email, 'name': user.name, 'role': user.role_name})

        return Response({
            'success': True,
            'message': 'User created successfully',
            'data': UserSerializer(user).data
        }, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()
        original_email = instance.email
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        if not serializer.is_valid():
            return validation_error(serializer)

        new_email = serializer.validated_data.get('email', original_email)
        if new_email != original_email and \
                User.objects.filter(email__iexact=new_email).exclude(pk=instance.pk).exists():
            return error_response(ConflictError('A user with this email already exists'))

        with transaction.atomic():
            user = serializer.save(modify_by=actor_name(request), modify_on=timezone.now())
            # editing your own email ends every session you hold
            force_logout = new_email != original_email and original_email == request.user.email
            if force_logout:
                auth_gate.revoke_sessions(user)

        record_audit(request, 'USER_UPDATE', 'User', record_id=user.id, operation='UPDATE',
                     old_values={'email': original_email},
                     changed_fields=sorted(k for k in serializer.validated_data if k != 'password'))

        return Response({
            'success': True,
            'message': 'User updated successfully',
            'data': UserSerializer(user).data,
            'force_logout': force_logout
        }, status=status.HTTP_200_OK)

    def destroy(self, request, *args, **kwargs):
        user = self.get_object()
        if user.pk == request.user.pk:
            return Response({'success': False, 'error': 'You cannot delete your own account'},
                            status=status.HTTP_400_BAD_REQUEST)

        record_audit(request, 'USER_DELETE', 'User', record_id=user.id, operation='DELETE',
                     old_values={'email': user.email, 'name': user.name})
        user.delete()
        return Response({'success': True, 'message': 'User deleted successfully'}, status=status.HTTP_200_OK)

    @action(detail=True, methods=['get'])
    def sessions(self, request, pk=None):
        user = self.get_object()
        sessions = user.sessions.filter(revoked=False).order_by('-login_time')
        return Response({'success': True, 'data': UserSessionSerializer(sessions, many=True).data})


# ==================== ROLES, PAGES & PERMISSIONS ====================
class RoleListView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response({'success': True, 'data': RoleSerializer(Role.objects.all(), many=True).data})


class PageViewSet(viewsets.ModelViewSet):
    queryset = Page.objects.all()
    serializer_class = PageSerializer
    permission_classes = GUARDED

    def get_permissions(self):
        # every signed-in client needs the page registry for its route guard
        if self.action in ['list', 'retrieve']:
            return [permissions.IsAuthenticated()]
        return super().get_permissions()

    def perform_create(self, serializer):
        page = serializer.save(created_by=actor_name(self.request), created_on=timezone.now())
        record_audit(self.request, 'PAGE_CHANGE', 'Page', record_id=page.id,
                     new_values={'page_name': page.page_name, 'page_url': page.page_url})

    def perform_update(self, serializer):
        page = serializer.save(modify_by=actor_name(self.request), modify_on=timezone.now())
        record_audit(self.request, 'PAGE_CHANGE', 'Page', record_id=page.id, operation='UPDATE',
                     new_values={'page_name': page.page_name, 'page_url': page.page_url})

    def perform_destroy(self, instance):
        record_audit(self.request, 'PAGE_CHANGE', 'Page', record_id=instance.id, operation='DELETE',
                     old_values={'page_name': instance.page_name, 'page_url': instance.page_url})
        # its Permission rows cascade
        instance.delete()


class PermissionListView(APIView):
    """The full matrix, unfiltered; clients evaluate it for their own role."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        queryset = Permission.objects.select_related('role', 'page').order_by('role_id', 'page_id')
        return Response({'success': True, 'data': PermissionSerializer(queryset, many=True).data})


class PermissionSaveView(APIView):
    permission_classes = GUARDED

    def post(self, request):
        serializer = PermissionSaveSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error(serializer)

        entries = [
            PermissionEntry(
                entry['role'].id,
                entry['page'].id,
                Capabilities(entry['can_create'], entry['can_read'], entry['can_update'], entry['can_delete'])
            )
            for entry in serializer.validated_data['entries']
        ]
        saved = save_permissions(entries, actor_name(request))
        record_audit(request, 'PERMISSION_SAVE', 'Permission', operation='UPDATE',
                     new_values={'entries': [[e.role_id, e.page_id, list(e.capabilities)] for e in entries]})

        return Response({
            'success': True,
            'message': 'Permissions saved successfully',
            'data': PermissionSerializer(saved, many=True).data
        }, status=status.HTTP_200_OK)


class PermissionStageView(APIView):
    """Apply Add/View/Edit/Delete/selectall/deselect edits to a draft and save the touched keys."""
    permission_classes = GUARDED

    def post(self, request):
        serializer = PermissionStageSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error(serializer)

        draft = PermissionDraft(PermissionMatrix.from_database())
        for edit in serializer.validated_data['edits']:
            draft.stage(StageEdit(edit['role'].id, edit['page'].id, edit['action']))

        saved = draft.save(actor_name(request))
        record_audit(request, 'PERMISSION_SAVE', 'Permission', operation='UPDATE',
                     new_values={'edits': [[e['role'].id, e['page'].id, e['action']]
                                           for e in serializer.validated_data['edits']]})

        return Response({
            'success': True,
            'message': 'Permissions saved successfully',
            'data': PermissionSerializer(saved, many=True).data
        }, status=status.HTTP_200_OK)


class AccessResolveView(APIView):
    """Route guard lookup for the caller: may it enter `path`, and with which capabilities."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        path = page_path(request.query_params.get('path', ''))
        user = request.user
        decision = load_matrix().resolve(user.role_id, path, user.role_name)
        if not decision.granted:
            logger.info(f"Route guard denied {user.email} on {path}: {decision.reason}")

        return Response({
            'success': True,
            'data': {
                'path': path,
                'granted': decision.granted,
                'capabilities': capability_dict(decision.capabilities)
            }
        }, status=status.HTTP_200_OK)


# ==================== STUDENT VIEWS ====================
class StudentViewSet(viewsets.ModelViewSet):
    queryset = Student.objects.select_related('course', 'college')
    serializer_class = StudentSerializer
    permission_classes = GUARDED

    def get_queryset(self):
        queryset = super().get_queryset()
        search = self.request.query_params.get('search')
        course = self.request.query_params.get('course')
        college = self.request.query_params.get('college')
        if search:
            queryset = queryset.filter(
                Q(first_name__icontains=search) |
                Q(last_name__icontains=search) |
                Q(roll_number__icontains=search)
            )
        if course:
            queryset = queryset.filter(course_id=course)
        if college:
            queryset = queryset.filter(college_id=college)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return validation_error(serializer)

        if Student.objects.filter(roll_number=serializer.validated_data['roll_number']).exists():
            return error_response(ConflictError('Roll number already exists'))

        student = serializer.save(created_by=actor_name(request), created_on=timezone.now())
        record_audit(request, 'STUDENT_CREATE', 'Student', record_id=student.id,
                     new_values={'roll_number': student.roll_number, 'name': str(student)})
        return Response({
            'success': True,
            'message': 'Student created successfully',
            'data': StudentSerializer(student).data
        }, status=status.HTTP_201_CREATED)

    def perform_update(self, serializer):
        roll_number = serializer.validated_data.get('roll_number')
        if roll_number and Student.objects.filter(roll_number=roll_number).exclude(pk=serializer.instance.pk).exists():
            raise ConflictError('Roll number already exists')
        serializer.save(modify_by=actor_name(self.request), modify_on=timezone.now())

    def update(self, request, *args, **kwargs):
        try:
            return super().update(request, *args, **kwargs)
        except ConflictError as e:
            return error_response(e)

    def destroy(self, request, *args, **kwargs):
        try:
            records.delete_student(kwargs['pk'])
        except BackofficeError as e:
            return error_response(e)

        record_audit(request, 'STUDENT_DELETE', 'Student', record_id=int(kwargs['pk']), operation='DELETE')
        return Response({'success': True, 'message': 'Student deleted successfully'}, status=status.HTTP_200_OK)

    @action(detail=True, methods=['get', 'post'], url_path='academic-details', url_name='academic-details')
    def academic_details(self, request, pk=None):
        student = self.get_object()
        if request.method == 'GET':
            return Response({
                'success': True,
                'data': AcademicRecordSerializer(records.academic_details(student.id), many=True).data
            })

        serializer = AcademicRecordCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error(serializer)

        data = dict(serializer.validated_data)
        emis = data.pop('emis')
        academic = records.create_academic_details(student, data, emis)
        record_audit(request, 'STUDENT_CREATE', 'StudentAcademicDetails', record_id=academic.id,
                     new_values={'student': student.id, 'session_year': academic.session_year,
                                 'number_of_emi': academic.number_of_emi})
        return Response({
            'success': True,
            'message': 'Academic details added successfully',
            'data': AcademicRecordSerializer(records.academic_details(student.id).get(pk=academic.pk)).data
        }, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'], url_path='academic-details/latest', url_name='latest-academic-details')
    def latest_academic_details(self, request, pk=None):
        student = self.get_object()
        try:
            academic = records.latest_academic_details(student.id)
        except BackofficeError as e:
            return error_response(e)
        return Response({'success': True, 'data': AcademicRecordSerializer(academic).data})

    @action(detail=True, methods=['get'], url_path=r'academic-details/(?P<academic_id>[0-9]+)/emi',
            url_name='academic-emi')
    def academic_emi(self, request, pk=None, academic_id=None):
        student = self.get_object()
        try:
            emis = records.emi_schedule(student.id, academic_id)
        except BackofficeError as e:
            return error_response(e)
        return Response({'success': True, 'data': EMIDetailsSerializer(emis, many=True).data})


class StudentPaymentViewSet(viewsets.ModelViewSet):
    queryset = StudentPayment.objects.select_related('student', 'student__course', 'student__college', 'student_academic')
    serializer_class = StudentPaymentSerializer
    permission_classes = GUARDED
    parser_classes = [JSONParser, MultiPartParser, FormParser]
    http_method_names = ['get', 'post', 'delete', 'head', 'options']

    def get_queryset(self):
        queryset = super().get_queryset()
        student_id = self.request.query_params.get('student_id')
        if student_id:
            queryset = queryset.filter(student_id=student_id)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = StudentPaymentCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error(serializer)

        data = serializer.validated_data
        try:
            payment = records.create_student_payment(data, receipt=data.get('receipt'),
                                                     created_by=actor_name(request))
        except BackofficeError as e:
            return error_response(e)

        record_audit(request, 'PAYMENT_RECEIVED', 'StudentPayment', record_id=payment.id,
                     new_values={'student': payment.student_id, 'amount': payment.amount,
                                 'payment_mode': payment.payment_mode})
        return Response({
            'success': True,
            'message': 'Payment recorded successfully',
            'data': StudentPaymentSerializer(payment).data
        }, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        try:
            records.delete_student_payment(kwargs['pk'])
        except BackofficeError as e:
            return error_response(e)

        record_audit(request, 'PAYMENT_DELETE', 'StudentPayment', record_id=int(kwargs['pk']), operation='DELETE')
        return Response({'success': True, 'message': 'Payment deleted successfully'}, status=status.HTTP_200_OK)


# ==================== PAYMENT HANDOVER VIEWS ====================
class ApprovedByListView(APIView):
    permission_classes = GUARDED

    def get(self, request):
        return Response({'success': True, 'data': ledger.approved_by_staff()})


class PaymentsByStaffView(APIView):
    permission_classes = GUARDED

    def get(self, request, staff):
        payments = ledger.list_payments_by_staff(staff)
        return Response({'success': True, 'data': StaffPaymentSerializer(payments, many=True).data})


class PaymentHandoverView(APIView):
    permission_classes = GUARDED

    def get(self, request):
        handovers = ledger.list_handovers()
        payment_id = request.query_params.get('payment_id')
        if payment_id:
            handovers = handovers.filter(payment_id=payment_id)
        return Response({'success': True, 'data': PaymentHandoverSerializer(handovers, many=True).data})

    def post(self, request):
        serializer = HandoverCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error(serializer)

        data = serializer.validated_data
        entries = [ledger.HandoverEntry(p['id'], p['handover_amount']) for p in data['payments']]
        try:
            handovers = ledger.create_handovers(
                entries,
                handed_over_to=data['handed_over_to'],
                handover_date=data['handover_date'],
                remarks=data.get('remarks'),
                created_by=actor_name(request),
            )
        except BackofficeError as e:
            return error_response(e)

        for handover in handovers:
            record_audit(request, 'HANDOVER_CREATE', 'PaymentHandover', record_id=handover.id,
                         new_values={'payment': handover.payment_id, 'amount': handover.amount,
                                     'handed_over_to': handover.handed_over_to})

        return Response({
            'success': True,
            'message': 'Payment handover recorded successfully',
            'data': PaymentHandoverSerializer(handovers, many=True).data
        }, status=status.HTTP_201_CREATED)


class VerifyHandoverView(APIView):
    permission_classes = GUARDED

    def put(self, request, pk):
        serializer = VerifyHandoverSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error(serializer)

        verified_by = serializer.validated_data.get('verified_by') or actor_name(request)
        try:
            handover = ledger.verify_handover(pk, verified_by)
        except BackofficeError as e:
            return error_response(e)

        record_audit(request, 'HANDOVER_VERIFY', 'PaymentHandover', record_id=handover.id,
                     operation='UPDATE', changed_fields=['verified', 'verified_by', 'verified_on'])
        return Response({
            'success': True,
            'message': 'Handover verified successfully',
            'data': PaymentHandoverSerializer(handover).data
        }, status=status.HTTP_200_OK)


class CheckHandoverView(APIView):
    permission_classes = GUARDED

    def get(self, request, payment_id):
        return Response({'success': True, 'data': {'has_handover': ledger.has_handovers(payment_id)}})


class HandoverExportView(APIView):
    """Payment handover ledger as an Excel workbook"""
    permission_classes = GUARDED

    COLUMNS = [
        ('id', 'Handover ID'),
        ('payment', 'Payment ID'),
        ('student_name', 'Student'),
        ('roll_number', 'Roll Number'),
        ('course_name', 'Course'),
        ('college_name', 'College'),
        ('payment_amount', 'Payment Amount'),
        ('amount', 'Handover Amount'),
        ('received_by', 'Received By'),
        ('handed_over_to', 'Handed Over To'),
        ('handover_date', 'Handover Date'),
        ('verified_by', 'Verified By'),
        ('remarks', 'Remarks'),
    ]

    def get(self, request):
        try:
            rows = PaymentHandoverSerializer(ledger.list_handovers(), many=True).data
            df = pd.DataFrame(rows, columns=[key for key, _ in self.COLUMNS])
            df = df.rename(columns=dict(self.COLUMNS))

            output = BytesIO()
            with pd.ExcelWriter(output, engine='openpyxl') as writer:
                df.to_excel(writer, sheet_name='Handovers', index=False)

                # Auto-adjust column widths
                worksheet = writer.sheets['Handovers']
                for column in worksheet.columns:
                    max_length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column)
                    worksheet.column_dimensions[column[0].column_letter].width = min(max_length + 2, 30)

            output.seek(0)
            response = HttpResponse(
                output.getvalue(),
                content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
            )
            filename = f"payment_handovers_{timezone.now().strftime('%Y%m%d')}.xlsx"
            response['Content-Disposition'] = f'attachment; filename="{filename}"'
            return response

        except Exception as e:
            logger.error(f"Error exporting handovers: {str(e)}")
            return Response({
                'success': False,
                'error': 'Failed to export handovers'
            }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


# ==================== SUPPLIER VIEWS ====================
def check_supplier_name(name, exclude_id=None):
    suppliers = Supplier.objects.filter(name__iexact=name, is_deleted=False)
    if exclude_id is not None:
        suppliers = suppliers.exclude(pk=exclude_id)
    if suppliers.exists():
        raise ConflictError('A supplier with this name already exists')


class SupplierViewSet(viewsets.ModelViewSet):
    queryset = Supplier.objects.all()
    serializer_class = SupplierSerializer
    permission_classes = GUARDED

    def get_queryset(self):
        queryset = super().get_queryset()
        status_filter = self.request.query_params.get('status', 'active')
        if status_filter == 'active':
            queryset = queryset.filter(is_deleted=False)
        elif status_filter == 'inactive':
            queryset = queryset.filter(is_deleted=True)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return validation_error(serializer)

        try:
            check_supplier_name(serializer.validated_data['name'])
        except ConflictError as e:
            return error_response(e)

        supplier = serializer.save(created_by=actor_name(request), created_on=timezone.now())
        record_audit(request, 'SUPPLIER_CHANGE', 'Supplier', record_id=supplier.id,
                     new_values={'name': supplier.name})
        return Response({
            'success': True,
            'message': 'Supplier added successfully',
            'data': SupplierSerializer(supplier).data
        }, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        if not serializer.is_valid():
            return validation_error(serializer)

        try:
            if 'name' in serializer.validated_data:
                check_supplier_name(serializer.validated_data['name'], exclude_id=instance.pk)
        except ConflictError as e:
            return error_response(e)

        supplier = serializer.save(modify_by=actor_name(request), modify_on=timezone.now())
        record_audit(request, 'SUPPLIER_CHANGE', 'Supplier', record_id=supplier.id, operation='UPDATE',
                     changed_fields=sorted(serializer.validated_data))
        return Response({
            'success': True,
            'message': 'Supplier updated successfully',
            'data': SupplierSerializer(supplier).data
        }, status=status.HTTP_200_OK)

    def destroy(self, request, *args, **kwargs):
        try:
            records.delete_supplier(kwargs['pk'])
        except BackofficeError as e:
            return error_response(e)

        record_audit(request, 'SUPPLIER_CHANGE', 'Supplier', record_id=int(kwargs['pk']), operation='DELETE')
        return Response({'success': True, 'message': 'Supplier deleted successfully'}, status=status.HTTP_200_OK)

    @action(detail=True, methods=['get'])
    def summary(self, request, pk=None):
        try:
            supplier = Supplier.objects.get(pk=pk)
        except (Supplier.DoesNotExist, ValueError):
            return error_response(NotFoundError('Supplier not found'))

        return Response({
            'success': True,
            'data': ledger.supplier_summary(supplier, request.query_params.get('status'))
        })

    @action(detail=True, methods=['get', 'post'], parser_classes=[MultiPartParser, FormParser])
    def documents(self, request, pk=None):
        supplier = self.get_object()
        if request.method == 'GET':
            return Response({
                'success': True,
                'data': SupplierDocumentSerializer(supplier.documents.order_by('-uploaded_on', '-id'), many=True).data
            })

        files = request.FILES.getlist('files')
        if not files:
            return Response({
                'success': False,
                'error': 'Validation failed',
                'errors': {'files': ['At least one file is required']}
            }, status=status.HTTP_400_BAD_REQUEST)

        documents = records.add_supplier_documents(supplier, files)
        record_audit(request, 'SUPPLIER_CHANGE', 'SupplierDocument', record_id=supplier.id, operation='UPDATE',
                     new_values={'documents': [document.public_id for document in documents]})
        return Response({
            'success': True,
            'message': 'Documents uploaded successfully',
            'data': SupplierDocumentSerializer(documents, many=True).data
        }, status=status.HTTP_201_CREATED)


class SupplierExpenseViewSet(viewsets.ModelViewSet):
    serializer_class = SupplierExpenseSerializer
    permission_classes = GUARDED
    http_method_names = ['get', 'post', 'put', 'patch', 'head', 'options']

    def get_queryset(self):
        return ledger.expenses_with_totals(
            supplier_id=self.request.query_params.get('supplier_id') or None,
            status=self.request.query_params.get('status'),
        )

    def perform_create(self, serializer):
        expense = serializer.save(created_by=actor_name(self.request), created_on=timezone.now())
        record_audit(self.request, 'EXPENSE_CHANGE', 'SupplierExpense', record_id=expense.id,
                     new_values={'supplier': expense.supplier_id, 'reason': expense.reason,
                                 'amount': expense.amount})

    def update(self, request, *args, **kwargs):
        serializer = SupplierExpenseUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error(serializer)

        try:
            expense = ledger.update_expense(
                kwargs['pk'],
                reason=serializer.validated_data.get('reason'),
                amount=serializer.validated_data.get('amount'),
                modify_by=actor_name(request),
            )
        except BackofficeError as e:
            return error_response(e)

        record_audit(request, 'EXPENSE_CHANGE', 'SupplierExpense', record_id=expense.id, operation='UPDATE',
                     changed_fields=sorted(serializer.validated_data))
        expense = self.get_queryset().get(pk=expense.pk)
        return Response({
            'success': True,
            'message': 'Expense updated successfully',
            'data': SupplierExpenseSerializer(expense).data
        }, status=status.HTTP_200_OK)

    @action(detail=True, methods=['put'], url_path='toggle-delete')
    def toggle_delete(self, request, pk=None):
        try:
            expense = ledger.toggle_expense_deleted(pk, modify_by=actor_name(request))
        except BackofficeError as e:
            return error_response(e)

        record_audit(request, 'EXPENSE_CHANGE', 'SupplierExpense', record_id=expense.id, operation='UPDATE',
                     changed_fields=['is_deleted'], new_values={'is_deleted': expense.is_deleted})
        return Response({
            'success': True,
            'message': 'Expense deactivated' if expense.is_deleted else 'Expense restored',
            'data': {'id': expense.id, 'is_deleted': expense.is_deleted}
        }, status=status.HTTP_200_OK)

    @action(detail=True, methods=['get'])
    def payments(self, request, pk=None):
        expense = self.get_object()
        payments = expense.payments.select_related('supplier', 'expense')
        return Response({
            'success': True,
            'data': {
                'expense': SupplierExpenseSerializer(expense).data,
                'payments': ExpensePaymentSerializer(payments, many=True).data
            }
        })


class ExpensePaymentViewSet(viewsets.ModelViewSet):
    queryset = ExpensePayment.objects.select_related('supplier', 'expense')
    serializer_class = ExpensePaymentSerializer
    permission_classes = GUARDED
    parser_classes = [JSONParser, MultiPartParser, FormParser]
    http_method_names = ['get', 'post', 'head', 'options']

    def get_queryset(self):
        queryset = super().get_queryset()
        expense_id = self.request.query_params.get('expense_id')
        supplier_id = self.request.query_params.get('supplier_id')
        if expense_id:
            queryset = queryset.filter(expense_id=expense_id)
        if supplier_id:
            queryset = queryset.filter(supplier_id=supplier_id)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = ExpensePaymentCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error(serializer)

        data = serializer.validated_data
        image = data.get('payment_image')
        uploaded = blob_store.upload(image, 'ExpensePayment') if image else None
        try:
            payment = ledger.record_expense_payment(
                data['expense'],
                data['paid_amount'],
                data['payment_mode'],
                data['payment_date'],
                transaction_id=data.get('transaction_id') or '',
                comment=data.get('comment'),
                is_approved=data.get('is_approved', False),
                approve_by=data.get('approve_by'),
                payment_image=uploaded['url'] if uploaded else None,
                payment_public_id=uploaded['public_id'] if uploaded else None,
                created_by=actor_name(request),
            )
        except BackofficeError as e:
            if uploaded:
                blob_store.delete(uploaded['public_id'])
            return error_response(e)

        record_audit(request, 'EXPENSE_PAYMENT', 'ExpensePayment', record_id=payment.id,
                     new_values={'expense': payment.expense_id, 'paid_amount': payment.paid_amount,
                                 'payment_mode': payment.payment_mode})
        return Response({
            'success': True,
            'message': 'Payment added successfully',
            'data': ExpensePaymentSerializer(payment).data
        }, status=status.HTTP_201_CREATED)
