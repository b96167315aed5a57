# serializers.py
from decimal import Decimal
from rest_framework import serializers
from .models import *
from .permission_engine import FLAGS, STAGE_ACTIONS, page_path


# ==================== USERS & AUTH ====================
class UserSerializer(serializers.ModelSerializer):
    role_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'name', 'email', 'mobile_no', 'role', 'role_name',
            'is_active', 'created_by', 'date_joined', 'modify_by', 'modify_on', 'last_login'
        ]
        read_only_fields = fields


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=6)

    class Meta:
        model = User
        fields = ['name', 'email', 'mobile_no', 'password', 'role']
        # duplicate email is reported as a conflict by the view
        extra_kwargs = {'email': {'validators': []}}

    def validate_email(self, value):
        return value.strip().lower()

    def create(self, validated_data):
        password = validated_data.pop('password')
        user = User(username=validated_data['email'], **validated_data)
        user.set_password(password)
        user.save()
        return user


class UserUpdateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, required=False, allow_blank=True)

    class Meta:
        model = User
        fields = ['name', 'email', 'mobile_no', 'role', 'is_active', 'password']
        extra_kwargs = {'email': {'validators': []}}

    def validate_email(self, value):
        return value.strip().lower()

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if 'email' in validated_data:
            instance.username = validated_data['email']
        if password:
            instance.set_password(password)
        instance.save()
        return instance


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class LogoutSerializer(serializers.Serializer):
    refresh_token = serializers.CharField()


class RefreshTokenSerializer(serializers.Serializer):
    refresh_token = serializers.CharField()


class ChangePasswordSerializer(serializers.Serializer):
    old_password = serializers.CharField()
    new_password = serializers.CharField(min_length=6)
    confirm_password = serializers.CharField()


class VerifyPasswordSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    password = serializers.CharField()


class UserSessionSerializer(serializers.ModelSerializer):
    class Meta:
        model = UserSession
        fields = ['id', 'user', 'client_ip', 'user_agent', 'login_time', 'last_activity', 'expires_at', 'revoked']
        read_only_fields = fields


# ==================== ROLES, PAGES & PERMISSIONS ====================
class RoleSerializer(serializers.ModelSerializer):
    class Meta:
        model = Role
        fields = ['id', 'name']


class PageSerializer(serializers.ModelSerializer):
    # uniqueness is checked on the normalised url below
    page_url = serializers.CharField(max_length=255)

    class Meta:
        model = Page
        fields = ['id', 'page_name', 'page_url', 'created_by', 'created_on', 'modify_by', 'modify_on']
        read_only_fields = ['created_by', 'created_on', 'modify_by', 'modify_on']

    def validate_page_url(self, value):
        url = page_path(value)
        if url == '/':
            raise serializers.ValidationError('Page URL is required')
        pages = Page.objects.filter(page_url=url)
        if self.instance is not None:
            pages = pages.exclude(pk=self.instance.pk)
        if pages.exists():
            raise serializers.ValidationError('A page with this URL already exists')
        return url


class PermissionSerializer(serializers.ModelSerializer):
    role_name = serializers.CharField(source='role.name', read_only=True)
    page_url = serializers.CharField(source='page.page_url', read_only=True)

    class Meta:
        model = Permission
        fields = [
            'id', 'role', 'role_name', 'page', 'page_url',
            'can_create', 'can_read', 'can_update', 'can_delete',
            'created_by', 'created_on', 'modify_by', 'modify_on'
        ]
        read_only_fields = fields


class PermissionEntrySerializer(serializers.Serializer):
    role = serializers.PrimaryKeyRelatedField(queryset=Role.objects.all())
    page = serializers.PrimaryKeyRelatedField(queryset=Page.objects.all())
    can_create = serializers.BooleanField(default=False)
    can_read = serializers.BooleanField(default=False)
    can_update = serializers.BooleanField(default=False)
    can_delete = serializers.BooleanField(default=False)


class PermissionSaveSerializer(serializers.Serializer):
    entries = PermissionEntrySerializer(many=True, allow_empty=False)


class StageEditSerializer(serializers.Serializer):
    role = serializers.PrimaryKeyRelatedField(queryset=Role.objects.all())
    page = serializers.PrimaryKeyRelatedField(queryset=Page.objects.all())
    action = serializers.ChoiceField(choices=STAGE_ACTIONS)


class PermissionStageSerializer(serializers.Serializer):
    edits = StageEditSerializer(many=True, allow_empty=False)


def capability_dict(capabilities):
    return {flag: getattr(capabilities, flag) for flag in FLAGS}


# ==================== STUDENTS ====================
class StudentSerializer(serializers.ModelSerializer):
    course_name = serializers.CharField(source='course.name', read_only=True, default=None)
    college_name = serializers.CharField(source='college.name', read_only=True, default=None)

    class Meta:
        model = Student
        fields = [
            'id', 'first_name', 'last_name', 'roll_number', 'father_name', 'email',
            'mobile_number', 'course', 'course_name', 'college', 'college_name',
            'is_active', 'created_by', 'created_on', 'modify_by', 'modify_on'
        ]
        read_only_fields = ['created_by', 'created_on', 'modify_by', 'modify_on']
        extra_kwargs = {'roll_number': {'validators': []}}


class StudentAcademicDetailsSerializer(serializers.ModelSerializer):
    class Meta:
        model = StudentAcademicDetails
        fields = [
            'id', 'student', 'session_year', 'course_year', 'payment_mode',
            'admin_amount', 'fees_amount', 'number_of_emi'
        ]


class EMIDetailsSerializer(serializers.ModelSerializer):
    class Meta:
        model = EMIDetails
        fields = ['id', 'student', 'student_academic', 'emi_number', 'amount', 'due_date']
        read_only_fields = fields


class AcademicRecordSerializer(StudentAcademicDetailsSerializer):
    emi_details = EMIDetailsSerializer(many=True, read_only=True)

    class Meta(StudentAcademicDetailsSerializer.Meta):
        fields = StudentAcademicDetailsSerializer.Meta.fields + ['created_on', 'emi_details']
        read_only_fields = fields


class EMIEntrySerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    due_date = serializers.DateField()


class AcademicRecordCreateSerializer(serializers.Serializer):
    session_year = serializers.CharField(max_length=20)
    course_year = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    payment_mode = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    admin_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), default=Decimal('0'))
    fees_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), default=Decimal('0'))
    emis = EMIEntrySerializer(many=True, default=list)


class StudentPaymentSerializer(serializers.ModelSerializer):
    student_name = serializers.CharField(source='student.__str__', read_only=True)
    roll_number = serializers.CharField(source='student.roll_number', read_only=True)
    course_name = serializers.CharField(source='student.course.name', read_only=True, default=None)
    college_name = serializers.CharField(source='student.college.name', read_only=True, default=None)
    remaining_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    academic = StudentAcademicDetailsSerializer(source='student_academic', read_only=True)

    class Meta:
        model = StudentPayment
        fields = [
            'id', 'student', 'student_name', 'roll_number', 'course_name', 'college_name',
            'student_academic', 'academic', 'payment_mode', 'transaction_number', 'amount',
            'handover_amount', 'remaining_amount', 'received_date', 'approved_by',
            'amount_type', 'receipt_url', 'course_year', 'session_year',
            'created_by', 'created_on', 'modify_by', 'modify_on'
        ]
        read_only_fields = fields


class StudentPaymentCreateSerializer(serializers.Serializer):
    student = serializers.PrimaryKeyRelatedField(queryset=Student.objects.all())
    student_academic = serializers.PrimaryKeyRelatedField(
        queryset=StudentAcademicDetails.objects.all(), required=False, allow_null=True
    )
    payment_mode = serializers.CharField(max_length=20)
    transaction_number = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    received_date = serializers.DateField()
    approved_by = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    amount_type = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    course_year = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    session_year = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    receipt = serializers.FileField(required=False, allow_null=True)

    def validate_payment_mode(self, value):
        value = value.strip().lower()
        if value not in dict(StudentPayment.PAYMENT_MODE_CHOICES):
            raise serializers.ValidationError('Invalid payment mode')
        return value

    def validate(self, data):
        academic = data.get('student_academic')
        if academic is not None and academic.student_id != data['student'].id:
            raise serializers.ValidationError({'student_academic': 'Academic record belongs to another student'})
        return data


# ==================== HANDOVERS ====================
class StaffPaymentSerializer(StudentPaymentSerializer):
    remaining = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta(StudentPaymentSerializer.Meta):
        fields = StudentPaymentSerializer.Meta.fields + ['remaining']
        read_only_fields = fields


class HandoverEntrySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    # parsed by the ledger so the offending payment id is reported
    handover_amount = serializers.CharField()


class HandoverCreateSerializer(serializers.Serializer):
    payments = HandoverEntrySerializer(many=True, allow_empty=False)
    handed_over_to = serializers.CharField(max_length=100)
    handover_date = serializers.DateField()
    remarks = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class PaymentHandoverSerializer(serializers.ModelSerializer):
    student_name = serializers.CharField(source='student.__str__', read_only=True)
    roll_number = serializers.CharField(source='student.roll_number', read_only=True)
    course_name = serializers.CharField(source='student.course.name', read_only=True, default=None)
    college_name = serializers.CharField(source='student.college.name', read_only=True, default=None)
    payment_amount = serializers.DecimalField(source='payment.amount', max_digits=12, decimal_places=2, read_only=True)
    payment_mode = serializers.CharField(source='payment.payment_mode', read_only=True)
    received_date = serializers.DateField(source='payment.received_date', read_only=True)
    amount_type = serializers.CharField(source='payment.amount_type', read_only=True, default=None)

    class Meta:
        model = PaymentHandover
        fields = [
            'id', 'payment', 'student', 'student_name', 'roll_number', 'course_name',
            'college_name', 'payment_amount', 'payment_mode', 'received_date', 'amount_type',
            'amount', 'received_by', 'handed_over_to', 'handover_date', 'remarks',
            'verified', 'verified_by', 'verified_on', 'created_by', 'created_on'
        ]
        read_only_fields = fields


class VerifyHandoverSerializer(serializers.Serializer):
    verified_by = serializers.CharField(max_length=100, required=False, allow_blank=True)


# ==================== SUPPLIERS & EXPENSES ====================
class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = [
            'id', 'name', 'email', 'phone_no', 'address', 'bank_name', 'account_no',
            'ifsc_code', 'comment', 'is_deleted', 'created_by', 'created_on', 'modify_by', 'modify_on'
        ]
        read_only_fields = ['is_deleted', 'created_by', 'created_on', 'modify_by', 'modify_on']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Supplier name is required')
        return value

    def validate_ifsc_code(self, value):
        return value.upper() if value else value


class SupplierDocumentSerializer(serializers.ModelSerializer):
    class Meta:
        model = SupplierDocument
        fields = ['id', 'supplier', 'document_url', 'public_id', 'uploaded_on']
        read_only_fields = fields


class SupplierExpenseSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    total_paid = serializers.SerializerMethodField()
    remaining = serializers.SerializerMethodField()

    class Meta:
        model = SupplierExpense
        fields = [
            'id', 'supplier', 'supplier_name', 'reason', 'amount', 'total_paid', 'remaining',
            'is_deleted', 'created_by', 'created_on', 'modify_by', 'modify_on'
        ]
        read_only_fields = ['is_deleted', 'created_by', 'created_on', 'modify_by', 'modify_on']

    def get_total_paid(self, obj):
        return getattr(obj, 'total_paid', None)

    def get_remaining(self, obj):
        return getattr(obj, 'remaining', None)

    def validate_supplier(self, value):
        if value.is_deleted:
            raise serializers.ValidationError('Supplier is inactive')
        return value


class SupplierExpenseUpdateSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False)
    amount = serializers.CharField(required=False)


class ExpensePaymentSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    expense_reason = serializers.CharField(source='expense.reason', read_only=True)

    class Meta:
        model = ExpensePayment
        fields = [
            'id', 'expense', 'expense_reason', 'supplier', 'supplier_name', 'paid_amount',
            'payment_mode', 'transaction_id', 'payment_date', 'is_approved', 'approve_by',
            'comment', 'payment_image', 'created_by', 'created_on'
        ]
        read_only_fields = fields


class ExpensePaymentCreateSerializer(serializers.Serializer):
    expense = serializers.IntegerField()
    paid_amount = serializers.CharField()
    payment_mode = serializers.ChoiceField(choices=ExpensePayment.PAYMENT_MODE_CHOICES)
    transaction_id = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    payment_date = serializers.DateField()
    is_approved = serializers.BooleanField(default=False)
    approve_by = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    comment = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    payment_image = serializers.FileField(required=False, allow_null=True)

    def validate(self, data):
        if data['payment_mode'] != 'Cash' and not (data.get('transaction_id') or '').strip():
            raise serializers.ValidationError({'transaction_id': 'Transaction ID is required for non-cash payments'})
        return data
