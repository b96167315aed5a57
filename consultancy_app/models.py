# models.py
from decimal import Decimal
from django.db import models
from django.db.models import F, Q
from django.contrib.auth.models import AbstractUser
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MinValueValidator, RegexValidator
from django.utils import timezone
import uuid


# ==================== ROLES & PAGE PERMISSIONS ====================
class RoleName(models.TextChoices):
    ADMINISTRATOR = 'Administrator', 'Administrator'
    ADMIN = 'Admin', 'Admin'
    REGISTERED = 'Registered', 'Registered'


class Role(models.Model):
    name = models.CharField(max_length=50, unique=True, choices=RoleName.choices)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return self.name


class Page(models.Model):
    """A navigable frontend route that is gated by the permission matrix."""
    page_name = models.CharField(max_length=100)
    page_url = models.CharField(max_length=255, unique=True)
    created_by = models.CharField(max_length=100, blank=True, null=True)
    created_on = models.DateTimeField(default=timezone.now)
    modify_by = models.CharField(max_length=100, blank=True, null=True)
    modify_on = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ['page_name']

    def __str__(self):
        return f"{self.page_name} ({self.page_url})"


class Permission(models.Model):
    role = models.ForeignKey(Role, on_delete=models.CASCADE, related_name='permissions')
    # Permission rows go with their page
    page = models.ForeignKey(Page, on_delete=models.CASCADE, related_name='permissions')
    can_create = models.BooleanField(default=False)
    can_read = models.BooleanField(default=False)
    can_update = models.BooleanField(default=False)
    can_delete = models.BooleanField(default=False)
    created_by = models.CharField(max_length=100, blank=True, null=True)
    created_on = models.DateTimeField(default=timezone.now)
    modify_by = models.CharField(max_length=100, blank=True, null=True)
    modify_on = models.DateTimeField(blank=True, null=True)

    class Meta:
        unique_together = ['role', 'page']
        indexes = [
            models.Index(fields=['role'], name='idx_permission_role'),
        ]

    def __str__(self):
        return f"{self.role} - {self.page.page_url}"


# ==================== USER MANAGEMENT ====================
class User(AbstractUser):
    name = models.CharField(max_length=150)
    mobile_no = models.CharField(max_length=20, blank=True, null=True)
    role = models.ForeignKey(Role, on_delete=models.PROTECT, related_name='users', null=True, blank=True)
    created_by = models.CharField(max_length=100, blank=True, null=True)
    modify_by = models.CharField(max_length=100, blank=True, null=True)
    modify_on = models.DateTimeField(blank=True, null=True)
    email = models.EmailField(unique=True)
    USERNAME_FIELD = 'email'  # authenticate() by email
    REQUIRED_FIELDS = ['username']

    class Meta:
        indexes = [
            models.Index(fields=['role'], name='idx_user_role'),
            models.Index(fields=['is_active'], name='idx_active_users'),
        ]

    @property
    def role_name(self):
        return self.role.name if self.role_id else None


class UserSession(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='sessions')
    access_jti = models.CharField(max_length=64)
    refresh_token = models.TextField()
    client_ip = models.GenericIPAddressField(blank=True, null=True)
    user_agent = models.TextField(blank=True, null=True)
    login_time = models.DateTimeField(auto_now_add=True)
    last_activity = models.DateTimeField(auto_now=True)
    expires_at = models.DateTimeField()
    revoked = models.BooleanField(default=False)

    class Meta:
        indexes = [
            models.Index(fields=['user'], name='idx_session_user'),
            models.Index(fields=['access_jti'], name='idx_session_access_jti'),
            models.Index(fields=['expires_at'], name='idx_session_expires'),
        ]


# ==================== STUDENTS ====================
class College(models.Model):
    name = models.CharField(max_length=200, unique=True)
    city = models.CharField(max_length=100, blank=True, null=True)

    def __str__(self):
        return self.name


class Course(models.Model):
    name = models.CharField(max_length=200, unique=True)
    duration_years = models.PositiveSmallIntegerField(default=1)

    def __str__(self):
        return self.name


class Student(models.Model):
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100, blank=True, default='')
    roll_number = models.CharField(max_length=50, unique=True)
    father_name = models.CharField(max_length=150, blank=True, null=True)
    email = models.EmailField(blank=True, null=True)
    mobile_number = models.CharField(max_length=20, blank=True, null=True)
    course = models.ForeignKey(Course, on_delete=models.PROTECT, related_name='students', null=True, blank=True)
    college = models.ForeignKey(College, on_delete=models.PROTECT, related_name='students', null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_by = models.CharField(max_length=100, blank=True, null=True)
    created_on = models.DateTimeField(default=timezone.now)
    modify_by = models.CharField(max_length=100, blank=True, null=True)
    modify_on = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ['-created_on']
        indexes = [
            models.Index(fields=['roll_number'], name='idx_student_roll_number'),
        ]

    def __str__(self):
        return f"{self.first_name} {self.last_name}".strip()


class StudentDocument(models.Model):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='documents')
    document_type = models.CharField(max_length=100)
    document_url = models.URLField(max_length=500)
    public_id = models.CharField(max_length=255, blank=True, null=True)
    uploaded_on = models.DateTimeField(default=timezone.now)


class StudentAcademicDetails(models.Model):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='academic_details')
    session_year = models.CharField(max_length=20)
    course_year = models.CharField(max_length=20, blank=True, null=True)
    payment_mode = models.CharField(max_length=20, blank=True, null=True)
    admin_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    fees_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    number_of_emi = models.PositiveSmallIntegerField(default=0)
    created_on = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name_plural = 'Student academic details'


class EMIDetails(models.Model):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='emi_details')
    student_academic = models.ForeignKey(StudentAcademicDetails, on_delete=models.CASCADE,
                                         related_name='emi_details', null=True, blank=True)
    emi_number = models.PositiveSmallIntegerField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    due_date = models.DateField()

    class Meta:
        ordering = ['emi_number']


# ==================== STUDENT PAYMENTS & HANDOVERS ====================
class StudentPayment(models.Model):
    PAYMENT_MODE_CHOICES = [
        ('cash', 'Cash'),
        ('check', 'Check'),
        ('bank transfer', 'Bank Transfer'),
        ('upi', 'UPI'),
    ]

    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name='payments')
    student_academic = models.ForeignKey(StudentAcademicDetails, on_delete=models.SET_NULL,
                                         related_name='payments', null=True, blank=True)
    payment_mode = models.CharField(max_length=20, choices=PAYMENT_MODE_CHOICES)
    transaction_number = models.CharField(max_length=100, unique=True, blank=True, null=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2,
                                 validators=[MinValueValidator(Decimal('0.01'))])
    # running total already handed over to administration
    handover_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    received_date = models.DateField()
    approved_by = models.CharField(max_length=100, blank=True, null=True)
    amount_type = models.CharField(max_length=50, blank=True, null=True)
    receipt_url = models.CharField(max_length=500, blank=True, null=True)
    receipt_public_id = models.CharField(max_length=255, blank=True, null=True)
    course_year = models.CharField(max_length=20, blank=True, null=True)
    session_year = models.CharField(max_length=20, blank=True, null=True)
    created_by = models.CharField(max_length=100, blank=True, null=True)
    created_on = models.DateTimeField(default=timezone.now)
    modify_by = models.CharField(max_length=100, blank=True, null=True)
    modify_on = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ['-received_date', '-id']
        indexes = [
            models.Index(fields=['approved_by'], name='idx_payment_approved_by'),
            models.Index(fields=['student'], name='idx_payment_student'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(handover_amount__gte=0) & Q(handover_amount__lte=F('amount')),
                name='payment_handover_within_amount',
            ),
        ]

    def __str__(self):
        return f"Payment {self.id} - {self.amount}"

    @property
    def remaining_amount(self):
        return max(self.amount - self.handover_amount, Decimal('0'))


class PaymentHandover(models.Model):
    """One discrete transfer of collected cash from staff to administration."""
    payment = models.ForeignKey(StudentPayment, on_delete=models.PROTECT, related_name='handovers')
    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name='handovers')
    amount = models.DecimalField(max_digits=12, decimal_places=2,
                                 validators=[MinValueValidator(Decimal('0.01'))])
    received_by = models.CharField(max_length=100, blank=True, null=True)
    handed_over_to = models.CharField(max_length=100)
    handover_date = models.DateField()
    remarks = models.TextField(blank=True, null=True)
    verified = models.BooleanField(default=False)
    verified_by = models.CharField(max_length=100, blank=True, null=True)
    verified_on = models.DateTimeField(blank=True, null=True)
    created_by = models.CharField(max_length=100, blank=True, null=True)
    created_on = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_on', '-id']
        indexes = [
            models.Index(fields=['payment'], name='idx_handover_payment'),
        ]

    def __str__(self):
        return f"Handover {self.id} of payment {self.payment_id}: {self.amount}"


# ==================== SUPPLIERS & EXPENSES ====================
class Supplier(models.Model):
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True, null=True)
    phone_no = models.CharField(
        max_length=15, blank=True, null=True,
        validators=[RegexValidator(r'^[0-9]{10,15}$', 'Phone number must be 10 to 15 digits')]
    )
    address = models.TextField(blank=True, null=True)
    bank_name = models.CharField(max_length=200, blank=True, null=True)
    account_no = models.CharField(max_length=50, blank=True, null=True)
    ifsc_code = models.CharField(
        max_length=11, blank=True, null=True,
        validators=[RegexValidator(r'^[A-Za-z]{4}0[A-Za-z0-9]{6}$', 'Invalid IFSC code')]
    )
    comment = models.TextField(blank=True, null=True)
    is_deleted = models.BooleanField(default=False)
    created_by = models.CharField(max_length=100, blank=True, null=True)
    created_on = models.DateTimeField(default=timezone.now)
    modify_by = models.CharField(max_length=100, blank=True, null=True)
    modify_on = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class SupplierDocument(models.Model):
    supplier = models.ForeignKey(Supplier, on_delete=models.CASCADE, related_name='documents')
    document_url = models.CharField(max_length=500)
    public_id = models.CharField(max_length=255, blank=True, null=True)
    uploaded_on = models.DateTimeField(default=timezone.now)


class SupplierExpense(models.Model):
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name='expenses')
    reason = models.CharField(max_length=255)
    amount = models.DecimalField(max_digits=12, decimal_places=2,
                                 validators=[MinValueValidator(Decimal('0.01'))])
    is_deleted = models.BooleanField(default=False)
    created_by = models.CharField(max_length=100, blank=True, null=True)
    created_on = models.DateTimeField(default=timezone.now)
    modify_by = models.CharField(max_length=100, blank=True, null=True)
    modify_on = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ['-created_on', '-id']

    def __str__(self):
        return f"{self.supplier.name}: {self.reason}"


class ExpensePayment(models.Model):
    PAYMENT_MODE_CHOICES = [
        ('Cash', 'Cash'),
        ('Cheque', 'Cheque'),
        ('Bank Transfer', 'Bank Transfer'),
        ('UPI', 'UPI'),
    ]

    expense = models.ForeignKey(SupplierExpense, on_delete=models.PROTECT, related_name='payments')
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name='expense_payments')
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2,
                                      validators=[MinValueValidator(Decimal('0.01'))])
    payment_mode = models.CharField(max_length=20, choices=PAYMENT_MODE_CHOICES)
    transaction_id = models.CharField(max_length=100, blank=True, default='')
    payment_date = models.DateField()
    is_approved = models.BooleanField(default=False)
    approve_by = models.CharField(max_length=100, blank=True, null=True)
    comment = models.TextField(blank=True, null=True)
    payment_image = models.CharField(max_length=500, blank=True, null=True)
    payment_public_id = models.CharField(max_length=255, blank=True, null=True)
    created_by = models.CharField(max_length=100, blank=True, null=True)
    created_on = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-payment_date', '-id']
        indexes = [
            models.Index(fields=['expense'], name='idx_expense_payment_expense'),
        ]


# ==================== AUDIT & LOGGING ====================
class AuditLog(models.Model):
    EVENT_TYPE_CHOICES = [
        ('USER_LOGIN', 'User Login'),
        ('USER_LOGOUT', 'User Logout'),
        ('USER_CREATE', 'User Create'),
        ('USER_UPDATE', 'User Update'),
        ('USER_DELETE', 'User Delete'),
        ('PAGE_CHANGE', 'Page Change'),
        ('PERMISSION_SAVE', 'Permission Save'),
        ('STUDENT_CREATE', 'Student Create'),
        ('STUDENT_DELETE', 'Student Delete'),
        ('PAYMENT_RECEIVED', 'Payment Received'),
        ('PAYMENT_DELETE', 'Payment Delete'),
        ('HANDOVER_CREATE', 'Handover Create'),
        ('HANDOVER_VERIFY', 'Handover Verify'),
        ('SUPPLIER_CHANGE', 'Supplier Change'),
        ('EXPENSE_CHANGE', 'Expense Change'),
        ('EXPENSE_PAYMENT', 'Expense Payment'),
    ]
    OPERATION_CHOICES = [
        ('INSERT', 'Insert'),
        ('UPDATE', 'Update'),
        ('DELETE', 'Delete'),
        ('SELECT', 'Select'),
    ]

    event_time = models.DateTimeField(auto_now_add=True)
    event_type = models.CharField(max_length=50, choices=EVENT_TYPE_CHOICES)

    # Who
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    username = models.CharField(max_length=150, blank=True, null=True)
    user_role = models.CharField(max_length=50, blank=True, null=True)

    # What
    table_name = models.CharField(max_length=50)
    record_id = models.IntegerField(blank=True, null=True)
    operation = models.CharField(max_length=20, choices=OPERATION_CHOICES, blank=True, null=True)

    # Changes
    old_values = models.JSONField(blank=True, null=True, encoder=DjangoJSONEncoder)
    new_values = models.JSONField(blank=True, null=True, encoder=DjangoJSONEncoder)
    changed_fields = models.JSONField(default=list, blank=True)

    # Context
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    user_agent = models.TextField(blank=True, null=True)
    endpoint = models.CharField(max_length=255, blank=True, null=True)
    http_method = models.CharField(max_length=10, blank=True, null=True)
    request_id = models.UUIDField(blank=True, null=True)

    class Meta:
        indexes = [
            models.Index(fields=['event_time'], name='idx_audit_event_time'),
            models.Index(fields=['event_type'], name='idx_audit_event_type'),
            models.Index(fields=['table_name', 'record_id'], name='idx_audit_table_record'),
        ]

    def __str__(self):
        return f"{self.event_type} by {self.username} at {self.event_time}"
