import decimal
import uuid

import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.serializers.json
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='Role',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(choices=[('Administrator', 'Administrator'), ('Admin', 'Admin'), ('Registered', 'Registered')], max_length=50, unique=True)),
            ],
            options={
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='Page',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('page_name', models.CharField(max_length=100)),
                ('page_url', models.CharField(max_length=255, unique=True)),
                ('created_by', models.CharField(blank=True, max_length=100, null=True)),
                ('created_on', models.DateTimeField(default=django.utils.timezone.now)),
                ('modify_by', models.CharField(blank=True, max_length=100, null=True)),
                ('modify_on', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'ordering': ['page_name'],
            },
        ),
        migrations.CreateModel(
            name='College',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, unique=True)),
                ('city', models.CharField(blank=True, max_length=100, null=True)),
            ],
        ),
        migrations.CreateModel(
            name='Course',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, unique=True)),
                ('duration_years', models.PositiveSmallIntegerField(default=1)),
            ],
        ),
        migrations.CreateModel(
            name='Supplier',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('email', models.EmailField(blank=True, max_length=254, null=True)),
                ('phone_no', models.CharField(blank=True, max_length=15, null=True, validators=[django.core.validators.RegexValidator('^[0-9]{10,15}$', 'Phone number must be 10 to 15 digits')])),
                ('address', models.TextField(blank=True, null=True)),
                ('bank_name', models.CharField(blank=True, max_length=200, null=True)),
                ('account_no', models.CharField(blank=True, max_length=50, null=True)),
                ('ifsc_code', models.CharField(blank=True, max_length=11, null=True, validators=[django.core.validators.RegexValidator('^[A-Za-z]{4}0[A-Za-z0-9]{6}$', 'Invalid IFSC code')])),
                ('comment', models.TextField(blank=True, null=True)),
                ('is_deleted', models.BooleanField(default=False)),
                ('created_by', models.CharField(blank=True, max_length=100, null=True)),
                ('created_on', models.DateTimeField(default=django.utils.timezone.now)),
                ('modify_by', models.CharField(blank=True, max_length=100, null=True)),
                ('modify_on', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('name', models.CharField(max_length=150)),
                ('mobile_no', models.CharField(blank=True, max_length=20, null=True)),
                ('created_by', models.CharField(blank=True, max_length=100, null=True)),
                ('modify_by', models.CharField(blank=True, max_length=100, null=True)),
                ('modify_on', models.DateTimeField(blank=True, null=True)),
                ('email', models.EmailField(max_length=254, unique=True)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
                ('role', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='users', to='consultancy_app.role')),
            ],
            options={
                'indexes': [models.Index(fields=['role'], name='idx_user_role'), models.Index(fields=['is_active'], name='idx_active_users')],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Permission',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('can_create', models.BooleanField(default=False)),
                ('can_read', models.BooleanField(default=False)),
                ('can_update', models.BooleanField(default=False)),
                ('can_delete', models.BooleanField(default=False)),
                ('created_by', models.CharField(blank=True, max_length=100, null=True)),
                ('created_on', models.DateTimeField(default=django.utils.timezone.now)),
                ('modify_by', models.CharField(blank=True, max_length=100, null=True)),
                ('modify_on', models.DateTimeField(blank=True, null=True)),
                ('page', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='permissions', to='consultancy_app.page')),
                ('role', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='permissions', to='consultancy_app.role')),
            ],
            options={
                'indexes': [models.Index(fields=['role'], name='idx_permission_role')],
                'unique_together': {('role', 'page')},
            },
        ),
        migrations.CreateModel(
            name='UserSession',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('access_jti', models.CharField(max_length=64)),
                ('refresh_token', models.TextField()),
                ('client_ip', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.TextField(blank=True, null=True)),
                ('login_time', models.DateTimeField(auto_now_add=True)),
                ('last_activity', models.DateTimeField(auto_now=True)),
                ('expires_at', models.DateTimeField()),
                ('revoked', models.BooleanField(default=False)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sessions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['user'], name='idx_session_user'),
                    models.Index(fields=['access_jti'], name='idx_session_access_jti'),
                    models.Index(fields=['expires_at'], name='idx_session_expires'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Student',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(blank=True, default='', max_length=100)),
                ('roll_number', models.CharField(max_length=50, unique=True)),
                ('father_name', models.CharField(blank=True, max_length=150, null=True)),
                ('email', models.EmailField(blank=True, max_length=254, null=True)),
                ('mobile_number', models.CharField(blank=True, max_length=20, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_by', models.CharField(blank=True, max_length=100, null=True)),
                ('created_on', models.DateTimeField(default=django.utils.timezone.now)),
                ('modify_by', models.CharField(blank=True, max_length=100, null=True)),
                ('modify_on', models.DateTimeField(blank=True, null=True)),
                ('college', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='students', to='consultancy_app.college')),
                ('course', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='students', to='consultancy_app.course')),
            ],
            options={
                'ordering': ['-created_on'],
                'indexes': [models.Index(fields=['roll_number'], name='idx_student_roll_number')],
            },
        ),
        migrations.CreateModel(
            name='StudentDocument',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('document_type', models.CharField(max_length=100)),
                ('document_url', models.URLField(max_length=500)),
                ('public_id', models.CharField(blank=True, max_length=255, null=True)),
                ('uploaded_on', models.DateTimeField(default=django.utils.timezone.now)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='documents', to='consultancy_app.student')),
            ],
        ),
        migrations.CreateModel(
            name='StudentAcademicDetails',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('session_year', models.CharField(max_length=20)),
                ('course_year', models.CharField(blank=True, max_length=20, null=True)),
                ('payment_mode', models.CharField(blank=True, max_length=20, null=True)),
                ('admin_amount', models.DecimalField(decimal_places=2, default=decimal.Decimal('0'), max_digits=12)),
                ('fees_amount', models.DecimalField(decimal_places=2, default=decimal.Decimal('0'), max_digits=12)),
                ('number_of_emi', models.PositiveSmallIntegerField(default=0)),
                ('created_on', models.DateTimeField(default=django.utils.timezone.now)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='academic_details', to='consultancy_app.student')),
            ],
            options={
                'verbose_name_plural': 'Student academic details',
            },
        ),
        migrations.CreateModel(
            name='EMIDetails',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('emi_number', models.PositiveSmallIntegerField()),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('due_date', models.DateField()),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='emi_details', to='consultancy_app.student')),
                ('student_academic', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='emi_details', to='consultancy_app.studentacademicdetails')),
            ],
            options={
                'ordering': ['emi_number'],
            },
        ),
        migrations.CreateModel(
            name='StudentPayment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('payment_mode', models.CharField(choices=[('cash', 'Cash'), ('check', 'Check'), ('bank transfer', 'Bank Transfer'), ('upi', 'UPI')], max_length=20)),
                ('transaction_number', models.CharField(blank=True, max_length=100, null=True, unique=True)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(decimal.Decimal('0.01'))])),
                ('handover_amount', models.DecimalField(decimal_places=2, default=decimal.Decimal('0'), max_digits=12)),
                ('received_date', models.DateField()),
                ('approved_by', models.CharField(blank=True, max_length=100, null=True)),
                ('amount_type', models.CharField(blank=True, max_length=50, null=True)),
                ('receipt_url', models.CharField(blank=True, max_length=500, null=True)),
                ('receipt_public_id', models.CharField(blank=True, max_length=255, null=True)),
                ('course_year', models.CharField(blank=True, max_length=20, null=True)),
                ('session_year', models.CharField(blank=True, max_length=20, null=True)),
                ('created_by', models.CharField(blank=True, max_length=100, null=True)),
                ('created_on', models.DateTimeField(default=django.utils.timezone.now)),
                ('modify_by', models.CharField(blank=True, max_length=100, null=True)),
                ('modify_on', models.DateTimeField(blank=True, null=True)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='consultancy_app.student')),
                ('student_academic', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='payments', to='consultancy_app.studentacademicdetails')),
            ],
            options={
                'ordering': ['-received_date', '-id'],
                'indexes': [
                    models.Index(fields=['approved_by'], name='idx_payment_approved_by'),
                    models.Index(fields=['student'], name='idx_payment_student'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('handover_amount__gte', 0), ('handover_amount__lte', models.F('amount'))), name='payment_handover_within_amount'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PaymentHandover',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(decimal.Decimal('0.01'))])),
                ('received_by', models.CharField(blank=True, max_length=100, null=True)),
                ('handed_over_to', models.CharField(max_length=100)),
                ('handover_date', models.DateField()),
                ('remarks', models.TextField(blank=True, null=True)),
                ('verified', models.BooleanField(default=False)),
                ('verified_by', models.CharField(blank=True, max_length=100, null=True)),
                ('verified_on', models.DateTimeField(blank=True, null=True)),
                ('created_by', models.CharField(blank=True, max_length=100, null=True)),
                ('created_on', models.DateTimeField(default=django.utils.timezone.now)),
                ('payment', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='handovers', to='consultancy_app.studentpayment')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='handovers', to='consultancy_app.student')),
            ],
            options={
                'ordering': ['-created_on', '-id'],
                'indexes': [models.Index(fields=['payment'], name='idx_handover_payment')],
            },
        ),
        migrations.CreateModel(
            name='SupplierDocument',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('document_url', models.CharField(max_length=500)),
                ('public_id', models.CharField(blank=True, max_length=255, null=True)),
                ('uploaded_on', models.DateTimeField(default=django.utils.timezone.now)),
                ('supplier', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='documents', to='consultancy_app.supplier')),
            ],
        ),
        migrations.CreateModel(
            name='SupplierExpense',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reason', models.CharField(max_length=255)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(decimal.Decimal('0.01'))])),
                ('is_deleted', models.BooleanField(default=False)),
                ('created_by', models.CharField(blank=True, max_length=100, null=True)),
                ('created_on', models.DateTimeField(default=django.utils.timezone.now)),
                ('modify_by', models.CharField(blank=True, max_length=100, null=True)),
                ('modify_on', models.DateTimeField(blank=True, null=True)),
                ('supplier', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='expenses', to='consultancy_app.supplier')),
            ],
            options={
                'ordering': ['-created_on', '-id'],
            },
        ),
        migrations.CreateModel(
            name='ExpensePayment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('paid_amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(decimal.Decimal('0.01'))])),
                ('payment_mode', models.CharField(choices=[('Cash', 'Cash'), ('Cheque', 'Cheque'), ('Bank Transfer', 'Bank Transfer'), ('UPI', 'UPI')], max_length=20)),
                ('transaction_id', models.CharField(blank=True, default='', max_length=100)),
                ('payment_date', models.DateField()),
                ('is_approved', models.BooleanField(default=False)),
                ('approve_by', models.CharField(blank=True, max_length=100, null=True)),
                ('comment', models.TextField(blank=True, null=True)),
                ('payment_image', models.CharField(blank=True, max_length=500, null=True)),
                ('payment_public_id', models.CharField(blank=True, max_length=255, null=True)),
                ('created_by', models.CharField(blank=True, max_length=100, null=True)),
                ('created_on', models.DateTimeField(default=django.utils.timezone.now)),
                ('expense', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='consultancy_app.supplierexpense')),
                ('supplier', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='expense_payments', to='consultancy_app.supplier')),
            ],
            options={
                'ordering': ['-payment_date', '-id'],
                'indexes': [models.Index(fields=['expense'], name='idx_expense_payment_expense')],
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('event_time', models.DateTimeField(auto_now_add=True)),
                ('event_type', models.CharField(choices=[('USER_LOGIN', 'User Login'), ('USER_LOGOUT', 'User Logout'), ('USER_CREATE', 'User Create'), ('USER_UPDATE', 'User Update'), ('USER_DELETE', 'User Delete'), ('PAGE_CHANGE', 'Page Change'), ('PERMISSION_SAVE', 'Permission Save'), ('STUDENT_CREATE', 'Student Create'), ('STUDENT_DELETE', 'Student Delete'), ('PAYMENT_RECEIVED', 'Payment Received'), ('PAYMENT_DELETE', 'Payment Delete'), ('HANDOVER_CREATE', 'Handover Create'), ('HANDOVER_VERIFY', 'Handover Verify'), ('SUPPLIER_CHANGE', 'Supplier Change'), ('EXPENSE_CHANGE', 'Expense Change'), ('EXPENSE_PAYMENT', 'Expense Payment')], max_length=50)),
                ('username', models.CharField(blank=True, max_length=150, null=True)),
                ('user_role', models.CharField(blank=True, max_length=50, null=True)),
                ('table_name', models.CharField(max_length=50)),
                ('record_id', models.IntegerField(blank=True, null=True)),
                ('operation', models.CharField(blank=True, choices=[('INSERT', 'Insert'), ('UPDATE', 'Update'), ('DELETE', 'Delete'), ('SELECT', 'Select')], max_length=20, null=True)),
                ('old_values', models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True)),
                ('new_values', models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True)),
                ('changed_fields', models.JSONField(blank=True, default=list)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.TextField(blank=True, null=True)),
                ('endpoint', models.CharField(blank=True, max_length=255, null=True)),
                ('http_method', models.CharField(blank=True, max_length=10, null=True)),
                ('request_id', models.UUIDField(blank=True, null=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['event_time'], name='idx_audit_event_time'),
                    models.Index(fields=['event_type'], name='idx_audit_event_type'),
                    models.Index(fields=['table_name', 'record_id'], name='idx_audit_table_record'),
                ],
            },
        ),
    ]
