# admin.py
import csv

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.http import HttpResponse
from .models import *


admin.site.site_header = "CONSULTANCY BACK OFFICE"
admin.site.site_title = "Back Office Admin"
admin.site.index_title = "Welcome to the Back Office"


# ==================== CUSTOM ADMIN CLASSES ====================
class ReadOnlyAdminMixin:
    """Mixin to make admin read-only"""
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class ExportCsvMixin:
    """Mixin to add CSV export functionality"""
    def export_as_csv(self, request, queryset):
        field_names = [field.name for field in self.model._meta.fields]

        response = HttpResponse(content_type='text/csv')
        response['Content-Disposition'] = f'attachment; filename={self.model.__name__}.csv'

        writer = csv.writer(response)
        writer.writerow(field_names)
        for obj in queryset:
            writer.writerow([getattr(obj, field) for field in field_names])

        return response

    export_as_csv.short_description = "Export Selected as CSV"


# ==================== USER MANAGEMENT ====================
class CustomUserAdmin(BaseUserAdmin):
    list_display = ('email', 'name', 'role', 'mobile_no', 'is_active', 'last_login')
    list_filter = ('role', 'is_active', 'is_staff')
    search_fields = ('email', 'name', 'mobile_no')
    ordering = ('-date_joined',)

    fieldsets = (
        (None, {'fields': ('email', 'username', 'password')}),
        ('Personal Info', {'fields': ('name', 'mobile_no')}),
        ('Role', {'fields': ('role',)}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser')}),
        ('Important Dates', {'fields': ('last_login', 'date_joined', 'modify_by', 'modify_on')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'username', 'name', 'role', 'password1', 'password2'),
        }),
    )

    def get_readonly_fields(self, request, obj=None):
        if obj:  # Editing an existing object
            return ('last_login', 'date_joined', 'modify_by', 'modify_on')
        return ()


class UserSessionAdmin(admin.ModelAdmin):
    list_display = ('user', 'client_ip', 'login_time', 'last_activity', 'expires_at', 'revoked')
    list_filter = ('revoked', 'login_time', 'expires_at')
    search_fields = ('user__email', 'client_ip')
    readonly_fields = ('id', 'access_jti', 'refresh_token', 'login_time', 'last_activity', 'expires_at')
    date_hierarchy = 'login_time'
    actions = ['revoke_selected']

    def revoke_selected(self, request, queryset):
        updated = queryset.update(revoked=True)
        self.message_user(request, f'{updated} session(s) revoked.')

    revoke_selected.short_description = "Revoke selected sessions"


# ==================== PAGE PERMISSIONS ====================
class PermissionInline(admin.TabularInline):
    model = Permission
    extra = 0
    fields = ('role', 'can_create', 'can_read', 'can_update', 'can_delete')


class PageAdmin(admin.ModelAdmin):
    list_display = ('page_name', 'page_url', 'created_by', 'created_on')
    search_fields = ('page_name', 'page_url')
    inlines = [PermissionInline]


class PermissionAdmin(admin.ModelAdmin, ExportCsvMixin):
    list_display = ('role', 'page', 'can_create', 'can_read', 'can_update', 'can_delete', 'modify_on')
    list_filter = ('role',)
    search_fields = ('page__page_url', 'page__page_name')
    actions = ['export_as_csv']


# ==================== STUDENTS & PAYMENTS ====================
class StudentPaymentInline(admin.TabularInline):
    model = StudentPayment
    extra = 0
    fields = ('received_date', 'amount', 'handover_amount', 'payment_mode', 'approved_by')
    readonly_fields = ('handover_amount',)


class StudentAdmin(admin.ModelAdmin, ExportCsvMixin):
    list_display = ('roll_number', 'first_name', 'last_name', 'course', 'college', 'is_active')
    list_filter = ('course', 'college', 'is_active')
    search_fields = ('roll_number', 'first_name', 'last_name', 'email', 'mobile_number')
    inlines = [StudentPaymentInline]
    actions = ['export_as_csv']


class StudentPaymentAdmin(admin.ModelAdmin, ExportCsvMixin):
    list_display = ('id', 'student', 'amount', 'handover_amount', 'remaining_display',
                    'payment_mode', 'approved_by', 'received_date')
    list_filter = ('payment_mode', 'approved_by', 'received_date')
    search_fields = ('student__roll_number', 'student__first_name', 'transaction_number')
    # moved only through the handover ledger
    readonly_fields = ('handover_amount',)
    date_hierarchy = 'received_date'
    actions = ['export_as_csv']

    def remaining_display(self, obj):
        return obj.remaining_amount
    remaining_display.short_description = 'Remaining'


class PaymentHandoverAdmin(ReadOnlyAdminMixin, admin.ModelAdmin, ExportCsvMixin):
    list_display = ('id', 'payment', 'student', 'amount', 'received_by', 'handed_over_to',
                    'handover_date', 'verified')
    list_filter = ('verified', 'handed_over_to', 'handover_date')
    search_fields = ('received_by', 'handed_over_to', 'student__roll_number')
    date_hierarchy = 'handover_date'
    actions = ['export_as_csv']


# ==================== SUPPLIERS ====================
class SupplierAdmin(admin.ModelAdmin):
    list_display = ('name', 'email', 'phone_no', 'bank_name', 'ifsc_code', 'is_deleted')
    list_filter = ('is_deleted',)
    search_fields = ('name', 'email', 'phone_no')


class SupplierExpenseAdmin(admin.ModelAdmin):
    list_display = ('supplier', 'reason', 'amount', 'is_deleted', 'created_on')
    list_filter = ('is_deleted', 'supplier')
    search_fields = ('reason', 'supplier__name')


class ExpensePaymentAdmin(ReadOnlyAdminMixin, admin.ModelAdmin, ExportCsvMixin):
    list_display = ('expense', 'supplier', 'paid_amount', 'payment_mode', 'payment_date', 'is_approved')
    list_filter = ('payment_mode', 'is_approved', 'payment_date')
    search_fields = ('supplier__name', 'transaction_id')
    actions = ['export_as_csv']


# ==================== AUDIT ====================
class AuditLogAdmin(ReadOnlyAdminMixin, admin.ModelAdmin, ExportCsvMixin):
    list_display = ('event_time', 'event_type', 'user', 'username', 'table_name',
                    'operation', 'ip_address')
    list_filter = ('event_type', 'operation', 'table_name', 'event_time')
    search_fields = ('username', 'user__email', 'table_name', 'ip_address', 'endpoint')
    readonly_fields = ('event_time', 'request_id')
    date_hierarchy = 'event_time'
    actions = ['export_as_csv']


admin.site.register(User, CustomUserAdmin)
admin.site.register(UserSession, UserSessionAdmin)
admin.site.register(Role)
admin.site.register(Page, PageAdmin)
admin.site.register(Permission, PermissionAdmin)
admin.site.register(College)
admin.site.register(Course)
admin.site.register(Student, StudentAdmin)
admin.site.register(StudentPayment, StudentPaymentAdmin)
admin.site.register(PaymentHandover, PaymentHandoverAdmin)
admin.site.register(Supplier, SupplierAdmin)
admin.site.register(SupplierExpense, SupplierExpenseAdmin)
admin.site.register(ExpensePayment, ExpensePaymentAdmin)
admin.site.register(AuditLog, AuditLogAdmin)
