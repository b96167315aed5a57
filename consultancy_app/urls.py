# urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'users', views.UserViewSet, basename='user')
router.register(r'pages', views.PageViewSet, basename='page')
router.register(r'students', views.StudentViewSet, basename='student')
router.register(r'student-payments', views.StudentPaymentViewSet, basename='student-payment')
router.register(r'suppliers', views.SupplierViewSet, basename='supplier')
router.register(r'supplier-expenses', views.SupplierExpenseViewSet, basename='supplier-expense')
router.register(r'expense-payments', views.ExpensePaymentViewSet, basename='expense-payment')

urlpatterns = [
    # Authentication endpoints
    path('api/auth/login/', views.LoginView.as_view(), name='login'),
    path('api/auth/logout/', views.LogoutView.as_view(), name='logout'),
    path('api/auth/refresh-token/', views.RefreshTokenView.as_view(), name='refresh-token'),
    path('api/auth/validate-token/', views.ValidateTokenView.as_view(), name='validate-token'),
    path('api/auth/change-password/', views.ChangePasswordView.as_view(), name='change-password'),
    path('api/auth/verify-password/', views.VerifyPasswordView.as_view(), name='verify-password'),

    # Roles & permission matrix
    path('api/roles/', views.RoleListView.as_view(), name='role-list'),
    path('api/permissions/', views.PermissionListView.as_view(), name='permission-list'),
    path('api/permissions/save/', views.PermissionSaveView.as_view(), name='permission-save'),
    path('api/permissions/stage/', views.PermissionStageView.as_view(), name='permission-stage'),
    path('api/access/resolve/', views.AccessResolveView.as_view(), name='access-resolve'),

    # Payment handovers
    path('api/approved-by/', views.ApprovedByListView.as_view(), name='approved-by'),
    path('api/payments-by-staff/<str:staff>/', views.PaymentsByStaffView.as_view(), name='payments-by-staff'),
    path('api/payment-handovers/', views.PaymentHandoverView.as_view(), name='handover-list'),
    path('api/payment-handovers/export/', views.HandoverExportView.as_view(), name='handover-export'),
    path('api/payment-handovers/check/<int:payment_id>/', views.CheckHandoverView.as_view(), name='handover-check'),
    path('api/payment-handovers/<int:pk>/verify/', views.VerifyHandoverView.as_view(), name='handover-verify'),

    # Include router URLs
    path('api/', include(router.urls)),
]
