"""
URL mappings for the health office records API.

Trailing slashes are deliberately omitted (``APPEND_SLASH = False``).
"""
from django.urls import path, include

from .auth_views import login_view, jwt_refresh_view, jwt_logout_view
from .views import health
from .views.consultations import consultation_list, visit_consultation, visit_record, visit_vitals
from .views.referrals import (
    referral_cancel,
    referral_complete,
    referral_detail,
    referral_issue,
    referral_list,
    referral_reinstate,
    referral_void,
)

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),

    # Auth
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh_view'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout_view'),

    # Referrals
    path('api/referrals', referral_list, name='referral_list'),
    path('api/referrals/issue', referral_issue, name='referral_issue'),
    path('api/referrals/cancel', referral_cancel, name='referral_cancel'),
    path('api/referrals/reinstate', referral_reinstate, name='referral_reinstate'),
    path('api/referrals/complete', referral_complete, name='referral_complete'),
    path('api/referrals/void', referral_void, name='referral_void'),
    path('api/referrals/<int:pk>', referral_detail, name='referral_detail'),

    # Consultations & visits
    path('api/consultations', consultation_list, name='consultation_list'),
    path('api/visits/<int:visit_id>/record', visit_record, name='visit_record'),
    path('api/visits/<int:visit_id>/vitals', visit_vitals, name='visit_vitals'),
    path('api/visits/<int:visit_id>/consultation', visit_consultation, name='visit_consultation'),
]
