from django.conf import settings
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from records.permissions import CanViewRecords, request_access
from records.serializers.referrals import (
    ReferralActionSerializer,
    ReferralCancelSerializer,
    ReferralIssueSerializer,
    ReferralListQuerySerializer,
    ReferralVoidSerializer,
)
from records.services.referrals import (
    cancel_referral,
    complete_referral,
    get_referral,
    issue_referral,
    list_referrals,
    referral_status_counts,
    reinstate_referral,
    void_referral,
)

TS_FORMAT = '%Y-%m-%d %H:%M:%S'


def _ts(value) -> str:
    return timezone.localtime(value).strftime(TS_FORMAT)


def _ok(message, data=None, status=200):
    return Response({'success': True, 'message': message, 'data': data or {}}, status=status)


@api_view(['GET'])
@permission_classes([CanViewRecords])
def referral_list(request):
    q = ReferralListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    ctx = request_access(request)
    page = vd.get('page', 1)
    per_page = vd.get('per_page', settings.REFERRAL_DEFAULT_PAGE_SIZE)
    items, total = list_referrals(
        ctx,
        status=vd.get('status'),
        date_from=vd.get('date_from'),
        date_to=vd.get('date_to'),
        referred_by=vd.get('referred_by'),
        barangay=vd.get('barangay'),
        district=vd.get('district'),
        q=vd.get('q'),
        page=page,
        per_page=per_page,
    )
    return _ok('', {
        'items': items,
        # the listing above already swept
        'counts': referral_status_counts(ctx, sweep=False),
        'pagination': {'total': total, 'page': page, 'per_page': per_page},
    })


@api_view(['GET'])
@permission_classes([CanViewRecords])
def referral_detail(request, pk: int):
    return _ok('', get_referral(request_access(request), pk))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def referral_issue(request):
    s = ReferralIssueSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    referral = issue_referral(
        request_access(request),
        patient_id=vd['patient_id'],
        reason=vd['reason'],
        destination_type=vd['destination_type'],
        facility_id=vd.get('facility_id'),
        external_facility_name=vd.get('external_facility_name'),
        consultation_id=vd.get('consultation_id'),
    )
    return _ok('Referral issued successfully.', {
        'referral_id': referral.id,
        'referral_number': referral.referral_num,
        'status': referral.status,
        'referral_date': _ts(referral.referral_date),
    }, status=201)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def referral_cancel(request):
    s = ReferralCancelSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    result = cancel_referral(request_access(request), vd['referral_id'], vd['reason'], vd['password'])
    return _ok('Referral cancelled successfully.', {
        'referral_id': result.referral_id,
        'new_status': result.new_status,
        'cancelled_by': result.actor_name,
        'cancelled_at': _ts(result.timestamp),
        'reason': result.reason,
        'patient_name': result.patient_name,
        'referral_number': result.referral_number,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def referral_reinstate(request):
    s = ReferralActionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    result = reinstate_referral(request_access(request), s.validated_data['referral_id'])
    return _ok('Referral reinstated successfully.', {
        'referral_id': result.referral_id,
        'referral_number': result.referral_number,
        'patient_name': result.patient_name,
        'previous_status': result.previous_status,
        'new_status': result.new_status,
        'reinstated_by': result.actor_name,
        'reinstated_at': _ts(result.timestamp),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def referral_complete(request):
    s = ReferralActionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    result = complete_referral(request_access(request), s.validated_data['referral_id'])
    return _ok('Referral marked as completed.', {
        'referral_id': result.referral_id,
        'referral_number': result.referral_number,
        'previous_status': result.previous_status,
        'new_status': result.new_status,
        'completed_by': result.actor_name,
        'completed_at': _ts(result.timestamp),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def referral_void(request):
    s = ReferralVoidSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    result = void_referral(request_access(request), vd['referral_id'], vd['reason'])
    return _ok('Referral voided successfully.', {
        'referral_id': result.referral_id,
        'referral_number': result.referral_number,
        'previous_status': result.previous_status,
        'new_status': result.new_status,
        'voided_by': result.actor_name,
        'voided_at': _ts(result.timestamp),
        'reason': result.reason,
    })
