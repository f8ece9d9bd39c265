from django.conf import settings
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from records.permissions import CanViewRecords, request_access
from records.serializers.consultations import (
    ConsultationListQuerySerializer,
    ConsultationSerializer,
    VitalsSerializer,
)
from records.services.consultations import (
    get_visit_record,
    list_consultations,
    save_consultation,
    save_vitals,
)


@api_view(['GET'])
@permission_classes([CanViewRecords])
def consultation_list(request):
    q = ConsultationListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    page = vd.get('page', 1)
    per_page = vd.get('per_page', settings.CONSULTATION_PAGE_SIZE)
    items, total = list_consultations(
        request_access(request),
        status=vd.get('status'),
        date_from=vd.get('date_from'),
        date_to=vd.get('date_to'),
        attending=vd.get('attending'),
        barangay=vd.get('barangay'),
        district=vd.get('district'),
        q=vd.get('q'),
        page=page,
        per_page=per_page,
    )
    return Response({'success': True, 'message': '', 'data': {
        'items': items,
        'pagination': {'total': total, 'page': page, 'per_page': per_page},
    }})


@api_view(['GET'])
@permission_classes([CanViewRecords])
def visit_record(request, visit_id: int):
    data = get_visit_record(request_access(request), visit_id)
    return Response({'success': True, 'message': '', 'data': data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def visit_vitals(request, visit_id: int):
    s = VitalsSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    _, created = save_vitals(request_access(request), visit_id, s.validated_data)
    message = 'Vital signs recorded successfully.' if created else 'Vital signs updated successfully.'
    return Response({'success': True, 'message': message}, status=201 if created else 200)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def visit_consultation(request, visit_id: int):
    s = ConsultationSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    _, created = save_consultation(request_access(request), visit_id, s.validated_data)
    message = 'Consultation saved successfully.' if created else 'Consultation updated successfully.'
    return Response({'success': True, 'message': message}, status=201 if created else 200)
