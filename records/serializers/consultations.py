from rest_framework import serializers

from records.models import Consultation


class VitalsSerializer(serializers.Serializer):
    systolic_bp = serializers.IntegerField(min_value=40, max_value=300, required=False, allow_null=True)
    diastolic_bp = serializers.IntegerField(min_value=20, max_value=200, required=False, allow_null=True)
    heart_rate = serializers.IntegerField(min_value=20, max_value=250, required=False, allow_null=True)
    respiratory_rate = serializers.IntegerField(min_value=5, max_value=80, required=False, allow_null=True)
    temperature = serializers.DecimalField(max_digits=4, decimal_places=1, min_value=30, max_value=45,
                                           required=False, allow_null=True)
    height = serializers.DecimalField(max_digits=5, decimal_places=1, min_value=30, max_value=250,
                                      required=False, allow_null=True)
    weight = serializers.DecimalField(max_digits=5, decimal_places=1, min_value=1, max_value=500,
                                      required=False, allow_null=True)
    remarks = serializers.CharField(max_length=2000, required=False, allow_blank=True)


class ConsultationSerializer(serializers.Serializer):
    # Required-ness of complaint/diagnosis is checked by the service
    chief_complaint = serializers.CharField(required=False, allow_blank=True, default='')
    diagnosis = serializers.CharField(required=False, allow_blank=True, default='')
    treatment_plan = serializers.CharField(required=False, allow_blank=True)
    history_present_illness = serializers.CharField(required=False, allow_blank=True)
    physical_examination = serializers.CharField(required=False, allow_blank=True)
    remarks = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=[c for c, _ in Consultation.STATUS_CHOICES], required=False)


class ConsultationListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in Consultation.STATUS_CHOICES], required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    attending = serializers.IntegerField(min_value=1, required=False)
    barangay = serializers.IntegerField(min_value=1, required=False)
    district = serializers.IntegerField(min_value=1, required=False)
    q = serializers.CharField(max_length=64, required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    per_page = serializers.IntegerField(min_value=1, max_value=100, required=False)
