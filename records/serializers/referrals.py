from django.conf import settings
from rest_framework import serializers

from records.models import Referral

# Ids and free text are passed through as given so the referral service
# can answer with its own validation messages.


class ReferralActionSerializer(serializers.Serializer):
    referral_id = serializers.CharField(required=False, allow_blank=True, default='')


class ReferralCancelSerializer(ReferralActionSerializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')
    password = serializers.CharField(required=False, allow_blank=True, default='', trim_whitespace=False)


class ReferralVoidSerializer(ReferralActionSerializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class ReferralIssueSerializer(serializers.Serializer):
    patient_id = serializers.IntegerField(min_value=1)
    consultation_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    destination_type = serializers.ChoiceField(choices=[c for c, _ in Referral.DESTINATION_CHOICES])
    facility_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    external_facility_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    reason = serializers.CharField(max_length=4000)


class ReferralListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in Referral.STATUS_CHOICES], required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    referred_by = serializers.IntegerField(min_value=1, required=False)
    barangay = serializers.IntegerField(min_value=1, required=False)
    district = serializers.IntegerField(min_value=1, required=False)
    q = serializers.CharField(max_length=64, required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    per_page = serializers.IntegerField(required=False)

    def validate_per_page(self, v):
        # unsupported sizes fall back to the default rather than failing
        return v if v in settings.REFERRAL_PAGE_SIZES else settings.REFERRAL_DEFAULT_PAGE_SIZE

    def validate(self, attrs):
        if attrs.get('date_from') and attrs.get('date_to') and attrs['date_from'] > attrs['date_to']:
            raise serializers.ValidationError('date_from must not be after date_to.')
        return attrs
