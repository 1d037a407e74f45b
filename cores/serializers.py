from rest_framework import serializers
from .models import PlatformSetting

class PlatformSettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = PlatformSetting
        fields = '__all__'
        read_only_fields = ['id']

    def validate(self, attrs):
        for name in ('review_min_confidence', 'review_min_hybrid_score', 'text_min_similarity', 'text_partial_percentage'):
            value = attrs.get(name)
            if value is not None and not 0 <= value <= 1:
                raise serializers.ValidationError({name: "Must be between 0 and 1."})
        return attrs
