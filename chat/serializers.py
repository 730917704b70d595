# chat/serializers.py
from rest_framework import serializers

HISTORY_ROLES = ["user", "bot", "assistant", "model"]


class HistoryTurnSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=HISTORY_ROLES)
    content = serializers.CharField(allow_blank=True, trim_whitespace=False)


class ChatRequestSerializer(serializers.Serializer):
    message = serializers.CharField(trim_whitespace=False)
    history = HistoryTurnSerializer(many=True, required=False)

    def validate_message(self, value):
        if not value.strip():
            raise serializers.ValidationError("Message must not be blank.")
        return value


def first_error(errors) -> str:
    """Flatten DRF's nested error dict to one readable line."""
    if isinstance(errors, dict):
        for field, detail in errors.items():
            msg = first_error(detail)
            if field == "non_field_errors":
                return msg
            return f"{field}: {msg}"
        return ""
    if isinstance(errors, list):
        for item in errors:
            msg = first_error(item)
            if msg:
                return msg
        return ""
    return str(errors)
