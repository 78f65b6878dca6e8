from django.core.exceptions import ValidationError
from django.utils.deconstruct import deconstructible
from django.utils.translation import gettext_lazy as _


@deconstructible
class SlotLabelsValidator:
    """
    Валидатор списка допустимых слотов типа пространства
    """

    def __init__(self, max_length=50):
        """
        :param max_length: максимальная длина одной метки
        """
        self.max_length = max_length

    def __call__(self, value):
        """
        Проверяет, что value - список уникальных непустых строк
        """
        if not isinstance(value, list):
            raise ValidationError(
                _('Список слотов должен быть массивом строк'),
                code='invalid_slots_type'
            )

        seen = set()
        for label in value:
            if not isinstance(label, str) or not label.strip():
                raise ValidationError(
                    _('Метка слота должна быть непустой строкой: %(label)r'),
                    code='invalid_slot_label',
                    params={'label': label}
                )
            if len(label) > self.max_length:
                raise ValidationError(
                    _('Метка слота длиннее %(max_length)s символов: %(label)s'),
                    code='slot_label_too_long',
                    params={'label': label, 'max_length': self.max_length}
                )
            if label in seen:
                raise ValidationError(
                    _('Метка слота повторяется: %(label)s'),
                    code='duplicate_slot_label',
                    params={'label': label}
                )
            seen.add(label)

    def __eq__(self, other):
        return isinstance(other, SlotLabelsValidator) and self.max_length == other.max_length


validate_slot_labels = SlotLabelsValidator()
