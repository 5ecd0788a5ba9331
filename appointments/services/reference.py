import secrets
import string

from django.utils import timezone

REFERENCE_PREFIX = "APT"
SUFFIX_LENGTH = 4


class ReferenceGenerator:
    """
    Genera referencias legibles `APT-YYYY-MM-DD-HHMMSS-XXXX`.

    La fecha y hora son las locales de creación, por lo que las referencias
    ordenan cronológicamente hasta el segundo. El sufijo son cuatro letras
    mayúsculas uniformes; la unicidad final la garantiza la restricción de la
    base de datos y el reintento acotado del motor de reservas.
    """

    alphabet = string.ascii_uppercase

    def __init__(self, rng=None, clock=None):
        self.rng = rng or secrets.SystemRandom()
        self.clock = clock or timezone.now

    def generate(self, now=None) -> str:
        moment = timezone.localtime(now or self.clock())
        suffix = "".join(self.rng.choice(self.alphabet) for _ in range(SUFFIX_LENGTH))
        return f"{REFERENCE_PREFIX}-{moment:%Y-%m-%d-%H%M%S}-{suffix}"
