# ==============================================================================
# SERVICIO DE ESCANEO
# ==============================================================================
# El texto que entrega el lector (cámara, pistola o teclado) es entrada no
# confiable: se valida igual que un código tipeado a mano y luego se
# clasifica como crachá de login o como código de producto.
# ==============================================================================

from dataclasses import dataclass
from typing import Any, Optional

from vibrant_pos.errors import ValidationError
from vibrant_pos.repositories.base import as_text
from vibrant_pos.services.user_service import BADGE_PREFIX, parse_badge_token

MAX_SCAN_LENGTH = 128

KIND_LOGIN = 'login'
KIND_PRODUCT = 'product'


@dataclass(frozen=True)
class ScanResult:
    """Texto escaneado ya validado."""
    kind: str
    value: str
    name: Optional[str] = None
    pin: Optional[str] = None

    def to_dict(self):
        # nunca exponer el PIN
        d = {'kind': self.kind, 'value': self.value if self.kind == KIND_PRODUCT else ''}
        if self.name:
            d['name'] = self.name
        return d


def parse_scan(text: Any) -> ScanResult:
    """
    Valida y clasifica un texto escaneado.

    Un código numérico (p. ej. un EAN enviado como número en el JSON) se
    trata como su texto.

    Raises:
        ValidationError: Tipo no textual, vacío, demasiado largo, con
            caracteres de control o con formato de crachá incompleto
    """
    if isinstance(text, bool) or (text is not None and not isinstance(text, (str, int))):
        raise ValidationError('Código inválido.')
    value = as_text(text)
    if not value:
        raise ValidationError('Código vazio.')
    if len(value) > MAX_SCAN_LENGTH:
        raise ValidationError('Código muito longo.')
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in value):
        raise ValidationError('Código contém caracteres inválidos.')

    if value.startswith(BADGE_PREFIX + '|'):
        badge = parse_badge_token(value)
        if not badge:
            raise ValidationError('Crachá inválido.')
        return ScanResult(kind=KIND_LOGIN, value=value, name=badge['name'], pin=badge['pin'])

    return ScanResult(kind=KIND_PRODUCT, value=value)
