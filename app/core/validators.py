import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

_CEDULA_WEIGHTS = (1, 2, 1, 2, 1, 2, 1, 2, 1, 2, 1)
_CEDULA_SEPARATORS = re.compile(r"[-\s]")
_CEDULA_DIGITS = re.compile(r"[0-9]{11}")
_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


def validate_cedula(value: Optional[str]) -> bool:
    """Dominican national ID: 11 digits with a weighted 1-2 checksum (mod 10)."""
    if not value:
        return False
    digits = _CEDULA_SEPARATORS.sub("", value)
    if not _CEDULA_DIGITS.fullmatch(digits):
        return False
    total = 0
    for digit, weight in zip(digits, _CEDULA_WEIGHTS):
        product = int(digit) * weight
        if product >= 10:
            product = product // 10 + product % 10
        total += product
    return total % 10 == 0


def format_cedula(value: Optional[str]) -> str:
    digits = "".join(ch for ch in (value or "") if ch in "0123456789")[:11]
    if len(digits) >= 10:
        return f"{digits[:3]}-{digits[3:10]}-{digits[10:]}"
    if len(digits) >= 3:
        return f"{digits[:3]}-{digits[3:]}"
    return digits


def validate_email(value: Optional[str]) -> bool:
    if not value or len(value) > 254:
        return False
    if ".." in value or value.startswith(".") or value.endswith("."):
        return False
    if "@." in value or ".@" in value:
        return False
    return bool(_EMAIL_RE.match(value))


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def get_validation_message(field: str, value: Any) -> Optional[str]:
    if field == "cedula":
        if _is_blank(value):
            return "La cédula es requerida"
        if not validate_cedula(str(value)):
            return "Cédula dominicana inválida"
        return None
    if field == "email":
        if _is_blank(value):
            return "El email es requerido"
        if not validate_email(str(value)):
            return "Formato de email inválido"
        return None
    if field == "limite_credito":
        if _is_blank(value):
            return "El límite de crédito es requerido"
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return "Debe ser un número válido"
        if not amount.is_finite():
            return "Debe ser un número válido"
        if amount < 0:
            return "El límite de crédito no puede ser negativo"
        return None
    return None
