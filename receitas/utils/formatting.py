"""
Utilitários de formatação para o Receitas.

Funções puras para limpeza e apresentação de CPF, CEP, telefone e nomes.
Todas aceitam None e valores não-string sem lançar exceções.
"""

import re
import unicodedata
from typing import Any, Optional

from receitas.content import (
    DELIVERY_METHOD_LABELS,
    PRESCRIPTION_TYPE_LABELS,
    STATUS_LABELS,
    UNKNOWN_LABEL,
)


def digits_only(value: Any) -> str:
    """
    Remove todos os caracteres não numéricos.

    Example:
        >>> digits_only("123.456.789-09")
        '12345678909'
    """
    if value is None or isinstance(value, bool):
        return ""
    return re.sub(r"\D", "", str(value))


def fit_digits(value: Any, length: int, pad: bool = False) -> str:
    """
    Reduz um valor aos seus dígitos com tamanho fixo.

    Dígitos excedentes são descartados (mantém os primeiros ``length``).
    Com ``pad=True``, valores mais curtos são completados com zeros à esquerda.
    Um valor sem dígitos resulta em string vazia, nunca em zeros.

    Args:
        value: Valor bruto (string, número ou None)
        length: Tamanho fixo do campo
        pad: Completar com zeros à esquerda

    Returns:
        String de dígitos com no máximo ``length`` caracteres
    """
    digits = digits_only(value)[:length]
    if digits and pad:
        return digits.zfill(length)
    return digits


def format_cpf(cpf: Optional[str]) -> str:
    """Formata CPF como XXX.XXX.XXX-XX (retorna os dígitos se incompleto)."""
    digits = digits_only(cpf)
    if len(digits) != 11:
        return digits
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"


def format_phone(phone: Optional[str]) -> str:
    """Formata telefone como (XX) XXXXX-XXXX ou (XX) XXXX-XXXX."""
    digits = digits_only(phone)
    if len(digits) == 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"
    if len(digits) == 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    return digits


def format_cep(cep: Optional[str]) -> str:
    """Formata CEP como XXXXX-XXX."""
    digits = digits_only(cep)
    if len(digits) != 8:
        return digits
    return f"{digits[:5]}-{digits[5:]}"


def remove_accents(text: Optional[str]) -> str:
    """Remove acentos mantendo as letras base ("Bagé" -> "Bage")."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def initials(name: Optional[str]) -> str:
    """
    Iniciais para o avatar de fallback.

    Primeira letra do primeiro e do último nome; "U" quando não há nome.
    """
    words = (name or "").split()
    if not words:
        return "U"
    if len(words) == 1:
        return words[0][0].upper()
    return (words[0][0] + words[-1][0]).upper()


def status_text(status: Optional[str]) -> str:
    return STATUS_LABELS.get(status or "", UNKNOWN_LABEL)


def prescription_type_text(prescription_type: Optional[str]) -> str:
    return PRESCRIPTION_TYPE_LABELS.get(prescription_type or "", UNKNOWN_LABEL)


def delivery_method_text(method: Optional[str]) -> str:
    return DELIVERY_METHOD_LABELS.get(method or "", UNKNOWN_LABEL)
