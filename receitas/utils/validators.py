"""
Utilitários de validação para o Receitas.

Este módulo contém:

1. **Validadores de Campo**: Validação de entradas de formulário
2. **Validadores de Domínio**: Validação do formulário de receita

Padrões de Validação:
---------------------
- **Padrão de Tupla**: Retorna (valor, erros) (para validação de formulário)
  Uso: validate_name(), validate_phone(), validate_cpf(), validate_email(),
  validate_cep()

- **Padrão de Dicionário**: Retorna {campo: [erros]} (para formulários inteiros)
  Uso: validate_prescription_form(), validate_status_change()

Erros de validação são sempre por campo: um campo inválido nunca impede
a validação dos demais.
"""

import re
from typing import Any, Mapping, Optional

from pydantic import EmailStr, TypeAdapter, ValidationError

from receitas.content import STATUS_LABELS
from receitas.schemas.prescription import (
    DeliveryMethod,
    PrescriptionType,
    parse_delivery_method,
)
from receitas.utils.formatting import digits_only

# ============================================================
# SEÇÃO 1: Validadores de Campos de Formulário
# ============================================================
# Padrão: Retornam tupla (valor_sanitizado, lista_de_erros)

EMAIL_ADAPTER = TypeAdapter(EmailStr)
PRESCRIPTION_STATUSES = frozenset(STATUS_LABELS)
PRESCRIPTION_TYPES = frozenset(t.value for t in PrescriptionType)


def validate_name(name: Optional[str]) -> tuple[str, list[str]]:
    """
    Valida e sanitiza um campo de nome.

    Regras de validação:
    - Obrigatório (não pode estar vazio)
    - Mínimo 2 caracteres
    - Máximo 100 caracteres
    - Apenas letras (incluindo acentuadas), espaços, apóstrofos e hífens

    Args:
        name: A string de nome para validar

    Returns:
        Tupla de (nome_sanitizado, lista_de_erros)
    """
    errors = []
    name = (name or "").strip()

    if not name:
        errors.append("Nome é obrigatório")
    elif len(name) < 2:
        errors.append("Nome deve ter pelo menos 2 caracteres")
    elif len(name) > 100:
        errors.append("Nome muito longo (máximo 100 caracteres)")
    elif not re.match(r"^[a-zA-ZÀ-ÿ\s'\-]+$", name):
        errors.append("Nome deve conter apenas letras, espaços, apóstrofos ou hífens")

    return name, errors


def validate_phone(phone: Optional[str]) -> tuple[str, list[str]]:
    """
    Valida um número de telefone brasileiro.

    Aceita formatos de entrada:
    - (XX) XXXXX-XXXX (celular com máscara)
    - (XX) XXXX-XXXX (fixo com máscara)
    - XXXXXXXXXXX (dígitos brutos, 10 ou 11 dígitos)

    Returns:
        Tupla de (apenas_dígitos, lista_de_erros)
    """
    errors = []
    digits = digits_only(phone)

    if not digits:
        errors.append("Telefone é obrigatório")
    elif len(digits) not in (10, 11):
        errors.append("Telefone deve ter 10 ou 11 dígitos (DDD + número)")
    else:
        ddd = int(digits[:2])
        if ddd < 11 or ddd > 99:
            errors.append("DDD inválido")

        if len(digits) == 11 and digits[2] != "9":
            errors.append("Número de celular deve começar com 9")

    return digits, errors


def cpf_check_digits_ok(digits: str) -> bool:
    """Confere os dois dígitos verificadores de um CPF com 11 dígitos."""
    if len(digits) != 11 or digits == digits[0] * 11:
        return False
    for position in (9, 10):
        total = sum(int(digits[i]) * (position + 1 - i) for i in range(position))
        expected = (total * 10) % 11 % 10
        if int(digits[position]) != expected:
            return False
    return True


def validate_cpf(cpf: Optional[str]) -> tuple[str, list[str]]:
    """
    Valida um CPF (com ou sem máscara).

    Regras de validação:
    - Obrigatório
    - Exatamente 11 dígitos
    - Dígitos verificadores corretos (sequências repetidas são inválidas)

    Returns:
        Tupla de (apenas_dígitos, lista_de_erros)
    """
    errors = []
    digits = digits_only(cpf)

    if not digits:
        errors.append("CPF é obrigatório")
    elif len(digits) != 11:
        errors.append("CPF deve ter 11 dígitos")
    elif not cpf_check_digits_ok(digits):
        errors.append("CPF inválido")

    return digits, errors


def validate_email(email: Optional[str]) -> tuple[str, list[str]]:
    errors = []
    email = (email or "").strip()

    if not email:
        errors.append("E-mail é obrigatório")
    else:
        try:
            EMAIL_ADAPTER.validate_python(email)
        except ValidationError:
            errors.append("E-mail inválido")

    return email, errors


def validate_cep(cep: Optional[str]) -> tuple[str, list[str]]:
    errors = []
    digits = digits_only(cep)

    if not digits:
        errors.append("CEP é obrigatório")
    elif len(digits) != 8:
        errors.append("CEP deve ter 8 dígitos")

    return digits, errors


# ============================================================
# SEÇÃO 2: Validadores de Domínio (Receita)
# ============================================================
# Padrão: Retornam dicionário {campo: [erros]}, vazio quando válido.


def validate_prescription_form(form: Mapping[str, Any]) -> dict[str, list[str]]:
    """
    Valida o formulário de solicitação/edição de receita.

    Regras de validação:
    - medication_name e dosage obrigatórios
    - number_of_boxes deve ser inteiro >= 1 (padrão "1")
    - Forma de entrega e tipo de receita devem ser conhecidos
      ("clinic"/"pickup" valem como retirar_clinica)
    - Entrega por e-mail exige CEP válido e endereço
    - Nome, e-mail e telefone do paciente validados apenas se preenchidos
    - CPF com 11 dígitos precisa de dígitos verificadores válidos
    - Se houver status, aplica validate_status_change()

    Args:
        form: Campos do formulário (chaves em snake_case)

    Returns:
        Dicionário de erros por campo (vazio se válido)
    """
    errors: dict[str, list[str]] = {}

    def add(field: str, message: str) -> None:
        errors.setdefault(field, []).append(message)

    if not str(form.get("medication_name") or "").strip():
        add("medication_name", "Nome do medicamento é obrigatório")
    if not str(form.get("dosage") or "").strip():
        add("dosage", "Dosagem é obrigatória")

    boxes = str(form.get("number_of_boxes") or "1").strip()
    if not boxes.isdigit() or int(boxes) < 1:
        add("number_of_boxes", "Número de caixas deve ser maior que 0")

    try:
        delivery = parse_delivery_method(
            form.get("delivery_method") or DeliveryMethod.RETIRAR_CLINICA
        )
    except ValueError:
        delivery = None
        add("delivery_method", "Forma de entrega inválida")

    prescription_type = _enum_value(form.get("prescription_type"))
    if prescription_type and prescription_type not in PRESCRIPTION_TYPES:
        add("prescription_type", "Tipo de receita inválido")

    if delivery == DeliveryMethod.EMAIL:
        _, cep_errors = validate_cep(form.get("cep"))
        for message in cep_errors:
            add("cep", message)
        if not str(form.get("endereco") or "").strip():
            add("endereco", "Endereço é obrigatório para envio por e-mail")

    # Dados do paciente são opcionais; só valida o que foi digitado
    optional_fields = (
        ("name", validate_name),
        ("email", validate_email),
        ("phone", validate_phone),
    )
    for field, validator in optional_fields:
        if str(form.get(field) or "").strip():
            for message in validator(form.get(field))[1]:
                add(field, message)

    # CPF incompleto vira CPF temporário no cadastro do paciente
    if len(digits_only(form.get("cpf"))) == 11:
        for message in validate_cpf(form.get("cpf"))[1]:
            add("cpf", message)

    if form.get("status"):
        for field, messages in validate_status_change(
            form.get("status"), form.get("rejection_reason")
        ).items():
            for message in messages:
                add(field, message)

    return errors


def validate_status_change(
    status: Any, rejection_reason: Optional[str]
) -> dict[str, list[str]]:
    """
    Valida uma mudança de status de receita.

    Regras de validação:
    - Status deve ser um dos estados do fluxo
    - rejection_reason obrigatório se, e somente se, status == "rejeitada"
    """
    errors: dict[str, list[str]] = {}
    status = _enum_value(status)
    reason = (rejection_reason or "").strip()

    if status not in PRESCRIPTION_STATUSES:
        errors["status"] = ["Status inválido"]
    if status == "rejeitada" and not reason:
        errors["rejection_reason"] = ["Motivo da rejeição é obrigatório"]
    elif status != "rejeitada" and reason:
        errors["rejection_reason"] = [
            "Motivo da rejeição só se aplica a receitas rejeitadas"
        ]

    return errors


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)
