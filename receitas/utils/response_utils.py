"""
Utilitários de resposta HTTP para o Receitas.

Este módulo converte falhas de serviço em respostas HTTP que identificam
a operação que falhou, para que o usuário possa repetir a mesma ação.
"""

from typing import NoReturn

from fastapi import HTTPException

from receitas.services.api_client import ApiError
from receitas.services.prescription_service import OperationResult

OPERATION_LABELS = {
    "login": "Login",
    "search_patients": "Busca de pacientes",
    "list_prescriptions": "Listagem de receitas",
    "create_prescription": "Cadastro de receita",
    "update_prescription": "Atualização de receita",
    "update_status": "Atualização de status",
}


def raise_api_error(operation: str, error: ApiError) -> NoReturn:
    """
    Converte um ApiError do backend em HTTPException.

    Mantém o status do backend quando houver (408 para timeout);
    falhas de conexão viram 502.

    Raises:
        HTTPException: sempre
    """
    status_code = error.status if error.status and error.status != 500 else 502
    raise HTTPException(
        status_code=status_code,
        detail={
            "operation": operation,
            "message": f"{OPERATION_LABELS.get(operation, operation)} falhou: {error.message}",
        },
    )


def operation_response(result: OperationResult) -> dict:
    """
    Resposta JSON de um OperationResult.

    Raises:
        HTTPException: 422 com erros por campo, ou 502 se a operação
        principal falhou no backend
    """
    if result.errors:
        raise HTTPException(
            status_code=422,
            detail={"operation": result.operation, "errors": result.errors},
        )
    if not result.success:
        raise HTTPException(
            status_code=502,
            detail={
                "operation": result.operation,
                "message": f"{OPERATION_LABELS.get(result.operation, result.operation)} falhou: {result.message}",
            },
        )

    body = {
        "success": True,
        "operation": result.operation,
        "data": result.data,
        "message": result.message,
        "warnings": result.warnings,
    }
    if result.upsert is not None:
        body["patient_sync"] = {
            "action": result.upsert.plan.action.value if result.upsert.plan else None,
            "success": result.upsert.success,
            "placeholder_cpf": bool(
                result.upsert.plan and result.upsert.plan.placeholder_tax_id
            ),
        }
    return body
