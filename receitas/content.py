# Receitas - Content Configuration
# Labels and user-facing messages shared by services and routes

STATUS_LABELS = {
    "solicitada": "Solicitada",
    "solicitada_urgencia": "Solicitada (Urgente)",
    "em_analise": "Em Análise",
    "aprovada": "Aprovada",
    "rejeitada": "Rejeitada",
    "pronta": "Pronta",
    "enviada": "Enviada",
    "entregue": "Entregue",
}

PRESCRIPTION_TYPE_LABELS = {
    "branco": "Branca",
    "azul": "Azul (B)",
    "amarelo": "Amarela (A)",
}

DELIVERY_METHOD_LABELS = {
    "email": "E-mail",
    "retirar_clinica": "Retirar na Clínica",
}

UNKNOWN_LABEL = "Desconhecido"

MESSAGES = {
    "unknown_error": "Erro desconhecido",
    "timeout": (
        "Tempo limite de conexão excedido. O servidor está demorando para "
        "responder. Tente novamente mais tarde."
    ),
    "connection": (
        "Erro de conexão com o servidor. Verifique sua internet ou tente "
        "novamente mais tarde."
    ),
    "cep_not_found": "CEP não encontrado.",
    "cep_failed": "Erro ao buscar CEP. Verifique sua conexão.",
    "notification_failed": "Receita salva, mas o envio da notificação falhou.",
    "identity_failed": "Receita salva, mas o cadastro do paciente não foi atualizado.",
}
