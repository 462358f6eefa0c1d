"""Error codes and user-friendly messages.

This module defines the error catalog for calendar classification.
Each error has:
- code: Unique identifier
- message: Technical description (for logs)
- user_message: User-friendly explanation
- suggestion: Actionable guidance for the user
- retry_allowed: Whether the error is retryable
"""

# Error catalog for classification and reclassification jobs
ERROR_CATALOG: dict[str, dict] = {
    "CLS_001": {
        "code": "CLS_001",
        "message": "Override entry failed validation",
        "user_message": "La clasificación ingresada no es válida.",
        "suggestion": "Revisa la categoría, la etapa de tratamiento y los montos.",
        "retry_allowed": False,
    },
    "CLS_002": {
        "code": "CLS_002",
        "message": "Unknown category",
        "user_message": "Esa categoría no está permitida.",
        "suggestion": "Elige una categoría de la lista de opciones.",
        "retry_allowed": False,
    },
    "CLS_003": {
        "code": "CLS_003",
        "message": "Unknown treatment stage",
        "user_message": "Esa etapa de tratamiento no está permitida.",
        "suggestion": "Usa Mantención o Inducción.",
        "retry_allowed": False,
    },
    "EVT_001": {
        "code": "EVT_001",
        "message": "Calendar event not found",
        "user_message": "No encontramos este evento.",
        "suggestion": "Sincroniza el calendario e inténtalo nuevamente.",
        "retry_allowed": False,
    },
    "JOB_001": {
        "code": "JOB_001",
        "message": "Job not found or expired",
        "user_message": "El proceso no existe o ya expiró.",
        "suggestion": "Vuelve a iniciar la reclasificación.",
        "retry_allowed": False,
    },
    "JOB_002": {
        "code": "JOB_002",
        "message": "Reclassification job failed",
        "user_message": "La reclasificación falló antes de terminar.",
        "suggestion": "Vuelve a enviar la reclasificación con los mismos filtros.",
        "retry_allowed": True,
    },
    "JOB_003": {
        "code": "JOB_003",
        "message": "Job status unavailable: transport failure",
        "user_message": "No pudimos consultar el estado del proceso.",
        "suggestion": "Revisa la conexión; el proceso sigue ejecutándose.",
        "retry_allowed": True,
    },
    "VAL_001": {
        "code": "VAL_001",
        "message": "Request payload failed validation",
        "user_message": "Los datos enviados no son válidos.",
        "suggestion": "Revisa los campos e inténtalo nuevamente.",
        "retry_allowed": True,
    },
}


def get_error(error_code: str) -> dict:
    """Get error definition by code.

    Args:
        error_code: Error code from the catalog

    Returns:
        Dict with error details (a generic entry for unknown codes)
    """
    if error_code not in ERROR_CATALOG:
        return {
            "code": "UNKNOWN",
            "message": f"Unknown error code: {error_code}",
            "user_message": "Ocurrió un error inesperado.",
            "suggestion": "Inténtalo nuevamente.",
            "retry_allowed": True,
        }
    return ERROR_CATALOG[error_code]


def get_user_message(error_code: str) -> str:
    """Get user-friendly message for an error code."""
    return get_error(error_code)["user_message"]


def is_retryable(error_code: str) -> bool:
    """Check if an error is retryable."""
    return get_error(error_code)["retry_allowed"]
