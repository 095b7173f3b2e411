from typing import Any, Optional

DEFAULT_MESSAGES = {
    200: "Operación exitosa",
    201: "Recurso creado exitosamente",
    400: "Solicitud inválida",
    401: "No autorizado",
    403: "Acceso denegado",
    404: "Recurso no encontrado",
    409: "Conflicto con el estado actual del recurso",
    500: "Error interno del servidor",
}


def success_response(data: Any = None, message: Optional[str] = None, **extra) -> dict:
    """Build the `{success, message, data}` envelope used by every handler."""
    body = {"success": True, "message": message or DEFAULT_MESSAGES[200]}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def error_body(status_code: int, message: Optional[str] = None, errors: Any = None) -> dict:
    body = {"success": False, "message": message or DEFAULT_MESSAGES.get(status_code, DEFAULT_MESSAGES[500])}
    if errors is not None:
        body["errors"] = errors
    return body
