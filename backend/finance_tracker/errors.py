from typing import Optional


class ApiError(Exception):
    """Base for every failure that ends a request with a JSON error body."""

    status_code = 500
    message = "Erro interno do servidor"

    def __init__(self, message: Optional[str] = None, details: Optional[list] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        self.details = details

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.kind, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ApiError):
    status_code = 400
    message = "Dados inválidos"


class DuplicateEmail(ApiError):
    status_code = 400
    message = "Este e-mail já está cadastrado."


class Unauthenticated(ApiError):
    status_code = 401
    message = "Não autenticado"


class NotFound(ApiError):
    status_code = 404
    message = "Rota não encontrada"


class MethodNotAllowed(ApiError):
    status_code = 405
    message = "Método não permitido"


class InternalError(ApiError):
    status_code = 500


class ServiceUnavailable(ApiError):
    status_code = 503
    message = "Serviço temporariamente indisponível"
