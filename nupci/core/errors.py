# nupci/core/errors.py

# =================================================================================
# ❗ ERRORES DE NEGOCIO
# ---------------------------------------------------------------------------------
# Los servicios lanzan NupciError (código + mensaje + status HTTP) y main.py lo
# convierte en la misma forma que un HTTPException de los routers:
#   {"detail": {"code": "...", "message": "...", "details": ...}}
# =================================================================================

from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from loguru import logger


class NupciError(Exception):
    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details

    def to_detail(self) -> dict:
        detail = {"code": self.code, "message": self.message}
        if self.details is not None:
            detail["details"] = self.details
        return detail


def not_found(what: str, code: str = "NOT_FOUND") -> NupciError:
    return NupciError(code, f"{what} no encontrado", status.HTTP_404_NOT_FOUND)


def http_error(status_code: int, code: str, message: str, headers: Optional[dict] = None) -> HTTPException:
    """HTTPException con el detalle estructurado que usa toda la API."""
    return HTTPException(status_code=status_code, detail={"code": code, "message": message}, headers=headers)


async def nupci_error_handler(request: Request, exc: NupciError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("{} {} → {} {}", request.method, request.url.path, exc.code, exc.message)
    else:
        logger.info("{} {} → {} ({})", request.method, request.url.path, exc.code, exc.status_code)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})
