# app/api/responses.py
from fastapi import status
from fastapi.responses import JSONResponse

from app.schemas import RefusalRead
from app.services.results import Refusal, RefusalReason


def refusal_response(refusal: Refusal) -> JSONResponse:
    """
    Recusa de negócio -> JSON {"error", "code"}.

    NOT_FOUND vira 404; as demais (já ativa, privacidade...) viram 409.
    """
    if refusal.reason is RefusalReason.NOT_FOUND:
        status_code = status.HTTP_404_NOT_FOUND
    else:
        status_code = status.HTTP_409_CONFLICT

    body = RefusalRead(error=refusal.message, code=refusal.code)
    return JSONResponse(status_code=status_code, content=body.model_dump())
