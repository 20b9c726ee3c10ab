import logging
from typing import Any, Optional, Union

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from src.error_handler import ErrorHandler
from src.integrations.policy.response_wrappers import IntegrationResponseError, ProviderRequestError
from src.reconciliation.reconciler import (
    StkPushRejectedError,
    StkPushValidationError,
    TransactionReconciler,
)

logger = logging.getLogger(__name__)

api = APIRouter()
payments_api = api

error_handler = ErrorHandler()


class StkPushBody(BaseModel):
    phone: Union[str, int] = Field(..., description="Payer phone number, e.g. 2547XXXXXXXX")
    amount: Union[int, float] = Field(..., description="Amount to collect")


def get_reconciler(request: Request) -> TransactionReconciler:
    return request.app.state.reconciler


@api.post("/stk-push", tags=["Payments"])
async def stk_push(body: StkPushBody, request: Request):
    reconciler = get_reconciler(request)
    try:
        transaction = await reconciler.initiate(str(body.phone), body.amount)
    except StkPushValidationError as e:
        return JSONResponse(status_code=400, content={"success": False, "message": str(e)})
    except StkPushRejectedError as e:
        return JSONResponse(status_code=400, content={"success": False, "message": e.message})
    except (ProviderRequestError, IntegrationResponseError) as e:
        return JSONResponse(
            status_code=500,
            content=error_handler.handle_exception(e, context={"operation": "stk_push"}),
        )

    return {"success": True, "transactionReference": transaction.reference}


@api.post("/payments/callback", tags=["Payments"])
async def payment_callback(request: Request):
    """
    Provider webhook. Always acknowledged with 200 so the provider stops retrying,
    whether or not a transaction was matched.
    """
    payload: Optional[Any]
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("[CALLBACK] Body is not valid JSON")
        payload = None

    try:
        get_reconciler(request).handle_callback(payload)
    except Exception as e:
        error_handler.handle_exception(e, context={"operation": "payment_callback"})
    return PlainTextResponse("OK", status_code=200)


@api.get("/status/{reference}", tags=["Payments"])
async def payment_status(reference: str, request: Request, response: Response):
    response.headers["Cache-Control"] = "no-store"

    result = await get_reconciler(request).poll_status(reference)
    if result.degraded:
        response.headers["X-Provider-Degraded"] = "true"
    return {"status": result.status.value}
