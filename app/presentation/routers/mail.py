from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from app.application.admission import InboundRequest
from app.application.pipeline import AdmissionPipeline, PipelineResponse
from app.application.send_mail import send_mail
from app.domain.entities import MailMessage, RequestContext
from app.domain.ports.email_port import EmailPort
from app.presentation.dependencies import get_email_port, get_pipeline
from app.schemas.responses import ErrorOut, SentOut

router = APIRouter(prefix="/mail", tags=["Mail"])

# every method reaches the pipeline; OriginGate decides which ones pass
ROUTED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


async def to_inbound(request: Request) -> InboundRequest:
    return InboundRequest(
        method=request.method,
        scheme=request.url.scheme,
        host=request.headers.get("host", request.url.netloc),
        path=request.url.path,
        query=request.url.query,
        headers={k.lower(): v for k, v in request.headers.items()},
        client_host=request.client.host if request.client else None,
        body=await request.body(),
    )


def to_response(result: PipelineResponse) -> Response:
    if result.body is None:
        return Response(status_code=result.status_code, headers=result.headers)
    return JSONResponse(result.body, status_code=result.status_code, headers=result.headers)


@router.api_route(
    "/send",
    methods=ROUTED_METHODS,
    responses={
        200: {"model": SentOut},
        400: {"model": ErrorOut},
        401: {"model": ErrorOut},
        403: {"model": ErrorOut},
        429: {"model": ErrorOut},
        500: {"model": ErrorOut},
    },
)
async def send(
    request: Request,
    pipeline: Annotated[AdmissionPipeline, Depends(get_pipeline)],
    email_port: Annotated[EmailPort, Depends(get_email_port)],
) -> Response:
    async def deliver(message: MailMessage, context: RequestContext) -> None:
        await send_mail(email_port, message, context.request_id)

    result = await pipeline.handle(await to_inbound(request), deliver)
    return to_response(result)
