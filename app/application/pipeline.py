"""
Admission pipeline.

    IdentityTagger -> TransportGuard -> OriginGate -> PayloadValidator
        -> RateGate -> delivery

The first stage that does not answer Continue ends the request: a Redirect or
Preflight is returned as-is, a Reject goes to the ErrorReporter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence

from app.application.admission import (
    ApiKeyStrategy,
    CorsStrategy,
    IdentityTagger,
    InboundRequest,
    OriginGate,
    PayloadValidator,
    RateGate,
    Stage,
    TransportGuard,
)
from app.application.error_reporter import ErrorReporter
from app.domain.entities import MailMessage, RequestContext
from app.domain.outcomes import Continue, Preflight, Redirect, Reject
from app.domain.ports.rate_store import RateStorePort
from app.logging import request_log_fields
from app.settings import Settings

logger = logging.getLogger("app.application.pipeline")

SUCCESS_MESSAGE = "Email sent successfully"

Deliver = Callable[[MailMessage, RequestContext], Awaitable[None]]


@dataclass
class PipelineResponse:
    status_code: int
    body: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)


class AdmissionPipeline:
    def __init__(
        self,
        *,
        tagger: IdentityTagger,
        stages: Sequence[Stage],
        reporter: ErrorReporter | None = None,
    ) -> None:
        self.tagger = tagger
        self.stages = tuple(stages)
        self.reporter = reporter or ErrorReporter()

    @classmethod
    def from_settings(cls, settings: Settings, rate_store: RateStorePort) -> "AdmissionPipeline":
        return cls(
            tagger=IdentityTagger(trust_proxy=settings.trust_proxy),
            stages=(
                TransportGuard(environment=settings.app_env, trust_proxy=settings.trust_proxy),
                OriginGate(
                    cors=CorsStrategy(settings.trusted_origin_list),
                    api_key=ApiKeyStrategy(settings.api_key_list),
                ),
                PayloadValidator(),
                RateGate(rate_store, ceiling=settings.rate_limit_max),
            ),
        )

    async def handle(self, request: InboundRequest, deliver: Deliver) -> PipelineResponse:
        context = self.tagger.tag(request)
        try:
            for stage in self.stages:
                outcome = await stage(request, context)
                if isinstance(outcome, Continue):
                    continue
                if isinstance(outcome, Reject):
                    return self._failed(outcome.error, context)
                return self._halted(outcome, context)

            await deliver(context.message, context)
        except Exception as exc:  # noqa: BLE001
            return self._failed(exc, context)

        logger.info("mail relayed", extra=request_log_fields(context, 200))
        return PipelineResponse(
            status_code=200,
            body={"message": SUCCESS_MESSAGE, "id": context.request_id},
            headers=dict(context.response_headers),
        )

    def _failed(self, error: BaseException, context: RequestContext) -> PipelineResponse:
        report = self.reporter.report(error, context)
        return PipelineResponse(
            status_code=report.status_code,
            body=report.body,
            headers=dict(context.response_headers),
        )

    def _halted(self, outcome: Redirect | Preflight, context: RequestContext) -> PipelineResponse:
        headers = dict(context.response_headers)
        if isinstance(outcome, Redirect):
            headers["Location"] = outcome.location
        else:
            headers.update(outcome.headers)
        logger.info("request answered early", extra=request_log_fields(context, outcome.status_code))
        return PipelineResponse(status_code=outcome.status_code, headers=headers)
