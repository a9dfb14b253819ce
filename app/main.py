from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
import uvicorn

from app.application.error_reporter import ErrorReporter
from app.application.pipeline import AdmissionPipeline
from app.domain.ports.email_port import EmailPort
from app.domain.ports.rate_store import RateStorePort
from app.infrastructure.email.attachments import AttachmentFetcher
from app.infrastructure.email.console_adapter import ConsoleEmailAdapter
from app.infrastructure.email.smtp_adapter import SmtpEmailAdapter
from app.infrastructure.http.client import (
    close_http_client,
    get_http_client,
    open_http_client,
)
from app.infrastructure.rate_limit.memory_store import InMemoryRateStore
from app.infrastructure.rate_limit.redis_store import RedisRateStore
from app.logging import setup_logging
from app.presentation.api import api
from app.presentation.security_headers import add_security_headers
from app.settings import Settings, get_settings


def build_rate_store(settings: Settings) -> tuple[RateStorePort, Redis | None]:
    if settings.rate_limit_backend == "redis":
        redis = Redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
        return RedisRateStore(redis, window_ms=settings.rate_limit_window_ms), redis
    return InMemoryRateStore(window_ms=settings.rate_limit_window_ms), None


def build_email_adapter(settings: Settings) -> EmailPort:
    if settings.resolved_mail_transport == "console":
        return ConsoleEmailAdapter()
    return SmtpEmailAdapter(
        hostname=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_user,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        start_tls=settings.smtp_start_tls,
        timeout=settings.smtp_timeout_seconds,
        fetcher=AttachmentFetcher(get_http_client(), max_bytes=settings.attachment_max_bytes),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    # startup
    await open_http_client(timeout=settings.attachment_fetch_timeout_seconds)
    email_adapter = build_email_adapter(settings)
    app.state.email_adapter = email_adapter  # expose to dependencies

    try:
        yield
    finally:
        # shutdown
        await email_adapter.aclose()
        await close_http_client()
        redis = app.state.redis
        if redis is not None:
            await redis.aclose()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    app = FastAPI(title="Mail Relay API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings

    rate_store, redis = build_rate_store(settings)
    app.state.redis = redis
    app.state.admission = AdmissionPipeline.from_settings(settings, rate_store)

    reporter = ErrorReporter()

    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        report = reporter.report(exc)
        return JSONResponse(report.body, status_code=report.status_code)

    app.add_exception_handler(Exception, unhandled_error)
    app.middleware("http")(add_security_headers)
    app.include_router(api)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
