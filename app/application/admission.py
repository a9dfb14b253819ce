"""
Admission stages.

Each stage is an async callable `(request, context) -> Outcome`. Stages never
raise for an expected rejection; they answer Reject(error) and the pipeline
hands the error to the ErrorReporter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Mapping, Protocol

from app.domain.entities import ClientIdentity, RequestContext
from app.domain.errors import (
    AuthenticationFailure,
    OriginRejected,
    RateLimitExceeded,
    ValidationFailure,
)
from app.domain.outcomes import CONTINUE, Outcome, Preflight, Redirect, Reject
from app.domain.ports.rate_store import RateStorePort
from app.domain.services import matches_any_secret, new_request_id
from app.domain.validation import ValidationResult, validate_mail_body

ALLOWED_METHODS = ("POST", "OPTIONS")
PREFLIGHT_MAX_AGE_SECONDS = 900
API_KEY_HEADER = "x-api-key"
LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


@dataclass(frozen=True)
class InboundRequest:
    """Framework-neutral view of an HTTP request. Header names are lower-case."""

    method: str
    scheme: str
    host: str
    path: str
    query: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    client_host: str | None = None
    body: bytes = b""

    def header(self, name: str) -> str:
        return self.headers.get(name.lower(), "").strip()

    @property
    def hostname(self) -> str:
        host = self.host
        if host.startswith("["):
            return host[1:].split("]", 1)[0]
        if host.count(":") == 1:
            return host.split(":", 1)[0]
        return host

    @property
    def target(self) -> str:
        return f"{self.path}?{self.query}" if self.query else self.path


class Stage(Protocol):
    async def __call__(self, request: InboundRequest, context: RequestContext) -> Outcome:
        ...


def _first_forwarded(value: str) -> str:
    return value.split(",", 1)[0].strip()


class IdentityTagger:
    def __init__(
        self, *, trust_proxy: bool = False, id_factory: Callable[[], str] = new_request_id
    ) -> None:
        self._trust_proxy = trust_proxy
        self._id_factory = id_factory

    def client_address(self, request: InboundRequest) -> str:
        if self._trust_proxy:
            forwarded = _first_forwarded(request.header("x-forwarded-for"))
            if forwarded:
                return forwarded
        return request.client_host or "unknown"

    def tag(self, request: InboundRequest) -> RequestContext:
        context = RequestContext(
            request_id=self._id_factory(),
            client_address=self.client_address(request),
            method=request.method.upper(),
            path=request.path,
        )
        context.response_headers["X-Request-ID"] = context.request_id
        return context


class TransportGuard:
    def __init__(self, *, environment: str, trust_proxy: bool = False) -> None:
        self._environment = environment
        self._trust_proxy = trust_proxy

    def is_secure(self, request: InboundRequest) -> bool:
        if request.scheme.lower() == "https":
            return True
        if self._trust_proxy:
            return _first_forwarded(request.header("x-forwarded-proto")).lower() == "https"
        return False

    async def __call__(self, request: InboundRequest, context: RequestContext) -> Outcome:
        if self.is_secure(request):
            return CONTINUE
        if self._environment == "development" and request.hostname.lower() in LOOPBACK_HOSTS:
            return CONTINUE
        return Redirect(location=f"https://{request.host}{request.target}")


class CorsStrategy:
    def __init__(self, trusted_origins: list[str]) -> None:
        self._trusted = frozenset(trusted_origins)

    async def __call__(self, request: InboundRequest, context: RequestContext) -> Outcome:
        origin = request.header("origin")
        if origin not in self._trusted:
            return Reject(OriginRejected())

        if request.method.upper() == "OPTIONS":
            requested = request.header("access-control-request-method").upper()
            if requested and requested not in ALLOWED_METHODS:
                return Reject(
                    OriginRejected(f"Unauthorized Access: method {requested} not allowed")
                )
            return Preflight(
                headers={
                    "Access-Control-Allow-Methods": ",".join(ALLOWED_METHODS),
                    "Access-Control-Allow-Origin": origin,
                    "Access-Control-Max-Age": str(PREFLIGHT_MAX_AGE_SECONDS),
                    "Vary": "Origin",
                }
            )

        context.identity = ClientIdentity.BROWSER_ORIGIN
        context.response_headers["Access-Control-Allow-Origin"] = origin
        context.response_headers["Vary"] = "Origin"
        return CONTINUE


class ApiKeyStrategy:
    def __init__(self, api_keys: list[str]) -> None:
        self._keys = list(api_keys)

    async def __call__(self, request: InboundRequest, context: RequestContext) -> Outcome:
        supplied = request.headers.get(API_KEY_HEADER, "")
        if not supplied or not matches_any_secret(supplied, self._keys):
            return Reject(AuthenticationFailure())

        context.identity = ClientIdentity.API_KEY
        if request.method.upper() == "OPTIONS":
            return Preflight(headers={"Allow": ",".join(ALLOWED_METHODS)})
        return CONTINUE


class OriginGate:
    """Browser callers go through CORS, everyone else needs an API key."""

    def __init__(self, *, cors: Stage, api_key: Stage) -> None:
        self._cors = cors
        self._api_key = api_key

    async def __call__(self, request: InboundRequest, context: RequestContext) -> Outcome:
        method = request.method.upper()
        if method not in ALLOWED_METHODS:
            return Reject(OriginRejected(f"Unauthorized Access: method {method} not allowed"))
        if request.header("origin"):
            return await self._cors(request, context)
        return await self._api_key(request, context)


class PayloadValidator:
    def __init__(
        self, validate: Callable[[bytes], ValidationResult] = validate_mail_body
    ) -> None:
        self._validate = validate

    async def __call__(self, request: InboundRequest, context: RequestContext) -> Outcome:
        result = self._validate(request.body)
        if not result.ok:
            return Reject(ValidationFailure(result.error_dicts()))
        context.message = result.message
        return CONTINUE


class RateGate:
    def __init__(self, store: RateStorePort, *, ceiling: int) -> None:
        self._store = store
        self._ceiling = ceiling

    async def __call__(self, request: InboundRequest, context: RequestContext) -> Outcome:
        window = await self._store.hit(context.client_address)
        reset_in = window.seconds_until_reset(self._store.now())
        context.response_headers.update(
            {
                "RateLimit-Limit": str(self._ceiling),
                "RateLimit-Remaining": str(window.remaining(self._ceiling)),
                "RateLimit-Reset": str(reset_in),
            }
        )
        if window.count > self._ceiling:
            context.response_headers["Retry-After"] = str(reset_in)
            return Reject(RateLimitExceeded(retry_after=reset_in))
        return CONTINUE

