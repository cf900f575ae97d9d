"""
PayCode Resolver

HTTP client that maps a PayCode to its biller via the CCHub website API.
Every outcome, including transport failures, comes back as a
``ResolutionResult``; nothing is raised to the caller.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Optional

import httpx
from pydantic import BaseModel, Field

from cchub.sessions.models import BillerInfo


logger = logging.getLogger(__name__)


DEFAULT_ENDPOINT = "/wp-json/cchub/v1/get-biller-code/{code}"
REQUIRED_FIELDS = ("service_type", "provider_name", "biller_code")


class ResolutionStatus(str, Enum):
    """Outcomes of a PayCode lookup."""

    RESOLVED = "RESOLVED"              # Biller found
    NOT_FOUND = "NOT_FOUND"            # 404 or non-success payload: code unknown/expired
    TIMEOUT = "TIMEOUT"                # No answer within the timeout, retryable
    UNAUTHORIZED = "UNAUTHORIZED"      # 401/403: bot token misconfigured
    UPSTREAM_ERROR = "UPSTREAM_ERROR"  # Connection failure, 5xx, unreadable body
    INCOMPLETE = "INCOMPLETE"          # Success payload missing required fields


class ResolutionResult(BaseModel):
    """Result of resolving one PayCode."""

    status: ResolutionStatus = Field(description="Lookup outcome")
    code: str = Field(description="PayCode that was looked up")
    biller: Optional[BillerInfo] = Field(default=None, description="Biller when resolved")
    http_status: Optional[int] = Field(default=None)
    message: Optional[str] = Field(default=None, description="Upstream message, if any")
    missing_fields: list[str] = Field(default_factory=list)

    @property
    def is_retryable(self) -> bool:
        return self.status in (ResolutionStatus.TIMEOUT, ResolutionStatus.UPSTREAM_ERROR)


class BaseCodeResolver(ABC):
    """Abstract PayCode resolver."""

    @abstractmethod
    async def resolve(self, code: str, category: Optional[str] = None) -> ResolutionResult:
        pass


class CodeResolver(BaseCodeResolver):
    """
    Client for the CCHub biller-code endpoint.

    GET {base_url}{endpoint} with the bot token in ``X-CCHUB-TOKEN``.
    Categories may map to their own endpoint paths.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 10.0,
        endpoints: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the resolver.

        Args:
            base_url: Website base URL
            token: Bot token sent as X-CCHUB-TOKEN
            timeout: Seconds before a lookup counts as timed out
            endpoints: Category key → endpoint path template with {code}
            transport: Optional httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.endpoints = endpoints or {}
        self.transport = transport
        self.logger = logger

    @classmethod
    def from_settings(cls, settings, endpoints=None) -> "CodeResolver":
        return cls(
            base_url=settings.resolver_base_url,
            token=settings.resolver_token,
            timeout=settings.resolver_timeout,
            endpoints=endpoints,
        )

    def url_for(self, code: str, category: Optional[str] = None) -> str:
        path = self.endpoints.get(category, DEFAULT_ENDPOINT) if category else DEFAULT_ENDPOINT
        return self.base_url + path.format(code=code)

    async def resolve(self, code: str, category: Optional[str] = None) -> ResolutionResult:
        """
        Resolve a PayCode to its biller.

        Args:
            code: Canonical PayCode
            category: Bill category the user picked, if any

        Returns:
            ResolutionResult (never raises)
        """
        url = self.url_for(code, category)
        self.logger.info(f"🔐 Verifying PayCode: {code}")

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.get(
                    url,
                    headers={
                        "X-CCHUB-TOKEN": self.token,
                        "User-Agent": "CCHub-WhatsApp-Bot/1.0",
                        "Accept": "application/json",
                    },
                )
        except httpx.TimeoutException as e:
            self.logger.error(f"PayCode lookup timed out: {e}")
            return ResolutionResult(status=ResolutionStatus.TIMEOUT, code=code)
        except httpx.HTTPError as e:
            self.logger.error(f"PayCode lookup failed: {e}")
            return ResolutionResult(status=ResolutionStatus.UPSTREAM_ERROR, code=code, message=str(e))

        status = response.status_code
        if status in (401, 403):
            self.logger.error(f"PayCode service rejected bot token (HTTP {status}); check CCHUB_RESOLVER_TOKEN")
            return ResolutionResult(status=ResolutionStatus.UNAUTHORIZED, code=code, http_status=status)
        if status == 404:
            self.logger.info(f"PayCode not found: {code}")
            return ResolutionResult(status=ResolutionStatus.NOT_FOUND, code=code, http_status=status)
        if status >= 400:
            self.logger.error(f"PayCode service returned HTTP {status}")
            return ResolutionResult(status=ResolutionStatus.UPSTREAM_ERROR, code=code, http_status=status)

        try:
            data = response.json()
        except ValueError:
            self.logger.error("PayCode service returned a non-JSON body")
            return ResolutionResult(status=ResolutionStatus.UPSTREAM_ERROR, code=code, http_status=status)

        if not data or not isinstance(data, dict):
            self.logger.error("PayCode service returned an empty response")
            return ResolutionResult(
                status=ResolutionStatus.UPSTREAM_ERROR,
                code=code,
                http_status=status,
                message="Empty response",
            )

        if data.get("status") != "success":
            self.logger.info(f"PayCode rejected upstream: {data.get('status')}")
            return ResolutionResult(
                status=ResolutionStatus.NOT_FOUND,
                code=code,
                http_status=status,
                message=data.get("message"),
            )

        missing = [name for name in REQUIRED_FIELDS if not data.get(name)]
        if missing:
            self.logger.error(f"PayCode payload missing fields: {missing}")
            return ResolutionResult(
                status=ResolutionStatus.INCOMPLETE,
                code=code,
                http_status=status,
                missing_fields=missing,
            )

        biller = BillerInfo(
            service_type=str(data["service_type"]),
            provider_name=str(data["provider_name"]),
            biller_code=str(data["biller_code"]),
        )
        self.logger.info(f"✅ PayCode verified: {code} → {biller.provider_name}")
        return ResolutionResult(status=ResolutionStatus.RESOLVED, code=code, biller=biller, http_status=status)


class StaticCodeResolver(BaseCodeResolver):
    """Resolves from a fixed table. Used for local runs without the website."""

    def __init__(self, billers: Dict[str, BillerInfo]):
        self.billers = billers

    async def resolve(self, code: str, category: Optional[str] = None) -> ResolutionResult:
        biller = self.billers.get(code)
        if biller is None:
            return ResolutionResult(status=ResolutionStatus.NOT_FOUND, code=code)
        return ResolutionResult(status=ResolutionStatus.RESOLVED, code=code, biller=biller)
