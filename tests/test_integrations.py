"""Tests for the PayCode resolver and WhatsApp sender."""

import json

import httpx
import pytest

from cchub.flows.fixtures import CATEGORY_ENDPOINTS
from cchub.integrations import CodeResolver, ResolutionStatus, WhatsAppSender


SUCCESS_PAYLOAD = {
    "status": "success",
    "service_type": "schools",
    "provider_name": "Prince Edward School",
    "biller_code": "PES-001",
}


def resolver_for(handler):
    return CodeResolver(
        base_url="https://cchub.example/",
        token="bot-token",
        endpoints=CATEGORY_ENDPOINTS,
        transport=httpx.MockTransport(handler),
    )


class TestCodeResolver:
    """Mapping of upstream responses to resolution outcomes."""

    def setup_method(self):
        self.requests = []

    @pytest.mark.asyncio
    async def test_resolved(self):
        def handler(request):
            self.requests.append(request)
            return httpx.Response(200, json=SUCCESS_PAYLOAD)

        result = await resolver_for(handler).resolve("CCH482913")

        assert result.status == ResolutionStatus.RESOLVED
        assert result.biller.provider_name == "Prince Edward School"
        request = self.requests[0]
        assert request.url.path == "/wp-json/cchub/v1/get-biller-code/CCH482913"
        assert request.headers["X-CCHUB-TOKEN"] == "bot-token"

    @pytest.mark.asyncio
    async def test_category_endpoint(self):
        def handler(request):
            self.requests.append(request)
            return httpx.Response(200, json=SUCCESS_PAYLOAD)

        await resolver_for(handler).resolve("CCH482913", category="schools")
        assert self.requests[0].url.params["service_type"] == "schools"

    @pytest.mark.asyncio
    async def test_non_success_status_is_not_found(self):
        def handler(request):
            return httpx.Response(200, json={"status": "error", "message": "Code expired"})

        result = await resolver_for(handler).resolve("CCH482913")

        assert result.status == ResolutionStatus.NOT_FOUND
        assert result.message == "Code expired"

    @pytest.mark.asyncio
    async def test_missing_fields_incomplete(self):
        payload = dict(SUCCESS_PAYLOAD, provider_name="")

        def handler(request):
            return httpx.Response(200, json=payload)

        result = await resolver_for(handler).resolve("CCH482913")

        assert result.status == ResolutionStatus.INCOMPLETE
        assert result.missing_fields == ["provider_name"]

    @pytest.mark.parametrize(
        "status_code,expected",
        [
            (401, ResolutionStatus.UNAUTHORIZED),
            (403, ResolutionStatus.UNAUTHORIZED),
            (404, ResolutionStatus.NOT_FOUND),
            (500, ResolutionStatus.UPSTREAM_ERROR),
            (502, ResolutionStatus.UPSTREAM_ERROR),
        ],
    )
    @pytest.mark.asyncio
    async def test_http_errors(self, status_code, expected):
        def handler(request):
            return httpx.Response(status_code, json={})

        result = await resolver_for(handler).resolve("CCH482913")

        assert result.status == expected
        assert result.http_status == status_code

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        result = await resolver_for(handler).resolve("CCH482913")

        assert result.status == ResolutionStatus.TIMEOUT
        assert result.is_retryable

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        result = await resolver_for(handler).resolve("CCH482913")

        assert result.status == ResolutionStatus.UPSTREAM_ERROR
        assert result.is_retryable

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        result = await resolver_for(handler).resolve("CCH482913")
        assert result.status == ResolutionStatus.UPSTREAM_ERROR

    @pytest.mark.asyncio
    async def test_empty_body(self):
        def handler(request):
            return httpx.Response(200, json={})

        result = await resolver_for(handler).resolve("CCH482913")
        assert result.status == ResolutionStatus.UPSTREAM_ERROR


class TestWhatsAppSender:
    """Outbound delivery."""

    def setup_method(self):
        self.requests = []

    def sender_for(self, status_code):
        def handler(request):
            self.requests.append(request)
            return httpx.Response(status_code, json={})

        return WhatsAppSender(
            phone_number_id="PHONE_ID",
            access_token="wa-token",
            transport=httpx.MockTransport(handler),
        )

    @pytest.mark.asyncio
    async def test_send_text(self):
        assert await self.sender_for(200).send("263771234567", "Hello")

        request = self.requests[0]
        assert request.url.path == "/v17.0/PHONE_ID/messages"
        assert request.headers["Authorization"] == "Bearer wa-token"
        body = json.loads(request.content)
        assert body["to"] == "263771234567"
        assert body["text"] == {"body": "Hello"}

    @pytest.mark.asyncio
    async def test_failure_reported_not_raised(self):
        assert not await self.sender_for(500).send("263771234567", "Hello")
