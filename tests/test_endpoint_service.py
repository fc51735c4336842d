import base64
import json

import httpx
import pytest

from eval_engine.core.exceptions import EndpointRequestException
from eval_engine.models import EndpointAuth, EndpointConfig
from eval_engine.services.endpoint_service import (
    EndpointService,
    build_headers,
    extract_output,
    render_body,
)


def test_build_headers_applies_auth_variants():
    bearer = build_headers(
        EndpointConfig(url="https://x.test", auth=EndpointAuth(type="bearer", token="t"))
    )
    api_key = build_headers(
        EndpointConfig(
            url="https://x.test",
            headers={"X-Trace": "1"},
            auth=EndpointAuth(type="apiKey", api_key_header="X-Api-Key", api_key="k"),
        )
    )
    basic = build_headers(
        EndpointConfig(
            url="https://x.test",
            auth=EndpointAuth(type="basic", username="u", password="p"),
        )
    )

    assert bearer == {"Content-Type": "application/json", "Authorization": "Bearer t"}
    assert api_key == {"Content-Type": "application/json", "X-Trace": "1", "X-Api-Key": "k"}
    assert basic["Authorization"] == "Basic " + base64.b64encode(b"u:p").decode()


def test_render_body_only_for_body_methods_and_escapes_json():
    headers = {"Content-Type": "application/json"}
    template = '{"q": "{{question}}"}'

    assert render_body("GET", template, {"question": "x"}, headers) is None
    body = render_body("POST", template, {"question": 'say "hi"'}, headers)
    assert json.loads(body) == {"q": 'say "hi"'}


def test_render_body_plain_text_not_escaped():
    body = render_body("PUT", 'text: {{v}}', {"v": '"q"'}, {"Content-Type": "text/plain"})
    assert body == 'text: "q"'


def test_extract_output_narrows_and_renders():
    config = EndpointConfig(url="https://x.test", response_content_path="data.reply")

    assert extract_output(config, {"data": {"reply": "hi"}}) == ("hi", "hi")
    assert extract_output(config, {"data": {}}) == ("", "")
    assert extract_output(config, "raw text") == ("raw text", None)

    whole = EndpointConfig(url="https://x.test")
    output, extracted = extract_output(whole, {"a": 1})
    assert json.loads(output) == {"a": 1}
    assert extracted is None


@pytest.mark.asyncio
async def test_execute_sends_rendered_request_and_extracts():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json={"choices": [{"text": "Hello Ada"}]})

    service = EndpointService(transport=httpx.MockTransport(handler))
    config = EndpointConfig(
        url="https://api.example.test/chat",
        auth=EndpointAuth(type="bearer", token="secret"),
        body_template='{"prompt": "Greet {{name}}"}',
        response_content_path="choices[0].text",
    )

    result = await service.execute(config, {"name": "Ada"})
    await service.aclose()

    assert seen == {"method": "POST", "body": {"prompt": "Greet Ada"}, "auth": "Bearer secret"}
    assert result.output == "Hello Ada"
    assert result.extracted_content == "Hello Ada"
    assert result.response_time >= 0


@pytest.mark.asyncio
async def test_execute_raises_on_error_status():
    service = EndpointService(
        transport=httpx.MockTransport(lambda request: httpx.Response(503, text="down"))
    )

    with pytest.raises(EndpointRequestException) as excinfo:
        await service.execute(EndpointConfig(url="https://x.test"), {})

    assert excinfo.value.message == "HTTP 503 Service Unavailable: down"


@pytest.mark.asyncio
async def test_send_wraps_transport_errors():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    service = EndpointService(transport=httpx.MockTransport(handler))

    with pytest.raises(EndpointRequestException) as excinfo:
        await service.send("GET", "https://x.test", {})

    assert "Request to https://x.test failed" in str(excinfo.value)
