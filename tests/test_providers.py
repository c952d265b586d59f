"""
Provider adapter tests.

Vendor HTTP is faked with ``httpx.MockTransport``; the same ``httpx.AsyncClient`` is injected
into the OpenAI SDK and into the Gemini adapter.  The Anthropic SDK class is replaced outright.
"""

import asyncio
import json
from types import SimpleNamespace
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
)

import anthropic
import httpx
import openai
import pytest
from pydantic import SecretStr

from scholia.core.client import MultiProviderClient
from scholia.core.errors import (
    MissingCredentialError,
    ProviderError,
    SafetyBlockError,
    UnknownProviderError,
)
from scholia.core.schema import (
    CanonicalResponse,
    ChatMessage,
    ProviderConfig,
)
from scholia.providers import (
    merge_consecutive,
    registered_providers,
    split_system,
)
from scholia.providers.gemini import SAFETY_CATEGORIES

Handler = Callable[[httpx.Request], httpx.Response]

OPENAI_OK = {
    "id": "chatcmpl-1",
    "object": "chat.completion",
    "created": 0,
    "model": "gpt-4o-mini",
    "choices": [
        {
            "index": 0,
            "message": {"role": "assistant", "content": "Hello from the model"},
            "finish_reason": "stop",
        }
    ],
    "usage": {"prompt_tokens": 3, "completion_tokens": 4, "total_tokens": 7},
}

GEMINI_OK = {
    "candidates": [
        {"content": {"role": "model", "parts": [{"text": "Hello from Gemini"}]}}
    ],
    "usageMetadata": {"totalTokenCount": 7},
}

KEYS = {"openai": "sk-o", "deepseek": "sk-d", "gemini": "g-key", "anthropic": "sk-a"}


def _run(
    handler: Handler,
    call: Callable[[MultiProviderClient], Awaitable[Any]],
    credentials: Mapping[str, str] = KEYS,
    **kwargs: Any,
) -> Any:
    async def main() -> Any:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = MultiProviderClient(credentials, http_client=http, **kwargs)
            return await call(client)

    return asyncio.run(main())


def _recording(payload: Dict[str, Any], seen: List[httpx.Request], status: int = 200) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status, json=payload)

    return handler


def _body(request: httpx.Request) -> Dict[str, Any]:
    return json.loads(request.content)


# ---------------------------------------------------------------------------
# Message helpers
# ---------------------------------------------------------------------------
def test_merge_consecutive_joins_same_role() -> None:
    """Adjacent same-role turns collapse into one."""
    merged = merge_consecutive(
        [ChatMessage.user("a"), ChatMessage.user("b"), ChatMessage.assistant("c")]
    )
    assert [m.content for m in merged] == ["a\n\nb", "c"]


def test_split_system_only_becomes_user_turn() -> None:
    """A lone system message is sent as a user turn with no system part."""
    system, turns = split_system([ChatMessage.system("classify this")])
    assert system is None
    assert turns == [ChatMessage.user("classify this")]


def test_registered_providers() -> None:
    assert registered_providers() == ["anthropic", "deepseek", "gemini", "openai"]


# ---------------------------------------------------------------------------
# OpenAI / DeepSeek
# ---------------------------------------------------------------------------
def test_openai_basic_completion() -> None:
    """Full message list goes out, text and usage come back."""
    seen: List[httpx.Request] = []
    messages = [ChatMessage.system("be brief"), ChatMessage.user("hi")]

    resp = _run(
        _recording(OPENAI_OK, seen),
        lambda c: c.send("openai", "gpt-4o-mini", messages, temperature=0.2),
    )

    assert isinstance(resp, CanonicalResponse)
    assert resp.text == "Hello from the model"
    assert resp.usage is not None and resp.usage["total_tokens"] == 7
    assert len(seen) == 1
    body = _body(seen[0])
    assert body["model"] == "gpt-4o-mini"
    assert body["temperature"] == 0.2
    assert body["messages"] == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "hi"},
    ]
    assert seen[0].headers["authorization"] == "Bearer sk-o"


def test_openai_default_temperature() -> None:
    """Temperature defaults to 0.7."""
    seen: List[httpx.Request] = []
    _run(
        _recording(OPENAI_OK, seen),
        lambda c: c.send("openai", "gpt-4o-mini", [ChatMessage.user("hi")]),
    )
    assert _body(seen[0])["temperature"] == 0.7


def test_openai_http_error_is_single_request() -> None:
    """Vendor errors surface as ProviderError without any retry."""
    seen: List[httpx.Request] = []
    handler = _recording({"error": {"message": "boom", "type": "server_error"}}, seen, 500)

    with pytest.raises(ProviderError) as info:
        _run(handler, lambda c: c.send("openai", "gpt-4o-mini", [ChatMessage.user("hi")]))

    assert info.value.provider == "openai"
    assert len(seen) == 1


def test_deepseek_substitutes_mismatched_model() -> None:
    """A model id without the deepseek- prefix is replaced by the default model."""
    seen: List[httpx.Request] = []
    _run(
        _recording(OPENAI_OK, seen),
        lambda c: c.send("deepseek", "gemini-1.5-flash", [ChatMessage.user("hi")]),
    )

    assert seen[0].url.host == "api.deepseek.com"
    assert seen[0].url.path == "/v1/chat/completions"
    assert _body(seen[0])["model"] == "deepseek-chat"


def test_deepseek_keeps_matching_model() -> None:
    seen: List[httpx.Request] = []
    _run(
        _recording(OPENAI_OK, seen),
        lambda c: c.send("deepseek", "deepseek-reasoner", [ChatMessage.user("hi")]),
    )
    assert _body(seen[0])["model"] == "deepseek-reasoner"


def test_deepseek_strict_model_names() -> None:
    """In strict mode a mismatched model id fails before any request."""
    seen: List[httpx.Request] = []
    with pytest.raises(ProviderError):
        _run(
            _recording(OPENAI_OK, seen),
            lambda c: c.send("deepseek", "gpt-4o", [ChatMessage.user("hi")]),
            strict_model_names=True,
        )
    assert not seen


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------
def test_gemini_request_shape() -> None:
    """System instruction, model role, BLOCK_NONE safety settings and the header key."""
    seen: List[httpx.Request] = []
    messages = [
        ChatMessage.system("You are a scholar."),
        ChatMessage.user("Question one"),
        ChatMessage.assistant("Answer one"),
        ChatMessage.user("Question two"),
    ]

    resp = _run(
        _recording(GEMINI_OK, seen),
        lambda c: c.send("gemini", "gemini-1.5-flash", messages, temperature=0.1),
    )

    assert resp.text == "Hello from Gemini"
    assert resp.usage == {"totalTokenCount": 7}
    request = seen[0]
    assert request.url.path.endswith("/models/gemini-1.5-flash:generateContent")
    assert "key" not in request.url.params
    assert request.headers["x-goog-api-key"] == "g-key"

    body = _body(request)
    assert body["system_instruction"] == {"parts": [{"text": "You are a scholar."}]}
    assert [c["role"] for c in body["contents"]] == ["user", "model", "user"]
    assert body["generationConfig"] == {"temperature": 0.1}
    assert {s["category"] for s in body["safetySettings"]} == set(SAFETY_CATEGORIES)
    assert all(s["threshold"] == "BLOCK_NONE" for s in body["safetySettings"])


def test_gemini_system_only_becomes_user_turn() -> None:
    """With nothing but a system prompt, it is sent as the single user turn."""
    seen: List[httpx.Request] = []
    _run(
        _recording(GEMINI_OK, seen),
        lambda c: c.send("gemini", "gemini-1.5-flash", [ChatMessage.system("Classify: hi")]),
    )

    body = _body(seen[0])
    assert "system_instruction" not in body
    assert body["contents"] == [{"role": "user", "parts": [{"text": "Classify: hi"}]}]


def test_gemini_empty_messages_rejected_before_call() -> None:
    seen: List[httpx.Request] = []
    with pytest.raises(ProviderError):
        _run(_recording(GEMINI_OK, seen), lambda c: c.send("gemini", "gemini-1.5-flash", []))
    assert not seen


def test_gemini_safety_block() -> None:
    """No candidates plus a block reason raises SafetyBlockError."""
    blocked = {"promptFeedback": {"blockReason": "SAFETY"}}
    with pytest.raises(SafetyBlockError) as info:
        _run(
            _recording(blocked, []),
            lambda c: c.send("gemini", "gemini-1.5-flash", [ChatMessage.user("hi")]),
        )
    assert info.value.block_reason == "SAFETY"
    assert info.value.vendor_detail == blocked


def test_gemini_empty_candidates_without_reason() -> None:
    with pytest.raises(SafetyBlockError) as info:
        _run(
            _recording({"candidates": []}, []),
            lambda c: c.send("gemini", "gemini-1.5-flash", [ChatMessage.user("hi")]),
        )
    assert info.value.block_reason == "EMPTY_RESPONSE"


def test_gemini_api_error_message() -> None:
    """The vendor's error message is carried into ProviderError."""
    error = {"error": {"code": 400, "message": "API key not valid", "status": "INVALID_ARGUMENT"}}
    with pytest.raises(ProviderError) as info:
        _run(
            _recording(error, [], status=400),
            lambda c: c.send("gemini", "gemini-1.5-flash", [ChatMessage.user("hi")]),
        )
    assert "API key not valid" in str(info.value)
    assert not isinstance(info.value, SafetyBlockError)


# ---------------------------------------------------------------------------
# Anthropic
# ---------------------------------------------------------------------------
class _FakeAnthropic:
    """Stands in for ``anthropic.AsyncAnthropic`` and records what the adapter sends."""

    instances: List["_FakeAnthropic"] = []

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.requests: List[Dict[str, Any]] = []
        self.closed = False
        self.messages = SimpleNamespace(create=self._create)
        _FakeAnthropic.instances.append(self)

    async def _create(self, **request: Any) -> SimpleNamespace:
        self.requests.append(request)
        return SimpleNamespace(
            content=[SimpleNamespace(type="text", text="Hello from Claude")],
            stop_reason="end_turn",
            usage=None,
        )

    async def close(self) -> None:
        self.closed = True


def test_anthropic_system_field(monkeypatch) -> None:
    """The system prompt travels as the top-level system field."""
    _FakeAnthropic.instances = []
    monkeypatch.setattr(anthropic, "AsyncAnthropic", _FakeAnthropic)
    messages = [ChatMessage.system("Be terse."), ChatMessage.user("hi")]
    client = MultiProviderClient(KEYS, max_output_tokens=512)

    resp = asyncio.run(client.send("anthropic", "claude-3-5-haiku-latest", messages))

    assert resp.text == "Hello from Claude"
    (sdk,) = _FakeAnthropic.instances
    assert sdk.kwargs["api_key"] == "sk-a"
    assert sdk.closed
    (request,) = sdk.requests
    assert request["system"] == "Be terse."
    assert request["messages"] == [{"role": "user", "content": "hi"}]
    assert request["max_tokens"] == 512


# ---------------------------------------------------------------------------
# SDK client construction
# ---------------------------------------------------------------------------
def _rejecting_sdk(**_: Any) -> Any:
    raise TypeError("Invalid `http_client` argument")


@pytest.mark.parametrize(
    "module, attribute, provider, model",
    [
        (openai, "AsyncOpenAI", "openai", "gpt-4o-mini"),
        (openai, "AsyncOpenAI", "deepseek", "deepseek-chat"),
        (anthropic, "AsyncAnthropic", "anthropic", "claude-3-5-haiku-latest"),
    ],
)
def test_sdk_setup_failure_is_provider_error(
    monkeypatch, module: Any, attribute: str, provider: str, model: str
) -> None:
    """An SDK refusing its arguments surfaces as ProviderError and makes no request."""
    monkeypatch.setattr(module, attribute, _rejecting_sdk)
    seen: List[httpx.Request] = []

    with pytest.raises(ProviderError) as info:
        _run(
            _recording(OPENAI_OK, seen),
            lambda c: c.send(provider, model, [ChatMessage.user("hi")]),
        )

    assert info.value.provider == provider
    assert "client setup failed" in info.value.message
    assert isinstance(info.value.__cause__, TypeError)
    assert not seen


# ---------------------------------------------------------------------------
# Client preconditions
# ---------------------------------------------------------------------------
def test_missing_credential_makes_no_request() -> None:
    """MissingCredentialError names the provider and nothing reaches the network."""
    seen: List[httpx.Request] = []
    with pytest.raises(MissingCredentialError) as info:
        _run(
            _recording(OPENAI_OK, seen),
            lambda c: c.send("openai", "gpt-4o-mini", [ChatMessage.user("hi")]),
            credentials={"gemini": "g-key"},
        )
    assert info.value.provider == "openai"
    assert not seen


def test_unknown_provider() -> None:
    with pytest.raises(UnknownProviderError):
        _run(
            _recording(OPENAI_OK, []),
            lambda c: c.send("mistral", "mistral-large", [ChatMessage.user("hi")]),
        )


def test_client_lookups() -> None:
    """Credential map and catalog lookups without any network."""
    client = MultiProviderClient({"gemini": "g-key", "openai": ""})
    assert client.configured_providers() == ["gemini"]
    assert client.has_credential("GEMINI")
    assert client.is_verbose("deepseek")
    assert not client.is_verbose("openai")
    assert client.cheap_model("gemini") == "gemini-1.5-flash"
    assert client.cheap_model("deepseek") is None
    assert client.models_for("unknown") is None


def test_from_configs() -> None:
    """ProviderConfig records build the credential map."""
    client = MultiProviderClient.from_configs(
        [ProviderConfig(provider="openai", model_id="gpt-4o-mini", credential=SecretStr("k"))]
    )
    assert client.require_credential("openai") == "k"
    with pytest.raises(MissingCredentialError):
        client.require_credential("gemini")
