"""Context scan pass tests."""

import asyncio

import pytest

from scholia.agent.scanner import (
    ALL_RELEVANT,
    NOT_FOUND,
    ContextScanner,
    ScanKind,
    interpret_scan,
    mark_paragraphs,
)
from scholia.core.errors import ProviderError
from scholia.core.schema import ProviderModels

CATALOG = {
    "openai": ProviderModels(default_model="gpt-4o", cheap_model="gpt-4o-mini"),
    "deepseek": ProviderModels(default_model="deepseek-chat", cheap_model="deepseek-chat"),
}


def test_mark_paragraphs_skips_blank() -> None:
    assert mark_paragraphs(["First.", "  ", "Second. "]) == "[P1] First.\n\n[P3] Second."


@pytest.mark.parametrize("reply", [NOT_FOUND, "`NOT_FOUND`.", "  not_found\n"])
def test_interpret_not_found(reply: str) -> None:
    result = interpret_scan(reply, "doc", 10)
    assert result.kind is ScanKind.NOT_FOUND
    assert result.excerpt == NOT_FOUND


@pytest.mark.parametrize("reply", [ALL_RELEVANT, "**ALL_RELEVANT**", ""])
def test_interpret_all_relevant_uses_bounded_prefix(reply: str) -> None:
    result = interpret_scan(reply, "abcdefghij" * 3, 12)
    assert result.kind is ScanKind.ALL_RELEVANT
    assert result.excerpt == "abcdefghijab"


def test_interpret_specific_excerpt() -> None:
    result = interpret_scan("\n[P4] The loss drops by 3%.\n", "doc", 10)
    assert result.kind is ScanKind.SPECIFIC
    assert result.excerpt == "[P4] The loss drops by 3%."


def test_should_scan(scripted) -> None:
    scanner = ContextScanner(scripted(catalog=CATALOG), threshold_chars=10)
    long_doc = "x" * 11

    assert scanner.should_scan(long_doc, "openai", "gpt-4o", anchored=False)
    # Short documents, anchored questions and providers without a cheaper model skip the pass
    assert not scanner.should_scan("x" * 10, "openai", "gpt-4o", anchored=False)
    assert not scanner.should_scan(long_doc, "openai", "gpt-4o", anchored=True)
    assert not scanner.should_scan(long_doc, "openai", "gpt-4o-mini", anchored=False)
    assert not scanner.should_scan(long_doc, "deepseek", "deepseek-chat", anchored=False)


def test_scan_uses_cheap_model(scripted) -> None:
    client = scripted(["[P2] relevant passage"], catalog=CATALOG)
    scanner = ContextScanner(client, threshold_chars=10)

    document = "[P1] a\n\n[P2] relevant passage"
    result = asyncio.run(scanner.scan("what changed?", document, "openai", "gpt-4o"))

    assert result.kind is ScanKind.SPECIFIC
    call = client.calls[0]
    assert call.model_id == "gpt-4o-mini"
    assert call.temperature == 0.0
    assert ALL_RELEVANT in call.system and NOT_FOUND in call.system
    assert "User Query: what changed?" in call.user


def test_scan_propagates_provider_error(scripted) -> None:
    client = scripted([ProviderError("openai", "down")], catalog=CATALOG)
    with pytest.raises(ProviderError):
        asyncio.run(ContextScanner(client).scan("q", "doc", "openai", "gpt-4o"))


def test_default_catalog_enables_scan_where_a_cheaper_model_exists(scripted) -> None:
    """Out of the box, long questions on the big models get a cheap scan first."""

    client = scripted()
    scanner = ContextScanner(client, threshold_chars=10)
    long_doc = "x" * 11

    for provider in ("openai", "gemini", "anthropic"):
        model_id = client.models_for(provider).default_model
        assert scanner.should_scan(long_doc, provider, model_id, anchored=False), provider
        assert scanner.scan_model(provider, model_id) == client.cheap_model(provider)
    assert not scanner.should_scan(long_doc, "deepseek", "deepseek-chat", anchored=False)
