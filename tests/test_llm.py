"""Unit tests for the LLM provider layer."""
import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from healthguard.llm import (
    CompletionStream,
    GenerationParams,
    LLMProvider,
    OpenRouterProvider,
    PromptMessage,
    TokenUsage,
    create_llm_provider,
)
from healthguard.llm.providers.openrouter import DEFAULT_MODEL


class TestLLMProviderInterface:
    """Tests for the abstract LLMProvider interface."""

    def test_provider_is_abstract(self):
        """Test that LLMProvider cannot be instantiated directly."""
        with pytest.raises(TypeError):
            LLMProvider()  # type: ignore


class TestModels:
    """Tests for prompt and generation models."""

    def test_sampling_kwargs_skip_unset(self):
        """Test only set sampling fields are sent, never the model."""
        params = GenerationParams(model="m", temperature=0.5, max_tokens=120)

        assert params.sampling_kwargs() == {"temperature": 0.5, "max_tokens": 120}

    @pytest.mark.parametrize("fields", [
        {"temperature": 3.0},
        {"top_p": 0.0},
        {"max_tokens": 0},
    ])
    def test_invalid_params(self, fields):
        """Test out-of-range sampling values are rejected."""
        with pytest.raises(ValidationError):
            GenerationParams(**fields)

    def test_prompt_roles(self):
        """Test only chat roles are accepted."""
        with pytest.raises(ValidationError):
            PromptMessage(role="tool", content="x")

    async def test_stream_iterates_and_holds_usage(self):
        """Test chunks pass through and usage can be attached."""
        async def chunks():
            yield "a"
            yield "b"

        stream = CompletionStream(chunks())
        assert stream.usage is None

        assert [c async for c in stream] == ["a", "b"]
        stream.usage = TokenUsage(total_tokens=3)
        assert stream.usage.total_tokens == 3


class TestOpenRouterProvider:
    """Tests for OpenRouterProvider."""

    def test_default_model(self):
        """Test the default model is used when none is given."""
        assert OpenRouterProvider(api_key="fake-key").model == DEFAULT_MODEL

    def test_custom_model(self):
        """Test a custom default model."""
        provider = OpenRouterProvider(api_key="fake-key", model="openai/gpt-4o-mini")

        assert provider.model == "openai/gpt-4o-mini"

    def test_request_uses_default_model(self):
        """Test params without a model fall back to the provider default."""
        provider = OpenRouterProvider(api_key="fake-key")

        request = provider._request(
            [PromptMessage(role="user", content="hi")],
            GenerationParams(temperature=0.5, top_p=0.8),
        )

        assert request == {
            "model": DEFAULT_MODEL,
            "messages": [{"role": "user", "content": "hi"}],
            "temperature": 0.5,
            "top_p": 0.8,
        }

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_complete_real_api(self, api_keys):
        """Integration test: one completion from the real API."""
        if not api_keys["openrouter"]:
            pytest.skip("OPENROUTER_API_KEY not set")

        provider = OpenRouterProvider(api_key=api_keys["openrouter"])
        try:
            completion = await provider.complete(
                [PromptMessage(role="user", content="Name one healthy breakfast in five words.")],
                GenerationParams(max_tokens=30),
            )

            assert completion.text
            assert completion.model
        finally:
            await provider.close()


class TestLLMFactory:
    """Tests for create_llm_provider."""

    def test_create_openrouter_provider(self):
        """Test creating an OpenRouter provider."""
        provider = create_llm_provider("openrouter", api_key="fake-key")

        assert isinstance(provider, OpenRouterProvider)
        assert provider.model == DEFAULT_MODEL

    def test_provider_name_is_case_insensitive(self):
        """Test provider names ignore case."""
        assert isinstance(create_llm_provider("OpenRouter", api_key="fake-key"), OpenRouterProvider)

    def test_create_openai_provider(self):
        """Test the OpenAI variant needs an explicit model."""
        provider = create_llm_provider("openai", api_key="fake-key", model="gpt-4o-mini")

        assert provider.model == "gpt-4o-mini"

    def test_openai_requires_model(self):
        """Test the OpenAI variant without a model is rejected."""
        with pytest.raises(TypeError, match="model"):
            create_llm_provider("openai", api_key="fake-key")

    def test_missing_api_key(self):
        """Test that a missing api_key raises TypeError."""
        with pytest.raises(TypeError, match="api_key"):
            create_llm_provider("openrouter")

    def test_unsupported_provider_raises_error(self):
        """Test that unsupported provider raises ValueError."""
        with pytest.raises(ValueError, match="Unsupported provider"):
            create_llm_provider("unsupported", api_key="fake-key")

    @given(st.text(min_size=1, max_size=50).filter(lambda x: x.lower() not in ("openrouter", "openai")))
    def test_factory_rejects_random_providers(self, provider_name: str):
        """Property test: Factory should reject any non-supported provider name."""
        with pytest.raises(ValueError, match="Unsupported provider"):
            create_llm_provider(provider_name, api_key="fake-key")
