"""Tests for LLMClient provider abstraction."""

import pytest
from unittest.mock import Mock
from support_assistant.common.llm_client import LLMClient


class TestLLMClientInit:
    def test_missing_anthropic_key_logs_info(self, caplog):
        import logging
        with caplog.at_level(logging.INFO, logger="support_assistant.common.llm_client"):
            client = LLMClient(provider="anthropic")
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_missing_openai_key_logs_info(self, caplog):
        import logging
        with caplog.at_level(logging.INFO, logger="support_assistant.common.llm_client"):
            client = LLMClient(provider="openai")
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_missing_google_key_logs_info(self, caplog):
        import logging
        with caplog.at_level(logging.INFO, logger="support_assistant.common.llm_client"):
            client = LLMClient(provider="google")
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_unsupported_provider_logs_warning(self, caplog):
        import logging
        with caplog.at_level(logging.WARNING, logger="support_assistant.common.llm_client"):
            client = LLMClient(provider="unsupported_xyz")
        assert not client.is_available
        assert "Unsupported" in caplog.text

    def test_from_config_uses_provider_model(self):
        from support_assistant.common.config import LLMConfig
        client = LLMClient.from_config(LLMConfig(provider="openai"))
        assert client.provider == "openai"
        assert client.model == "gpt-4o-mini"
        assert not client.is_available


class TestLLMClientGenerate:
    def test_generate_raises_when_unavailable(self):
        from support_assistant.common.errors import GenerationFailure
        client = LLMClient(provider="anthropic")
        with pytest.raises(GenerationFailure, match="not available"):
            client.generate("test")

    def test_generation_failure_is_runtime_error(self):
        client = LLMClient(provider="openai")
        with pytest.raises(RuntimeError):
            client.generate("test")

    def test_openai_generate_passes_system_prompt(self):
        client = LLMClient(provider="openai", model="gpt-4o-mini")
        mock_sdk = Mock()
        mock_sdk.chat.completions.create.return_value.choices = [
            Mock(message=Mock(content="  answer  "))
        ]
        client._client = mock_sdk

        assert client.generate("question", system="be brief", max_tokens=50) == "answer"

        kwargs = mock_sdk.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "be brief"}
        assert kwargs["max_tokens"] == 50

    def test_anthropic_omits_empty_system(self):
        client = LLMClient(provider="anthropic", model="claude-sonnet-4-20250514")
        mock_sdk = Mock()
        mock_sdk.messages.create.return_value.content = [Mock(text="ok")]
        client._client = mock_sdk

        client.generate("question")

        assert "system" not in mock_sdk.messages.create.call_args.kwargs

    def test_provider_error_wrapped(self):
        from support_assistant.common.errors import GenerationFailure
        client = LLMClient(provider="openai", model="gpt-4o-mini")
        mock_sdk = Mock()
        mock_sdk.chat.completions.create.side_effect = Exception("429 Too Many Requests")
        client._client = mock_sdk

        with pytest.raises(GenerationFailure, match="429"):
            client.generate("question")
