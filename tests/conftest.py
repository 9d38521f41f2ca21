"""Shared pytest fixtures for build-a-bot tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from build_a_bot.config import BotConfig


@pytest.fixture
def fast_config():
    """Config with every delay and spacing switched off.

    Tests exercise retry and queueing logic without sleeping for real.
    """
    config = BotConfig()
    config.marketplace.min_interval_seconds = 0
    config.marketplace.base_delay_seconds = 0
    config.batch.min_interval_seconds = 0
    return config


@pytest.fixture
def make_response():
    """Create a mock httpx response."""

    def _make_response(json_data=None, status_code=200, content_type="application/json"):
        response = MagicMock()
        response.status_code = status_code
        response.headers = {"content-type": content_type}
        response.json.return_value = json_data
        response.raise_for_status = MagicMock()
        if status_code >= 400 and status_code != 429:
            from httpx import HTTPStatusError

            response.raise_for_status.side_effect = HTTPStatusError(
                "Error", request=MagicMock(), response=response
            )
        return response

    return _make_response


@pytest.fixture
def make_llm_client():
    """Create a fake chat-completions client returning canned replies in order."""

    def _make_llm_client(*replies):
        completions = []
        for text in replies:
            completion = MagicMock()
            choice = MagicMock()
            choice.message.content = text
            completion.choices = [choice]
            completions.append(completion)

        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=completions)
        client.close = AsyncMock()
        return client

    return _make_llm_client
