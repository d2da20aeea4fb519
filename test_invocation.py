"""
Tests for the resilient invocation wrapper and retry policy.

Run with:
    pytest test_invocation.py
"""

import random

import pytest

from techdeck.agents.invocation import ResilientInvoker, RetryPolicy
from techdeck.agents.providers import GeminiProvider
from techdeck.core.exceptions import InvocationExhausted, TransientInvocationError


@pytest.mark.parametrize("failures", [0, 1, 2])
async def test_succeeds_after_transient_failures(failures, make_provider, make_invoker, fake_sleep):
    provider = make_provider([TransientInvocationError("rate limited")] * failures + ["hello"])
    invoker = make_invoker(provider)

    result = await invoker.invoke("generateChallenge", "prompt")

    assert result == "hello"
    assert provider.calls == failures + 1
    assert len(fake_sleep.delays) == failures


async def test_exhausted_after_three_attempts(make_provider, make_invoker, fake_sleep):
    provider = make_provider(default=None, replies=[ConnectionError("network down")] * 5)
    invoker = make_invoker(provider)

    with pytest.raises(InvocationExhausted) as exc_info:
        await invoker.invoke("generateFeedback", "prompt")

    message = str(exc_info.value)
    assert "generateFeedback" in message
    assert "3 attempts" in message
    assert "network down" in message
    assert exc_info.value.attempts == 3
    assert isinstance(exc_info.value.last_error, ConnectionError)
    assert provider.calls == 3
    assert len(fake_sleep.delays) == 2


async def test_delays_double_each_attempt(make_provider, make_invoker, fake_sleep):
    provider = make_provider([RuntimeError("x"), RuntimeError("y"), "ok"])
    invoker = make_invoker(provider)

    await invoker.invoke("op", "prompt")

    # rng=0.5 means zero jitter; the sleeper receives seconds
    assert fake_sleep.delays == [1.0, 2.0]


async def test_same_prompt_sent_on_every_attempt(make_provider, make_invoker):
    provider = make_provider([RuntimeError("x"), "ok"])

    await make_invoker(provider).invoke("op", "the prompt")

    assert provider.prompts == ["the prompt", "the prompt"]


async def test_single_attempt_policy(make_provider, fake_sleep):
    provider = make_provider([RuntimeError("boom")])
    invoker = ResilientInvoker(provider, RetryPolicy(max_attempts=1), sleep=fake_sleep)

    with pytest.raises(InvocationExhausted, match="1 attempts"):
        await invoker.invoke("op", "prompt")
    assert fake_sleep.delays == []


@pytest.mark.parametrize("attempt", [1, 2, 3, 4])
def test_backoff_within_jitter_bounds(attempt):
    policy = RetryPolicy(rng=random.Random(attempt).random)
    base = 1000 * 2 ** (attempt - 1)

    for _ in range(50):
        delay = policy.backoff_ms(attempt)
        assert base * 0.9 <= delay <= base * 1.1


def test_backoff_extremes():
    low = RetryPolicy(rng=lambda: 0.0)
    high = RetryPolicy(rng=lambda: 1.0)

    assert low.backoff_ms(2) == pytest.approx(1800)
    assert high.backoff_ms(2) == pytest.approx(2200)
    assert high.backoff(1) == pytest.approx(1.1)


def test_policy_rejects_bad_values():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        RetryPolicy(jitter=1.5)


def test_gemini_provider_requires_api_key():
    with pytest.raises(ValueError, match="GEMINI_API_KEY"):
        GeminiProvider(api_key="", model="gemini-2.5-flash")
