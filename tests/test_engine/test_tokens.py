"""Tests for character-based token estimation and model budgets."""

from __future__ import annotations

import pytest

from tickertape.engine.tokens import (
    TOKEN_BUDGETS,
    estimate_json_tokens,
    estimate_tokens,
    exceeds_token_budget,
    get_token_budget,
)


class TestEstimateTokens:
    """Tests for estimate_tokens()."""

    def test_empty_string_is_zero(self) -> None:
        assert estimate_tokens("") == 0
        assert estimate_tokens("", "json") == 0

    def test_text_uses_four_chars_per_token(self) -> None:
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("a" * 100) == 25

    def test_rounds_up(self) -> None:
        """A partial token counts as a whole one."""
        assert estimate_tokens("abcde") == 2
        assert estimate_tokens("a") == 1

    def test_json_uses_three_and_a_half_chars_per_token(self) -> None:
        assert estimate_tokens("a" * 7, "json") == 2
        assert estimate_tokens("a" * 100, "json") == 29

    def test_reference_examples(self) -> None:
        assert estimate_tokens("Hello world") == 3
        assert estimate_tokens('{"key":"value"}', "json") == 5

    def test_code_matches_json_ratio(self) -> None:
        text = "def f(x): return x * 2"
        assert estimate_tokens(text, "code") == estimate_tokens(text, "json")

    @pytest.mark.parametrize("length", [1, 3, 4, 5, 99, 1000])
    def test_json_never_below_text(self, length: int) -> None:
        text = "x" * length
        assert estimate_tokens(text, "json") >= estimate_tokens(text, "text")


class TestEstimateJsonTokens:
    """Tests for estimate_json_tokens()."""

    def test_string_is_measured_as_is(self) -> None:
        assert estimate_json_tokens('{"a":1}') == estimate_tokens('{"a":1}', "json")

    def test_data_is_serialized_first(self) -> None:
        data = {"ticker": "AAPL", "close": 189.5}
        assert estimate_json_tokens(data) == estimate_tokens(
            '{"ticker": "AAPL", "close": 189.5}', "json"
        )


class TestExceedsTokenBudget:
    def test_under_and_over(self) -> None:
        assert not exceeds_token_budget("a" * 40, 10)
        assert exceeds_token_budget("a" * 41, 10)

    def test_respects_kind(self) -> None:
        assert exceeds_token_budget("a" * 40, 10, "json")


class TestGetTokenBudget:
    """Tests for budget preset selection."""

    @pytest.mark.parametrize("model", ["gpt-4o", "gpt-4o-mini", "claude-sonnet-4", "o3"])
    def test_modern_models_get_large_budget(self, model: str) -> None:
        assert get_token_budget(model) == TOKEN_BUDGETS["large"]

    @pytest.mark.parametrize("model", ["gpt-3.5-turbo", "GPT-3.5-turbo-0125", "azure/gpt-3.5"])
    def test_legacy_models_get_small_budget(self, model: str) -> None:
        assert get_token_budget(model) == TOKEN_BUDGETS["small"]

    def test_preset_values(self) -> None:
        large = TOKEN_BUDGETS["large"]
        assert (large.max_input, large.tool_results, large.per_tool_result, large.chat_history) == (
            200_000, 150_000, 40_000, 10_000,
        )
        small = TOKEN_BUDGETS["small"]
        assert (small.max_input, small.tool_results, small.per_tool_result, small.chat_history) == (
            12_000, 8_000, 3_000, 2_000,
        )
