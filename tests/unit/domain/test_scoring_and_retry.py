"""Tests for scoring configuration values and the indexing retry policy."""

import pytest

from candidate_search.domain.entities.scoring import (
    FUSION_STRATEGY_KEY,
    SEMANTIC_WEIGHT_KEY,
    FusionStrategy,
    ScoringConfig,
)
from candidate_search.domain.exceptions import EmbeddingGenerationError, ValidationError
from candidate_search.domain.retry import BackoffStrategy, RetryPolicy


class TestScoringConfig:
    """Test scoring configuration validation."""

    def test_valid_config(self):
        config = ScoringConfig("acme", "tiered", 0.7, 0.3, 0.5)

        assert config.fusion_strategy is FusionStrategy.TIERED
        assert config.weight_total == pytest.approx(1.0)

    @pytest.mark.parametrize(
        "semantic, keyword, threshold",
        [
            (-0.1, 0.5, 0.3),
            (0.5, -1.0, 0.3),
            (float("nan"), 0.5, 0.3),
            (0.5, 0.5, 1.5),
            (0.5, 0.5, -0.01),
        ],
    )
    def test_invalid_values(self, semantic, keyword, threshold):
        with pytest.raises(ValidationError):
            ScoringConfig("acme", "weighted_sum", semantic, keyword, threshold)

    def test_unknown_fusion_strategy(self):
        with pytest.raises(ValidationError):
            ScoringConfig("acme", "borda_count", 0.5, 0.5, 0.3)

    def test_store_values(self):
        values = ScoringConfig("acme", FusionStrategy.RECIPROCAL_RANK, 0.25, 0.75, 0.4).to_store_values()

        assert values[SEMANTIC_WEIGHT_KEY] == "0.25"
        assert values[FUSION_STRATEGY_KEY] == "reciprocal_rank"


class TestRetryPolicy:
    """Test retry decisions and backoff delays."""

    def test_exponential_delays_are_capped(self):
        policy = RetryPolicy(base_delay_seconds=2.0, max_delay_seconds=10.0)

        assert [policy.calculate_delay(attempt) for attempt in (1, 2, 3, 4)] == [2.0, 4.0, 8.0, 10.0]

    def test_linear_and_fixed(self):
        linear = RetryPolicy(base_delay_seconds=3.0, backoff_strategy=BackoffStrategy.LINEAR)
        fixed = RetryPolicy(base_delay_seconds=3.0, backoff_strategy=BackoffStrategy.FIXED)

        assert linear.calculate_delay(3) == 9.0
        assert fixed.calculate_delay(3) == 3.0

    def test_attempt_cap_counts_first_attempt(self):
        policy = RetryPolicy(max_attempts=3)

        assert policy.has_attempts_left(0)
        assert policy.has_attempts_left(1)
        assert not policy.has_attempts_left(2)

    def test_transient_errors(self):
        policy = RetryPolicy()

        assert policy.is_retryable(EmbeddingGenerationError("rate limited"))
        assert policy.is_retryable(ConnectionResetError())
        assert policy.is_retryable(TimeoutError())
        assert not policy.is_retryable(ValueError("bad data"))
        assert not policy.is_retryable(ValidationError("bad message"))
