"""Tests for hard-TTL and invalidation checks."""

from temporal_facts.models import FactType
from temporal_facts.temporal import (
    FACT_TYPE_HALF_LIVES,
    is_ephemeral_fact_type,
    is_expired,
    is_invalidated,
    is_stable_fact_type,
    is_valid,
)

VALID_FROM = 1_700_000_000_000


class TestIsExpired:
    def test_no_ttl_never_expires(self, temporal_fact):
        fact = temporal_fact(valid_from=VALID_FROM, ttl_seconds=None)
        assert is_expired(fact, VALID_FROM + 10**12) is False

    def test_expired_exactly_at_boundary(self, temporal_fact):
        fact = temporal_fact(valid_from=VALID_FROM, ttl_seconds=3600)
        boundary = VALID_FROM + 3600 * 1000

        assert is_expired(fact, boundary - 1) is False
        assert is_expired(fact, boundary) is True
        assert is_expired(fact, boundary + 1) is True


class TestIsInvalidated:
    def test_active_fact(self, temporal_fact):
        fact = temporal_fact(valid_to=None)
        assert is_invalidated(fact, VALID_FROM) is False

    def test_valid_to_is_exclusive(self, temporal_fact):
        fact = temporal_fact(valid_from=VALID_FROM, valid_to=VALID_FROM + 5000)

        assert is_invalidated(fact, VALID_FROM + 4999) is False
        assert is_invalidated(fact, VALID_FROM + 5000) is True


class TestIsValid:
    def test_valid_when_neither(self, temporal_fact):
        fact = temporal_fact(valid_from=VALID_FROM, ttl_seconds=60)
        assert is_valid(fact, VALID_FROM + 1000) is True

    def test_invalid_when_expired(self, temporal_fact):
        fact = temporal_fact(valid_from=VALID_FROM, ttl_seconds=60)
        assert is_valid(fact, VALID_FROM + 60_000) is False

    def test_invalid_when_invalidated(self, temporal_fact):
        fact = temporal_fact(valid_from=VALID_FROM, valid_to=VALID_FROM + 10)
        assert is_valid(fact, VALID_FROM + 10) is False


class TestFactTypePolicies:
    def test_default_half_lives(self):
        assert FACT_TYPE_HALF_LIVES == {
            FactType.ERROR: 3600,
            FactType.STATE: 14400,
            FactType.PLAN: 86400,
            FactType.DECISION: 86400,
            FactType.OBSERVATION: 604800,
            FactType.PREFERENCE: 2592000,
            FactType.IDENTITY: 7776000,
        }

    def test_ephemeral_and_stable_types(self):
        for t in (FactType.ERROR, FactType.STATE, FactType.PLAN, FactType.DECISION):
            assert is_ephemeral_fact_type(t)
            assert not is_stable_fact_type(t)
        for t in (FactType.PREFERENCE, FactType.IDENTITY):
            assert is_stable_fact_type(t)
            assert not is_ephemeral_fact_type(t)
        assert not is_ephemeral_fact_type(FactType.OBSERVATION)
        assert not is_stable_fact_type(FactType.OBSERVATION)
        assert not is_ephemeral_fact_type(None)
