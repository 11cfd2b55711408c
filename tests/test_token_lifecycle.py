"""Tests for TokenLifecycleManager."""
from datetime import timedelta

import pytest

from secretdrop.application.services.token_lifecycle import TokenLifecycleManager
from secretdrop.domain.errors import ValidationError


class TestTokenLifecycleManager:
    def test_use_budget_covers_one_write_and_one_read(self, scripted_backend):
        assert TokenLifecycleManager(scripted_backend).use_budget == 2

    def test_mint_requests_non_renewable_two_use_credential(self, scripted_backend):
        token = TokenLifecycleManager(scripted_backend).mint(timedelta(hours=1))

        assert token.startswith("hvs.")
        assert scripted_backend.calls == [("create_token", 2, timedelta(hours=1), False)]

    @pytest.mark.parametrize("ttl", [
        timedelta(0),
        timedelta(seconds=59),
        timedelta(hours=168, seconds=1),
        timedelta(hours=-1),
    ])
    def test_out_of_range_ttl_fails_before_backend(self, scripted_backend, ttl):
        with pytest.raises(ValidationError, match="TTL out of range"):
            TokenLifecycleManager(scripted_backend).mint(ttl)
        assert scripted_backend.calls == []

    @pytest.mark.parametrize("ttl", [timedelta(minutes=1), timedelta(hours=168)])
    def test_bounds_are_inclusive(self, scripted_backend, ttl):
        TokenLifecycleManager(scripted_backend).mint(ttl)
        assert len(scripted_backend.calls_to("create_token")) == 1
