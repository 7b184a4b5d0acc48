"""Unit tests for config loading, env interpolation, and validation."""
from __future__ import annotations

from pathlib import Path

import pytest

from prismos.config import (
    AppConfig,
    ChainConfig,
    LedgerConfig,
    SchedulerConfig,
    _interpolate_env,
    load_config,
)


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _interpolate_env("${MY_VAR}") == "hello"

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        assert _interpolate_env("${NONEXISTENT_VAR_XYZ}") == ""

    def test_nested_dict(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOK", "secret")
        result = _interpolate_env({"key": "${TOK}", "plain": "text"})
        assert result == {"key": "secret", "plain": "text"}

    def test_nested_list(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("A", "x")
        assert _interpolate_env(["${A}", "y"]) == ["x", "y"]

    def test_non_string_passthrough(self) -> None:
        assert _interpolate_env(42) == 42
        assert _interpolate_env(True) is True


class TestLoadConfig:
    def test_loads_valid_yaml(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert isinstance(cfg, AppConfig)
        assert cfg.scheduler.position_check_minutes == 30
        assert cfg.scheduler.settlement_interval_hours == 12
        assert cfg.fees.settlement_threshold_usd == 5.0
        assert cfg.chain.rpc_endpoints == ("https://rpc.example.com",)
        assert cfg.chain.rpc_timeout == 10
        assert cfg.pool.token0.symbol == "WBTC"
        assert cfg.pool.token0.decimals == 8
        assert cfg.store.subscriptions_path == "/tmp/subs.json"

    def test_defaults_for_omitted_sections(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert cfg.loop.max_consecutive_errors == 3
        assert cfg.ledger.initial_credit == 10_000_000
        assert cfg.ledger.skip_payment is False
        assert cfg.agent.max_tokens == 1024
        assert cfg.market.cache_ttl_seconds == 300.0
        assert cfg.pool.fee == 100
        assert cfg.pool.tick_lower == -50000

    def test_agent_profiles_keyed_lowercase(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        profile = cfg.agents["yield.prismos.eth"]
        assert profile.name == "Yield Agent"
        assert profile.fee_collect_bps == 500
        assert profile.fee_compound_bps == 1000

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_env_interpolation_in_yaml(
        self, sample_yaml_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_ANTHROPIC_KEY", "sk-test")
        cfg = load_config(sample_yaml_path)
        assert cfg.agent.api_key == "sk-test"

    def test_skip_payment_from_env_string(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_SKIP", "true")
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(
            """\
ledger:
  skip_payment: "${TEST_SKIP}"
chain:
  rpc_endpoints: ["https://rpc.test.com"]
pool:
  token0: {address: "0xaaa"}
  token1: {address: "0xbbb"}
"""
        )
        assert load_config(cfg_file).ledger.skip_payment is True


class TestValidation:
    def _write(self, tmp_path: Path, content: str) -> Path:
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text(content)
        return cfg_file

    def test_no_rpc_endpoints_raises(self, tmp_path: Path) -> None:
        cfg_file = self._write(
            tmp_path,
            """\
chain:
  rpc_endpoints: []
pool:
  token0: {address: "0xaaa"}
  token1: {address: "0xbbb"}
""",
        )
        with pytest.raises(ValueError, match="At least one RPC endpoint"):
            load_config(cfg_file)

    def test_non_positive_interval_raises(self, tmp_path: Path) -> None:
        cfg_file = self._write(
            tmp_path,
            """\
scheduler:
  position_check_minutes: 0
chain:
  rpc_endpoints: ["https://rpc.test.com"]
pool:
  token0: {address: "0xaaa"}
  token1: {address: "0xbbb"}
""",
        )
        with pytest.raises(ValueError, match="position_check_minutes"):
            load_config(cfg_file)

    def test_non_positive_threshold_raises(self, tmp_path: Path) -> None:
        cfg_file = self._write(
            tmp_path,
            """\
fees:
  settlement_threshold_usd: 0
chain:
  rpc_endpoints: ["https://rpc.test.com"]
pool:
  token0: {address: "0xaaa"}
  token1: {address: "0xbbb"}
""",
        )
        with pytest.raises(ValueError, match="settlement_threshold_usd"):
            load_config(cfg_file)

    def test_missing_pool_token_raises(self, tmp_path: Path) -> None:
        cfg_file = self._write(
            tmp_path,
            """\
chain:
  rpc_endpoints: ["https://rpc.test.com"]
pool:
  token0: {address: "0xaaa"}
""",
        )
        with pytest.raises(ValueError, match="token1 has no address"):
            load_config(cfg_file)


class TestFrozenConfigs:
    def test_scheduler_immutable(self) -> None:
        s = SchedulerConfig()
        with pytest.raises(AttributeError):
            s.position_check_minutes = 5  # type: ignore[misc]

    def test_chain_config_immutable(self) -> None:
        c = ChainConfig(rpc_endpoints=("a",))
        with pytest.raises(AttributeError):
            c.rpc_timeout = 999  # type: ignore[misc]

    def test_ledger_config_immutable(self) -> None:
        c = LedgerConfig()
        with pytest.raises(AttributeError):
            c.initial_credit = 1  # type: ignore[misc]
