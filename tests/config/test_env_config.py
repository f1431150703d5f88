from __future__ import annotations

import pytest

from sleevemark.config import ConfigurationError, env_int


def test_env_int_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SLEEVEMARK_MAX_WORKERS", raising=False)

    assert env_int("SLEEVEMARK_MAX_WORKERS", 4) == 4


def test_env_int_reads_positive_value(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SLEEVEMARK_MAX_WORKERS", " 6 ")

    assert env_int("SLEEVEMARK_MAX_WORKERS", 4) == 6


@pytest.mark.parametrize("raw", ["many", "0", "-2"])
def test_env_int_rejects_non_positive_values(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("SLEEVEMARK_MAX_WORKERS", raw)

    with pytest.raises(ConfigurationError, match="SLEEVEMARK_MAX_WORKERS") as excinfo:
        env_int("SLEEVEMARK_MAX_WORKERS", 4)

    assert excinfo.value.source == "SLEEVEMARK_MAX_WORKERS"
