# SPDX-License-Identifier: MIT
"""Tests for configuration."""

import pytest
from pydantic import ValidationError

from pinmatch.config import (
    DATA_SOURCES,
    MatchingSettings,
    PathSettings,
    get_cluster_worker_limit,
    get_worker_limit,
)


class TestMatchingSettings:
    """Test matching configuration."""

    def test_defaults(self):
        """Default weights and thresholds."""
        matching = MatchingSettings()
        assert matching.weights == (0.40, 0.20, 0.20, 0.10, 0.10)
        assert matching.confidence_threshold == 0.6
        assert matching.ipdb_threshold == 0.60
        assert matching.lbdb_threshold == 0.65
        assert matching.source_priority == ["vpsdb", "ipdb", "lbdb"]

    def test_weights_must_sum_to_one(self):
        """Weight sets not summing to 1.0 are rejected."""
        with pytest.raises(ValidationError):
            MatchingSettings(name_weight=0.5)

    def test_weights_must_be_non_negative(self):
        """Negative weights are rejected even when the sum is 1.0."""
        with pytest.raises(ValidationError):
            MatchingSettings(name_weight=-0.1, year_weight=0.7)

    def test_env_override(self, monkeypatch):
        """Thresholds and priority can be set from the environment."""
        monkeypatch.setenv("PINMATCH_MATCH_CONFIDENCE_THRESHOLD", "0.7")
        monkeypatch.setenv("PINMATCH_MATCH_SOURCE_PRIORITY", '["lbdb", "vpsdb"]')
        matching = MatchingSettings()
        assert matching.confidence_threshold == 0.7
        assert matching.source_priority == ["lbdb", "vpsdb"]


class TestPathSettings:
    """Test path configuration."""

    def test_corpus_path(self, tmp_path):
        """Corpus files live in the data directory."""
        paths = PathSettings(data_dir=str(tmp_path))
        assert paths.corpus_path("ipdb") == tmp_path / DATA_SOURCES["ipdb"]["file_name"]

    def test_env_override(self, monkeypatch, tmp_path):
        """Output paths can be set from the environment."""
        monkeypatch.setenv("PINMATCH_MASTER_PATH", str(tmp_path / "m.json"))
        assert PathSettings().master_path == tmp_path / "m.json"


class TestWorkerLimits:
    """Test worker pool sizing."""

    def test_worker_limit_minimum(self, monkeypatch):
        """Unknown CPU counts fall back to one worker."""
        monkeypatch.setattr("pinmatch.config.os.cpu_count", lambda: None)
        assert get_worker_limit() == 1

    def test_cluster_worker_fraction(self, monkeypatch):
        """The cluster build uses a share of hardware threads."""
        monkeypatch.setattr("pinmatch.config.os.cpu_count", lambda: 10)
        assert get_worker_limit() == 10
        assert get_cluster_worker_limit(0.8) == 8

    def test_cluster_worker_minimum(self, monkeypatch):
        """At least one cluster worker is used."""
        monkeypatch.setattr("pinmatch.config.os.cpu_count", lambda: 1)
        assert get_cluster_worker_limit(0.8) == 1
