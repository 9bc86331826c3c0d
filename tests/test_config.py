"""Tests for WatchConfig validation and environment defaults."""

import pytest

from beatperf.config import (
    DEFAULT_ENDPOINT,
    WatchConfig,
    get_default_endpoint,
    get_default_interval,
    get_default_max_points,
)
from beatperf.errors import ConfigurationError


class TestValidate:
    """Tests for WatchConfig.validate()."""

    def test_valid_live_config(self):
        """Test a plain live config passes."""
        WatchConfig(memory=True).validate()

    def test_no_metric_source(self):
        """Test selecting nothing fails before the loop."""
        with pytest.raises(ConfigurationError, match="no metrics"):
            WatchConfig().validate()

    def test_archive_only(self):
        """Test a full-output dump alone is enough."""
        WatchConfig(archive_path="dump.ndjson").validate()

    def test_replay_with_endpoint(self):
        """Test replay and an explicit endpoint conflict."""
        with pytest.raises(ConfigurationError):
            WatchConfig(memory=True, replay_path="x.ndjson", endpoint="localhost:5066").validate()

    def test_replay_with_archive(self):
        """Test replay and archiving never touch logs at once."""
        with pytest.raises(ConfigurationError):
            WatchConfig(memory=True, replay_path="x.ndjson", archive_path="y.ndjson").validate()

    @pytest.mark.parametrize("interval", [0, -1.0])
    def test_bad_interval(self, interval):
        """Test the interval must be positive."""
        with pytest.raises(ConfigurationError):
            WatchConfig(memory=True, interval=interval).validate()

    def test_timeout_must_be_shorter_than_interval(self):
        """Test a timeout as long as the interval is rejected."""
        with pytest.raises(ConfigurationError):
            WatchConfig(memory=True, interval=2.0, timeout=2.0).validate()

    def test_timeout_ignored_for_replay(self):
        """Test replay does not need a fetch timeout."""
        WatchConfig(memory=True, replay_path="x.ndjson", interval=1.0, timeout=5.0).validate()

    def test_bad_max_points(self):
        """Test a zero retention cap is rejected."""
        with pytest.raises(ConfigurationError):
            WatchConfig(memory=True, max_points=0).validate()

    def test_negative_replay_delay(self):
        """Test the replay delay cannot be negative."""
        with pytest.raises(ConfigurationError):
            WatchConfig(memory=True, replay_path="x.ndjson", replay_delay=-1).validate()


class TestDerivedValues:
    """Tests for computed properties."""

    def test_default_timeout(self):
        """Test the timeout defaults to a fraction of the interval."""
        assert WatchConfig(interval=5.0).effective_timeout == pytest.approx(4.0)

    def test_default_url(self):
        """Test the default endpoint maps to the Beat stats URL."""
        assert WatchConfig().url == f"http://{DEFAULT_ENDPOINT}/stats"

    def test_custom_stats_path(self):
        """Test the stats path can point at the root document."""
        assert WatchConfig(endpoint="beat:5066", stats_path="").url == "http://beat:5066/"

    def test_full_url_endpoint(self):
        """Test an endpoint given as a URL is used verbatim."""
        assert WatchConfig(endpoint="https://beat.internal:5066/stats/").url == "https://beat.internal:5066/stats"

    def test_is_replay(self):
        """Test replay detection."""
        assert WatchConfig(replay_path="x").is_replay
        assert not WatchConfig().is_replay


class TestEnvironment:
    """Tests for environment defaults."""

    def test_endpoint_from_env(self, monkeypatch):
        """Test BEATPERF_ENDPOINT overrides the default endpoint."""
        monkeypatch.setenv("BEATPERF_ENDPOINT", "beat:9999")
        assert get_default_endpoint() == "beat:9999"
        assert WatchConfig().url == "http://beat:9999/stats"

    def test_interval_from_env(self, monkeypatch):
        """Test BEATPERF_INTERVAL overrides the default interval."""
        monkeypatch.setenv("BEATPERF_INTERVAL", "1.5")
        assert get_default_interval() == 1.5

    def test_bad_interval_env(self, monkeypatch):
        """Test a non-numeric BEATPERF_INTERVAL is a configuration error."""
        monkeypatch.setenv("BEATPERF_INTERVAL", "soon")
        with pytest.raises(ConfigurationError):
            get_default_interval()

    def test_max_points_from_env(self, monkeypatch):
        """Test BEATPERF_MAX_POINTS sets the retention cap."""
        assert get_default_max_points() is None
        monkeypatch.setenv("BEATPERF_MAX_POINTS", "500")
        assert get_default_max_points() == 500
