from tracker.server.settings import TrackerServerSettings


class TestTrackerServerSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("TRACKER_SEED_SAMPLE_DATA", raising=False)

        settings = TrackerServerSettings()

        assert settings.log_dir == "backend/logs/tracker"
        assert settings.cors_origins == []
        assert settings.seed_sample_data is False

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("TRACKER_SEED_SAMPLE_DATA", "true")
        monkeypatch.setenv("TRACKER_CORS_ORIGINS", '["https://scores.example.com"]')

        settings = TrackerServerSettings()

        assert settings.seed_sample_data is True
        assert settings.cors_origins == ["https://scores.example.com"]
