"""Settings sources: YAML file, environment overrides and defaults."""

from pathlib import Path

from ugcpipe.config import Settings, YamlConfigSettingsSource


def test_yaml_source_missing_file_is_empty(tmp_path):
    source = YamlConfigSettingsSource(Settings, path=tmp_path / "absent.yaml")
    assert source() == {}


def test_yaml_source_ignores_non_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")
    assert YamlConfigSettingsSource(Settings, path=path)() == {}


def test_env_overrides_yaml_and_yaml_overrides_defaults(tmp_path, monkeypatch):
    (tmp_path / "config.yaml").write_text(
        "quota:\n"
        "  daily_video_quota: 10\n"
        "  daily_image_quota: 20\n"
        "credits:\n"
        "  image_cost: 75\n"
        "storage:\n"
        "  output_dir: media/out\n"
    )
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("UGCPIPE_CONFIG_FILE", raising=False)
    monkeypatch.setenv("UGCPIPE_QUOTA__DAILY_VIDEO_QUOTA", "7")

    loaded = Settings()

    assert loaded.quota.daily_video_quota == 7
    assert loaded.quota.daily_image_quota == 20
    assert loaded.credits.image_cost == 75
    assert loaded.credits.video_scene_cost["premium-pro"] == 200
    assert loaded.storage.output_dir == Path("media/out")


def test_config_file_location_from_env(tmp_path, monkeypatch):
    custom = tmp_path / "staging.yaml"
    custom.write_text("pipeline:\n  max_scenes: 3\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("UGCPIPE_CONFIG_FILE", str(custom))

    assert Settings().pipeline.max_scenes == 3
