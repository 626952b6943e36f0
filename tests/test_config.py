from decimal import Decimal
from pathlib import Path

from payroll_control.config import (
    DEFAULT_FETCH_WORKERS,
    DEFAULT_TOLERANCE,
    ENV_DATA_DIR,
    ENV_FETCH_WORKERS,
    ENV_TOLERANCE,
    load_settings,
)


def test_defaults_without_environment(tmp_path: Path):
    settings = load_settings(env={}, concepts_path=tmp_path / "absent.json")

    assert settings.tolerance_abs == DEFAULT_TOLERANCE
    assert settings.fetch_workers == DEFAULT_FETCH_WORKERS
    assert settings.archive_dir == settings.data_dir / "controls"
    assert not settings.show_passing
    assert len(settings.concepts) == 5


def test_environment_overrides(tmp_path: Path):
    env = {ENV_TOLERANCE: "0.05", ENV_DATA_DIR: str(tmp_path), ENV_FETCH_WORKERS: "3"}

    settings = load_settings(env=env, concepts_path=tmp_path / "absent.json")

    assert settings.tolerance_abs == Decimal("0.05")
    assert settings.data_dir == tmp_path
    assert settings.archive_dir == tmp_path / "controls"
    assert settings.fetch_workers == 3


def test_invalid_environment_values_are_ignored(tmp_path: Path):
    env = {ENV_TOLERANCE: "-1", ENV_FETCH_WORKERS: "zero"}

    settings = load_settings(env=env, concepts_path=tmp_path / "absent.json")

    assert settings.tolerance_abs == DEFAULT_TOLERANCE
    assert settings.fetch_workers == DEFAULT_FETCH_WORKERS
