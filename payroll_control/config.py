"""Central configuration for the payroll control package."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Mapping

from payroll_control.domain.concepts import ConceptRegistry
from payroll_control.infrastructure.storage.concept_store import load_concepts

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_TOLERANCE = Decimal("0.01")
DEFAULT_FETCH_WORKERS = 8

ENV_TOLERANCE = "PAYROLL_CONTROL_TOLERANCE"
ENV_DATA_DIR = "PAYROLL_CONTROL_DATA_DIR"
ENV_FETCH_WORKERS = "PAYROLL_CONTROL_FETCH_WORKERS"


@dataclass(slots=True, frozen=True)
class Settings:
    tolerance_abs: Decimal
    concepts: ConceptRegistry
    data_dir: Path
    archive_dir: Path
    fetch_workers: int
    show_passing: bool


def _env_decimal(env: Mapping[str, str], name: str, default: Decimal) -> Decimal:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = Decimal(raw)
    except InvalidOperation:
        logger.warning("Ignoring %s=%r: not a number", name, raw)
        return default
    if not value.is_finite() or value < 0:
        logger.warning("Ignoring %s=%r: must be a finite value >= 0", name, raw)
        return default
    return value


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, raw)
        return default
    return value if value > 0 else default


def load_settings(env: Mapping[str, str] | None = None, concepts_path: Path | None = None) -> Settings:
    env = os.environ if env is None else env
    data_dir = Path(env.get(ENV_DATA_DIR) or BASE_DIR / "data")
    return Settings(
        tolerance_abs=_env_decimal(env, ENV_TOLERANCE, DEFAULT_TOLERANCE),
        concepts=load_concepts(concepts_path),
        data_dir=data_dir,
        archive_dir=data_dir / "controls",
        fetch_workers=_env_int(env, ENV_FETCH_WORKERS, DEFAULT_FETCH_WORKERS),
        show_passing=False,
    )


SETTINGS = load_settings()
