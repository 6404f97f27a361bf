from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class EngineConstants:
    platform_fee_inclusive: float = 10.19  # per unit, VAT-inclusive at expense_vat_rate
    expense_vat_rate: float = 20.0         # percent; shipping, commission, platform fee, fixed costs
    withholding_rate: float = 1.0          # percent of the net unit sale price


DEFAULT_CONSTANTS = EngineConstants()


def get_engine_constants() -> EngineConstants:
    return EngineConstants(
        platform_fee_inclusive=float(os.getenv("PLATFORM_FEE_INCLUSIVE", DEFAULT_CONSTANTS.platform_fee_inclusive)),
        expense_vat_rate=float(os.getenv("EXPENSE_VAT_RATE", DEFAULT_CONSTANTS.expense_vat_rate)),
        withholding_rate=float(os.getenv("WITHHOLDING_RATE", DEFAULT_CONSTANTS.withholding_rate)),
    )


@dataclass(frozen=True)
class SolverConfig:
    max_iterations: int = 50
    tolerance: float = 0.01  # currency units
    max_bracket_doublings: int = 32


DEFAULT_SOLVER = SolverConfig()


@dataclass(frozen=True)
class StoreConfig:
    root: Path


def get_store_config() -> StoreConfig:
    return StoreConfig(root=Path(os.getenv("SNAPSHOT_ROOT", "./snapshots")).resolve())


def configure_logging(level: str | None = None) -> None:
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
