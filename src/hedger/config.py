"""Calculator settings loaded from YAML.

Settings are an explicit value object handed to the parser, fee and solver
calls. Nothing reads them from module state.

Example file:

    sign_preference: "-"
    contract_open_rate: 0.01
    contract_settle_rate: 0.02
    flat_fee_marker: "PX!"
    flat_win_fee_rate: 0.01
    balance_tolerance: 0.01
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from hedger.fees import (
    DEFAULT_OPEN_FEE_RATE,
    DEFAULT_SETTLE_FEE_RATE,
    FLAT_FEE_MARKER,
    FLAT_WIN_FEE_RATE,
    ContractFees,
    FeePolicy,
    FlatWinningsFee,
    NoFees,
)
from hedger.odds import SIGN_CHOICES
from hedger.solver import BALANCE_TOLERANCE


@dataclass(frozen=True)
class HedgeConfig:
    """User-level settings for the hedge calculator."""

    sign_preference: str = "+"  # sign for bare integers >= 101
    contract_open_rate: float = DEFAULT_OPEN_FEE_RATE
    contract_settle_rate: float = DEFAULT_SETTLE_FEE_RATE
    flat_fee_marker: str = FLAT_FEE_MARKER
    flat_win_fee_rate: float = FLAT_WIN_FEE_RATE
    balance_tolerance: float = BALANCE_TOLERANCE

    def contract_policy(self, side: str = "yes") -> ContractFees:
        """Contract fee policy for a YES or NO wager at the configured rates."""
        return ContractFees(
            open_rate=self.contract_open_rate,
            settle_rate=self.contract_settle_rate,
            side=side,
        )

    def policy_for_marker(self, marker: str | None) -> FeePolicy:
        """Fee policy selected by a sportsbook marker under this config."""
        if marker and marker.strip().upper() == self.flat_fee_marker.upper():
            return FlatWinningsFee(rate=self.flat_win_fee_rate)
        return NoFees()


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file as a dictionary."""
    data = yaml.safe_load(path.read_text())
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping in YAML file: {path}")
    return data


def config_from_dict(data: dict[str, Any]) -> HedgeConfig:
    """Build a HedgeConfig, rejecting unknown keys and bad values."""
    known = {f.name for f in fields(HedgeConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    values = dict(data)
    if "sign_preference" in values:
        values["sign_preference"] = str(values["sign_preference"])
        if values["sign_preference"] not in SIGN_CHOICES:
            raise ValueError(
                f"sign_preference must be '+' or '-', got {values['sign_preference']!r}"
            )
    for key in ("contract_open_rate", "contract_settle_rate", "flat_win_fee_rate", "balance_tolerance"):
        if key in values:
            values[key] = float(values[key])
            if values[key] < 0:
                raise ValueError(f"{key} must be non-negative, got {values[key]}")
    return HedgeConfig(**values)


def load_config(path: Path | None) -> HedgeConfig:
    """Load settings from a YAML file; None gives the defaults."""
    if path is None:
        return HedgeConfig()
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    return config_from_dict(load_yaml(path))
