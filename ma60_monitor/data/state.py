"""
State management for the MA60 crossing monitor.

Tracks the last directional crossing per symbol and persists the whole
map as a single JSON snapshot between daily passes.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

from ma60_monitor.exceptions import StateLoadError, StateSaveError

logger = logging.getLogger(__name__)


class CrossingStatus(str, Enum):
    """Direction of the most recent MA60 crossing."""
    BREAKOUT = "breakout"
    BREAKDOWN = "breakdown"


@dataclass
class TrackedAsset:
    """A symbol whose last MA60 crossing is being followed."""

    symbol: str
    status: CrossingStatus
    event_price: float  # Close at the moment the crossing was detected
    event_date: date

    def __post_init__(self) -> None:
        if not self.symbol:
            raise ValueError("symbol must be non-empty")
        self.status = CrossingStatus(self.status)
        if not self.event_price > 0:
            raise ValueError(f"event_price must be > 0, got {self.event_price}")

    def change_pct(self, current_price: float) -> float:
        """
        Move since the event in the tracked direction, in percent.

        Positive means the crossing is paying off: a rise for a breakout,
        a fall for a breakdown.
        """
        if self.status == CrossingStatus.BREAKOUT:
            return (current_price - self.event_price) / self.event_price * 100
        return (self.event_price - current_price) / self.event_price * 100

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "symbol": self.symbol,
            "status": self.status.value,
            "eventPrice": self.event_price,
            "eventDate": self.event_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrackedAsset":
        """Create from dictionary."""
        return cls(
            symbol=data["symbol"],
            status=CrossingStatus(data["status"]),
            event_price=float(data["eventPrice"]),
            event_date=date.fromisoformat(data["eventDate"]),
        )


@dataclass
class CrossingState:
    """
    Symbol -> TrackedAsset map owned by a single analysis pass.

    Entries are only ever overwritten by a newer crossing; nothing expires.
    """

    assets: Dict[str, TrackedAsset] = field(default_factory=dict)

    def record_event(
        self,
        symbol: str,
        status: CrossingStatus,
        price: float,
        event_date: date,
    ) -> TrackedAsset:
        """
        Record a new crossing, replacing any previous entry for the symbol.

        Args:
            symbol: Trading pair (e.g., 'BTCUSDT')
            status: Crossing direction
            price: Close price at detection
            event_date: Calendar date of detection

        Returns:
            The stored TrackedAsset
        """
        asset = TrackedAsset(
            symbol=symbol,
            status=status,
            event_price=price,
            event_date=event_date,
        )
        self.assets[symbol] = asset
        return asset

    def get(self, symbol: str) -> Optional[TrackedAsset]:
        return self.assets.get(symbol)

    def count_by_status(self) -> Dict[str, int]:
        counts = {s.value: 0 for s in CrossingStatus}
        for asset in self.assets.values():
            counts[asset.status.value] += 1
        return counts

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {symbol: asset.to_dict() for symbol, asset in self.assets.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CrossingState":
        """
        Build state from a decoded snapshot.

        Raises:
            StateLoadError: If the snapshot or any entry is malformed
        """
        if not isinstance(data, dict):
            raise StateLoadError(
                f"State snapshot must be a JSON object, got {type(data).__name__}"
            )

        assets = {}
        for symbol, entry in data.items():
            try:
                asset = TrackedAsset.from_dict(entry)
            except (KeyError, TypeError, ValueError) as e:
                raise StateLoadError(f"Invalid state entry for {symbol}: {e}") from e
            if asset.symbol != symbol:
                raise StateLoadError(
                    f"State key {symbol} does not match entry symbol {asset.symbol}"
                )
            assets[symbol] = asset
        return cls(assets=assets)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self.assets

    def __len__(self) -> int:
        return len(self.assets)

    def __iter__(self) -> Iterator[str]:
        return iter(self.assets)


class StateStore:
    """
    Whole-snapshot JSON persistence for CrossingState.

    Usage:
        store = StateStore("state.json")
        state = store.load()
        ...
        store.save(state)
    """

    def __init__(self, path: Union[str, Path] = "state.json"):
        self.path = Path(path)

    def load(self) -> CrossingState:
        """
        Load state from disk.

        A missing or empty file yields an empty state.

        Raises:
            StateLoadError: If the file exists but cannot be read or parsed
        """
        if not self.path.exists():
            logger.info(f"State file {self.path} not found, starting with empty state")
            return CrossingState()

        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StateLoadError(f"Failed to read state file {self.path}: {e}") from e

        if not raw.strip():
            logger.info(f"State file {self.path} is empty, starting with empty state")
            return CrossingState()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StateLoadError(f"Failed to parse state file {self.path}: {e}") from e

        state = CrossingState.from_dict(data)
        logger.info(f"Loaded state for {len(state)} symbols from {self.path}")
        return state

    def save(self, state: CrossingState) -> None:
        """
        Persist the full state atomically (write .tmp then os.replace).

        Raises:
            StateSaveError: On encoding or I/O failure
        """
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            payload = json.dumps(state.to_dict(), indent=2, ensure_ascii=False)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(str(tmp_path), str(self.path))
        except (OSError, TypeError, ValueError) as e:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                logger.debug(f"Could not remove temp state file {tmp_path}")
            raise StateSaveError(f"Failed to save state to {self.path}: {e}") from e

        logger.info(f"Saved state for {len(state)} symbols to {self.path}")
