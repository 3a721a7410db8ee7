from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path

from synthlink.protocol.codes import RolandSysexCodes
from synthlink.transfer.orchestrator import TransferTimings


@dataclass
class MidiConfig:
    device_prefix: str = "MicroFreak"
    backend: str = "mido.backends.rtmidi"
    roland_device_id: int = RolandSysexCodes.DEFAULT_DEVICE_ID


@dataclass
class TimingConfig:
    name_timeout_s: float = 2.0
    exchange_timeout_s: float = 1.0
    pacing_s: float = 0.015

    def to_timings(self) -> TransferTimings:
        return TransferTimings(
            name_timeout_s=self.name_timeout_s,
            exchange_timeout_s=self.exchange_timeout_s,
            pacing_s=self.pacing_s,
        )


@dataclass
class AppConfig:
    midi: MidiConfig = field(default_factory=MidiConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)

    @classmethod
    def default(cls) -> AppConfig:
        return cls()


def _known(cls: type, data: dict) -> dict:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


class ConfigManager:
    def __init__(self, config_path: Path | str = "synthlink.json") -> None:
        self.config_path = Path(config_path)
        self.config = self.load()

    def load(self) -> AppConfig:
        if not self.config_path.exists():
            logging.info(f"Config file not found at {self.config_path}, using defaults.")
            return AppConfig.default()

        try:
            with open(self.config_path, "r") as f:
                data = json.load(f)
            return AppConfig(
                midi=MidiConfig(**_known(MidiConfig, data.get("midi", {}))),
                timing=TimingConfig(**_known(TimingConfig, data.get("timing", {}))),
            )
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logging.error(f"Failed to load config: {e}")
            return AppConfig.default()

    def save(self) -> None:
        try:
            with open(self.config_path, "w") as f:
                json.dump(asdict(self.config), f, indent=4)
        except OSError as e:
            logging.error(f"Failed to save config: {e}")

    @property
    def device_prefix(self) -> str:
        return self.config.midi.device_prefix

    @device_prefix.setter
    def device_prefix(self, value: str) -> None:
        self.config.midi.device_prefix = value
        self.save()

    @property
    def timings(self) -> TransferTimings:
        return self.config.timing.to_timings()
