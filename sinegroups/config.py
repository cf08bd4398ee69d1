import dataclasses
import logging
import os
import typing

import yaml

import sinegroups.constants


logger = logging.getLogger(__name__)


def load_config (config_path: str = 'config.yaml') -> dict:

	"""
	Load configuration from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, 'r') as f:
		data = yaml.safe_load(f)

	if data is None:
		return {}

	if not isinstance(data, dict):
		raise ValueError(f"Config file {config_path} must contain a mapping")

	return data


@dataclasses.dataclass
class PieceConfig:

	"""
	Settings for one performance of the piece.

	Read from the ``piece:`` and ``osc:`` sections of the config file, e.g.::

		piece:
		  base_frequency: 55.0
		  seed: 42
		osc:
		  host: 127.0.0.1
		  port: 57120
	"""

	base_frequency: float = sinegroups.constants.BASE_FREQUENCY
	group_duration: float = sinegroups.constants.GROUP_DURATION
	max_volume: float = sinegroups.constants.VOLUME_MAX
	bpm: float = sinegroups.constants.BPM
	lookahead: float = 0.0
	seed: typing.Optional[int] = None
	osc_host: str = "127.0.0.1"
	osc_port: int = 57120
	osc_latency: float = 0.0

	def __post_init__ (self) -> None:

		if self.base_frequency <= 0:
			raise ValueError("base_frequency must be positive")

		if self.group_duration <= 0:
			raise ValueError("group_duration must be positive")

		if not 0 <= self.max_volume <= 1:
			raise ValueError("max_volume must be between 0 and 1")

		if self.bpm <= 0:
			raise ValueError("BPM must be positive")

		if not 0 <= self.lookahead < 60.0 / self.bpm:
			raise ValueError("lookahead must be at least 0 and shorter than one beat")

		if self.osc_latency < 0:
			raise ValueError("osc_latency must not be negative")

	@property
	def beats_per_second (self) -> float:
		return self.bpm / 60.0

	@classmethod
	def from_dict (cls, data: typing.Dict[str, typing.Any]) -> "PieceConfig":

		"""Build a config from a parsed YAML mapping; unknown keys are ignored with a warning."""

		fields = {field.name for field in dataclasses.fields(cls)}
		values: typing.Dict[str, typing.Any] = {}

		for key, value in (data.get('piece') or {}).items():
			if key in fields and not key.startswith('osc_'):
				values[key] = value
			else:
				logger.warning(f"Unknown piece setting {key!r} ignored")

		for key, value in (data.get('osc') or {}).items():
			if f"osc_{key}" in fields:
				values[f"osc_{key}"] = value
			else:
				logger.warning(f"Unknown osc setting {key!r} ignored")

		return cls(**values)

	@classmethod
	def from_yaml (cls, config_path: str = 'config.yaml') -> "PieceConfig":
		return cls.from_dict(load_config(config_path))
