"""OSC output to an external additive synth.

The core never renders audio.  ``OscEngine`` sends each group to a synth
server (SuperCollider, or anything that listens for OSC) as one message:

``/sine_group duration balance group_volume f1..f12 r1_1..r12_12 v1_1..v12_12``

- 12 voice fundamentals in Hz
- 144 partial ratios, voice by voice
- 144 partial volumes, voice by voice

With ``latency`` set, the message is wrapped in a bundle time-tagged
``latency`` seconds ahead, so the server can start the group sample-accurately
instead of on arrival.
"""

import logging
import time
import typing

import pythonosc.osc_bundle_builder
import pythonosc.osc_message_builder
import pythonosc.udp_client

import sinegroups.errors
import sinegroups.stochastic


logger = logging.getLogger(__name__)


DEFAULT_ADDRESS = "/sine_group"


def group_arguments (group: sinegroups.stochastic.GroupParameters) -> typing.List[float]:

	"""Flatten a group into the OSC argument list, in message order."""

	args: typing.List[float] = [group.duration, group.balance, group.group_volume]
	args.extend(group.fundamentals)

	for voice in group.voices:
		args.extend(voice.ratios)

	for voice in group.voices:
		args.extend(voice.volumes)

	return [float(arg) for arg in args]


class OscEngine:

	"""Sound engine adapter that sends groups over UDP."""

	def __init__ (
		self,
		host: str = "127.0.0.1",
		port: int = 57120,
		address: str = DEFAULT_ADDRESS,
		latency: float = 0.0
	) -> None:

		if latency < 0:
			raise ValueError("latency must not be negative")

		self._host = host
		self._port = port
		self._address = address
		self._latency = latency
		self._client: typing.Optional[pythonosc.udp_client.SimpleUDPClient] = None

	def open (self) -> None:

		"""Create the UDP client."""

		try:
			self._client = pythonosc.udp_client.SimpleUDPClient(self._host, self._port)
		except OSError as e:
			raise sinegroups.errors.EngineUnavailable(f"Cannot reach OSC synth at {self._host}:{self._port}: {e}") from e

		logger.info(f"OSC engine sending {self._address} to {self._host}:{self._port}")

	def play (self, group: sinegroups.stochastic.GroupParameters) -> None:

		"""Send one group."""

		if self._client is None:
			raise sinegroups.errors.EngineUnavailable("OSC engine is not open")

		args = group_arguments(group)

		try:
			if self._latency > 0:
				self._client.send(self._build_bundle(args))
			else:
				self._client.send_message(self._address, args)
		except OSError as e:
			raise sinegroups.errors.EngineUnavailable(f"OSC send failed: {e}") from e

	def close (self) -> None:

		if self._client is not None:
			self._client = None
			logger.info("OSC engine closed")

	def _build_bundle (self, args: typing.List[float]) -> typing.Any:

		message = pythonosc.osc_message_builder.OscMessageBuilder(address=self._address)

		for arg in args:
			message.add_arg(arg)

		bundle = pythonosc.osc_bundle_builder.OscBundleBuilder(time.time() + self._latency)
		bundle.add_content(message.build())

		return bundle.build()
