import asyncio
import inspect
import logging
import typing


logger = logging.getLogger(__name__)


CallbackType = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	Named-event notification for the scheduler (``start``, ``beat``, ``play``, ``stop``).

	Events are emitted from inside timer actions, which are plain functions, so
	``emit`` never awaits: sync listeners run immediately and async listeners
	are started as tasks on the running loop.

	A failing listener is logged and never reaches the emitter, so a broken
	hook cannot cost the piece a beat.
	"""

	def __init__ (self) -> None:

		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {}
		self._tasks: typing.Set[asyncio.Task] = set()

	def on (self, event_name: str, callback: CallbackType) -> None:

		"""
		Register a callback for an event name.
		"""

		self._listeners.setdefault(event_name, []).append(callback)

	def off (self, event_name: str, callback: CallbackType) -> None:

		"""
		Unregister a previously registered callback.

		Raises ``ValueError`` if the callback is not registered for the event.
		"""

		if callback not in self._listeners.get(event_name, []):
			raise ValueError(f"Callback not registered for event {event_name!r}")

		self._listeners[event_name].remove(callback)

	def emit (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Call every listener for ``event_name``.

		Async listeners need a running event loop.
		"""

		for callback in list(self._listeners.get(event_name, [])):

			if inspect.iscoroutinefunction(callback):
				task = asyncio.get_running_loop().create_task(callback(*args, **kwargs), name=f"{event_name} listener")
				self._tasks.add(task)
				task.add_done_callback(self._listener_done)

			else:
				try:
					callback(*args, **kwargs)
				except Exception:
					logger.exception(f"{event_name} listener failed")

	@property
	def pending (self) -> int:

		"""Number of async listeners still running."""

		return len(self._tasks)

	async def cancel_pending (self) -> None:

		"""
		Cancel every async listener still running and wait for them to finish.
		"""

		tasks = list(self._tasks)

		for task in tasks:
			task.cancel()

		if tasks:
			await asyncio.gather(*tasks, return_exceptions=True)

	def _listener_done (self, task: asyncio.Task) -> None:

		self._tasks.discard(task)

		if task.cancelled():
			return

		error = task.exception()

		if error is not None:
			logger.error(f"{task.get_name()} failed", exc_info=error)
