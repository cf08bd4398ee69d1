class SineGroupsError (Exception):

	"""Base class for errors raised by sinegroups."""


class DomainViolation (SineGroupsError):

	"""A derived value left its documented range. Indicates a logic defect."""


class SchedulingFailure (SineGroupsError):

	"""The timer queue could not accept an action at the requested timestamp."""


class EngineUnavailable (SineGroupsError):

	"""The sound engine could not be opened or refused an event."""
