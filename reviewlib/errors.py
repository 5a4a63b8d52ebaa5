#============================================
class ReviewError(RuntimeError):
	"""
	Base class for perf-review failures.
	"""


#============================================
class ConfigurationError(ReviewError):
	"""
	Raised when a required credential or identity is missing.
	"""


#============================================
class InvalidDate(ReviewError, ValueError):
	"""
	Raised when date input cannot be parsed into a calendar date.
	"""


#============================================
class UpstreamItemError(ReviewError):
	"""
	Raised when one remote detail lookup fails inside a batch.
	"""


#============================================
class SummaryUnavailable(ReviewError):
	"""
	Raised when narrative generation fails or is not configured.
	"""


#============================================
class RenderTargetError(ReviewError):
	"""
	Raised when writing to a file or Notion destination fails.
	"""


#============================================
class NarrativeAlreadyPresent(ReviewError):
	"""
	Raised when a document already carries a narrative section.
	"""


#============================================
class LinearAPIError(ReviewError):
	"""
	Raised when a Linear GraphQL request fails.
	"""


#============================================
class RateLimitError(ReviewError):
	"""
	Raised when GitHub API rate limits block further requests.
	"""
