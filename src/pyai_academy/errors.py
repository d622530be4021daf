"""Exception types raised by the progress and assessment engine."""


class AcademyError(Exception):
    """Base class for engine errors."""


class ContentNotFound(AcademyError):
    """A course, lesson, exercise, test or user id does not resolve."""


class MalformedContent(AcademyError):
    """Catalog content is unusable, e.g. a question without a correct answer."""


class StorePersistenceFailure(AcademyError):
    """A write to (or read from) the user record store failed."""


class InvalidSessionTransition(AcademyError):
    """An operation was attempted on a test session in the wrong state."""


class PremiumAccessRequired(AcademyError):
    """The lesson or test is behind the premium gate for this user."""
