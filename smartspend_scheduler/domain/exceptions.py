"""Domain-specific exceptions"""


class SchedulerError(Exception):
    """Base exception for the scheduler"""

    pass


class ConfigurationError(SchedulerError):
    """Schedule or runtime configuration is invalid (fatal at startup)"""

    pass


class JobNotFoundError(SchedulerError):
    """No job is registered under the requested name"""

    pass


class InvalidIntervalError(SchedulerError):
    """Stored recurrence interval is not one of the supported tags"""

    pass


class UnknownAchievementError(SchedulerError):
    """Achievement key has no definition"""

    pass


class DeliveryError(SchedulerError):
    """Push or email delivery to an external service failed"""

    pass
