"""Exceptions for the cron-job.org integration."""


class ConfigurationError(Exception):
    """Raised at construction when a required credential is missing.

    This is the only error in the integration that is raised instead of
    returned as a ServiceResult.
    """
