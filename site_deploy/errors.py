"""
Exceptions raised by the deployment stages.

Every failure in the workflow is fatal: the stage that hits the problem logs
what happened and raises one of these, and `deploy.main` turns it into a
non-zero exit status. Nothing is rolled back.
"""


class DeployError(Exception):
    """Base class for every fatal deployment error."""


class ConfigurationError(DeployError):
    """A required setting is missing or malformed."""


class ProvisioningError(DeployError):
    """An AWS call failed or returned no usable identifier or output."""


class ValidationTimeoutError(DeployError):
    """The DNS validation record never showed up within the polling budget."""


class ValidationFailedError(DeployError):
    """ACM gave up on (or failed) issuing the certificate."""


class OperatorAbortError(DeployError):
    """The operator never confirmed the DNS record (input stream closed)."""
