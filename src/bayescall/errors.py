"""Exception types for bayescall."""


class BayesCallError(Exception):
    """Base class for all bayescall errors."""


class ConfigurationError(BayesCallError, ValueError):
    """Invalid run configuration, detected before any position is processed."""


class InvalidPloidyError(ConfigurationError):
    """Ploidy must be a positive integer."""


class EmptyAlphabetError(ConfigurationError):
    """The genotype allele alphabet has no symbols."""


class PoolMisuseError(BayesCallError, RuntimeError):
    """An allele slot was used or released after it was returned to its pool."""
