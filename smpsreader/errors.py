# errors.py

"""
Exception types raised while reading SMPS files and assembling a
two-stage stochastic program.

All errors derive from SMPSError and also from the closest built-in
exception, so callers that already catch ValueError or NotImplementedError
keep working.
"""


class SMPSError(Exception):
    """Base class for every failure raised by smpsreader."""


class SMPSSyntaxError(SMPSError, ValueError):
    """A token could not be parsed where a number or name was expected."""


class UnknownSectionError(SMPSError, ValueError):
    """A header line names a section keyword we do not recognize."""


class UnsupportedSectionError(SMPSError, NotImplementedError):
    """A recognized section that is not implemented (e.g. SCENARIOS)."""


class UnsupportedFormatError(SMPSError, NotImplementedError):
    """The PERIODS header declares a problem type other than LP."""


class UnsupportedDistributionError(SMPSError, NotImplementedError):
    """INDEP / BLOCKS declared with a distribution we cannot read."""


class DuplicateEntryError(SMPSError, ValueError):
    """A random variable was declared again with a conflicting distribution."""


class UnexpectedEndOfInputError(SMPSError, ValueError):
    """Input ended before the ENDATA terminator."""


class NotTwoStageError(SMPSError, ValueError):
    """The time data does not describe exactly two periods."""


class InvalidPartitionError(SMPSError, ValueError):
    """Period boundaries cannot be mapped onto the core matrix."""


class UnsupportedBoundsError(SMPSError, NotImplementedError):
    """A variable bound other than [0, +inf)."""


class UnsupportedRowBoundsError(SMPSError, NotImplementedError):
    """A ranged (or free) constraint row."""


class MalformedScenarioEntryError(SMPSError, ValueError):
    """A (row, col, value) perturbation that does not fit the program."""
