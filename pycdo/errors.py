"""pycdo.errors
Exception types raised while configuring and assembling source terms.
"""


class InvalidConfiguration(ValueError):
    """A source term was defined with inconsistent data (id, subset, value kind)."""


class UnsupportedConfiguration(NotImplementedError):
    """No evaluator exists for a (scheme, support, definition, quadrature) combination."""


class NumericalDegeneracy(RuntimeError):
    """A geometric quantity used as a divisor vanished on a given cell."""

    def __init__(self, message, *, c_id=None, v_id=None):
        super().__init__(message)
        self.c_id = c_id
        self.v_id = v_id
