"""
Exception classes for nlcemu.
"""


class NLCEmuError(Exception):
    """Base exception for nlcemu."""
    pass


class ParameterOutOfRange(NLCEmuError, ValueError):
    """A cosmological parameter lies outside the emulator's admissible range."""

    def __init__(self, index, name, value, bound, limit):
        self.index = index
        self.name = name
        self.value = value
        self.bound = bound
        self.limit = limit
        relation = "below" if bound == "minimum" else "above"
        super().__init__(
            f"{name} (parameter {index}) = {value!r} is {relation} its {bound} {limit!r}"
        )


class IntegrationFailure(NLCEmuError, RuntimeError):
    """Adaptive quadrature did not converge within its step budget."""

    def __init__(self, integral, detail=""):
        self.integral = integral
        msg = f"integral '{integral}' did not converge"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class SplineDomainError(NLCEmuError, ValueError):
    """Lookup outside the domain a spline or interpolator was built on."""
    pass


class LoadError(NLCEmuError, OSError):
    """Coefficient table missing, truncated or inconsistent."""
    pass
