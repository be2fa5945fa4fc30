#
# Rounding modes, status flags and the floating point environment.
#

from enum import IntFlag

import attr

from .errors import ConfigurationError

__all__ = ('Flags', 'describe_flags', 'Environment', 'DefaultEnvironment', 'ROUNDING_MODES',
           'ROUND_HALF_EVEN', 'ROUND_HALF_UP', 'ROUND_CEILING', 'ROUND_FLOOR', 'ROUND_DOWN')


# Rounding modes
ROUND_HALF_EVEN = 'ROUND_HALF_EVEN'     # To nearest with ties towards even
ROUND_HALF_UP   = 'ROUND_HALF_UP'       # To nearest with ties away from zero
ROUND_CEILING   = 'ROUND_CEILING'       # Towards +infinity
ROUND_FLOOR     = 'ROUND_FLOOR'         # Towards -infinity
ROUND_DOWN      = 'ROUND_DOWN'          # Towards zero

ROUNDING_MODES = (ROUND_HALF_EVEN, ROUND_HALF_UP, ROUND_CEILING, ROUND_FLOOR, ROUND_DOWN)


# Operation status flags.  These are returned alongside the result of every arithmetic
# operation and are never raised.
class Flags(IntFlag):
    INVALID     = 0x01
    DIV_BY_ZERO = 0x02
    OVERFLOW    = 0x04
    UNDERFLOW   = 0x08
    INEXACT     = 0x10


def describe_flags(flags):
    '''Return the names of the raised flags separated by ' | ', or 'none'.'''
    return ' | '.join(flag.name for flag in Flags if flag & flags) or 'none'


def _check_rounding(_instance, _attribute, value):
    if value not in ROUNDING_MODES:
        raise ConfigurationError(f'unknown rounding mode: {value!r}')


@attr.s(slots=True, frozen=True, kw_only=True)
class Environment:
    '''The environment arithmetic operations execute in.  It is passed explicitly to every
    operation; there is no ambient rounding state.'''

    # One of the ROUND_ constants; controls the rounding of inexact results.
    rounding = attr.ib(default=ROUND_HALF_EVEN, validator=_check_rounding)
    # If True subnormal results are flushed to zero.  No operation implemented so far
    # consults this; see BitFloat.flush_subnormals().
    flush_subnormals_to_zero = attr.ib(default=False, converter=bool)
    # Whether tininess is detected after rounding (True) or before it.
    tininess_after = attr.ib(default=True, converter=bool)

    def round_to_nearest(self):
        '''Return True if the rounding mode rounds to nearest (ignoring ties).'''
        return self.rounding in {ROUND_HALF_EVEN, ROUND_HALF_UP}


DefaultEnvironment = Environment()
