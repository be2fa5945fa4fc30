#
# A software floating point engine for binary formats of any width.  Bit patterns are
# decoded, classified and converted to and from text, and addition and subtraction are
# correctly rounded, with IEEE-754 status flags and an optional step-by-step account.
#

from .errors import *
from .environment import *
from .floats import *
from .text import *
from .rounding import round_to_format
from .ops import *
from .printers import *

__version__ = '0.1.0'

__all__ = (errors.__all__ + environment.__all__ + floats.__all__ + text.__all__
           + ('round_to_format', ) + ops.__all__ + printers.__all__)
