# These are imported by every module
import logging

from typing import Any
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple
from typing import Union

from dataclasses import dataclass
import ctypes
import enum
import io
import sys

from ctypes import sizeof
from ctypes import c_int8 as I8
from ctypes import c_ssize_t as ISize

# Move deltas are "platform width": the range of a C ssize_t.
ISIZE_MAX = 2 ** (8 * sizeof(ISize) - 1) - 1
ISIZE_MIN = -ISIZE_MAX - 1
