from weakgrad.core import Node
from weakgrad.core import Function
from weakgrad.core import Config
from weakgrad.core import using_config
from weakgrad.core import no_grad
from weakgrad.core import as_array
from weakgrad.core import as_node
from weakgrad.core import create_leaf
from weakgrad.core import zero_grad
from weakgrad.core import format_node
from weakgrad.core import topological_sort
from weakgrad.core import backward
from weakgrad.core import add
from weakgrad.core import add_scalar
from weakgrad.core import mul
from weakgrad.core import multiply
from weakgrad.core import neg
from weakgrad.core import negate
from weakgrad.core import setup_node

import weakgrad.utils

setup_node()
__version__ = "0.1.0"
