import weakref
import contextlib
import logging
import numpy as np
from weakgrad import utils

logger = logging.getLogger(__name__)


# =============================================================================
# Config
# =============================================================================
class Config:
    # when False, operations compute values only and record no graph
    enable_backprop = True


@contextlib.contextmanager
def using_config(name, value):
    old_value = getattr(Config, name)
    setattr(Config, name, value)
    try:
        yield
    finally:
        setattr(Config, name, old_value)


def no_grad():
    """Build values without dependencies or backward rules."""
    return using_config("enable_backprop", False)


# =============================================================================
# Node
# =============================================================================
class Node:
    """A vertex of the computation graph.

    ``_prev`` holds weak references to the nodes this one was computed from,
    in operand order. ``_backward`` pushes ``grad`` into those nodes.
    """

    __array_priority__ = 200

    def __init__(self, data, dependencies=(), op="", name=None):
        if not isinstance(data, np.ndarray):
            raise TypeError("{} is not supported".format(type(data)))
        # gradients are accumulated in place, so they must hold fractions
        if data.dtype.kind in "biu":
            data = data.astype(np.float64)

        self.data = data
        self.name = name
        self.grad = np.zeros_like(data)
        self._backward = lambda: None
        self._prev = [weakref.ref(d) for d in dependencies]
        self.op = op

    @property
    def shape(self):
        return self.data.shape

    @property
    def ndim(self):
        return self.data.ndim

    @property
    def size(self):
        return self.data.size

    @property
    def dtype(self):
        return self.data.dtype

    @property
    def dependencies(self):
        """Dependency nodes that are still alive."""
        deps = [ref() for ref in self._prev]
        return [d for d in deps if d is not None]

    def __len__(self):
        return len(self.data)

    def __repr__(self):
        return format_node(self)

    def cleargrad(self):
        self.grad = np.zeros_like(self.data)

    def backward(self):
        backward(self)


def format_node(node):
    indent = " " * 5
    data = str(node.data).replace("\n", "\n" + indent)
    grad = str(node.grad).replace("\n", "\n" + indent)
    if node.name is None:
        return "node(data={}, grad={}, op={})".format(data, grad, node.op)
    return "node({}: data={}, grad={}, op={})".format(node.name, data, grad, node.op)


def as_array(x):
    if np.isscalar(x):
        return np.array(x)
    return x


def as_node(obj):
    if isinstance(obj, Node):
        return obj
    # scalars become one-element leaves
    if np.isscalar(obj):
        return Node(np.array([obj], dtype=np.float64))
    return Node(np.asarray(obj))


def create_leaf(data, name=None):
    return Node(np.asarray(data), name=name)


def zero_grad(*nodes):
    for node in nodes:
        node.cleargrad()


# =============================================================================
# Backward engine
# =============================================================================
def topological_sort(root):
    """Return the nodes reachable from ``root`` in post-order.

    Every node comes after all of its dependencies and appears once. The
    walk is a loop over an explicit stack so deep chains do not hit the
    recursion limit.
    """
    order = []
    seen = set()
    stack = [(root, False)]

    while stack:
        node, expanded = stack.pop()
        if expanded:
            order.append(node)
            continue
        if node in seen:
            continue
        seen.add(node)
        stack.append((node, True))

        # reversed so the first operand is walked first
        for ref in reversed(node._prev):
            dep = ref()
            if dep is None:
                logger.debug("skipping expired dependency of %s node", node.op or "leaf")
                continue
            if dep not in seen:
                stack.append((dep, False))

    return order


def backward(root):
    """Accumulate d(root)/d(node) into ``grad`` of every reachable node.

    Gradients already present are kept: each pass starts from fresh zeros,
    runs the rules in reverse topological order and adds the result onto the
    previous values. Use ``cleargrad`` / ``zero_grad`` to start over.
    """
    order = topological_sort(root)
    logger.debug("backward from %s node over %d nodes", root.op or "leaf", len(order))

    held = [node.grad for node in order]
    for node in order:
        node.grad = np.zeros_like(node.data)

    root.grad = np.ones_like(root.data)
    try:
        for node in reversed(order):
            node._backward()
    except Exception:
        # a failed pass leaves the gradients as they were before it
        for node, prev in zip(order, held):
            node.grad = prev
        raise

    for node, prev in zip(order, held):
        node.grad += prev


# =============================================================================
# Function
# =============================================================================
class Function:
    symbol = ""

    def __call__(self, *inputs):
        inputs = [as_node(x) for x in inputs]

        xs = [x.data for x in inputs]
        y = as_array(self.forward(*xs))

        if not Config.enable_backprop:
            return Node(y)

        output = Node(y, inputs, self.symbol)
        output._backward = self._propagate
        # inputs are held here, the output only weakly (output -> function -> inputs)
        self.inputs = inputs
        self.output = weakref.ref(output)
        return output

    def _propagate(self):
        gy = self.output().grad
        gxs = self.backward(gy)
        if not isinstance(gxs, tuple):
            gxs = (gxs,)

        for x, gx in zip(self.inputs, gxs):
            x.grad += utils.sum_to(gx, x.shape)

    def forward(self, *xs):
        raise NotImplementedError()

    def backward(self, gy):
        raise NotImplementedError()


# =============================================================================
# Operators: add / mul / neg / scalar add
# =============================================================================
class Add(Function):
    symbol = "+"

    def forward(self, x0, x1):
        return x0 + x1

    def backward(self, gy):
        return gy, gy


def add(x0, x1):
    return Add()(x0, x1)


def radd(x0, x1):
    return add(x1, x0)


def add_scalar(x, s):
    if not np.isscalar(s):
        raise TypeError("{} is not a scalar".format(type(s)))
    return add(x, s)


class Mul(Function):
    symbol = "*"

    def forward(self, x0, x1):
        return x0 * x1

    def backward(self, gy):
        # product rule against the other operand's value
        a, b = (x.data for x in self.inputs)
        return gy * b, gy * a


def mul(x0, x1):
    return Mul()(x0, x1)


def rmul(x0, x1):
    return mul(x1, x0)


multiply = mul


def neg(x):
    minus_one = Node(np.array([-1.0]))
    return mul(x, minus_one)


negate = neg


def setup_node():
    Node.__add__ = add
    Node.__radd__ = radd
    Node.__mul__ = mul
    Node.__rmul__ = rmul
    Node.__neg__ = neg
