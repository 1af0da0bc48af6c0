# circuit.py
"""
Per-proof circuit context on top of the PySNARK runtime.

PySNARK keeps one runtime per process: every PubVal/PrivVal becomes a
variable, every product of two LinCombs becomes a constraint, and the whole
lot is proven when the @snark function returns. An assert_zero() on a value
that is not zero aborts circuit construction.

A membership check has to be decidable instead: a wrong opening must leave
an unsatisfiable circuit behind, not an exception half-way through building
it. Circuit is the thin layer that gives one proof its own bookkeeping:

- constants stay plain ints, public inputs go through PubVal, private
  witnesses through PrivVal
- assert_zero() hands holding assertions to LinComb.assert_zero() and
  records failing ones, labelled with the current namespace
- is_satisfied() / which_is_unsatisfied() report the outcome

Values flowing through the gadgets are therefore either plain ints (folded
natively) or PySNARK LinComb objects.
"""

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, List, Optional, Tuple, Union

from pysnark.runtime import LinComb, PrivVal, PubVal

from hash_utils import FIELD_MODULUS

logger = logging.getLogger(__name__)

Value = Union[int, LinComb]


class SynthesisError(Exception):
    """The circuit-building context was used incorrectly."""


class AssignmentMissing(SynthesisError):
    """A variable was allocated without a value."""


class AllocationMode(Enum):
    """
    Visibility of an allocated value.

    - CONSTANT: baked into the circuit, identical for every proof
    - INPUT:    public input, supplied independently by the verifier
    - WITNESS:  private, known only to the prover
    """
    CONSTANT = "constant"
    INPUT = "input"
    WITNESS = "witness"


def value_of(x: Value) -> int:
    """The field element a plain int or a LinComb currently stands for."""
    if isinstance(x, LinComb):
        return x.value % FIELD_MODULUS
    return x % FIELD_MODULUS


def is_constant(x: Value) -> bool:
    return not isinstance(x, LinComb)


def conditional_swap(bit: Value, a: Value, b: Value) -> Tuple[Value, Value]:
    """
    (a, b) if bit == 0, (b, a) if bit == 1, with one multiplication:
    d = bit * (b - a); (a + d, b - d).
    """
    if is_constant(bit):
        return (b, a) if value_of(bit) else (a, b)
    d = bit * (b - a)
    return a + d, b - d


class Circuit:
    """
    Bookkeeping for one proof instance.

    public_inputs / witnesses list the values allocated through this context
    in allocation order. Not safe for concurrent use.
    """

    def __init__(self) -> None:
        self.public_inputs: List[int] = []
        self.witnesses: List[int] = []
        self.num_assertions = 0
        self.failures: List[Tuple[int, str]] = []
        self._namespace: List[str] = []
        self._finalized = False

    # ---------------------------------------------------------------------
    # lifecycle
    # ---------------------------------------------------------------------

    def check_open(self) -> None:
        if self._finalized:
            raise SynthesisError("circuit is finalized")

    def finalize(self) -> None:
        """No further allocations or assertions are accepted afterwards."""
        self._finalized = True
        logger.debug(
            "circuit finalized: %d assertions, %d public inputs, %d witnesses",
            self.num_assertions, len(self.public_inputs), len(self.witnesses),
        )

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    @contextmanager
    def namespace(self, name: str) -> Iterator["Circuit"]:
        self._namespace.append(name)
        try:
            yield self
        finally:
            self._namespace.pop()

    def _label(self, name: Optional[str]) -> str:
        parts = self._namespace + ([name] if name else [])
        return "/".join(parts)

    # ---------------------------------------------------------------------
    # allocation
    # ---------------------------------------------------------------------

    @staticmethod
    def _resolve(f) -> int:
        value = f() if callable(f) else f
        if value is None:
            raise AssignmentMissing("no value supplied for allocation")
        if not isinstance(value, int):
            raise SynthesisError("allocated value must be an int, got %s" % type(value).__name__)
        return value % FIELD_MODULUS

    def allocate(self, f, mode: AllocationMode) -> Value:
        """
        Allocate a field element.

        `f` is the value or a closure producing it; exceptions raised by the
        closure propagate.
        """
        if mode is AllocationMode.CONSTANT:
            return self._resolve(f)
        self.check_open()
        value = self._resolve(f)
        if mode is AllocationMode.INPUT:
            self.public_inputs.append(value)
            return PubVal(value)
        self.witnesses.append(value)
        return PrivVal(value)

    def allocate_bit(self, f, mode: AllocationMode) -> Value:
        """Allocate a value constrained to 0 or 1: b * (b - 1) = 0."""
        bit = self.allocate(f, mode)
        if not is_constant(bit):
            self.assert_zero(bit * (bit - 1), "bit")
        elif bit not in (0, 1):
            raise SynthesisError("constant bit must be 0 or 1, got %d" % bit)
        return bit

    def allocate_byte(self, f, mode: AllocationMode) -> Value:
        """
        Allocate a byte as eight little-endian bits and return the packed
        linear combination sum(bit_i * 2**i).
        """
        value = f() if callable(f) else f
        if value is None:
            raise AssignmentMissing("no value supplied for byte")
        if not isinstance(value, int) or not 0 <= value < 256:
            raise SynthesisError("byte value out of range: %r" % (value,))
        if mode is AllocationMode.CONSTANT:
            return value
        bits = [self.allocate_bit((value >> i) & 1, mode) for i in range(8)]
        packed = bits[0]
        for i, bit in enumerate(bits[1:], start=1):
            packed = packed + bit * (1 << i)
        return packed

    # ---------------------------------------------------------------------
    # assertions
    # ---------------------------------------------------------------------

    def assert_zero(self, x: Value, name: Optional[str] = None) -> None:
        """
        Require x == 0.

        Holding assertions on LinComb values go to PySNARK. Failing ones are
        recorded, since PySNARK would abort on them. Holding assertions on
        constants need no constraint.
        """
        self.check_open()
        if is_constant(x) and value_of(x) == 0:
            return
        index = self.num_assertions
        self.num_assertions += 1
        if value_of(x) != 0:
            label = self._label(name)
            self.failures.append((index, label))
            logger.debug("assertion %d (%s) does not hold", index, label or "<root>")
            return
        x.assert_zero()

    def assert_equal(self, a: Value, b: Value, name: Optional[str] = None) -> None:
        self.assert_zero(a - b, name)

    # ---------------------------------------------------------------------
    # outcome
    # ---------------------------------------------------------------------

    def is_satisfied(self) -> bool:
        return not self.failures

    def which_is_unsatisfied(self) -> Optional[Tuple[int, str]]:
        """(index, namespace label) of the first failing assertion, or None."""
        return self.failures[0] if self.failures else None


class AllocVar:
    """
    Allocation entry points shared by every circuit-variable type.

    Subclasses implement new_variable(circuit, f, mode); the three shorthands
    below fix the mode explicitly so callers never rely on an implicit
    default.
    """

    @classmethod
    def new_variable(cls, circuit: Circuit, f, mode: AllocationMode):
        raise NotImplementedError

    @classmethod
    def new_constant(cls, circuit: Circuit, value):
        return cls.new_variable(circuit, value, AllocationMode.CONSTANT)

    @classmethod
    def new_input(cls, circuit: Circuit, f):
        return cls.new_variable(circuit, f, AllocationMode.INPUT)

    @classmethod
    def new_witness(cls, circuit: Circuit, f):
        return cls.new_variable(circuit, f, AllocationMode.WITNESS)
