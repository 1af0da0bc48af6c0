"""
Unit tests for circuit.py: allocation modes, bit and byte allocation, and
how assertions are counted and reported.
"""

import pytest

from circuit import (
    AllocationMode,
    AssignmentMissing,
    Circuit,
    SynthesisError,
    conditional_swap,
    is_constant,
    value_of,
)
from hash_utils import FIELD_MODULUS


class TestAllocate:

    def test_constant_is_plain_int(self):
        circuit = Circuit()
        x = circuit.allocate(FIELD_MODULUS + 3, AllocationMode.CONSTANT)
        assert x == 3
        assert circuit.public_inputs == []
        assert circuit.witnesses == []

    def test_input_is_recorded_as_public(self):
        circuit = Circuit()
        x = circuit.allocate(42, AllocationMode.INPUT)
        assert not is_constant(x)
        assert value_of(x) == 42
        assert circuit.public_inputs == [42]
        assert circuit.witnesses == []

    def test_witness_is_recorded_as_private(self):
        circuit = Circuit()
        x = circuit.allocate(lambda: 9, AllocationMode.WITNESS)
        assert value_of(x) == 9
        assert circuit.witnesses == [9]
        assert circuit.public_inputs == []

    def test_missing_value(self):
        with pytest.raises(AssignmentMissing):
            Circuit().allocate(lambda: None, AllocationMode.WITNESS)

    def test_non_integer_value(self):
        with pytest.raises(SynthesisError, match="str"):
            Circuit().allocate("7", AllocationMode.INPUT)

    def test_closure_error_propagates(self):
        def broken():
            raise KeyError("witness lookup")

        circuit = Circuit()
        with pytest.raises(KeyError):
            circuit.allocate(broken, AllocationMode.WITNESS)
        assert circuit.witnesses == []

    def test_finalized_circuit_rejects_allocation(self):
        circuit = Circuit()
        circuit.finalize()
        assert circuit.is_finalized
        with pytest.raises(SynthesisError, match="finalized"):
            circuit.allocate(1, AllocationMode.WITNESS)
        # constants are not part of the circuit
        assert circuit.allocate(1, AllocationMode.CONSTANT) == 1


class TestBitsAndBytes:

    def test_bit_adds_booleanity_check(self):
        circuit = Circuit()
        bit = circuit.allocate_bit(1, AllocationMode.WITNESS)
        assert value_of(bit) == 1
        assert circuit.num_assertions == 1
        assert circuit.is_satisfied()

    def test_non_boolean_witness_fails(self):
        circuit = Circuit()
        with circuit.namespace("path"):
            circuit.allocate_bit(2, AllocationMode.WITNESS)
        assert not circuit.is_satisfied()
        assert circuit.which_is_unsatisfied() == (0, "path/bit")

    def test_constant_bit_out_of_range(self):
        with pytest.raises(SynthesisError, match="0 or 1"):
            Circuit().allocate_bit(2, AllocationMode.CONSTANT)

    def test_byte_packs_eight_bits(self):
        circuit = Circuit()
        byte = circuit.allocate_byte(0xA5, AllocationMode.WITNESS)
        assert value_of(byte) == 0xA5
        assert circuit.witnesses == [1, 0, 1, 0, 0, 1, 0, 1]
        assert circuit.num_assertions == 8
        assert circuit.is_satisfied()

    def test_constant_byte(self):
        circuit = Circuit()
        assert circuit.allocate_byte(200, AllocationMode.CONSTANT) == 200
        assert circuit.num_assertions == 0

    @pytest.mark.parametrize("value", [-1, 256, "a"])
    def test_byte_out_of_range(self, value):
        with pytest.raises(SynthesisError, match="out of range"):
            Circuit().allocate_byte(value, AllocationMode.WITNESS)

    def test_byte_missing(self):
        with pytest.raises(AssignmentMissing):
            Circuit().allocate_byte(None, AllocationMode.WITNESS)


class TestConditionalSwap:

    def test_constant_bit(self):
        assert conditional_swap(0, 5, 7) == (5, 7)
        assert conditional_swap(1, 5, 7) == (7, 5)

    @pytest.mark.parametrize("bit, expected", [(0, (5, 7)), (1, (7, 5))])
    def test_witness_bit(self, bit, expected):
        circuit = Circuit()
        b = circuit.allocate_bit(bit, AllocationMode.WITNESS)
        a = circuit.allocate(5, AllocationMode.WITNESS)
        left, right = conditional_swap(b, a, 7)
        assert (value_of(left), value_of(right)) == expected


class TestAssertions:

    def test_holding_constant_assertion_is_free(self):
        circuit = Circuit()
        circuit.assert_equal(4, 4)
        assert circuit.num_assertions == 0
        assert circuit.is_satisfied()

    def test_failing_constant_assertion_is_counted(self):
        circuit = Circuit()
        circuit.assert_equal(4, 5, "eq")
        assert circuit.num_assertions == 1
        assert circuit.which_is_unsatisfied() == (0, "eq")

    def test_failure_labels_follow_namespaces(self):
        circuit = Circuit()
        x = circuit.allocate(3, AllocationMode.WITNESS)
        circuit.assert_equal(x, 3, "first")
        with circuit.namespace("outer"), circuit.namespace("inner"):
            circuit.assert_equal(x, 4, "second")
        circuit.assert_zero(x)
        assert circuit.num_assertions == 3
        assert circuit.failures == [(1, "outer/inner/second"), (2, "")]
        assert circuit.which_is_unsatisfied() == (1, "outer/inner/second")

    def test_satisfied_circuit_reports_nothing(self):
        circuit = Circuit()
        x = circuit.allocate(3, AllocationMode.INPUT)
        circuit.assert_equal(x * 2, 6)
        assert circuit.is_satisfied()
        assert circuit.which_is_unsatisfied() is None

    def test_finalized_circuit_rejects_assertions(self):
        circuit = Circuit()
        circuit.finalize()
        with pytest.raises(SynthesisError, match="finalized"):
            circuit.assert_zero(0)
